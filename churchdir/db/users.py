"""User collection operations."""

import logging
from typing import Any, Callable, Optional
from google.api_core.exceptions import FailedPrecondition
from google.cloud import firestore
from google.cloud.firestore_v1 import DocumentReference, DocumentSnapshot

from ..exceptions import NotFoundError
from ..models import ChurchMembership
from .firestore_client import get_firestore_client


logger = logging.getLogger(__name__)

COLLECTION_NAME = 'users'

# Attempts for optimistic read-modify-write of the membership array
MAX_MUTATION_ATTEMPTS = 5


def user_ref(user_id: str) -> DocumentReference:
    db = get_firestore_client()
    return db.collection(COLLECTION_NAME).document(user_id)


def get_user_snapshot(user_id: str) -> Optional[DocumentSnapshot]:
    """
    Get the raw user document snapshot.

    Args:
        user_id: Firebase Auth uid (also the document ID)

    Returns:
        DocumentSnapshot if the user exists, None otherwise
    """
    doc = user_ref(user_id).get()
    if not doc.exists:
        return None
    return doc


def get_user_data(user_id: str) -> Optional[dict[str, Any]]:
    """
    Get a user document as a dict.

    Example:
        >>> data = get_user_data('u1')
        >>> data['displayName'] if data else None
        'Ana Torres'
    """
    doc = get_user_snapshot(user_id)
    if doc is None:
        return None
    return doc.to_dict() or {}


def parse_memberships(data: Optional[dict[str, Any]]) -> list[ChurchMembership]:
    """Parse the churchMemberships array of a user document."""
    if not data:
        return []
    return [ChurchMembership.from_dict(m) for m in data.get('churchMemberships') or []]


def get_memberships(user_id: str) -> list[ChurchMembership]:
    """
    Get the memberships embedded in a user document.

    Raises:
        NotFoundError: If the user does not exist
    """
    data = get_user_data(user_id)
    if data is None:
        raise NotFoundError(f"User not found: {user_id}")
    return parse_memberships(data)


def mutate_memberships(
    user_id: str,
    mutate: Callable[[list[ChurchMembership]], list[ChurchMembership]],
    extra_fields: Optional[dict[str, Any]] = None,
) -> list[ChurchMembership]:
    """
    Read-modify-write the user's membership array.

    The write carries a last_update_time precondition so a concurrent edit
    of the same user document makes it fail instead of silently
    overwriting; the mutation is then re-applied on a fresh read.

    Args:
        user_id: The user document ID
        mutate: Function returning the new membership list from the current one
        extra_fields: Additional fields written in the same update

    Returns:
        The membership list that was written

    Raises:
        NotFoundError: If the user does not exist
        FailedPrecondition: If every attempt lost the race
    """
    db = get_firestore_client()
    ref = user_ref(user_id)

    for attempt in range(1, MAX_MUTATION_ATTEMPTS + 1):
        doc = ref.get()
        if not doc.exists:
            raise NotFoundError(f"User not found: {user_id}")

        memberships = mutate(parse_memberships(doc.to_dict()))

        update_data = {
            'churchMemberships': [m.to_dict() for m in memberships],
            'updatedAt': firestore.SERVER_TIMESTAMP,
        }
        if extra_fields:
            update_data.update(extra_fields)

        try:
            ref.update(update_data, option=db.write_option(last_update_time=doc.update_time))
            return memberships
        except FailedPrecondition:
            logger.warning(
                f"Concurrent update of user {user_id} memberships "
                f"(attempt {attempt}/{MAX_MUTATION_ATTEMPTS}), retrying"
            )

    raise FailedPrecondition(
        f"Could not update memberships for user {user_id} after {MAX_MUTATION_ATTEMPTS} attempts"
    )


def create_user_document(user_id: str, data: dict[str, Any]) -> DocumentReference:
    """Create (or overwrite) the user document."""
    ref = user_ref(user_id)
    ref.set(data)
    return ref


def set_system_role(user_id: str, system_role: str) -> None:
    """
    Mirror the system role onto the user document.

    Raises:
        NotFoundError: If the user does not exist
    """
    ref = user_ref(user_id)
    if not ref.get().exists:
        raise NotFoundError(f"User not found: {user_id}")

    ref.update({
        'systemRole': system_role,
        'updatedAt': firestore.SERVER_TIMESTAMP,
    })
