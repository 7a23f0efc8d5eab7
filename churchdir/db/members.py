"""Church member subcollection operations (churches/{churchId}/members/{userId})."""

from datetime import datetime
from typing import Any, Optional
from google.cloud import firestore
from google.cloud.firestore_v1 import DocumentReference

from ..models import ChurchRole, MemberRecord, MembershipStatus
from .churches import COLLECTION_NAME as CHURCHES_COLLECTION
from .firestore_client import get_firestore_client


SUBCOLLECTION_NAME = 'members'

# User fields copied onto the member record
DENORMALIZED_FIELDS = ('displayName', 'email', 'photoURL')


def member_ref(church_id: str, user_id: str) -> DocumentReference:
    db = get_firestore_client()
    return (
        db.collection(CHURCHES_COLLECTION)
        .document(church_id)
        .collection(SUBCOLLECTION_NAME)
        .document(user_id)
    )


def get_member(church_id: str, user_id: str) -> Optional[MemberRecord]:
    """
    Get a member record.

    Returns:
        MemberRecord if found, None otherwise

    Example:
        >>> record = get_member('c1', 'u1')
        >>> record.status if record else None
        <MembershipStatus.PENDING: 'pending'>
    """
    doc = member_ref(church_id, user_id).get()
    if not doc.exists:
        return None
    return MemberRecord.from_dict(user_id, doc.to_dict() or {}, doc.update_time)


def create_pending_member(
    church_id: str,
    user_id: str,
    user_data: dict[str, Any],
    answers: list[dict[str, Any]],
) -> DocumentReference:
    """
    Write a pending member record, replacing any stale record for the user.

    Args:
        church_id: The church document ID
        user_id: The user document ID
        user_data: The user document, source of the denormalized fields
        answers: Registration answers submitted with the request
    """
    ref = member_ref(church_id, user_id)

    data = {
        'userId': user_id,
        'role': ChurchRole.VISITOR.value,
        'status': MembershipStatus.PENDING.value,
        'registrationAnswers': answers,
        'requestedAt': firestore.SERVER_TIMESTAMP,
        'updatedAt': firestore.SERVER_TIMESTAMP,
    }
    for field_name in DENORMALIZED_FIELDS:
        data[field_name] = user_data.get(field_name)

    ref.set(data)
    return ref


def _write_option(last_update_time: Optional[datetime]):
    if last_update_time is None:
        return None
    return get_firestore_client().write_option(last_update_time=last_update_time)


def mark_member_approved(
    church_id: str,
    user_id: str,
    role: ChurchRole,
    last_update_time: Optional[datetime] = None,
) -> None:
    """
    Set the record to approved.

    Args:
        last_update_time: If set, the write only lands when the record is
            unchanged since that snapshot

    Raises:
        google.api_core.exceptions.FailedPrecondition: If the record changed
            after last_update_time
    """
    member_ref(church_id, user_id).update({
        'role': role.value,
        'status': MembershipStatus.APPROVED.value,
        'approvedAt': firestore.SERVER_TIMESTAMP,
        'updatedAt': firestore.SERVER_TIMESTAMP,
    }, option=_write_option(last_update_time))


def mark_member_rejected(
    church_id: str,
    user_id: str,
    reason: str,
    last_update_time: Optional[datetime] = None,
) -> None:
    member_ref(church_id, user_id).update({
        'status': MembershipStatus.REJECTED.value,
        'rejectionReason': reason,
        'rejectedAt': firestore.SERVER_TIMESTAMP,
        'updatedAt': firestore.SERVER_TIMESTAMP,
    }, option=_write_option(last_update_time))


def set_member_role(church_id: str, user_id: str, role: ChurchRole) -> None:
    member_ref(church_id, user_id).update({
        'role': role.value,
        'updatedAt': firestore.SERVER_TIMESTAMP,
    })


def delete_member(church_id: str, user_id: str, last_update_time: Optional[datetime] = None) -> None:
    member_ref(church_id, user_id).delete(option=_write_option(last_update_time))


def get_pending_members(church_id: str) -> list[MemberRecord]:
    """
    Get pending member records for a church, newest request first.

    Example:
        >>> [m.user_id for m in get_pending_members('c1')]
        ['u3', 'u1']
    """
    db = get_firestore_client()
    query = (
        db.collection(CHURCHES_COLLECTION)
        .document(church_id)
        .collection(SUBCOLLECTION_NAME)
        .where(field_path='status', op_string='==', value=MembershipStatus.PENDING.value)
        .order_by('requestedAt', direction=firestore.Query.DESCENDING)
    )
    return [MemberRecord.from_dict(doc.id, doc.to_dict() or {}) for doc in query.stream()]
