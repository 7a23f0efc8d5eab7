"""Account lifecycle: bootstrap on sign-up, cascade cleanup on deletion."""

import logging
from typing import Any, Optional
from google.cloud import firestore

from .. import db, identity
from ..db import BatchWriter
from ..db.users import parse_memberships
from ..models import MembershipStatus, SystemRole
from .counters import apply_stat_delta


logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES = {
    'language': 'es',
    'theme': 'light',
    'emailNotifications': True,
    'smsNotifications': False,
    'newsletter': True,
}


def build_user_document(user: dict[str, Any]) -> dict[str, Any]:
    """
    Initial Firestore user document for an Auth user record.

    Args:
        user: Auth user fields (uid, email, displayName, photoURL, phoneNumber, emailVerified)
    """
    return {
        'email': user.get('email'),
        'displayName': user.get('displayName') or '',
        'firstName': '',
        'lastName': '',
        'photoURL': user.get('photoURL'),
        'phoneNumber': user.get('phoneNumber'),
        'systemRole': SystemRole.USER.value,
        'churchMemberships': [],
        'registrationAnswers': [],
        'preferences': dict(DEFAULT_PREFERENCES),
        'isActive': True,
        'emailVerified': bool(user.get('emailVerified', False)),
        'createdAt': firestore.SERVER_TIMESTAMP,
        'updatedAt': firestore.SERVER_TIMESTAMP,
        'lastLoginAt': firestore.SERVER_TIMESTAMP,
    }


def initialize_account(user: dict[str, Any]) -> str:
    """
    Set default claims and create the user document for a new Auth user.

    Returns:
        The user id
    """
    user_id = user['uid']
    identity.set_default_claims(user_id)
    logger.info(f"Set default claims for user: {user_id}")

    db.create_user_document(user_id, build_user_document(user))
    logger.info(f"Created Firestore document for user: {user_id}")
    return user_id


def cleanup_account(user_id: str, event_id: Optional[str] = None) -> dict[str, int]:
    """
    Remove every membership trace of a deleted Auth user.

    Deletes the user's member records and the user document, then
    decrements memberCount for each church where the user was approved.
    Counter deltas are keyed on event_id so a redelivered deletion event
    does not decrement twice.

    Returns:
        Dict with members_removed and counters_decremented
    """
    user_data = db.get_user_data(user_id)
    if user_data is None:
        logger.info(f"No user document for {user_id}, nothing to clean up")
        return {'members_removed': 0, 'counters_decremented': 0}

    refs = [db.member_ref(m.church_id, user_id) for m in parse_memberships(user_data)]
    snapshots = list(db.get_firestore_client().get_all(refs)) if refs else []

    approved_churches = []
    members_removed = 0
    with BatchWriter() as writer:
        for snapshot in snapshots:
            if not snapshot.exists:
                continue
            members_removed += 1
            if (snapshot.to_dict() or {}).get('status') == MembershipStatus.APPROVED.value:
                approved_churches.append(snapshot.reference.parent.parent.id)
            writer.delete(snapshot.reference)
        writer.delete(db.user_ref(user_id))

    counters_decremented = 0
    for church_id in approved_churches:
        key = f"{event_id}-{church_id}" if event_id else None
        try:
            if apply_stat_delta(church_id, 'memberCount', -1, event_id=key):
                counters_decremented += 1
        except Exception as e:
            logger.error(f"Failed to decrement memberCount of {church_id} for deleted user {user_id}: {e}")

    logger.info(
        f"Cleaned up data for deleted user {user_id}: {members_removed} member records, "
        f"{counters_decremented} counters decremented"
    )
    return {'members_removed': members_removed, 'counters_decremented': counters_decremented}
