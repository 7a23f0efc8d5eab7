"""Propagation of user profile fields to their denormalized copies.

Copies live on every church member record of the user and, as
``speakerName``, on every sermon the user preached. Sync is best effort:
the profile edit already succeeded, so copies may be briefly stale.
"""

import logging
from typing import Any, Optional
from google.cloud import firestore

from .. import db
from ..db import BatchWriter, MAX_BATCH_WRITES
from ..db.users import parse_memberships
from ..models import SyncResult


logger = logging.getLogger(__name__)

# User fields whose change triggers a sync
TRACKED_FIELDS = ('displayName', 'photoURL', 'email', 'firstName', 'lastName')

# Tracked fields that are copied onto member records
MEMBER_FIELDS = ('displayName', 'photoURL', 'email')

# Tracked fields that feed the sermon speaker name
NAME_FIELDS = ('displayName', 'firstName', 'lastName')


def tracked_changes(before: Optional[dict[str, Any]], after: Optional[dict[str, Any]]) -> list[str]:
    """
    List the tracked fields whose value differs between two user snapshots.

    Example:
        >>> tracked_changes({'displayName': 'Ana', 'bio': 'x'}, {'displayName': 'Ana T.', 'bio': 'y'})
        ['displayName']
    """
    before = before or {}
    after = after or {}
    return [f for f in TRACKED_FIELDS if before.get(f) != after.get(f)]


def speaker_name(user: dict[str, Any]) -> str:
    """Display name, falling back to 'first last'."""
    if user.get('displayName'):
        return user['displayName']
    return f"{user.get('firstName') or ''} {user.get('lastName') or ''}".strip()


def sync_user_profile(
    user_id: str,
    before: Optional[dict[str, Any]],
    after: Optional[dict[str, Any]],
    max_batch_writes: int = MAX_BATCH_WRITES,
) -> SyncResult:
    """
    Push changed profile fields to member records and sermons.

    Member records are updated with only the changed member fields plus
    updatedAt; records that no longer exist are skipped rather than
    recreated. Writes are chunked so fan-out beyond one batch is committed
    across several batches instead of being truncated.

    Args:
        user_id: The user whose document changed
        before: User document before the change
        after: User document after the change
        max_batch_writes: Upper bound on writes per committed batch

    Returns:
        SyncResult with the counts of updated documents

    Example:
        >>> result = sync_user_profile('u1', {'displayName': 'Ana'}, {'displayName': 'Ana T.', ...})
        >>> result.members_updated
        2
    """
    after = after or {}
    changed = tracked_changes(before, after)
    result = SyncResult(user_id=user_id, changed_fields=changed)

    if not changed:
        logger.debug(f"No tracked fields changed for user {user_id}, skipping sync")
        return result

    logger.info(f"User {user_id} changed {changed}, syncing denormalized copies")

    member_update = {f: after.get(f) for f in MEMBER_FIELDS if f in changed}
    name = speaker_name(after) if any(f in changed for f in NAME_FIELDS) else ''

    with BatchWriter(max_writes=max_batch_writes) as writer:
        if member_update:
            member_update['updatedAt'] = firestore.SERVER_TIMESTAMP
            refs = [db.member_ref(m.church_id, user_id) for m in parse_memberships(after)]
            if refs:
                for snapshot in db.get_firestore_client().get_all(refs):
                    if not snapshot.exists:
                        logger.warning(
                            f"Member record {snapshot.reference.path} missing, not recreating it"
                        )
                        continue
                    writer.update(snapshot.reference, member_update)
                    result.members_updated += 1

        if name:
            for sermon_ref in db.get_sermon_refs_by_speaker(user_id):
                writer.update(sermon_ref, {
                    'speakerName': name,
                    'updatedAt': firestore.SERVER_TIMESTAMP,
                })
                result.sermons_updated += 1

    result.batches_committed = writer.batches_committed
    logger.info(
        f"Synced user {user_id}: {result.members_updated} member records, "
        f"{result.sermons_updated} sermons in {result.batches_committed} batches"
    )
    return result
