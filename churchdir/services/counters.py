"""Per-church aggregate counters (stats.memberCount / eventCount / sermonCount).

Counters only ever receive deltas through Firestore's atomic Increment.
They are derived values; reconciliation recomputes them from the source
collections when they drift.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from google.api_core.exceptions import AlreadyExists
from google.cloud import firestore

from ..config import PROCESSED_EVENT_TTL_DAYS
from ..db import church_ref, get_firestore_client
from ..db.churches import STAT_FIELDS
from ..db.content import CONTENT_KINDS


logger = logging.getLogger(__name__)

PROCESSED_EVENTS_COLLECTION = 'processedEvents'


def _marker_id(event_id: str) -> str:
    return event_id.replace('/', '_')


def apply_stat_delta(
    church_id: str,
    stat: str,
    delta: int,
    event_id: Optional[str] = None,
) -> bool:
    """
    Atomically add delta to churches/{church_id}.stats.{stat}.

    When event_id is given, an idempotency marker is created in the same
    batch. A redelivered event finds the marker, the whole batch fails with
    AlreadyExists and the delta is not applied twice.

    Args:
        church_id: The church document ID
        stat: One of memberCount, eventCount, sermonCount
        delta: Signed amount to add
        event_id: Idempotency key of the triggering event, if any

    Returns:
        True if the delta was applied, False if the event was already processed

    Example:
        >>> apply_stat_delta('c1', 'eventCount', 1, event_id='evt-123')
        True
        >>> apply_stat_delta('c1', 'eventCount', 1, event_id='evt-123')
        False
    """
    if stat not in STAT_FIELDS:
        raise ValueError(f"Unknown church stat: {stat}")

    db = get_firestore_client()
    batch = db.batch()

    if event_id:
        marker_ref = db.collection(PROCESSED_EVENTS_COLLECTION).document(_marker_id(event_id))
        batch.create(marker_ref, {
            'churchId': church_id,
            'stat': stat,
            'delta': delta,
            'processedAt': firestore.SERVER_TIMESTAMP,
            'expiresAt': datetime.now(timezone.utc) + timedelta(days=PROCESSED_EVENT_TTL_DAYS),
        })

    batch.update(church_ref(church_id), {
        f'stats.{stat}': firestore.Increment(delta),
        'updatedAt': firestore.SERVER_TIMESTAMP,
    })

    try:
        batch.commit()
    except AlreadyExists:
        logger.info(f"Event {event_id} already applied to {church_id}.{stat}, skipping")
        return False

    logger.info(f"Applied {delta:+d} to {church_id}.stats.{stat}")
    return True


def _content_delta(kind: str, event_id: str, data: Optional[dict[str, Any]], delta: int) -> bool:
    if kind not in CONTENT_KINDS:
        raise ValueError(f"Unknown content kind: {kind}")

    church_id = (data or {}).get('churchId')
    if not church_id:
        logger.debug(f"{kind} has no churchId, nothing to count")
        return False

    _, stat = CONTENT_KINDS[kind]
    return apply_stat_delta(church_id, stat, delta, event_id=event_id)


def handle_content_created(kind: str, event_id: str, data: Optional[dict[str, Any]]) -> bool:
    """Count a newly created event or sermon against its church."""
    return _content_delta(kind, event_id, data, 1)


def handle_content_deleted(kind: str, event_id: str, data: Optional[dict[str, Any]]) -> bool:
    """Uncount a deleted event or sermon (data is the document before deletion)."""
    return _content_delta(kind, event_id, data, -1)
