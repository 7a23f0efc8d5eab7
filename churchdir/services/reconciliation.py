"""Recompute church stats from their source collections."""

import logging
from typing import Any

from .. import db
from ..exceptions import NotFoundError
from ..models import ChurchStats
from ..tasks import enqueue_reconcile_task


logger = logging.getLogger(__name__)


def recount_church_stats(church_id: str) -> ChurchStats:
    """
    Count approved members, events and sermons of a church and overwrite
    its stats aggregate.

    Raises:
        NotFoundError: If the church does not exist

    Example:
        >>> recount_church_stats('c1')
        ChurchStats(member_count=12, event_count=3, sermon_count=40)
    """
    if not db.church_exists(church_id):
        raise NotFoundError(f"Church not found: {church_id}")

    previous = db.get_church_stats(church_id)
    stats = ChurchStats(
        member_count=db.count_approved_members(church_id),
        event_count=db.count_content('event', church_id),
        sermon_count=db.count_content('sermon', church_id),
    )
    db.set_church_stats(church_id, stats)

    if previous is not None and previous != stats:
        logger.warning(f"Stats drift repaired for church {church_id}: {previous} -> {stats}")
    else:
        logger.info(f"Stats for church {church_id} confirmed: {stats}")

    return stats


def reconcile_all_churches() -> dict[str, Any]:
    """
    Enqueue one reconcile task per church.

    Returns:
        Dict with churches_found and tasks_enqueued
    """
    church_ids = db.get_church_ids()
    logger.info(f"Found {len(church_ids)} churches to reconcile")

    tasks_enqueued = 0
    for church_id in church_ids:
        try:
            enqueue_reconcile_task(church_id)
            tasks_enqueued += 1
        except Exception as e:
            logger.error(f"Failed to enqueue reconcile task for {church_id}: {e}")
            # Continue with other churches even if one fails

    logger.info(f"Reconcile fan-out complete: enqueued {tasks_enqueued}/{len(church_ids)} tasks")

    return {
        'churches_found': len(church_ids),
        'tasks_enqueued': tasks_enqueued,
    }
