"""Content Counter triggers - keep church eventCount / sermonCount current."""

import logging
from typing import Dict, Any

from ..config import is_sync_enabled
from ..events import DocumentChange
from ..services.counters import handle_content_created, handle_content_deleted


logger = logging.getLogger(__name__)


def content_counter_handler(kind: str, action: str, change: DocumentChange) -> Dict[str, Any]:
    """
    Apply +1 / -1 to the owning church's counter for an event or sermon.

    The CloudEvent id is the idempotency key, so a redelivered event is
    reported as skipped instead of counted twice.

    Args:
        kind: "event" or "sermon"
        action: "created" or "deleted"
        change: Decoded Firestore document event

    Returns:
        Dict with:
            - status: str - "success", "skipped", or "error"
            - church_id: str (optional)
            - reason: str (optional) - Reason for skipping
            - error: str (optional) - Error message if status is "error"

    Example:
        >>> content_counter_handler('sermon', 'created', change)['status']
        'success'
    """
    try:
        if not is_sync_enabled():
            logger.info(f"Sync is disabled, skipping {kind} {action} counter")
            return {
                'status': 'skipped',
                'reason': 'Sync is currently disabled',
            }

        if action == 'created':
            data = change.after
            applied = handle_content_created(kind, change.event_id, data)
        elif action == 'deleted':
            data = change.before
            applied = handle_content_deleted(kind, change.event_id, data)
        else:
            return {
                'status': 'error',
                'error': f'Unknown action: {action}',
            }

        church_id = (data or {}).get('churchId')
        if not applied:
            reason = 'Already processed' if church_id else 'Document has no churchId'
            return {
                'status': 'skipped',
                'church_id': church_id,
                'reason': reason,
            }

        logger.info(f"{kind.capitalize()} {change.document_id} {action} for church {church_id}")
        return {
            'status': 'success',
            'church_id': church_id,
        }

    except Exception as e:
        logger.error(f"Error updating {kind} count for {change.path}: {e}", exc_info=True)
        return {
            'status': 'error',
            'error': str(e),
        }
