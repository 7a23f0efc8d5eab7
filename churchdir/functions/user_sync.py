"""User Sync trigger - propagates profile edits to denormalized copies."""

import logging
from typing import Dict, Any

from ..config import is_sync_enabled
from ..db import update_sync_status
from ..events import DocumentChange
from ..services.sync import sync_user_profile


logger = logging.getLogger(__name__)


def user_sync_handler(change: DocumentChange) -> Dict[str, Any]:
    """
    Handle an update of users/{userId}.

    This function:
    1. Skips if propagation is paused
    2. Diffs the tracked profile fields (no-op if none changed)
    3. Updates member records and sermon speaker names in chunked batches

    Failures are logged and recorded in bookkeeping but never raised: the
    profile edit itself already succeeded.

    Args:
        change: Decoded Firestore document event

    Returns:
        Dict with:
            - status: str - "success", "skipped", or "error"
            - changed_fields: list (optional) - Tracked fields that changed
            - members_updated: int (optional)
            - sermons_updated: int (optional)
            - error: str (optional) - Error message if status is "error"

    Example:
        >>> result = user_sync_handler(change)
        >>> result['status'] in ['success', 'skipped', 'error']
        True
    """
    user_id = change.document_id
    try:
        if not is_sync_enabled():
            logger.info("Sync is disabled, skipping user sync")
            return {
                'status': 'skipped',
                'reason': 'Sync is currently disabled',
            }

        if change.before is None or change.after is None:
            return {
                'status': 'skipped',
                'reason': 'Not an update event',
            }

        result = sync_user_profile(user_id, change.before, change.after)

        if not result.changed_fields:
            return {
                'status': 'skipped',
                'reason': 'No tracked fields changed',
            }

        update_sync_status("Green", success=True)

        return {
            'status': 'success',
            'user_id': user_id,
            'changed_fields': result.changed_fields,
            'members_updated': result.members_updated,
            'sermons_updated': result.sermons_updated,
        }

    except Exception as e:
        logger.error(f"Error syncing user data for {user_id}: {e}", exc_info=True)

        error_message = str(e)
        update_sync_status(f"Red: {error_message}")

        return {
            'status': 'error',
            'error': error_message,
        }
