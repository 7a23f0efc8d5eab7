"""Sync flag Cloud Function handler, shared by the pause and resume endpoints."""

import logging
from typing import Dict, Any

from ..config import is_sync_enabled, set_sync_enabled


logger = logging.getLogger(__name__)


def set_sync_flag_handler(enabled: bool) -> Dict[str, Any]:
    """
    Pause or resume trigger-driven propagation.

    Profile sync and content counter triggers skip while the flag is off,
    e.g. during a bulk import. Counter events missed while paused are not
    replayed, so resuming after a real pause asks for a reconcile_stats run.

    Args:
        enabled: False pauses propagation, True resumes it.

    Returns:
        Dict with status, the new flag and a message; on failure status is
        'error' and the flag is left as it was.

    Example:
        >>> set_sync_flag_handler(False)['message']
        'Sync has been paused'
    """
    action = 'resumed' if enabled else 'paused'
    try:
        was_enabled = is_sync_enabled()
        logger.info(f"Setting sync_enabled={enabled} (was {was_enabled})")
        set_sync_enabled(enabled)

        result = {
            'status': 'success',
            'sync_enabled': enabled,
            'message': f'Sync has been {action}',
        }
        if enabled and not was_enabled:
            result['message'] += '; run reconcile_stats to repair counters'
        return result

    except Exception as e:
        logger.error(f"Error setting sync_enabled={enabled}: {e}", exc_info=True)
        return {
            'status': 'error',
            'error': str(e),
        }
