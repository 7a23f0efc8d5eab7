"""Reconcile Cloud Functions - recompute drifted church stats."""

import logging
from typing import Dict, Any

from ..db import update_reconcile_status
from ..exceptions import NotFoundError
from ..services.reconciliation import recount_church_stats, reconcile_all_churches


logger = logging.getLogger(__name__)


def reconcile_stats_handler() -> Dict[str, Any]:
    """
    Fan out one reconcile task per church.

    Triggered by: Cloud Scheduler

    Returns:
        Dict with:
            - status: str - "success" or "error"
            - churches_found: int - Number of churches
            - tasks_enqueued: int - Number of tasks successfully enqueued
            - error: str (optional) - Error message if status is "error"

    Example:
        >>> result = reconcile_stats_handler()
        >>> result['status']
        'success'
    """
    try:
        logger.info("Starting stats reconciliation...")
        result = reconcile_all_churches()

        failed = result['churches_found'] - result['tasks_enqueued']
        if failed:
            update_reconcile_status(f"Yellow: {failed} churches not enqueued")
        else:
            update_reconcile_status("Green", success=True)

        return {
            'status': 'success',
            **result,
        }

    except Exception as e:
        logger.error(f"Error in reconcile_stats_handler: {e}", exc_info=True)

        error_message = str(e)
        update_reconcile_status(f"Red: {error_message}")

        return {
            'status': 'error',
            'error': error_message,
        }


def reconcile_church_handler(request_json: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recompute one church's stats from its members, events and sermons.

    Triggered by: Cloud Tasks (from reconcile_stats)

    Args:
        request_json: Dict with:
            - church_id: str (required)

    Returns:
        Dict with status and the recomputed stats, or error
    """
    try:
        church_id = request_json.get('church_id')
        if not church_id:
            return {
                'status': 'error',
                'error': 'Missing required parameter: church_id',
            }

        stats = recount_church_stats(church_id)

        return {
            'status': 'success',
            'church_id': church_id,
            'stats': stats.to_dict(),
        }

    except NotFoundError as e:
        logger.warning(f"Skipping reconcile: {e}")
        return {
            'status': 'skipped',
            'reason': str(e),
        }

    except Exception as e:
        logger.error(f"Error in reconcile_church_handler: {e}", exc_info=True)
        return {
            'status': 'error',
            'error': str(e),
        }
