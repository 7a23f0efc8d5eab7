"""Bookkeeping operations for tracking background job status."""

import logging
from google.cloud import firestore

from .firestore_client import get_firestore_client


logger = logging.getLogger(__name__)

# Firestore collection and document for bookkeeping
BOOKKEEPING_COLLECTION = 'bookkeeping'
BOOKKEEPING_DOCUMENT = 'status'


def _update_status(prefix: str, status: str, success: bool) -> None:
    try:
        db = get_firestore_client()
        doc_ref = db.collection(BOOKKEEPING_COLLECTION).document(BOOKKEEPING_DOCUMENT)

        update_data = {
            f'{prefix}_status': status,
        }

        if success:
            update_data[f'last_{prefix}_success'] = firestore.SERVER_TIMESTAMP

        doc_ref.set(update_data, merge=True)
        logger.info(f"Updated {prefix} bookkeeping: {status}")

    except Exception as e:
        logger.error(f"Error updating {prefix} bookkeeping: {e}", exc_info=True)
        # Don't raise - bookkeeping failures shouldn't break the function


def update_sync_status(status: str, success: bool = False) -> None:
    """
    Update the profile sync status in bookkeeping.

    Args:
        status: Status message ("Green", "Red: {error}")
        success: True if the sync completed successfully

    Example:
        >>> update_sync_status("Green", success=True)
    """
    _update_status('sync', status, success)


def update_reconcile_status(status: str, success: bool = False) -> None:
    """
    Update the stats reconciliation status in bookkeeping.

    Args:
        status: Status message ("Green", "Yellow: 2 churches failed", "Red: {error}")
        success: True if the reconciliation pass completed

    Example:
        >>> update_reconcile_status("Green", success=True)
    """
    _update_status('reconcile', status, success)
