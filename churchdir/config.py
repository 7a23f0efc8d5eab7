"""System configuration: environment settings and the Firestore sync flag."""

import os
import logging
from google.cloud import firestore

from .db.firestore_client import get_firestore_client


logger = logging.getLogger(__name__)

# Firestore collection and document for system configuration
CONFIG_COLLECTION = 'system'
CONFIG_DOCUMENT = 'config'

# Default value if config doesn't exist
DEFAULT_SYNC_ENABLED = True

# Idempotency markers for trigger events are kept this long (Firestore TTL on expiresAt)
PROCESSED_EVENT_TTL_DAYS = int(os.environ.get('PROCESSED_EVENT_TTL_DAYS', '7'))


def is_sync_enabled() -> bool:
    """
    Check if trigger-driven propagation (profile sync, counters) is enabled.

    Returns:
        True if enabled, False otherwise.
        Defaults to True if config doesn't exist or can't be read.

    Example:
        >>> enabled = is_sync_enabled()
        >>> isinstance(enabled, bool)
        True
    """
    try:
        db = get_firestore_client()
        doc_ref = db.collection(CONFIG_COLLECTION).document(CONFIG_DOCUMENT)
        doc = doc_ref.get()

        if doc.exists:
            data = doc.to_dict() or {}
            enabled = data.get('sync_enabled', DEFAULT_SYNC_ENABLED)
            logger.info(f"Sync enabled: {enabled}")
            return enabled
        else:
            logger.info(f"Config document doesn't exist, using default: {DEFAULT_SYNC_ENABLED}")
            return DEFAULT_SYNC_ENABLED

    except Exception as e:
        logger.error(f"Error checking sync enabled flag: {e}", exc_info=True)
        # Fail open - keep propagating if we can't check the flag
        return DEFAULT_SYNC_ENABLED


def set_sync_enabled(enabled: bool) -> None:
    """
    Set the sync enabled flag.

    Args:
        enabled: True to enable propagation, False to pause it.

    Example:
        >>> set_sync_enabled(False)
        >>> # Triggers now skip; run reconcile_stats after resuming
    """
    try:
        db = get_firestore_client()
        doc_ref = db.collection(CONFIG_COLLECTION).document(CONFIG_DOCUMENT)

        doc_ref.set({
            'sync_enabled': enabled,
            'updated_at': firestore.SERVER_TIMESTAMP,
        }, merge=True)

        logger.info(f"Set sync_enabled to {enabled}")

    except Exception as e:
        logger.error(f"Error setting sync enabled flag: {e}", exc_info=True)
        raise
