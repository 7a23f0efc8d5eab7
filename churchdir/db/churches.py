"""Church collection operations."""

from typing import Any, Optional
from google.cloud import firestore
from google.cloud.firestore_v1 import DocumentReference

from ..models import ChurchStats
from .firestore_client import get_firestore_client


COLLECTION_NAME = 'churches'

STAT_FIELDS = ('memberCount', 'eventCount', 'sermonCount')


def church_ref(church_id: str) -> DocumentReference:
    db = get_firestore_client()
    return db.collection(COLLECTION_NAME).document(church_id)


def get_church_data(church_id: str) -> Optional[dict[str, Any]]:
    """
    Get a church document as a dict.

    Args:
        church_id: The church document ID

    Returns:
        Church data if found, None otherwise
    """
    doc = church_ref(church_id).get()
    if not doc.exists:
        return None
    return doc.to_dict() or {}


def church_exists(church_id: str) -> bool:
    return church_ref(church_id).get().exists


def get_church_ids() -> list[str]:
    """
    List every church document ID.

    Example:
        >>> get_church_ids()
        ['hq', 'pe-lima-01']
    """
    db = get_firestore_client()
    return [doc.id for doc in db.collection(COLLECTION_NAME).list_documents()]


def set_church_stats(church_id: str, stats: ChurchStats) -> None:
    """Overwrite the stats aggregate with recomputed values."""
    church_ref(church_id).update({
        'stats': stats.to_dict(),
        'statsReconciledAt': firestore.SERVER_TIMESTAMP,
        'updatedAt': firestore.SERVER_TIMESTAMP,
    })


def get_church_stats(church_id: str) -> Optional[ChurchStats]:
    data = get_church_data(church_id)
    if data is None:
        return None
    stats = data.get('stats') or {}
    return ChurchStats(
        member_count=stats.get('memberCount', 0),
        event_count=stats.get('eventCount', 0),
        sermon_count=stats.get('sermonCount', 0),
    )
