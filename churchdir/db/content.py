"""Queries over church-scoped content (events, sermons) and member counts."""

from google.cloud.firestore_v1 import DocumentReference
from google.cloud.firestore_v1.base_query import BaseQuery

from ..models import MembershipStatus
from .churches import COLLECTION_NAME as CHURCHES_COLLECTION
from .firestore_client import get_firestore_client
from .members import SUBCOLLECTION_NAME as MEMBERS_SUBCOLLECTION


EVENTS_COLLECTION = 'events'
SERMONS_COLLECTION = 'sermons'

# Content kind -> (collection, church stat field)
CONTENT_KINDS = {
    'event': (EVENTS_COLLECTION, 'eventCount'),
    'sermon': (SERMONS_COLLECTION, 'sermonCount'),
}


def get_sermon_refs_by_speaker(user_id: str) -> list[DocumentReference]:
    """
    Get references to every sermon whose denormalized speaker is the user.

    Example:
        >>> [ref.id for ref in get_sermon_refs_by_speaker('u1')]
        ['sermon-2026-01-04']
    """
    db = get_firestore_client()
    query = db.collection(SERMONS_COLLECTION).where(
        field_path='speakerId',
        op_string='==',
        value=user_id,
    )
    return [doc.reference for doc in query.stream()]


def count_query(query: BaseQuery) -> int:
    """Run a server-side count aggregation."""
    results = query.count(alias='total').get()
    return int(results[0][0].value)


def count_content(kind: str, church_id: str) -> int:
    """Count content documents of a kind scoped to a church."""
    collection, _ = CONTENT_KINDS[kind]
    db = get_firestore_client()
    query = db.collection(collection).where(
        field_path='churchId',
        op_string='==',
        value=church_id,
    )
    return count_query(query)


def count_approved_members(church_id: str) -> int:
    db = get_firestore_client()
    query = (
        db.collection(CHURCHES_COLLECTION)
        .document(church_id)
        .collection(MEMBERS_SUBCOLLECTION)
        .where(field_path='status', op_string='==', value=MembershipStatus.APPROVED.value)
    )
    return count_query(query)
