"""Decode Firestore document CloudEvents delivered through Eventarc.

Payloads arrive as ``application/protobuf`` (google.events.cloud.firestore
DocumentEventData) or, when the trigger is configured for it, as JSON. Both
are normalized to the REST ``fields`` form and then to plain Python values.
"""

import base64
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from google.events.cloud import firestore as firestore_events
from google.protobuf import json_format


@dataclass
class DocumentChange:
    """A decoded Firestore document event."""

    event_id: str
    path: str
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None
    update_mask: list[str] = field(default_factory=list)

    @property
    def document_id(self) -> str:
        return self.path.rstrip('/').split('/')[-1]


def _decode_value(obj: dict[str, Any]) -> Any:
    if 'nullValue' in obj:
        return None
    if 'booleanValue' in obj:
        return obj['booleanValue']
    if 'integerValue' in obj:
        return int(obj['integerValue'])
    if 'doubleValue' in obj:
        return float(obj['doubleValue'])
    if 'timestampValue' in obj:
        return datetime.fromisoformat(obj['timestampValue'].replace('Z', '+00:00'))
    if 'stringValue' in obj:
        return obj['stringValue']
    if 'bytesValue' in obj:
        return base64.standard_b64decode(obj['bytesValue'])
    if 'referenceValue' in obj:
        return obj['referenceValue'].split('/documents/', 1)[-1]
    if 'geoPointValue' in obj:
        return dict(obj['geoPointValue'])
    if 'arrayValue' in obj:
        values = (obj.get('arrayValue') or {}).get('values') or []
        return [_decode_value(v) for v in values]
    if 'mapValue' in obj:
        fields = (obj.get('mapValue') or {}).get('fields') or {}
        return {k: _decode_value(v) for k, v in fields.items()}
    return None


def decode_document(document: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """
    Convert a Firestore Document (REST/JSON form) to a plain dict.

    Returns None when there is no document (create has no old value,
    delete has no new value).

    Example:
        >>> decode_document({'name': '...', 'fields': {'churchId': {'stringValue': 'c1'}}})
        {'churchId': 'c1'}
    """
    if not document:
        return None
    return {k: _decode_value(v) for k, v in (document.get('fields') or {}).items()}


def _document_path(raw: dict[str, Any], fallback: Optional[str]) -> str:
    for key in ('value', 'oldValue'):
        name = (raw.get(key) or {}).get('name')
        if name and '/documents/' in name:
            return name.split('/documents/', 1)[1]
    return fallback or ''


def decode_document_event(cloud_event) -> DocumentChange:
    """
    Decode a Firestore CloudEvent (created/updated/deleted/written).

    Args:
        cloud_event: cloudevents.http.CloudEvent passed by functions_framework

    Returns:
        DocumentChange with before/after as plain dicts
    """
    data = cloud_event.data
    if isinstance(data, (bytes, bytearray)):
        payload = firestore_events.DocumentEventData()
        payload._pb.ParseFromString(bytes(data))
        raw = json_format.MessageToDict(payload._pb)
    else:
        raw = data or {}

    return DocumentChange(
        event_id=cloud_event['id'],
        path=_document_path(raw, cloud_event.get('document')),
        before=decode_document(raw.get('oldValue')),
        after=decode_document(raw.get('value')),
        update_mask=list((raw.get('updateMask') or {}).get('fieldPaths') or []),
    )
