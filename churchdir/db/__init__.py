"""Firestore database operations."""

from .firestore_client import get_firestore_client, get_auth_client, initialize_firebase
from .batching import BatchWriter, MAX_BATCH_WRITES
from .bookkeeping import update_sync_status, update_reconcile_status
from .users import (
    get_user_data,
    get_memberships,
    mutate_memberships,
    create_user_document,
    set_system_role,
    user_ref,
)
from .churches import (
    church_ref,
    church_exists,
    get_church_data,
    get_church_ids,
    get_church_stats,
    set_church_stats,
)
from .members import (
    member_ref,
    get_member,
    create_pending_member,
    mark_member_approved,
    mark_member_rejected,
    set_member_role,
    delete_member,
    get_pending_members,
)
from .content import (
    get_sermon_refs_by_speaker,
    count_content,
    count_approved_members,
)

__all__ = [
    # Client
    'get_firestore_client',
    'get_auth_client',
    'initialize_firebase',
    # Batching
    'BatchWriter',
    'MAX_BATCH_WRITES',
    # Bookkeeping
    'update_sync_status',
    'update_reconcile_status',
    # Users
    'get_user_data',
    'get_memberships',
    'mutate_memberships',
    'create_user_document',
    'set_system_role',
    'user_ref',
    # Churches
    'church_ref',
    'church_exists',
    'get_church_data',
    'get_church_ids',
    'get_church_stats',
    'set_church_stats',
    # Members
    'member_ref',
    'get_member',
    'create_pending_member',
    'mark_member_approved',
    'mark_member_rejected',
    'set_member_role',
    'delete_member',
    'get_pending_members',
    # Content
    'get_sermon_refs_by_speaker',
    'count_content',
    'count_approved_members',
]
