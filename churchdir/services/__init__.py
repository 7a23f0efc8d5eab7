"""Membership, sync, counter and reconciliation services."""

from .membership import (
    request_membership,
    get_my_memberships,
    get_pending_requests,
    approve_membership,
    reject_membership,
    leave_church,
    update_member_role,
)
from .sync import sync_user_profile, tracked_changes
from .counters import apply_stat_delta, handle_content_created, handle_content_deleted
from .reconciliation import recount_church_stats, reconcile_all_churches
from .accounts import initialize_account, cleanup_account

__all__ = [
    # Membership
    'request_membership',
    'get_my_memberships',
    'get_pending_requests',
    'approve_membership',
    'reject_membership',
    'leave_church',
    'update_member_role',
    # Sync
    'sync_user_profile',
    'tracked_changes',
    # Counters
    'apply_stat_delta',
    'handle_content_created',
    'handle_content_deleted',
    # Reconciliation
    'recount_church_stats',
    'reconcile_all_churches',
    # Accounts
    'initialize_account',
    'cleanup_account',
]
