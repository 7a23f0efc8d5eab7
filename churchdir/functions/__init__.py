"""Cloud Functions handlers."""

from .user_sync import user_sync_handler
from .content_counters import content_counter_handler
from .accounts import account_created_handler, account_deleted_handler
from .reconcile import reconcile_stats_handler, reconcile_church_handler
from .sync_flag import set_sync_flag_handler

__all__ = [
    'user_sync_handler',
    'content_counter_handler',
    'account_created_handler',
    'account_deleted_handler',
    'reconcile_stats_handler',
    'reconcile_church_handler',
    'set_sync_flag_handler',
]
