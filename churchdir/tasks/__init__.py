"""Cloud Tasks client and task enqueueing."""

from .client import enqueue_reconcile_task

__all__ = [
    'enqueue_reconcile_task',
]
