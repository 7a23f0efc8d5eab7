"""Cloud Tasks client for per-church reconciliation fan-out."""

import os
import re
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from google.api_core.exceptions import AlreadyExists
from google.cloud import tasks_v2


logger = logging.getLogger(__name__)


PROJECT_ID = os.environ.get('GCP_PROJECT', 'your-project-id')
LOCATION = os.environ.get('GCP_LOCATION', 'us-central1')
RECONCILE_QUEUE = os.environ.get('RECONCILE_QUEUE', 'reconcile-queue')

# Identity Cloud Tasks uses to mint the OIDC token for the target function
SERVICE_ACCOUNT = os.environ.get(
    'CLOUD_TASKS_SERVICE_ACCOUNT',
    f'{PROJECT_ID}@appspot.gserviceaccount.com',
)

# Gen2 URL convention: https://{region}-{project}.cloudfunctions.net/{name}
RECONCILE_FUNCTION_URL = os.environ.get(
    'RECONCILE_FUNCTION_URL',
    f"https://{LOCATION}-{PROJECT_ID}.cloudfunctions.net/reconcile_church",
)

_TASK_ID_UNSAFE = re.compile(r'[^A-Za-z0-9_-]')

_tasks_client: Optional[tasks_v2.CloudTasksClient] = None


def get_tasks_client() -> tasks_v2.CloudTasksClient:
    global _tasks_client
    if _tasks_client is None:
        _tasks_client = tasks_v2.CloudTasksClient()
    return _tasks_client


def reconcile_task_id(church_id: str, day: Optional[datetime] = None) -> str:
    """
    Task ID for a church's reconciliation on a given (UTC) day.

    Cloud Tasks rejects a second task with the same name, so a scheduler
    run that fires twice in one day enqueues each church once.

    Example:
        >>> reconcile_task_id('pe/lima 01', datetime(2026, 3, 1, tzinfo=timezone.utc))
        'reconcile-pe_lima_01-20260301'
    """
    day = day or datetime.now(timezone.utc)
    return f"reconcile-{_TASK_ID_UNSAFE.sub('_', church_id)}-{day:%Y%m%d}"


def _oidc_post(url: str, payload: dict[str, Any]) -> dict[str, Any]:
    return {
        'http_method': tasks_v2.HttpMethod.POST,
        'url': url,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(payload).encode(),
        # Gen2 functions only accept authenticated invocations
        'oidc_token': {
            'service_account_email': SERVICE_ACCOUNT,
            'audience': url,
        },
    }


def enqueue_reconcile_task(church_id: str) -> str:
    """
    Enqueue a task that recomputes one church's stats.

    Args:
        church_id: The church document ID

    Returns:
        The task name (also when today's task already existed)

    Example:
        >>> enqueue_reconcile_task('pe-lima-01')
        'projects/.../queues/reconcile-queue/tasks/reconcile-pe-lima-01-20260301'
    """
    client = get_tasks_client()
    parent = client.queue_path(PROJECT_ID, LOCATION, RECONCILE_QUEUE)
    name = client.task_path(PROJECT_ID, LOCATION, RECONCILE_QUEUE, reconcile_task_id(church_id))

    task = {
        'name': name,
        'http_request': _oidc_post(RECONCILE_FUNCTION_URL, {'church_id': church_id}),
    }

    try:
        response = client.create_task(request={'parent': parent, 'task': task})
    except AlreadyExists:
        logger.info(f"Reconcile task for {church_id} already enqueued today")
        return name

    logger.debug(f"Reconcile task enqueued: {response.name}")
    return response.name
