"""Cloud Functions entry points for deployment.

HTTP endpoints, Firestore document triggers (Eventarc CloudEvents) and
Firebase Auth background triggers for Google Cloud Functions (Gen 2).
"""

import logging
import functions_framework
from cloudevents.http import CloudEvent
from flask import Request

from churchdir.api import create_app
from churchdir.db import initialize_firebase
from churchdir.events import decode_document_event
from churchdir.functions import (
    user_sync_handler,
    content_counter_handler,
    account_created_handler,
    account_deleted_handler,
    reconcile_stats_handler,
    reconcile_church_handler,
    set_sync_flag_handler,
)


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize Firebase once at module load time
# This will use Application Default Credentials in production
logger.info("Initializing Firebase...")
initialize_firebase(use_emulator=False)
logger.info("Firebase initialized")

app = create_app()


# ==========================================
# HTTP API
# ==========================================

@functions_framework.http
def api(request: Request):
    """
    Membership API (see churchdir.api).

    Triggered by: HTTPS requests from the web frontend
    """
    with app.request_context(request.environ):
        return app.full_dispatch_request()


@functions_framework.http
def reconcile_stats(request: Request):
    """
    Reconcile Stats Cloud Function - enqueues one reconcile task per church.

    Triggered by: Cloud Scheduler

    Returns:
    {
        "status": "success",
        "churches_found": 42,
        "tasks_enqueued": 42
    }
    """
    logger.info("=== Reconcile stats function invoked ===")

    result = reconcile_stats_handler()

    logger.info(f"Reconcile stats result: {result}")
    logger.info("=== Reconcile stats function completed ===")
    return result


@functions_framework.http
def reconcile_church(request: Request):
    """
    Reconcile Church Cloud Function - recomputes one church's stats.

    Triggered by: Cloud Tasks (from reconcile_stats)

    Expected JSON payload:
    {
        "church_id": "pe-lima-01"
    }

    Returns:
    {
        "status": "success",
        "church_id": "pe-lima-01",
        "stats": {"memberCount": 12, "eventCount": 3, "sermonCount": 40}
    }
    """
    logger.info("=== Reconcile church function invoked ===")
    request_json = request.get_json(silent=True) or {}
    logger.info(f"Request payload: {request_json}")

    result = reconcile_church_handler(request_json)

    logger.info(f"Reconcile church result: {result}")
    logger.info("=== Reconcile church function completed ===")
    return result


@functions_framework.http
def pause_sync(request: Request):
    """Pause trigger-driven propagation (profile sync, content counters)."""
    logger.info("=== Pause sync function invoked ===")
    return set_sync_flag_handler(False)


@functions_framework.http
def resume_sync(request: Request):
    """Resume trigger-driven propagation."""
    logger.info("=== Resume sync function invoked ===")
    return set_sync_flag_handler(True)


# ==========================================
# FIRESTORE TRIGGERS
# ==========================================

@functions_framework.cloud_event
def on_user_updated(cloud_event: CloudEvent) -> None:
    """
    User Sync trigger.

    Triggered by: google.cloud.firestore.document.v1.updated on users/{userId}
    """
    logger.info("=== User sync trigger invoked ===")
    change = decode_document_event(cloud_event)
    result = user_sync_handler(change)
    logger.info(f"User sync result: {result}")


@functions_framework.cloud_event
def on_event_created(cloud_event: CloudEvent) -> None:
    """Triggered by: google.cloud.firestore.document.v1.created on events/{eventId}"""
    result = content_counter_handler('event', 'created', decode_document_event(cloud_event))
    logger.info(f"Event created counter result: {result}")


@functions_framework.cloud_event
def on_event_deleted(cloud_event: CloudEvent) -> None:
    """Triggered by: google.cloud.firestore.document.v1.deleted on events/{eventId}"""
    result = content_counter_handler('event', 'deleted', decode_document_event(cloud_event))
    logger.info(f"Event deleted counter result: {result}")


@functions_framework.cloud_event
def on_sermon_created(cloud_event: CloudEvent) -> None:
    """Triggered by: google.cloud.firestore.document.v1.created on sermons/{sermonId}"""
    result = content_counter_handler('sermon', 'created', decode_document_event(cloud_event))
    logger.info(f"Sermon created counter result: {result}")


@functions_framework.cloud_event
def on_sermon_deleted(cloud_event: CloudEvent) -> None:
    """Triggered by: google.cloud.firestore.document.v1.deleted on sermons/{sermonId}"""
    result = content_counter_handler('sermon', 'deleted', decode_document_event(cloud_event))
    logger.info(f"Sermon deleted counter result: {result}")


# ==========================================
# AUTH TRIGGERS
# ==========================================
# Legacy background functions (--signature-type=event):
# providers/firebase.auth/eventTypes/user.create and user.delete

def on_auth_user_created(data, context):
    """Set default claims and create the Firestore user document."""
    logger.info("=== Auth user created trigger invoked ===")
    result = account_created_handler(data or {})
    logger.info(f"Auth user created result: {result}")


def on_auth_user_deleted(data, context):
    """Remove membership traces of a deleted account."""
    logger.info("=== Auth user deleted trigger invoked ===")
    result = account_deleted_handler(data or {}, event_id=getattr(context, 'event_id', None))
    logger.info(f"Auth user deleted result: {result}")
