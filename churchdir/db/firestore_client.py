"""Firebase Admin app, Firestore client and Auth client access."""

import os
import logging
from typing import Optional
import firebase_admin
from firebase_admin import auth, credentials, firestore
from google.cloud.firestore_v1 import Client


logger = logging.getLogger(__name__)

DEFAULT_EMULATOR_PROJECT = 'demo-churchdir'

_firestore_client: Optional[Client] = None


def initialize_firebase(use_emulator: bool = False) -> None:
    """
    Initialize the default Firebase app and the shared Firestore client.

    Safe to call more than once; later calls only fill in a missing client.

    Args:
        use_emulator: Target the local emulators instead of production.
            FIRESTORE_EMULATOR_HOST defaults to localhost:8080; Auth calls go
            to the emulator only if FIREBASE_AUTH_EMULATOR_HOST is set.

    Note:
        Production uses Application Default Credentials.
    """
    global _firestore_client

    if not firebase_admin._apps:
        if use_emulator:
            os.environ.setdefault('FIRESTORE_EMULATOR_HOST', 'localhost:8080')
            project_id = os.environ.get('GCP_PROJECT', DEFAULT_EMULATOR_PROJECT)
            firebase_admin.initialize_app(options={'projectId': project_id})
            logger.info(
                f"Firebase initialized for emulator project {project_id} "
                f"(firestore={os.environ['FIRESTORE_EMULATOR_HOST']}, "
                f"auth={os.environ.get('FIREBASE_AUTH_EMULATOR_HOST', 'production')})"
            )
        else:
            firebase_admin.initialize_app(credentials.ApplicationDefault())

    if _firestore_client is None:
        _firestore_client = firestore.client()


def get_firestore_client() -> Client:
    """
    Get the shared Firestore client.

    Raises:
        RuntimeError: If initialize_firebase() has not run
    """
    if _firestore_client is None:
        raise RuntimeError("Firestore client not initialized. Call initialize_firebase() first.")
    return _firestore_client


def get_auth_client() -> auth.Client:
    """
    Get the Firebase Auth client bound to the default app.

    Raises:
        RuntimeError: If initialize_firebase() has not run
    """
    if not firebase_admin._apps:
        raise RuntimeError("Firebase not initialized. Call initialize_firebase() first.")
    return auth.Client(firebase_admin.get_app())
