"""Auth triggers - bootstrap new accounts and clean up deleted ones."""

import logging
from typing import Dict, Any, Optional

from ..services.accounts import cleanup_account, initialize_account


logger = logging.getLogger(__name__)


def account_created_handler(user: Dict[str, Any]) -> Dict[str, Any]:
    """
    Handle Firebase Auth user.create.

    Sets default custom claims and creates users/{uid}.

    Args:
        user: Auth event payload with uid, email, displayName, photoURL, ...

    Returns:
        Dict with status and user_id, or error
    """
    user_id = user.get('uid')
    if not user_id:
        return {
            'status': 'error',
            'error': 'Missing required field: uid',
        }

    try:
        logger.info(f"New user created: {user_id} ({user.get('email')})")
        initialize_account(user)
        return {
            'status': 'success',
            'user_id': user_id,
        }

    except Exception as e:
        logger.error(f"Error in account_created_handler for {user_id}: {e}", exc_info=True)
        return {
            'status': 'error',
            'error': str(e),
        }


def account_deleted_handler(user: Dict[str, Any], event_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Handle Firebase Auth user.delete.

    Removes the user from every church member subcollection, deletes the
    user document and decrements member counts. The Auth account is
    already gone, so failures are only logged.

    Args:
        user: Auth event payload with uid
        event_id: Event id used as idempotency key for counter decrements

    Returns:
        Dict with status, members_removed and counters_decremented, or error
    """
    user_id = user.get('uid')
    if not user_id:
        return {
            'status': 'error',
            'error': 'Missing required field: uid',
        }

    try:
        logger.info(f"User deleted: {user_id} ({user.get('email')})")
        result = cleanup_account(user_id, event_id=event_id)
        return {
            'status': 'success',
            'user_id': user_id,
            **result,
        }

    except Exception as e:
        logger.error(f"Error in account_deleted_handler for {user_id}: {e}", exc_info=True)
        return {
            'status': 'error',
            'error': str(e),
        }
