"""Firebase ID token verification for API routes."""

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Optional
from flask import g, request
from firebase_admin import auth

from ..db import get_auth_client
from ..models import UserClaims
from .responses import unauthorized


logger = logging.getLogger(__name__)


@dataclass
class AuthenticatedUser:
    uid: str
    email: str
    email_verified: bool
    claims: UserClaims
    display_name: Optional[str] = None


def _bearer_token() -> Optional[str]:
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    return header[len('Bearer '):].strip() or None


def current_user() -> AuthenticatedUser:
    return g.user


def require_auth(view: Callable) -> Callable:
    """
    Verify the Bearer token and attach the caller to flask.g.user.

    Claims come from the token, so they are only as fresh as the caller's
    last token refresh.
    """
    @wraps(view)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return unauthorized('No authentication token provided', code='auth/no-token')

        try:
            decoded = get_auth_client().verify_id_token(token)
        except auth.ExpiredIdTokenError:
            return unauthorized(
                'Authentication token has expired. Please refresh your token.',
                code='auth/token-expired',
            )
        except auth.RevokedIdTokenError:
            return unauthorized(
                'Authentication token has been revoked. Please sign in again.',
                code='auth/token-revoked',
            )
        except (auth.InvalidIdTokenError, ValueError) as e:
            logger.warning(f"Token verification failed: {e}")
            return unauthorized('Authentication token is invalid.')

        try:
            claims = UserClaims.from_dict(decoded)
        except ValueError as e:
            logger.warning(f"Token for {decoded.get('uid')} carries malformed claims: {e}")
            claims = UserClaims()

        g.user = AuthenticatedUser(
            uid=decoded['uid'],
            email=decoded.get('email', ''),
            email_verified=bool(decoded.get('email_verified', False)),
            display_name=decoded.get('name'),
            claims=claims,
        )
        return view(*args, **kwargs)

    return wrapper
