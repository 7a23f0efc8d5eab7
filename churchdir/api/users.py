"""User role and claims routes."""

from flask import Blueprint, request

from .. import identity
from .auth import current_user, require_auth
from .responses import bad_request, forbidden, success


users_bp = Blueprint('users', __name__, url_prefix='/users')


@users_bp.put('/<user_id>/role')
@require_auth
def set_system_role(user_id: str):
    """PUT /users/<userId>/role - system admin only."""
    if not identity.is_system_admin(current_user().claims):
        return forbidden()
    body = request.get_json(silent=True) or {}
    system_role = body.get('systemRole')
    if not system_role:
        return bad_request('systemRole is required')

    claims = identity.set_system_role(user_id, system_role)
    return success({'userId': user_id, **claims.to_dict()})


@users_bp.post('/me/claims/refresh')
@require_auth
def refresh_my_claims():
    """POST /users/me/claims/refresh - recompute the caller's permissions."""
    claims = identity.refresh_claims(current_user().uid)
    return success(claims.to_dict())
