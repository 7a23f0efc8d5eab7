"""Membership routes. All routes require authentication.

Precondition errors raised by the services (NotFoundError, ConflictError,
ValidationError) are translated to status codes by the app's error
handlers.
"""

import logging
from flask import Blueprint, request

from .. import identity
from ..services import membership
from .auth import current_user, require_auth
from .responses import bad_request, forbidden, no_content, success


logger = logging.getLogger(__name__)

memberships_bp = Blueprint('memberships', __name__, url_prefix='/memberships')


def _can_manage(church_id: str) -> bool:
    return identity.is_church_admin(current_user().claims, church_id)


@memberships_bp.post('/request')
@require_auth
def request_membership():
    """POST /memberships/request - request membership to a church."""
    body = request.get_json(silent=True) or {}
    church_id = body.get('churchId')
    if not isinstance(church_id, str) or not church_id.strip():
        return bad_request('churchId is required')

    answers = body.get('answers')
    if answers is not None and not isinstance(answers, list):
        return bad_request('answers must be an array')

    result = membership.request_membership(current_user().uid, church_id.strip(), answers)
    return success({'success': True, 'membership': result.to_dict()})


@memberships_bp.get('/my')
@require_auth
def my_memberships():
    """GET /memberships/my - current user's memberships."""
    memberships = membership.get_my_memberships(current_user().uid)
    return success([m.to_dict() for m in memberships])


@memberships_bp.delete('/churches/<church_id>/leave')
@require_auth
def leave_church(church_id: str):
    """DELETE /memberships/churches/<churchId>/leave - leave a church."""
    membership.leave_church(current_user().uid, church_id)
    return no_content()


@memberships_bp.get('/churches/<church_id>/pending')
@require_auth
def pending_requests(church_id: str):
    """GET /memberships/churches/<churchId>/pending - church admin only."""
    if not _can_manage(church_id):
        return forbidden()
    records = membership.get_pending_requests(church_id)
    return success([r.to_response() for r in records])


@memberships_bp.put('/churches/<church_id>/approve/<user_id>')
@require_auth
def approve(church_id: str, user_id: str):
    """PUT /memberships/churches/<churchId>/approve/<userId> - church admin only."""
    if not _can_manage(church_id):
        return forbidden()
    body = request.get_json(silent=True) or {}
    role = body.get('role') or 'member'

    outcome = membership.approve_membership(church_id, user_id, role)
    if not outcome.consistent:
        logger.warning(f"Approval of {user_id} in {church_id} incomplete: {outcome.failed_steps}")
    return success({'message': 'Membership approved'})


@memberships_bp.put('/churches/<church_id>/reject/<user_id>')
@require_auth
def reject(church_id: str, user_id: str):
    """PUT /memberships/churches/<churchId>/reject/<userId> - church admin only."""
    if not _can_manage(church_id):
        return forbidden()
    body = request.get_json(silent=True) or {}
    reason = body.get('reason') or ''
    if not isinstance(reason, str):
        return bad_request('reason must be a string')

    membership.reject_membership(church_id, user_id, reason.strip())
    return success({'message': 'Membership rejected'})


@memberships_bp.put('/churches/<church_id>/members/<user_id>/role')
@require_auth
def update_role(church_id: str, user_id: str):
    """PUT /memberships/churches/<churchId>/members/<userId>/role - church admin only."""
    if not _can_manage(church_id):
        return forbidden()
    body = request.get_json(silent=True) or {}
    role = body.get('role')
    if not role:
        return bad_request('role is required')

    membership.update_member_role(church_id, user_id, role)
    return success({'message': 'Role updated'})
