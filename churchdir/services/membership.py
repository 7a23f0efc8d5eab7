"""Membership state machine.

    NONE -> PENDING -> APPROVED -> (left: records deleted)
            PENDING -> REJECTED

Each transition is an ordered sequence of single-document writes. The first
write is the authoritative one: if it fails the transition raises and
nothing else happens. Later writes (the user's membership array, custom
claims, the member counter) are attempted in order and a failure is logged
as an inconsistency and reported in TransitionOutcome.failed_steps, but the
transition is still reported as done because its primary effect landed.
There is no rollback; reconciliation repairs counter drift and a forced
token refresh repairs stale claims.

The first write on the member record carries the update time of the read
that checked its status, so of two racing transitions only one lands and
the counter moves once.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union
from google.api_core.exceptions import FailedPrecondition, NotFound
from google.cloud import firestore

from .. import db, identity
from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..models import (
    ChurchMembership,
    ChurchRole,
    MemberRecord,
    MembershipStatus,
    RegistrationAnswer,
    TransitionOutcome,
)
from ..db.users import parse_memberships
from .counters import apply_stat_delta


logger = logging.getLogger(__name__)

# Step names reported in TransitionOutcome.failed_steps
STEP_USER_MEMBERSHIPS = 'user_memberships'
STEP_CLAIMS = 'claims'
STEP_MEMBER_COUNT = 'member_count'


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _best_effort(outcome: TransitionOutcome, step: str, action: Callable[[], Any]) -> None:
    try:
        action()
    except Exception as e:
        outcome.failed_steps.append(step)
        logger.error(
            f"Inconsistency after {outcome.operation} of user {outcome.user_id} "
            f"in church {outcome.church_id}: step '{step}' failed: {e}",
            exc_info=True,
            extra={
                'inconsistency': True,
                'operation': outcome.operation,
                'step': step,
                'church_id': outcome.church_id,
                'user_id': outcome.user_id,
            },
        )


def _validate_answers(answers: Optional[list[Any]]) -> list[dict[str, Any]]:
    if answers is None:
        return []
    if not isinstance(answers, list):
        raise ValidationError("answers must be a list")

    validated = []
    for answer in answers:
        if not isinstance(answer, dict) or not answer.get('questionId'):
            raise ValidationError("Each answer must be an object with a questionId")
        parsed = RegistrationAnswer.from_dict(answer)
        if parsed.answered_at is None:
            parsed.answered_at = _now()
        validated.append(parsed.to_dict())
    return validated


@contextmanager
def _guarded_by(record: MemberRecord):
    """Turn a lost precondition on the member record into a ConflictError."""
    try:
        yield
    except (FailedPrecondition, NotFound) as e:
        logger.warning(
            f"Member record of user {record.user_id} changed concurrently: {e}"
        )
        raise ConflictError("Membership changed concurrently; reload and retry") from e


def _require_member(church_id: str, user_id: str) -> MemberRecord:
    record = db.get_member(church_id, user_id)
    if record is None:
        raise NotFoundError(f"Membership request not found for user {user_id} in church {church_id}")
    return record


def request_membership(
    user_id: str,
    church_id: str,
    answers: Optional[list[dict[str, Any]]] = None,
) -> ChurchMembership:
    """
    Request membership of a church (NONE -> PENDING).

    The church member record is written before the user's array. The
    duplicate check reads the user's array, so if the second write fails
    the request can simply be retried: the pending member record is
    rewritten and the array entry added.

    Args:
        user_id: Requesting user
        church_id: Church to join
        answers: Registration answers ({questionId, answer, ...})

    Returns:
        The pending ChurchMembership added to the user

    Raises:
        NotFoundError: If the user or church does not exist
        ConflictError: If the user already has a membership for the church
        ValidationError: If answers are malformed

    Example:
        >>> m = request_membership('u1', 'c1', [])
        >>> (m.status, m.role)
        (<MembershipStatus.PENDING: 'pending'>, <ChurchRole.VISITOR: 'visitor'>)
    """
    validated_answers = _validate_answers(answers)

    user_data = db.get_user_data(user_id)
    if user_data is None:
        raise NotFoundError(f"User not found: {user_id}")

    church_data = db.get_church_data(church_id)
    if church_data is None:
        raise NotFoundError(f"Church not found: {church_id}")

    if any(m.church_id == church_id for m in parse_memberships(user_data)):
        raise ConflictError("Already a member or request pending")

    existing = db.get_member(church_id, user_id)
    if existing is not None and existing.status == MembershipStatus.APPROVED:
        raise ConflictError("Already a member of this church")

    now = _now()
    membership = ChurchMembership(
        church_id=church_id,
        church_name=church_data.get('name', ''),
        role=ChurchRole.VISITOR,
        status=MembershipStatus.PENDING,
        joined_at=now,
        updated_at=now,
    )

    db.create_pending_member(church_id, user_id, user_data, validated_answers)

    def add_membership(memberships: list[ChurchMembership]) -> list[ChurchMembership]:
        if any(m.church_id == church_id for m in memberships):
            raise ConflictError("Already a member or request pending")
        return memberships + [membership]

    extra_fields = None
    if validated_answers:
        extra_fields = {'registrationAnswers': firestore.ArrayUnion(validated_answers)}

    db.mutate_memberships(user_id, add_membership, extra_fields)

    logger.info(f"User {user_id} requested membership of church {church_id}")
    return membership


def get_my_memberships(user_id: str) -> list[ChurchMembership]:
    """
    Get the user's own membership list.

    Raises:
        NotFoundError: If the user does not exist
    """
    return db.get_memberships(user_id)


def get_pending_requests(church_id: str) -> list[MemberRecord]:
    """Pending member records of a church, newest first."""
    return db.get_pending_members(church_id)


def approve_membership(
    church_id: str,
    user_id: str,
    role: Union[str, ChurchRole] = ChurchRole.MEMBER,
) -> TransitionOutcome:
    """
    Approve a pending request (PENDING -> APPROVED).

    Write order: member record, user array entry, claims, memberCount + 1.

    Raises:
        ValidationError: If role is not a church role
        NotFoundError: If there is no member record
        ConflictError: If the record is not pending, or changed after it was read

    Example:
        >>> outcome = approve_membership('c1', 'u1', 'member')
        >>> outcome.consistent
        True
    """
    church_role = identity.parse_church_role(role)
    record = _require_member(church_id, user_id)
    if record.status != MembershipStatus.PENDING:
        raise ConflictError(f"Membership is {record.status.value}, only pending requests can be approved")

    outcome = TransitionOutcome('approve', church_id, user_id)

    with _guarded_by(record):
        db.mark_member_approved(church_id, user_id, church_role, record.update_time)

    now = _now()

    def approve_entry(memberships: list[ChurchMembership]) -> list[ChurchMembership]:
        for m in memberships:
            if m.church_id == church_id:
                m.role = church_role
                m.status = MembershipStatus.APPROVED
                m.approved_at = now
                m.updated_at = now
                return memberships
        # The request's array write never landed; restore the entry
        church_data = db.get_church_data(church_id) or {}
        return memberships + [ChurchMembership(
            church_id=church_id,
            church_name=church_data.get('name', ''),
            role=church_role,
            status=MembershipStatus.APPROVED,
            joined_at=now,
            updated_at=now,
            approved_at=now,
        )]

    _best_effort(outcome, STEP_USER_MEMBERSHIPS, lambda: db.mutate_memberships(user_id, approve_entry))
    _best_effort(outcome, STEP_CLAIMS, lambda: identity.set_church_role(user_id, church_id, church_role))
    _best_effort(outcome, STEP_MEMBER_COUNT, lambda: apply_stat_delta(church_id, 'memberCount', 1))

    logger.info(f"Approved user {user_id} in church {church_id} as {church_role.value}")
    return outcome


def reject_membership(church_id: str, user_id: str, reason: str = '') -> TransitionOutcome:
    """
    Reject a request (PENDING -> REJECTED).

    The rejected record stays under the church as an audit trail; the entry
    is removed from the user's array. Counters are never touched, so
    rejecting twice is harmless.

    Raises:
        NotFoundError: If there is no member record
        ConflictError: If the membership was already approved, or changed
            after it was read
    """
    record = _require_member(church_id, user_id)
    if record.status == MembershipStatus.APPROVED:
        raise ConflictError("Membership is approved; remove the member instead of rejecting")

    outcome = TransitionOutcome('reject', church_id, user_id)

    with _guarded_by(record):
        db.mark_member_rejected(church_id, user_id, reason or '', record.update_time)

    def remove_entry(memberships: list[ChurchMembership]) -> list[ChurchMembership]:
        return [m for m in memberships if m.church_id != church_id]

    _best_effort(outcome, STEP_USER_MEMBERSHIPS, lambda: db.mutate_memberships(user_id, remove_entry))

    logger.info(f"Rejected user {user_id} in church {church_id}")
    return outcome


def leave_church(user_id: str, church_id: str) -> TransitionOutcome:
    """
    Leave a church (APPROVED -> LEFT), or withdraw a pending request.

    Write order: delete member record, remove the user's array entry,
    remove the church role claim, memberCount - 1. The counter is only
    decremented when the deleted record was approved, matching the single
    increment made on approval.

    Raises:
        NotFoundError: If the user does not exist or has no trace of the membership
        ConflictError: If the member record changed after it was read
    """
    record = db.get_member(church_id, user_id)
    memberships = db.get_memberships(user_id)
    has_entry = any(m.church_id == church_id for m in memberships)

    if record is None and not has_entry:
        raise NotFoundError(f"User {user_id} is not a member of church {church_id}")

    outcome = TransitionOutcome('leave', church_id, user_id)

    def remove_entry(current: list[ChurchMembership]) -> list[ChurchMembership]:
        return [m for m in current if m.church_id != church_id]

    if record is not None:
        with _guarded_by(record):
            db.delete_member(church_id, user_id, record.update_time)
        if has_entry:
            _best_effort(outcome, STEP_USER_MEMBERSHIPS, lambda: db.mutate_memberships(user_id, remove_entry))
    else:
        # Only the user's side exists, so that write is the primary one
        db.mutate_memberships(user_id, remove_entry)

    _best_effort(outcome, STEP_CLAIMS, lambda: identity.remove_church_role(user_id, church_id))

    if record is not None and record.status == MembershipStatus.APPROVED:
        _best_effort(outcome, STEP_MEMBER_COUNT, lambda: apply_stat_delta(church_id, 'memberCount', -1))

    logger.info(f"User {user_id} left church {church_id}")
    return outcome


def update_member_role(
    church_id: str,
    user_id: str,
    role: Union[str, ChurchRole],
) -> TransitionOutcome:
    """
    Change an approved member's role in the member record, the user's array
    and the claims. Concurrent role updates and leaves are last-write-wins
    per document.

    Raises:
        ValidationError: If role is not a church role
        NotFoundError: If there is no member record
        ConflictError: If the membership is not approved
    """
    church_role = identity.parse_church_role(role)
    record = _require_member(church_id, user_id)
    if record.status != MembershipStatus.APPROVED:
        raise ConflictError(f"Membership is {record.status.value}, only approved members have roles")

    outcome = TransitionOutcome('update_role', church_id, user_id)

    db.set_member_role(church_id, user_id, church_role)

    now = _now()

    def set_role(memberships: list[ChurchMembership]) -> list[ChurchMembership]:
        for m in memberships:
            if m.church_id == church_id:
                m.role = church_role
                m.updated_at = now
        return memberships

    _best_effort(outcome, STEP_USER_MEMBERSHIPS, lambda: db.mutate_memberships(user_id, set_role))
    _best_effort(outcome, STEP_CLAIMS, lambda: identity.set_church_role(user_id, church_id, church_role))

    logger.info(f"Set role of user {user_id} in church {church_id} to {church_role.value}")
    return outcome
