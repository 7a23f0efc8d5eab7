"""Exceptions raised by membership operations."""


class MembershipError(Exception):
    """Base class for precondition failures reported to callers."""

    code = 'membership/error'


class NotFoundError(MembershipError):
    """Referenced user, church or membership does not exist."""

    code = 'membership/not-found'


class ConflictError(MembershipError):
    """Membership already exists or is in a state that forbids the transition."""

    code = 'membership/conflict'


class ValidationError(MembershipError):
    """Malformed role, status or request payload."""

    code = 'membership/invalid'
