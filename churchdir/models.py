"""Data models for church memberships, member records and claims."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from enum import Enum


class ChurchRole(str, Enum):
    """Role a user holds inside one church."""

    ADMIN = 'admin'
    PASTOR = 'pastor'
    LEADER = 'leader'
    STAFF = 'staff'
    MEMBER = 'member'
    VISITOR = 'visitor'


class MembershipStatus(str, Enum):
    """Persisted membership status. NONE and LEFT are the absence of a record."""

    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    SUSPENDED = 'suspended'


class SystemRole(str, Enum):
    SYSTEM_ADMIN = 'system_admin'
    USER = 'user'


@dataclass
class RegistrationAnswer:
    """Answer to a church registration question."""

    question_id: str
    answer: Any
    question_text: Optional[str] = None
    answered_at: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            'questionId': self.question_id,
            'questionText': self.question_text,
            'answer': self.answer,
            'answeredAt': self.answered_at,
        }
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'RegistrationAnswer':
        return cls(
            question_id=data['questionId'],
            answer=data.get('answer'),
            question_text=data.get('questionText'),
            answered_at=data.get('answeredAt'),
        )


@dataclass
class ChurchMembership:
    """
    One user's relationship to one church, as embedded in the user document.

    Timestamps are ISO-8601 strings because Firestore cannot store
    server timestamps inside array elements.
    """

    church_id: str
    church_name: str
    role: ChurchRole
    status: MembershipStatus
    joined_at: str
    updated_at: str
    approved_at: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            'churchId': self.church_id,
            'churchName': self.church_name,
            'role': self.role.value,
            'status': self.status.value,
            'joinedAt': self.joined_at,
            'approvedAt': self.approved_at,
            'updatedAt': self.updated_at,
        }
        # Remove keys with None values
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'ChurchMembership':
        return cls(
            church_id=data['churchId'],
            church_name=data.get('churchName', ''),
            role=ChurchRole(data.get('role', ChurchRole.VISITOR.value)),
            status=MembershipStatus(data.get('status', MembershipStatus.PENDING.value)),
            joined_at=data.get('joinedAt', ''),
            updated_at=data.get('updatedAt', ''),
            approved_at=data.get('approvedAt'),
        )


@dataclass
class MemberRecord:
    """Church-side mirror of a membership (churches/{churchId}/members/{userId})."""

    user_id: str
    role: ChurchRole
    status: MembershipStatus
    display_name: Optional[str] = None
    email: Optional[str] = None
    photo_url: Optional[str] = None
    registration_answers: list[dict[str, Any]] = field(default_factory=list)
    requested_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    # Snapshot update time, the precondition for guarded writes
    update_time: Optional[datetime] = None

    @classmethod
    def from_dict(
        cls,
        user_id: str,
        data: dict[str, Any],
        update_time: Optional[datetime] = None,
    ) -> 'MemberRecord':
        return cls(
            user_id=data.get('userId', user_id),
            role=ChurchRole(data.get('role', ChurchRole.VISITOR.value)),
            status=MembershipStatus(data.get('status', MembershipStatus.PENDING.value)),
            display_name=data.get('displayName'),
            email=data.get('email'),
            photo_url=data.get('photoURL'),
            registration_answers=data.get('registrationAnswers') or [],
            requested_at=data.get('requestedAt'),
            approved_at=data.get('approvedAt'),
            rejected_at=data.get('rejectedAt'),
            rejection_reason=data.get('rejectionReason'),
            update_time=update_time,
        )

    def to_response(self) -> dict[str, Any]:
        """JSON-friendly representation used by the HTTP API."""
        return {
            'id': self.user_id,
            'userId': self.user_id,
            'displayName': self.display_name,
            'email': self.email,
            'photoURL': self.photo_url,
            'role': self.role.value,
            'status': self.status.value,
            'registrationAnswers': self.registration_answers,
            'requestedAt': _isoformat(self.requested_at),
        }


@dataclass
class UserClaims:
    """Custom claims stored on the Firebase Auth user."""

    system_role: SystemRole = SystemRole.USER
    church_roles: dict[str, ChurchRole] = field(default_factory=dict)
    permissions: list[str] = field(default_factory=lambda: ['read:public'])

    def to_dict(self) -> dict[str, Any]:
        return {
            'systemRole': self.system_role.value,
            'churchRoles': {k: v.value for k, v in self.church_roles.items()},
            'permissions': list(self.permissions),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> 'UserClaims':
        if not data:
            return cls()
        return cls(
            system_role=SystemRole(data.get('systemRole', SystemRole.USER.value)),
            church_roles={k: ChurchRole(v) for k, v in (data.get('churchRoles') or {}).items()},
            permissions=list(data.get('permissions') or ['read:public']),
        )


@dataclass
class ChurchStats:
    member_count: int = 0
    event_count: int = 0
    sermon_count: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            'memberCount': self.member_count,
            'eventCount': self.event_count,
            'sermonCount': self.sermon_count,
        }


@dataclass
class TransitionOutcome:
    """
    Result of a membership transition.

    The first write of a transition either succeeds or raises. Later steps
    (user array, claims, counter) are best effort; any that failed are
    listed in failed_steps and the transition is still reported as done.
    """

    operation: str
    church_id: str
    user_id: str
    failed_steps: list[str] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.failed_steps


@dataclass
class SyncResult:
    user_id: str
    changed_fields: list[str] = field(default_factory=list)
    members_updated: int = 0
    sermons_updated: int = 0
    batches_committed: int = 0


def _isoformat(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value
