"""Domain types shared by the progress, policy and retention services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    CLIENT = "CLIENT"

    @property
    def is_staff(self) -> bool:
        return self in (UserRole.ADMIN, UserRole.MANAGER)


class ActionItemStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    OVERDUE = "OVERDUE"


class ProjectStatus(str, Enum):
    PLANNING = "PLANNING"
    IN_PROGRESS = "IN_PROGRESS"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class SecureRetentionPolicy(str, Enum):
    KEEP = "KEEP"
    EXPIRE_AFTER_VIEW = "EXPIRE_AFTER_VIEW"
    EXPIRE_AFTER_HOURS = "EXPIRE_AFTER_HOURS"


def parse_enum(enum_cls, value: Any):
    """Return the enum member for ``value`` or raise ``ValueError``.

    Accepts members, exact names and case-insensitive names. ``None`` passes
    through so optional fields stay optional.
    """
    if value is None or isinstance(value, enum_cls):
        return value
    text = str(value).strip().upper()
    try:
        return enum_cls[text]
    except KeyError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValueError(f"Invalid {enum_cls.__name__} '{value}'. Expected one of: {allowed}") from None


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO-8601 strings (``Z`` suffix accepted) into aware UTC datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        cleaned = str(value).strip()
        if cleaned.endswith("Z"):
            cleaned = cleaned[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(cleaned)
        except ValueError as exc:
            raise ValueError(f"Invalid timestamp: {value}") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_bool(value: Any, name: str, default: bool = False) -> bool:
    """Return a real boolean for ``value`` or raise ``ValueError``.

    Only ``True``/``False`` and the strings ``"true"``/``"false"`` are
    accepted. ``None`` means the flag is absent and yields ``default``.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text == "true":
            return True
        if text == "false":
            return False
    raise ValueError(f"Invalid boolean for {name}: {value!r}")


def _require_mapping(value: Any, name: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be an object, got {type(value).__name__}")
    return value


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    # Rows arrive either camelCase (JSON from the dashboard) or snake_case (database).
    for key in keys:
        if key in data:
            return data[key]
    return default


@dataclass(frozen=True)
class Actor:
    """The identity a request is evaluated for."""

    role: UserRole
    id: str
    email: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Actor":
        return cls(
            role=parse_enum(UserRole, _pick(data, "role")),
            id=str(_pick(data, "id", "user_id", "userId", default="")),
            email=_pick(data, "email"),
        )


@dataclass(frozen=True)
class ClientRef:
    email: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ClientRef"]:
        if data is None:
            return None
        data = _require_mapping(data, "client")
        if not data:
            return None
        return cls(email=data.get("email"))


@dataclass(frozen=True)
class ProjectRef:
    client: Optional[ClientRef] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ProjectRef"]:
        if data is None:
            return None
        data = _require_mapping(data, "project")
        if not data:
            return None
        return cls(client=ClientRef.from_dict(data.get("client")))


@dataclass(frozen=True)
class ActionItem:
    """An action item as seen by the policy, progress and reminder code."""

    id: Optional[str] = None
    title: str = ""
    status: ActionItemStatus = ActionItemStatus.PENDING
    assigned_to: Optional[str] = None
    visible_to_client: bool = False
    client_can_complete: bool = False
    requires_secure_response: bool = False
    due_date: Optional[datetime] = None
    project: Optional[ProjectRef] = None

    @property
    def client_email(self) -> Optional[str]:
        if self.project is None or self.project.client is None:
            return None
        return self.project.client.email

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActionItem":
        status = parse_enum(ActionItemStatus, _pick(data, "status"))
        return cls(
            id=_pick(data, "id"),
            title=_pick(data, "title", default="") or "",
            status=status or ActionItemStatus.PENDING,
            assigned_to=_pick(data, "assigned_to", "assignedTo"),
            visible_to_client=parse_bool(
                _pick(data, "visible_to_client", "visibleToClient"), "visible_to_client"
            ),
            client_can_complete=parse_bool(
                _pick(data, "client_can_complete", "clientCanComplete"), "client_can_complete"
            ),
            requires_secure_response=parse_bool(
                _pick(data, "requires_secure_response", "requiresSecureResponse"), "requires_secure_response"
            ),
            due_date=parse_datetime(_pick(data, "due_date", "dueDate")),
            project=ProjectRef.from_dict(_pick(data, "project")),
        )


@dataclass(frozen=True)
class ActionItemAccessContext:
    actor: Actor
    item: ActionItem


@dataclass(frozen=True)
class Milestone:
    completed_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Milestone":
        return cls(completed_at=parse_datetime(_pick(data, "completed_at", "completedAt")))


@dataclass(frozen=True)
class ProgressSource:
    """Everything the progress estimator looks at for one project."""

    action_items: List[ActionItem] = field(default_factory=list)
    milestones: List[Milestone] = field(default_factory=list)
    status: Optional[ProjectStatus] = None
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    progress: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressSource":
        stored = _pick(data, "progress")
        return cls(
            action_items=[ActionItem.from_dict(row) for row in _pick(data, "action_items", "actionItems", default=[]) or []],
            milestones=[Milestone.from_dict(row) for row in _pick(data, "milestones", default=[]) or []],
            status=parse_enum(ProjectStatus, _pick(data, "status")),
            start_date=parse_datetime(_pick(data, "start_date", "startDate")),
            due_date=parse_datetime(_pick(data, "due_date", "dueDate")),
            progress=float(stored) if stored is not None else None,
        )


@dataclass(frozen=True)
class SecureResponse:
    """A stored secure response plus the retention settings of its action item."""

    encrypted_data: str
    created_at: datetime
    retention_policy: SecureRetentionPolicy = SecureRetentionPolicy.KEEP
    expire_after_hours: Optional[int] = None
    viewed_at: Optional[datetime] = None
    action_item_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecureResponse":
        created_at = parse_datetime(_pick(data, "created_at", "createdAt"))
        if created_at is None:
            raise ValueError("Secure response is missing created_at")
        hours = _pick(data, "expire_after_hours", "secureExpireAfterHours")
        policy = parse_enum(
            SecureRetentionPolicy,
            _pick(data, "retention_policy", "secureRetentionPolicy"),
        )
        return cls(
            encrypted_data=str(_pick(data, "encrypted_data", "encryptedData", default="")),
            created_at=created_at,
            retention_policy=policy or SecureRetentionPolicy.KEEP,
            expire_after_hours=int(hours) if hours is not None else None,
            viewed_at=parse_datetime(_pick(data, "viewed_at", "secureViewedAt")),
            action_item_id=_pick(data, "action_item_id", "actionItemId"),
        )
