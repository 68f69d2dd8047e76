# Action Item Access Policy
# Decides which action items an actor may read or change.
#
# Staff (ADMIN, MANAGER) see and mutate everything. Clients see items assigned
# to them, plus items flagged visible_to_client on projects whose client record
# shares their email. Clients never use the staff mutation path; they can only
# mark completion, and only when the item allows it.
#
# Every function takes the actor explicitly; nothing here looks at a session.

from typing import Iterable, List, Optional, Tuple

from services.models import (
    ActionItem,
    ActionItemAccessContext,
    ActionItemStatus,
    Actor,
    UserRole,
)

FORBIDDEN = "FORBIDDEN"

CLIENT_STATUS_CHOICES: Tuple[ActionItemStatus, ...] = (
    ActionItemStatus.PENDING,
    ActionItemStatus.IN_PROGRESS,
    ActionItemStatus.COMPLETED,
)
STAFF_STATUS_CHOICES: Tuple[ActionItemStatus, ...] = tuple(ActionItemStatus)


class PolicyDenied(Exception):
    # Raised when an actor is not allowed to perform an action on an item.

    kind = FORBIDDEN

    def __init__(self, action: str, message: Optional[str] = None):
        self.action = action
        super().__init__(message or f"Not allowed to {action} this action item")


def _normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    cleaned = email.strip().lower()
    return cleaned or None


def is_assignee(ctx: ActionItemAccessContext) -> bool:
    return ctx.item.assigned_to is not None and ctx.item.assigned_to == ctx.actor.id


def is_client_owner(ctx: ActionItemAccessContext) -> bool:
    # A client owns the item's project when their email matches the project's client record.
    if ctx.actor.role != UserRole.CLIENT:
        return False
    actor_email = _normalize_email(ctx.actor.email)
    client_email = _normalize_email(ctx.item.client_email)
    return actor_email is not None and actor_email == client_email


def can_view(ctx: ActionItemAccessContext) -> bool:
    if ctx.actor.role.is_staff:
        return True
    if is_assignee(ctx):
        return True
    return ctx.item.visible_to_client and is_client_owner(ctx)


def can_client_complete(ctx: ActionItemAccessContext) -> bool:
    """Whether a client may mark this item complete from the portal.

    The item must be visible to the client. The client must either be the
    assignee or have completion delegated through ``client_can_complete``,
    and must be the assignee or the project's client owner.
    """
    if ctx.actor.role != UserRole.CLIENT:
        return False
    if not ctx.item.visible_to_client:
        return False
    assignee = is_assignee(ctx)
    if not (ctx.item.client_can_complete or assignee):
        return False
    return is_client_owner(ctx) or assignee


def can_staff_mutate(ctx: ActionItemAccessContext) -> bool:
    return ctx.actor.role.is_staff


def can_update_status(ctx: ActionItemAccessContext) -> bool:
    if ctx.actor.role.is_staff:
        return True
    return is_assignee(ctx) or is_client_owner(ctx)


def allowed_status_choices(role: UserRole) -> Tuple[ActionItemStatus, ...]:
    if role == UserRole.CLIENT:
        return CLIENT_STATUS_CHOICES
    return STAFF_STATUS_CHOICES


def can_submit_secure_response(ctx: ActionItemAccessContext) -> bool:
    if ctx.actor.role.is_staff:
        return True
    return is_client_owner(ctx) or is_assignee(ctx)


def can_read_secure_response(actor: Actor) -> bool:
    return actor.role.is_staff


def require_view(ctx: ActionItemAccessContext) -> None:
    if not can_view(ctx):
        raise PolicyDenied("view")


def require_client_complete(ctx: ActionItemAccessContext) -> None:
    if not can_client_complete(ctx):
        raise PolicyDenied("complete")


def require_staff_mutation(ctx: ActionItemAccessContext) -> None:
    if not can_staff_mutate(ctx):
        raise PolicyDenied("modify")


def require_status_change(ctx: ActionItemAccessContext, new_status: ActionItemStatus) -> None:
    if not can_update_status(ctx):
        raise PolicyDenied("update the status of")
    if new_status not in allowed_status_choices(ctx.actor.role):
        raise PolicyDenied(
            "update the status of",
            f"Status {new_status.value} cannot be set by {ctx.actor.role.value.lower()} users",
        )


def require_secure_response_submit(ctx: ActionItemAccessContext) -> None:
    if not can_submit_secure_response(ctx):
        raise PolicyDenied("submit a secure response for")


def require_secure_response_read(actor: Actor) -> None:
    if not can_read_secure_response(actor):
        raise PolicyDenied("read the secure response of")


def filter_visible(actor: Actor, items: Iterable[ActionItem]) -> List[ActionItem]:
    """Items the actor may see, in their original order."""
    return [item for item in items if can_view(ActionItemAccessContext(actor=actor, item=item))]
