"""Action item authorization and secure response endpoints.

These handlers never touch storage. The caller passes the rows it loaded;
the handlers resolve the current actor from the bearer token, run the access
policy and hand back decisions (or sealed / opened secure values) for the
caller to act on.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from api.dependencies import AuthContext, get_auth_context
from auth.action_item_policy import (
    PolicyDenied,
    allowed_status_choices,
    can_client_complete,
    can_staff_mutate,
    can_submit_secure_response,
    can_update_status,
    can_view,
    filter_visible,
    require_client_complete,
    require_secure_response_read,
    require_secure_response_submit,
    require_status_change,
    require_view,
)
from services.encryption import AuthenticationFailure, ConfigurationError, get_codec
from services.models import (
    ActionItem,
    ActionItemAccessContext,
    ActionItemStatus,
    SecureResponse,
    parse_datetime,
    parse_enum,
)
from services.reminder_service import collect_due_soon, collect_overdue
from services.secure_response_service import EXPIRED, PURGED, evaluate_read, select_expired

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/action-items", tags=["Action Items"])


class ActionItemPayload(BaseModel):
    item: Dict[str, Any] = Field(..., description="Action item row including its project and client")


class ActionItemListPayload(BaseModel):
    items: List[Dict[str, Any]] = Field(default_factory=list)
    now: Optional[datetime] = None


class AccessResponse(BaseModel):
    can_view: bool
    can_client_complete: bool
    can_staff_mutate: bool
    can_update_status: bool
    can_submit_secure_response: bool
    status_choices: List[str]


class ClientCompleteRequest(BaseModel):
    item: Dict[str, Any]
    completed: bool = True
    notes: Optional[str] = None


class StatusChangeRequest(BaseModel):
    item: Dict[str, Any]
    new_status: str = Field(..., description="Target action item status")
    summary: Optional[str] = None


class DueSoonRequest(ActionItemListPayload):
    last_notified: Dict[str, datetime] = Field(
        default_factory=dict,
        description="Action item id to the time of its most recent due-soon notice",
    )


class SecureSubmitRequest(BaseModel):
    item: Dict[str, Any]
    value: Optional[str] = None


class SecureOpenRequest(BaseModel):
    response: Dict[str, Any] = Field(..., description="Stored secure response with retention settings")
    now: Optional[datetime] = None


class SecureCleanupRequest(BaseModel):
    responses: List[Dict[str, Any]] = Field(default_factory=list)
    now: Optional[datetime] = None


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"code": "validation_error", "message": str(exc)},
    )


def _forbidden(exc: PolicyDenied) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"code": "forbidden", "message": str(exc)},
    )


def _codec_error(exc: Exception) -> HTTPException:
    if isinstance(exc, ConfigurationError):
        code = "configuration_error"
    else:
        code = "decryption_failed"
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"code": code, "message": str(exc)},
    )


def _context(auth: AuthContext, item: Dict[str, Any]) -> ActionItemAccessContext:
    try:
        return ActionItemAccessContext(actor=auth.to_actor(), item=ActionItem.from_dict(item))
    except ValueError as exc:
        raise _bad_request(exc)


@router.post("/access", response_model=AccessResponse)
async def describe_access(
    payload: ActionItemPayload,
    auth: AuthContext = Depends(get_auth_context),
) -> AccessResponse:
    ctx = _context(auth, payload.item)
    return AccessResponse(
        can_view=can_view(ctx),
        can_client_complete=can_client_complete(ctx),
        can_staff_mutate=can_staff_mutate(ctx),
        can_update_status=can_update_status(ctx),
        can_submit_secure_response=can_submit_secure_response(ctx),
        status_choices=[choice.value for choice in allowed_status_choices(auth.role)],
    )


@router.post("/visible")
async def list_visible(
    payload: ActionItemListPayload,
    auth: AuthContext = Depends(get_auth_context),
) -> Dict[str, Any]:
    try:
        items = [ActionItem.from_dict(row) for row in payload.items]
    except ValueError as exc:
        raise _bad_request(exc)

    visible = {id(item) for item in filter_visible(auth.to_actor(), items)}
    rows = [row for row, item in zip(payload.items, items) if id(item) in visible]
    return {"items": rows, "count": len(rows)}


@router.post("/complete")
async def authorize_client_completion(
    payload: ClientCompleteRequest,
    auth: AuthContext = Depends(get_auth_context),
) -> Dict[str, Any]:
    ctx = _context(auth, payload.item)
    try:
        require_view(ctx)
        require_client_complete(ctx)
    except PolicyDenied as exc:
        logger.warning(f"User {auth.user_id} denied client completion on {ctx.item.id}")
        raise _forbidden(exc)

    completed_at = datetime.now(timezone.utc).isoformat() if payload.completed else None
    return {
        "client_completed": payload.completed,
        "client_completed_at": completed_at,
        "client_notes": payload.notes,
    }


@router.post("/status")
async def authorize_status_change(
    payload: StatusChangeRequest,
    auth: AuthContext = Depends(get_auth_context),
) -> Dict[str, Any]:
    ctx = _context(auth, payload.item)
    summary = (payload.summary or "").strip()
    if not summary:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "validation_error", "message": "Summary is required."},
        )
    try:
        new_status = parse_enum(ActionItemStatus, payload.new_status)
    except ValueError as exc:
        raise _bad_request(exc)

    try:
        require_status_change(ctx, new_status)
    except PolicyDenied as exc:
        raise _forbidden(exc)

    completed_at = datetime.now(timezone.utc).isoformat() if new_status == ActionItemStatus.COMPLETED else None
    return {
        "previous_status": ctx.item.status.value,
        "new_status": new_status.value,
        "summary": summary,
        "completed_at": completed_at,
    }


@router.post("/overdue")
async def list_overdue(
    payload: ActionItemListPayload,
    auth: AuthContext = Depends(get_auth_context),
) -> Dict[str, Any]:
    if not auth.role.is_staff:
        raise _forbidden(PolicyDenied("list overdue action items", "Only staff can run overdue checks"))
    try:
        items = [ActionItem.from_dict(row) for row in payload.items]
    except ValueError as exc:
        raise _bad_request(exc)

    notices = collect_overdue(items, parse_datetime(payload.now))
    return {
        "overdue": [
            {
                "id": notice.item.id,
                "recipient_id": notice.recipient_id,
                "needs_status_update": notice.needs_status_update,
                "message": notice.message,
            }
            for notice in notices
        ]
    }


@router.post("/due-soon")
async def list_due_soon(
    payload: DueSoonRequest,
    auth: AuthContext = Depends(get_auth_context),
) -> Dict[str, Any]:
    if not auth.role.is_staff:
        raise _forbidden(PolicyDenied("list due-soon action items", "Only staff can run due-soon checks"))
    try:
        items = [ActionItem.from_dict(row) for row in payload.items]
    except ValueError as exc:
        raise _bad_request(exc)

    notices = collect_due_soon(items, parse_datetime(payload.now), payload.last_notified)
    return {
        "due_soon": [
            {"id": notice.item.id, "recipient_id": notice.recipient_id, "message": notice.message}
            for notice in notices
        ]
    }


@router.post("/secure-response")
async def seal_secure_response(
    payload: SecureSubmitRequest,
    auth: AuthContext = Depends(get_auth_context),
) -> Dict[str, str]:
    ctx = _context(auth, payload.item)
    if not ctx.item.requires_secure_response:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "validation_error", "message": "Secure response not enabled for this action."},
        )
    try:
        require_secure_response_submit(ctx)
    except PolicyDenied as exc:
        logger.warning(f"User {auth.user_id} denied secure response submit on {ctx.item.id}")
        raise _forbidden(exc)

    value = (payload.value or "").strip()
    if not value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "validation_error", "message": "Value is required."},
        )

    try:
        encrypted = get_codec().encrypt(value)
    except ConfigurationError as exc:
        logger.error(f"Secure response submit failed: {exc}")
        raise _codec_error(exc)
    return {"encrypted_data": encrypted}


@router.post("/secure-response/open")
async def open_secure_response(
    payload: SecureOpenRequest,
    auth: AuthContext = Depends(get_auth_context),
) -> Dict[str, Any]:
    try:
        require_secure_response_read(auth.to_actor())
    except PolicyDenied as exc:
        raise _forbidden(exc)

    try:
        response = SecureResponse.from_dict(payload.response)
    except ValueError as exc:
        raise _bad_request(exc)

    decision = evaluate_read(response, parse_datetime(payload.now))
    if decision.outcome == PURGED:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "not_found", "message": "Secure response already viewed and purged."},
        )
    if decision.outcome == EXPIRED:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "expired", "message": "Secure response expired.", "delete": True},
        )

    try:
        value = get_codec().decrypt(response.encrypted_data)
    except (ConfigurationError, AuthenticationFailure) as exc:
        logger.error(f"Secure response fetch failed for {response.action_item_id}: {exc}")
        raise _codec_error(exc)

    return {
        "value": value,
        "purge_after_read": decision.purge_after_read,
        "expires_at": decision.expires_at.isoformat() if decision.expires_at else None,
    }


@router.post("/secure-response/cleanup")
async def cleanup_secure_responses(
    payload: SecureCleanupRequest,
    auth: AuthContext = Depends(get_auth_context),
) -> Dict[str, Any]:
    try:
        require_secure_response_read(auth.to_actor())
        responses = [SecureResponse.from_dict(row) for row in payload.responses]
    except PolicyDenied as exc:
        raise _forbidden(exc)
    except ValueError as exc:
        raise _bad_request(exc)

    expired = select_expired(responses, parse_datetime(payload.now))
    return {"delete": [response.action_item_id for response in expired], "deleted": len(expired)}
