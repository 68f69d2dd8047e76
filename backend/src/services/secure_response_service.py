"""Retention rules for secure action item responses.

A secure response is kept until deleted (KEEP), purged on first staff read
(EXPIRE_AFTER_VIEW), or dropped once a number of hours has passed since it
was submitted (EXPIRE_AFTER_HOURS).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from services.models import SecureResponse, SecureRetentionPolicy, parse_datetime

AVAILABLE = "available"
EXPIRED = "expired"
PURGED = "purged"


@dataclass(frozen=True)
class ReadDecision:
    outcome: str
    purge_after_read: bool = False
    expires_at: Optional[datetime] = None

    @property
    def readable(self) -> bool:
        return self.outcome == AVAILABLE


def expires_at(
    created_at: datetime,
    policy: SecureRetentionPolicy,
    expire_after_hours: Optional[int],
) -> Optional[datetime]:
    if policy != SecureRetentionPolicy.EXPIRE_AFTER_HOURS:
        return None
    if not expire_after_hours or expire_after_hours <= 0:
        return None
    return parse_datetime(created_at) + timedelta(hours=expire_after_hours)


def is_expired(response: SecureResponse, now: Optional[datetime] = None) -> bool:
    deadline = expires_at(response.created_at, response.retention_policy, response.expire_after_hours)
    if deadline is None:
        return False
    now = parse_datetime(now) or datetime.now(timezone.utc)
    return now > deadline


def evaluate_read(response: SecureResponse, now: Optional[datetime] = None) -> ReadDecision:
    """Decide what a staff read of ``response`` should do.

    ``expired`` tells the caller to delete the row; ``purge_after_read`` tells
    it to delete the row after handing the value out.
    """
    if response.retention_policy == SecureRetentionPolicy.EXPIRE_AFTER_VIEW and response.viewed_at is not None:
        return ReadDecision(outcome=PURGED)

    deadline = expires_at(response.created_at, response.retention_policy, response.expire_after_hours)
    now = parse_datetime(now) or datetime.now(timezone.utc)
    if deadline is not None and now > deadline:
        return ReadDecision(outcome=EXPIRED, expires_at=deadline)

    return ReadDecision(
        outcome=AVAILABLE,
        purge_after_read=response.retention_policy == SecureRetentionPolicy.EXPIRE_AFTER_VIEW,
        expires_at=deadline,
    )


def select_expired(responses: Iterable[SecureResponse], now: Optional[datetime] = None) -> List[SecureResponse]:
    """Responses the cleanup sweep should delete."""
    now = parse_datetime(now) or datetime.now(timezone.utc)
    return [response for response in responses if is_expired(response, now)]
