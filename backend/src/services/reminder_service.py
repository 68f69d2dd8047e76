"""Overdue and due-soon detection for the action item reminder job."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Iterable, List, Mapping, Optional

from services.models import ActionItem, ActionItemStatus, parse_datetime

DUE_SOON_NOTICE_INTERVAL = timedelta(hours=24)


@dataclass(frozen=True)
class OverdueNotice:
    item: ActionItem
    needs_status_update: bool
    message: str

    @property
    def recipient_id(self) -> Optional[str]:
        return self.item.assigned_to


@dataclass(frozen=True)
class DueSoonNotice:
    item: ActionItem
    message: str

    @property
    def recipient_id(self) -> Optional[str]:
        return self.item.assigned_to


def _now(now: Optional[datetime]) -> datetime:
    return parse_datetime(now) or datetime.now(timezone.utc)


def _is_open_assigned(item: ActionItem) -> bool:
    if item.status == ActionItemStatus.COMPLETED:
        return False
    return bool(item.assigned_to) and item.due_date is not None


def end_of_day(now: Optional[datetime] = None) -> datetime:
    """Midnight (UTC) at the end of the day containing ``now``."""
    now = _now(now)
    return datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=timezone.utc)


def is_overdue(item: ActionItem, now: Optional[datetime] = None) -> bool:
    if not _is_open_assigned(item):
        return False
    return item.due_date < _now(now)


def is_due_soon(item: ActionItem, now: Optional[datetime] = None) -> bool:
    """Open, assigned items due between ``now`` and the end of the day, inclusive."""
    if not _is_open_assigned(item):
        return False
    now = _now(now)
    return now <= item.due_date <= end_of_day(now)


def collect_overdue(items: Iterable[ActionItem], now: Optional[datetime] = None) -> List[OverdueNotice]:
    now = _now(now)
    notices: List[OverdueNotice] = []
    for item in items:
        if not is_overdue(item, now):
            continue
        notices.append(
            OverdueNotice(
                item=item,
                needs_status_update=item.status != ActionItemStatus.OVERDUE,
                message=f"Action item is overdue: {item.title}",
            )
        )
    return notices


def collect_due_soon(
    items: Iterable[ActionItem],
    now: Optional[datetime] = None,
    last_notified: Optional[Mapping[str, datetime]] = None,
) -> List[DueSoonNotice]:
    """Due-soon notices to send, skipping items already notified in the last 24 hours.

    ``last_notified`` maps action item ids to when their most recent due-soon
    notice was created.
    """
    now = _now(now)
    last_notified = last_notified or {}
    cutoff = now - DUE_SOON_NOTICE_INTERVAL
    notices: List[DueSoonNotice] = []
    for item in items:
        if not is_due_soon(item, now):
            continue
        previous = parse_datetime(last_notified.get(item.id)) if item.id is not None else None
        if previous is not None and previous >= cutoff:
            continue
        notices.append(DueSoonNotice(item=item, message=f"Action item due soon: {item.title}"))
    return notices
