"""Project progress estimation.

The estimate blends how much of the work is done (action items and
milestones) with how much of the planned window has elapsed. Work completion
dominates: 70% task ratio, 30% time ratio. A project only reaches 100 once it
is explicitly marked COMPLETED; the blended estimate stops at 99.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from services.models import ActionItemStatus, ProgressSource, ProjectStatus, parse_datetime

TASK_WEIGHT = 0.7
TIME_WEIGHT = 0.3
MAX_ESTIMATED_PROGRESS = 99
DEFAULT_PROJECT_DURATION = timedelta(days=30)


def _round_half_up(value: float) -> int:
    # Halves round up, unlike round().
    return int(math.floor(value + 0.5))


def _completed_segments(source: ProgressSource) -> int:
    done_items = sum(1 for item in source.action_items if item.status == ActionItemStatus.COMPLETED)
    done_milestones = sum(1 for milestone in source.milestones if milestone.completed_at is not None)
    return done_items + done_milestones


def task_ratio(source: ProgressSource) -> float:
    """Share of action items and milestones that are complete.

    Projects with nothing to count fall back to the stored progress value
    (or 0) instead of dividing by zero.
    """
    total = len(source.action_items) + len(source.milestones)
    if total == 0:
        if source.progress is None:
            return 0.0
        return source.progress / 100
    return _completed_segments(source) / total


def time_ratio(source: ProgressSource, now: Optional[datetime] = None) -> float:
    """Share of the planned window that has elapsed, between 0 and 1."""
    if source.due_date is None:
        return 0.0

    now = parse_datetime(now) or datetime.now(timezone.utc)
    start = source.start_date or (source.due_date - DEFAULT_PROJECT_DURATION)
    if now <= start:
        return 0.0

    total = (source.due_date - start).total_seconds()
    if total <= 0:
        return 1.0

    elapsed = min((now - start).total_seconds(), total)
    return elapsed / total


def compute_progress(source: ProgressSource, now: Optional[datetime] = None) -> int:
    """Return the project's completion percentage as an integer in [0, 100]."""
    if source.status == ProjectStatus.COMPLETED:
        return 100

    weighted = task_ratio(source) * TASK_WEIGHT + time_ratio(source, now) * TIME_WEIGHT
    return max(0, min(MAX_ESTIMATED_PROGRESS, _round_half_up(weighted * 100)))


def completion_ratio_percent(source: ProgressSource) -> int:
    """Plain done/total percentage, without the time component."""
    total = len(source.action_items) + len(source.milestones)
    if total == 0:
        return 0
    return _round_half_up(_completed_segments(source) / total * 100)
