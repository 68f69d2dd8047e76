"""
Tests for project progress estimation.

Run with: pytest tests/test_progress_service.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from services.models import (
    ActionItem,
    ActionItemStatus,
    Milestone,
    ProgressSource,
    ProjectStatus,
)
from services.progress_service import (
    completion_ratio_percent,
    compute_progress,
    task_ratio,
    time_ratio,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _items(total: int, completed: int):
    return [
        ActionItem(status=ActionItemStatus.COMPLETED if i < completed else ActionItemStatus.IN_PROGRESS)
        for i in range(total)
    ]


class TestCompletedProjects:
    def test_completed_status_is_always_100(self):
        source = ProgressSource(
            action_items=_items(4, 0),
            status=ProjectStatus.COMPLETED,
            due_date=NOW + timedelta(days=90),
            progress=10,
        )
        assert compute_progress(source, NOW) == 100

    def test_completed_status_with_nothing_else(self):
        assert compute_progress(ProgressSource(status=ProjectStatus.COMPLETED), NOW) == 100


class TestTaskRatio:
    def test_empty_project_without_stored_progress_is_zero(self):
        assert compute_progress(ProgressSource(), NOW) == 0

    def test_empty_project_falls_back_to_stored_progress(self):
        source = ProgressSource(progress=50)
        assert task_ratio(source) == pytest.approx(0.5)
        # 0.5 * 0.7 with no time component
        assert compute_progress(source, NOW) == 35

    def test_stored_progress_ignored_when_segments_exist(self):
        source = ProgressSource(action_items=_items(2, 0), progress=80)
        assert task_ratio(source) == 0
        assert compute_progress(source, NOW) == 0

    def test_milestones_count_toward_completion(self):
        source = ProgressSource(
            action_items=_items(1, 1),
            milestones=[Milestone(completed_at=None), Milestone(completed_at=NOW)],
        )
        assert task_ratio(source) == pytest.approx(2 / 3)
        assert compute_progress(source, NOW) == 47

    def test_only_completed_status_counts(self):
        source = ProgressSource(
            action_items=[
                ActionItem(status=ActionItemStatus.OVERDUE),
                ActionItem(status=ActionItemStatus.PENDING),
                ActionItem(status=ActionItemStatus.COMPLETED),
                ActionItem(status=ActionItemStatus.IN_PROGRESS),
            ]
        )
        assert task_ratio(source) == pytest.approx(0.25)


class TestTimeRatio:
    def test_no_due_date_means_no_time_pressure(self):
        source = ProgressSource(start_date=NOW - timedelta(days=10))
        assert time_ratio(source, NOW) == 0

    def test_same_day_window_is_fully_elapsed(self):
        day = NOW - timedelta(days=3)
        source = ProgressSource(action_items=_items(10, 6), start_date=day, due_date=day)
        assert time_ratio(source, NOW) == 1
        assert compute_progress(source, NOW) == 72

    def test_due_before_start_is_fully_elapsed(self):
        source = ProgressSource(start_date=NOW - timedelta(days=1), due_date=NOW - timedelta(days=5))
        assert time_ratio(source, NOW) == 1

    def test_before_start_is_zero(self):
        source = ProgressSource(
            action_items=_items(2, 1),
            start_date=NOW + timedelta(days=1),
            due_date=NOW + timedelta(days=10),
        )
        assert time_ratio(source, NOW) == 0
        assert compute_progress(source, NOW) == 35

    def test_missing_start_assumes_thirty_day_window(self):
        source = ProgressSource(action_items=_items(4, 2), due_date=NOW + timedelta(days=15))
        assert time_ratio(source, NOW) == pytest.approx(0.5)
        assert compute_progress(source, NOW) == 50

    def test_ratio_does_not_exceed_one_after_due_date(self):
        source = ProgressSource(
            start_date=NOW - timedelta(days=20),
            due_date=NOW - timedelta(days=10),
        )
        assert time_ratio(source, NOW) == 1


class TestBounds:
    def test_finished_work_past_due_is_capped_at_99(self):
        source = ProgressSource(
            action_items=_items(3, 3),
            milestones=[Milestone(completed_at=NOW)],
            start_date=NOW - timedelta(days=40),
            due_date=NOW - timedelta(days=1),
        )
        assert compute_progress(source, NOW) == 99

    @pytest.mark.parametrize(
        "total,completed,due_offset_days",
        [(0, 0, None), (5, 0, -1), (5, 5, 30), (7, 3, 0), (1, 1, None)],
    )
    def test_estimate_stays_within_zero_and_99(self, total, completed, due_offset_days):
        due = NOW + timedelta(days=due_offset_days) if due_offset_days is not None else None
        source = ProgressSource(action_items=_items(total, completed), due_date=due)
        assert 0 <= compute_progress(source, NOW) <= 99


def test_completion_ratio_percent():
    source = ProgressSource(
        action_items=_items(2, 1),
        milestones=[Milestone(completed_at=NOW)],
    )
    assert completion_ratio_percent(source) == 67
    assert completion_ratio_percent(ProgressSource(progress=40)) == 0


def test_progress_source_from_dict_accepts_camel_case():
    source = ProgressSource.from_dict(
        {
            "actionItems": [{"status": "COMPLETED"}, {"status": "pending"}],
            "milestones": [{"completedAt": "2024-05-01T00:00:00Z"}],
            "status": "IN_PROGRESS",
            "dueDate": "2024-06-01T12:00:00Z",
            "startDate": "2024-06-01T12:00:00Z",
        }
    )
    assert source.status == ProjectStatus.IN_PROGRESS
    assert source.action_items[1].status == ActionItemStatus.PENDING
    assert source.milestones[0].completed_at == datetime(2024, 5, 1, tzinfo=timezone.utc)
    # 2/3 done, window has zero length and now is after it
    assert compute_progress(source, NOW + timedelta(hours=1)) == 77


def test_progress_source_rejects_unknown_status():
    with pytest.raises(ValueError):
        ProgressSource.from_dict({"status": "ARCHIVED"})


def test_naive_now_is_treated_as_utc():
    source = ProgressSource.from_dict({"dueDate": "2024-06-01T00:00:00Z"})
    # 19 of 30 days elapsed in the default window
    assert time_ratio(source, datetime(2024, 5, 21)) == pytest.approx(19 / 30)
    assert compute_progress(source, datetime(2024, 5, 21)) == 19
    assert compute_progress(source, datetime(2024, 5, 21)) == compute_progress(
        source, datetime(2024, 5, 21, tzinfo=timezone.utc)
    )
