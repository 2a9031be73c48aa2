"""
Tests for the progress engine

Covers period partitioning, all-time aggregates, goal get-or-create and
store failure handling.
"""
from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.models import Activity, Goal, Progress
from app.services.periods import Season
from app.services.progress_service import (
    ProgressInputError,
    ProgressService,
    ProgressStoreError,
)


@pytest.fixture
def service():
    return ProgressService()


def _snapshot(progress):
    return (
        progress.user_id,
        progress.monthly_mileage,
        progress.seasonal_mileage,
        progress.monthly_goal,
        progress.seasonal_goal,
        progress.monthly_progress,
        progress.seasonal_progress,
        progress.last_updated,
        progress.total_activities,
        progress.average_pace,
        progress.longest_run,
    )


class TestSummarizeActivities:
    """Pure aggregation over activity sets"""

    def test_empty_set(self, service):
        totals = service.summarize_activities([], datetime(2024, 6, 20))

        assert totals.monthly_mileage == 0
        assert totals.seasonal_mileage == 0
        assert totals.total_activities == 0
        assert totals.average_pace == 0
        assert totals.longest_run == 0

    def test_average_pace_excludes_missing_pace(self, service):
        activities = [
            Activity(date=datetime(2024, 6, 1), distance=3.0, pace=6.0),
            Activity(date=datetime(2024, 6, 2), distance=3.0, pace=None),
            Activity(date=datetime(2024, 6, 3), distance=3.0, pace=8.0),
        ]
        totals = service.summarize_activities(activities, datetime(2024, 6, 20))

        assert totals.average_pace == 7.0
        assert totals.total_activities == 3

    def test_partition_at_start_of_spring(self, service):
        activities = [
            Activity(date=datetime(2024, 1, 15), distance=1.0, pace=9.0),
            Activity(date=datetime(2024, 2, 20), distance=2.0, pace=9.0),
            Activity(date=datetime(2024, 3, 10), distance=4.0, pace=9.0),
        ]
        totals = service.summarize_activities(activities, datetime(2024, 3, 1, tzinfo=timezone.utc))

        # January and February are Winter, not Spring
        assert totals.monthly_mileage == 4.0
        assert totals.seasonal_mileage == 4.0
        assert totals.total_activities == 3
        assert totals.longest_run == 4.0

    def test_winter_includes_previous_december(self, service):
        activities = [
            Activity(date=datetime(2024, 11, 30), distance=4.0),
            Activity(date=datetime(2024, 12, 20), distance=3.0),
            Activity(date=datetime(2025, 1, 10), distance=2.0),
        ]
        totals = service.summarize_activities(activities, datetime(2025, 1, 15))

        assert totals.monthly_mileage == 2.0
        assert totals.seasonal_mileage == 5.0

    def test_same_month_other_year_excluded(self, service):
        activities = [
            Activity(date=datetime(2023, 6, 10), distance=10.0),
            Activity(date=datetime(2024, 6, 10), distance=1.0),
        ]
        totals = service.summarize_activities(activities, datetime(2024, 6, 20))

        assert totals.monthly_mileage == 1.0
        assert totals.seasonal_mileage == 1.0
        assert totals.longest_run == 10.0

    def test_percentage_is_not_capped(self, service):
        assert service.calculate_percentage(30, 26.2) == pytest.approx(114.5, abs=0.01)

    def test_percentage_of_zero_mileage(self, service):
        assert service.calculate_percentage(0, 26.2) == 0


class TestUpdateProgress:
    """Recompute and persist the snapshot"""

    def test_scenario_june(self, service, db_session, test_user, make_activity):
        make_activity(test_user, "2024-06-01", 5.0, pace=6.0)
        make_activity(test_user, "2024-06-15", 3.0, pace=8.0)

        progress = service.update_progress(db_session, test_user.id, now=datetime(2024, 6, 20))

        assert progress.monthly_mileage == 8.0
        assert progress.seasonal_mileage == 8.0
        assert progress.total_activities == 2
        assert progress.average_pace == 7.0
        assert progress.longest_run == 5.0
        assert progress.monthly_goal == 26.2
        assert progress.seasonal_goal == 78.6
        assert progress.monthly_progress == pytest.approx(30.5, abs=0.05)
        assert progress.seasonal_progress == pytest.approx(10.2, abs=0.05)
        assert progress.last_updated == datetime(2024, 6, 20)

    def test_empty_activity_set(self, service, db_session, test_user):
        progress = service.update_progress(db_session, test_user.id, now=datetime(2024, 6, 20))

        assert progress.monthly_mileage == 0
        assert progress.seasonal_mileage == 0
        assert progress.total_activities == 0
        assert progress.average_pace == 0
        assert progress.longest_run == 0
        assert progress.monthly_progress == 0
        assert progress.seasonal_progress == 0

    def test_idempotent(self, service, db_session, test_user, make_activity):
        make_activity(test_user, "2024-06-01", 5.0, pace=6.0)
        now = datetime(2024, 6, 20)

        first = _snapshot(service.update_progress(db_session, test_user.id, now=now))
        second = _snapshot(service.update_progress(db_session, test_user.id, now=now))

        assert first == second
        assert db_session.query(Progress).filter(Progress.user_id == test_user.id).count() == 1
        assert db_session.query(Goal).filter(Goal.user_id == test_user.id).count() == 2

    def test_overwrites_previous_snapshot(self, service, db_session, test_user, make_activity):
        now = datetime(2024, 6, 20)
        service.update_progress(db_session, test_user.id, now=now)
        make_activity(test_user, "2024-06-10", 30.0, pace=9.0)

        progress = service.update_progress(db_session, test_user.id, now=now)

        assert progress.monthly_mileage == 30.0
        assert progress.monthly_progress == pytest.approx(114.5, abs=0.01)
        assert progress.seasonal_progress == pytest.approx(38.17, abs=0.01)

    def test_only_own_activities(self, service, db_session, test_user, other_user, make_activity):
        make_activity(test_user, "2024-06-01", 5.0)
        make_activity(other_user, "2024-06-02", 50.0)

        progress = service.update_progress(db_session, test_user.id, now=datetime(2024, 6, 20))

        assert progress.total_activities == 1
        assert progress.longest_run == 5.0

    def test_explicit_activity_list(self, service, db_session, test_user):
        activities = [Activity(date=datetime(2024, 6, 3), distance=2.5, pace=10.0)]

        progress = service.update_progress(
            db_session, test_user.id, activities=activities, now=datetime(2024, 6, 20)
        )

        assert progress.monthly_mileage == 2.5
        assert progress.total_activities == 1

    def test_winter_rollover_uses_season_year(self, service, db_session, test_user, make_activity):
        make_activity(test_user, "2024-12-20", 3.0)

        progress = service.update_progress(db_session, test_user.id, now=datetime(2025, 1, 15))

        assert progress.seasonal_mileage == 3.0
        assert progress.monthly_mileage == 0
        goal = db_session.query(Goal).filter(Goal.goal_key == "seasonal_2024_Winter").one()
        assert goal.start_date == date(2024, 12, 1)
        assert goal.end_date == date(2025, 2, 28)
        assert db_session.query(Goal).filter(Goal.goal_key == "monthly_2025_1").count() == 1

    def test_aware_now_is_normalized(self, service, db_session, test_user):
        progress = service.update_progress(
            db_session, test_user.id, now=datetime(2024, 6, 20, 12, 0, tzinfo=timezone.utc)
        )
        assert progress.last_updated == datetime(2024, 6, 20, 12, 0)

    def test_goal_targets_are_not_reset(self, service, db_session, test_user, make_activity):
        make_activity(test_user, "2024-06-01", 10.0)
        monthly = service.get_or_create_monthly_goal(db_session, test_user.id, 6, 2024)
        monthly.target = 50.0
        db_session.commit()

        progress = service.update_progress(db_session, test_user.id, now=datetime(2024, 6, 20))

        assert progress.monthly_goal == 50.0
        assert progress.monthly_progress == pytest.approx(20.0)

    @pytest.mark.parametrize("user_id", [None, 0])
    def test_missing_user_id(self, service, user_id):
        db = MagicMock()
        with pytest.raises(ProgressInputError):
            service.update_progress(db, user_id)
        db.query.assert_not_called()

    def test_store_failure_is_wrapped(self, service):
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("database is down"))

        with pytest.raises(ProgressStoreError) as exc_info:
            service.update_progress(db, 42, now=datetime(2024, 6, 20))

        assert exc_info.value.message == "Failed to update progress"
        assert isinstance(exc_info.value.__cause__, OperationalError)
        db.rollback.assert_called()

    def test_concurrent_first_snapshot_is_overwritten(
        self, service, session_factory, db_session, test_user, make_activity, monkeypatch
    ):
        make_activity(test_user, "2024-06-01", 5.0)

        # Another caller stores the first snapshot while ours is being computed
        other = session_factory()
        service.update_progress(other, test_user.id, activities=[], now=datetime(2024, 6, 1))
        other.close()

        real_find = service._find_progress
        calls = []

        def find_after_race(db, user_id):
            calls.append(user_id)
            if len(calls) == 1:
                return None
            return real_find(db, user_id)

        monkeypatch.setattr(service, "_find_progress", find_after_race)

        progress = service.update_progress(db_session, test_user.id, now=datetime(2024, 6, 20))

        assert len(calls) == 2
        assert progress.total_activities == 1
        assert progress.monthly_mileage == 5.0
        assert progress.last_updated == datetime(2024, 6, 20)
        assert db_session.query(Progress).filter(Progress.user_id == test_user.id).count() == 1


class TestGetProgress:
    """Read-through access to the stored snapshot"""

    def test_computes_on_miss(self, service, db_session, test_user, make_activity):
        make_activity(test_user, "2024-06-01", 5.0)

        progress = service.get_progress(db_session, test_user.id)

        assert progress.total_activities == 1
        assert db_session.query(Progress).count() == 1

    def test_returns_stored_snapshot_without_recompute(self, service, db_session, test_user, make_activity):
        service.update_progress(db_session, test_user.id, now=datetime(2024, 6, 20))
        make_activity(test_user, "2024-06-01", 5.0)

        progress = service.get_progress(db_session, test_user.id)

        assert progress.total_activities == 0
        assert progress.last_updated == datetime(2024, 6, 20)

    def test_missing_user_id(self, service, db_session):
        with pytest.raises(ProgressInputError):
            service.get_progress(db_session, None)

    def test_read_failure_is_wrapped(self, service):
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("database is down"))

        with pytest.raises(ProgressStoreError) as exc_info:
            service.get_progress(db, 42)

        assert exc_info.value.message == "Failed to get progress"


class TestGoalGetOrCreate:
    """Lazy creation of per-period goals"""

    def test_monthly_goal_defaults(self, service, db_session, test_user):
        goal = service.get_or_create_monthly_goal(db_session, test_user.id, 2, 2024)

        assert goal.goal_key == "monthly_2024_2"
        assert goal.goal_type == "monthly"
        assert goal.target == 26.2
        assert goal.current == 0
        assert goal.is_completed is False
        assert goal.start_date == date(2024, 2, 1)
        assert goal.end_date == date(2024, 2, 29)
        assert goal.month == 2
        assert goal.year == 2024
        assert goal.season is None

    def test_seasonal_goal_defaults(self, service, db_session, test_user):
        goal = service.get_or_create_seasonal_goal(db_session, test_user.id, Season.FALL, 2024)

        assert goal.goal_key == "seasonal_2024_Fall"
        assert goal.goal_type == "seasonal"
        assert goal.target == 78.6
        assert goal.start_date == date(2024, 9, 1)
        assert goal.end_date == date(2024, 11, 30)
        assert goal.season == "Fall"
        assert goal.month is None

    def test_monthly_goal_idempotent(self, service, db_session, test_user):
        first = service.get_or_create_monthly_goal(db_session, test_user.id, 6, 2024)
        second = service.get_or_create_monthly_goal(db_session, test_user.id, 6, 2024)

        assert first.id == second.id
        assert first.target == second.target
        assert db_session.query(Goal).filter(Goal.goal_key == "monthly_2024_6").count() == 1

    def test_seasonal_goal_idempotent(self, service, db_session, test_user):
        first = service.get_or_create_seasonal_goal(db_session, test_user.id, "Winter", 2024)
        second = service.get_or_create_seasonal_goal(db_session, test_user.id, Season.WINTER, 2024)

        assert first.id == second.id
        assert db_session.query(Goal).count() == 1

    def test_goals_are_per_user(self, service, db_session, test_user, other_user):
        mine = service.get_or_create_monthly_goal(db_session, test_user.id, 6, 2024)
        theirs = service.get_or_create_monthly_goal(db_session, other_user.id, 6, 2024)

        assert mine.id != theirs.id
        assert mine.goal_key == theirs.goal_key

    def test_concurrent_create_returns_existing(self, service, db_session, test_user, monkeypatch):
        existing = service.get_or_create_monthly_goal(db_session, test_user.id, 6, 2024)
        existing.target = 40.0
        db_session.commit()

        # Simulate losing the race: the first lookup misses the row another caller just wrote
        real_find = service._find_goal
        calls = []

        def find_after_race(db, user_id, goal_key):
            calls.append(goal_key)
            if len(calls) == 1:
                return None
            return real_find(db, user_id, goal_key)

        monkeypatch.setattr(service, "_find_goal", find_after_race)

        goal = service.get_or_create_monthly_goal(db_session, test_user.id, 6, 2024)

        assert len(calls) == 2
        assert goal.id == existing.id
        assert goal.target == 40.0
        assert db_session.query(Goal).count() == 1
