"""
Tests for the inspection eligibility rules.

All cases run against frozen snapshots and an explicit clock; no database.
"""

import pytest
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from app.services.eligibility import (
    Accepted,
    Rejected,
    RejectionReason,
    evaluate,
    find_current_schedule,
    schedule_window,
    assigned_or_open,
)
from tests.factories import (
    AssetSnapshotFactory,
    MobileAssetSnapshotFactory,
    ScheduleSnapshotFactory,
    SubmissionFactory,
    UserSnapshotFactory,
)
from tests.factories.eligibility import ASSET_LAT, ASSET_LNG

UTC = timezone.utc
JAKARTA = ZoneInfo("Asia/Jakarta")

WINDOW_START = datetime(2025, 1, 1, 8, 0, tzinfo=UTC)
WINDOW_END = datetime(2025, 1, 1, 10, 0, tzinfo=UTC)
INSIDE = datetime(2025, 1, 1, 9, 0, tzinfo=UTC)

# ~22 m and ~56 m north of the APAR
NEAR_LAT = ASSET_LAT + 0.0002
FAR_LAT = ASSET_LAT + 0.0005


@pytest.fixture
def asset():
    return AssetSnapshotFactory()


@pytest.fixture
def teknisi():
    return UserSnapshotFactory(id=1, role="teknisi")


@pytest.fixture
def schedule():
    return ScheduleSnapshotFactory(id=10, assigned_user_id=1)


class TestScheduleWindow:
    """Tests for window construction and lookup."""

    def test_window_bounds(self):
        start, end = schedule_window(date(2025, 1, 1), time(8, 0), time(10, 0))
        assert start == WINDOW_START
        assert end == WINDOW_END

    def test_window_in_local_timezone(self):
        start, _ = schedule_window(date(2025, 1, 1), time(8, 0), time(10, 0), JAKARTA)
        # 08:00 WIB is 01:00 UTC
        assert start.astimezone(UTC) == datetime(2025, 1, 1, 1, 0, tzinfo=UTC)

    def test_window_past_midnight(self):
        start, end = schedule_window(date(2025, 1, 1), time(23, 30), time(0, 30))
        assert end - start == timedelta(hours=1)
        assert end.date() == date(2025, 1, 2)

    def test_bounds_are_inclusive(self, schedule):
        assert find_current_schedule([schedule], WINDOW_START) == schedule
        assert find_current_schedule([schedule], WINDOW_END) == schedule

    def test_outside_bounds(self, schedule):
        assert find_current_schedule([schedule], WINDOW_START - timedelta(seconds=1)) is None
        assert find_current_schedule([schedule], WINDOW_END + timedelta(seconds=1)) is None

    def test_overlap_prefers_earliest_start(self):
        late = ScheduleSnapshotFactory(id=1, start_time=time(8, 30), end_time=time(11, 0))
        early = ScheduleSnapshotFactory(id=2, start_time=time(8, 0), end_time=time(9, 30))
        assert find_current_schedule([late, early], INSIDE) == early

    def test_overlap_same_start_prefers_lowest_id(self):
        second = ScheduleSnapshotFactory(id=7)
        first = ScheduleSnapshotFactory(id=3)
        assert find_current_schedule([second, first], INSIDE) == first


class TestAssetChecks:
    """Mismatch and inactive checks apply to every role."""

    @pytest.mark.parametrize("role", ["teknisi", "supervisor", "admin"])
    def test_qr_mismatch_rejected(self, asset, schedule, role):
        submission = SubmissionFactory(asset=asset, qr_code="APAR-WRONGCODE1")
        user = UserSnapshotFactory(role=role)
        decision = evaluate(submission, asset, [schedule], user, INSIDE)
        assert decision == Rejected(RejectionReason.ASSET_MISMATCH)

    @pytest.mark.parametrize("role", ["teknisi", "supervisor", "admin"])
    def test_id_mismatch_rejected(self, asset, schedule, role):
        submission = SubmissionFactory(asset=asset, asset_id=asset.id + 1)
        decision = evaluate(submission, asset, [schedule], UserSnapshotFactory(role=role), INSIDE)
        assert decision.reason == RejectionReason.ASSET_MISMATCH

    @pytest.mark.parametrize("status", ["refill", "expired", "damaged", "inactive"])
    def test_non_active_asset_rejected(self, schedule, teknisi, status):
        asset = AssetSnapshotFactory(status=status)
        decision = evaluate(SubmissionFactory(asset=asset), asset, [schedule], teknisi, INSIDE)
        assert decision == Rejected(RejectionReason.INACTIVE_ASSET)

    def test_inactive_asset_rejected_for_admin(self, schedule):
        asset = AssetSnapshotFactory(status="inactive")
        admin = UserSnapshotFactory(role="admin")
        decision = evaluate(SubmissionFactory(asset=asset), asset, [schedule], admin, INSIDE)
        assert decision.reason == RejectionReason.INACTIVE_ASSET

    def test_mismatch_checked_before_status(self):
        asset = AssetSnapshotFactory(status="damaged")
        submission = SubmissionFactory(asset=asset, qr_code="APAR-OTHER00000")
        decision = evaluate(submission, asset, [], UserSnapshotFactory(), INSIDE)
        assert decision.reason == RejectionReason.ASSET_MISMATCH


class TestTeknisiWindow:
    """A teknisi must be inside a usable schedule window."""

    def test_inside_window_binds_schedule(self, asset, schedule, teknisi):
        decision = evaluate(SubmissionFactory(asset=asset), asset, [schedule], teknisi, INSIDE)
        assert decision == Accepted(schedule.id)
        assert decision.valid is True

    @pytest.mark.parametrize("now", [WINDOW_START, WINDOW_END])
    def test_window_edges_accepted(self, asset, schedule, teknisi, now):
        decision = evaluate(SubmissionFactory(asset=asset), asset, [schedule], teknisi, now)
        assert decision == Accepted(schedule.id)

    @pytest.mark.parametrize(
        "now",
        [WINDOW_START - timedelta(minutes=1), WINDOW_END + timedelta(minutes=1)],
    )
    def test_outside_window_rejected(self, asset, schedule, teknisi, now):
        decision = evaluate(SubmissionFactory(asset=asset), asset, [schedule], teknisi, now)
        assert decision == Rejected(RejectionReason.OUTSIDE_SCHEDULE_WINDOW)
        assert decision.valid is False
        assert decision.message

    def test_no_schedules_rejected(self, asset, teknisi):
        decision = evaluate(SubmissionFactory(asset=asset), asset, [], teknisi, INSIDE)
        assert decision.reason == RejectionReason.OUTSIDE_SCHEDULE_WINDOW

    def test_schedule_of_other_teknisi_not_usable(self, asset, teknisi):
        theirs = ScheduleSnapshotFactory(assigned_user_id=99)
        decision = evaluate(SubmissionFactory(asset=asset), asset, [theirs], teknisi, INSIDE)
        assert decision.reason == RejectionReason.OUTSIDE_SCHEDULE_WINDOW

    def test_unassigned_schedule_usable(self, asset, teknisi):
        open_schedule = ScheduleSnapshotFactory(assigned_user_id=None)
        decision = evaluate(SubmissionFactory(asset=asset), asset, [open_schedule], teknisi, INSIDE)
        assert decision == Accepted(open_schedule.id)

    @pytest.mark.parametrize(
        "overrides",
        [{"is_active": False}, {"is_completed": True}, {"apar_id": 2}],
    )
    def test_closed_or_foreign_schedules_ignored(self, asset, teknisi, overrides):
        schedule = ScheduleSnapshotFactory(**overrides)
        decision = evaluate(SubmissionFactory(asset=asset), asset, [schedule], teknisi, INSIDE)
        assert decision.reason == RejectionReason.OUTSIDE_SCHEDULE_WINDOW

    def test_window_in_application_timezone(self, asset, teknisi, schedule):
        # 09:00 WIB is 02:00 UTC, inside 08:00-10:00 local
        now = datetime(2025, 1, 1, 2, 0, tzinfo=UTC)
        assert evaluate(SubmissionFactory(asset=asset), asset, [schedule], teknisi, now, tz=JAKARTA).valid
        assert not evaluate(SubmissionFactory(asset=asset), asset, [schedule], teknisi, now).valid

    def test_overlapping_windows_bind_earliest(self, asset, teknisi):
        late = ScheduleSnapshotFactory(id=5, start_time=time(8, 30))
        early = ScheduleSnapshotFactory(id=6, start_time=time(7, 0))
        decision = evaluate(SubmissionFactory(asset=asset), asset, [late, early], teknisi, INSIDE)
        assert decision == Accepted(6)


class TestGeofence:
    """Fixed APARs with coordinates constrain the submitted location."""

    def test_within_radius_accepted(self, asset, schedule, teknisi):
        submission = SubmissionFactory(asset=asset, latitude=NEAR_LAT, longitude=ASSET_LNG)
        assert evaluate(submission, asset, [schedule], teknisi, INSIDE) == Accepted(schedule.id)

    def test_outside_radius_rejected(self, asset, schedule, teknisi):
        submission = SubmissionFactory(asset=asset, latitude=FAR_LAT, longitude=ASSET_LNG)
        decision = evaluate(submission, asset, [schedule], teknisi, INSIDE)
        assert decision == Rejected(RejectionReason.UNAUTHORIZED_LOCATION)

    def test_larger_radius_accepts_same_point(self, schedule, teknisi):
        asset = AssetSnapshotFactory(valid_radius=100)
        submission = SubmissionFactory(asset=asset, latitude=FAR_LAT, longitude=ASSET_LNG)
        assert evaluate(submission, asset, [schedule], teknisi, INSIDE).valid

    def test_window_checked_before_location(self, asset, schedule, teknisi):
        submission = SubmissionFactory(asset=asset, latitude=FAR_LAT, longitude=ASSET_LNG)
        decision = evaluate(submission, asset, [schedule], teknisi, WINDOW_END + timedelta(hours=1))
        assert decision.reason == RejectionReason.OUTSIDE_SCHEDULE_WINDOW

    def test_missing_location_not_rejected(self, asset, schedule, teknisi):
        submission = SubmissionFactory(asset=asset, latitude=None, longitude=None)
        assert evaluate(submission, asset, [schedule], teknisi, INSIDE).valid

    def test_fixed_asset_without_coordinates_not_geofenced(self, schedule, teknisi):
        asset = AssetSnapshotFactory(latitude=None, longitude=None)
        submission = SubmissionFactory(asset=asset, latitude=0.0, longitude=0.0)
        assert evaluate(submission, asset, [schedule], teknisi, INSIDE).valid

    @pytest.mark.parametrize("lat,lng", [(FAR_LAT, ASSET_LNG), (0.0, 0.0), (51.5, -0.12)])
    def test_mobile_asset_never_location_rejected(self, schedule, teknisi, lat, lng):
        asset = MobileAssetSnapshotFactory(latitude=ASSET_LAT, longitude=ASSET_LNG)
        submission = SubmissionFactory(asset=asset, latitude=lat, longitude=lng)
        decision = evaluate(submission, asset, [schedule], teknisi, INSIDE)
        assert decision == Accepted(schedule.id)


class TestOverride:
    """Supervisors and admins bypass the window and the geofence."""

    @pytest.mark.parametrize("role", ["supervisor", "admin"])
    def test_no_schedule_accepted_unbound(self, asset, role):
        decision = evaluate(SubmissionFactory(asset=asset), asset, [], UserSnapshotFactory(id=2, role=role), INSIDE)
        assert decision == Accepted(None)

    @pytest.mark.parametrize("role", ["supervisor", "admin"])
    def test_outside_window_accepted_unbound(self, asset, schedule, role):
        user = UserSnapshotFactory(id=2, role=role)
        late = WINDOW_END + timedelta(hours=3)
        assert evaluate(SubmissionFactory(asset=asset), asset, [schedule], user, late) == Accepted(None)

    @pytest.mark.parametrize("role", ["supervisor", "admin"])
    def test_inside_window_binds_even_when_assigned_elsewhere(self, asset, schedule, role):
        user = UserSnapshotFactory(id=2, role=role)
        assert evaluate(SubmissionFactory(asset=asset), asset, [schedule], user, INSIDE) == Accepted(schedule.id)

    @pytest.mark.parametrize("role", ["supervisor", "admin"])
    def test_outside_radius_accepted(self, asset, schedule, role):
        submission = SubmissionFactory(asset=asset, latitude=FAR_LAT, longitude=ASSET_LNG)
        decision = evaluate(submission, asset, [schedule], UserSnapshotFactory(id=2, role=role), INSIDE)
        assert decision.valid

    def test_completed_schedule_not_bound(self, asset):
        done = ScheduleSnapshotFactory(is_completed=True)
        admin = UserSnapshotFactory(id=2, role="admin")
        assert evaluate(SubmissionFactory(asset=asset), asset, [done], admin, INSIDE) == Accepted(None)

    def test_unknown_role_does_not_override(self, asset):
        user = UserSnapshotFactory(role="guest")
        decision = evaluate(SubmissionFactory(asset=asset), asset, [], user, INSIDE)
        assert decision.reason == RejectionReason.OUTSIDE_SCHEDULE_WINDOW


class TestMobileScenario:
    """Mobile APAR whose only schedule is tomorrow, assigned to teknisi 1."""

    @pytest.fixture
    def setup(self):
        asset = MobileAssetSnapshotFactory()
        tomorrow = ScheduleSnapshotFactory(scheduled_date=date(2025, 1, 2), assigned_user_id=1)
        return asset, [tomorrow]

    def test_teknisi_today_rejected(self, setup):
        asset, schedules = setup
        decision = evaluate(SubmissionFactory(asset=asset), asset, schedules, UserSnapshotFactory(id=1), INSIDE)
        assert decision == Rejected(RejectionReason.OUTSIDE_SCHEDULE_WINDOW)

    @pytest.mark.parametrize("role", ["supervisor", "admin"])
    def test_override_today_accepted(self, setup, role):
        asset, schedules = setup
        user = UserSnapshotFactory(id=2, role=role)
        assert evaluate(SubmissionFactory(asset=asset), asset, schedules, user, INSIDE) == Accepted(None)


class TestContract:
    """Purity, clock handling and the usability seam."""

    def test_naive_now_raises(self, asset, schedule, teknisi):
        with pytest.raises(ValueError):
            evaluate(SubmissionFactory(asset=asset), asset, [schedule], teknisi, datetime(2025, 1, 1, 9, 0))

    @pytest.mark.parametrize("missing", ["has_photo", "has_selfie"])
    def test_missing_attachment_raises(self, asset, schedule, teknisi, missing):
        submission = SubmissionFactory(asset=asset, **{missing: False})
        with pytest.raises(ValueError):
            evaluate(submission, asset, [schedule], teknisi, INSIDE)

    def test_deterministic(self, asset, schedule, teknisi):
        submission = SubmissionFactory(asset=asset, latitude=FAR_LAT, longitude=ASSET_LNG)
        decisions = {evaluate(submission, asset, [schedule], teknisi, INSIDE) for _ in range(5)}
        assert len(decisions) == 1

    def test_accepts_generator_of_schedules(self, asset, schedule, teknisi):
        decision = evaluate(SubmissionFactory(asset=asset), asset, (s for s in [schedule]), teknisi, INSIDE)
        assert decision == Accepted(schedule.id)

    def test_custom_usability_predicate(self, asset, teknisi):
        theirs = ScheduleSnapshotFactory(assigned_user_id=99)
        submission = SubmissionFactory(asset=asset)

        assert not evaluate(submission, asset, [theirs], teknisi, INSIDE).valid
        decision = evaluate(submission, asset, [theirs], teknisi, INSIDE, is_usable=lambda s, u: True)
        assert decision == Accepted(theirs.id)

    def test_predicate_can_exclude_everything(self, asset, schedule, teknisi):
        decision = evaluate(
            SubmissionFactory(asset=asset), asset, [schedule], teknisi, INSIDE,
            is_usable=lambda s, u: False,
        )
        assert decision.reason == RejectionReason.OUTSIDE_SCHEDULE_WINDOW

    def test_default_predicate(self, teknisi):
        assert assigned_or_open(ScheduleSnapshotFactory(assigned_user_id=None), teknisi)
        assert assigned_or_open(ScheduleSnapshotFactory(assigned_user_id=teknisi.id), teknisi)
        assert not assigned_or_open(ScheduleSnapshotFactory(assigned_user_id=teknisi.id + 1), teknisi)

    def test_rejection_reasons_have_messages(self):
        for reason in RejectionReason:
            assert Rejected(reason).message
