"""Tests for the Auto Officer and the submission window guard."""

import time
from datetime import date, datetime

import pytest

from overtime_tool.engine.eligibility import (
    DATE_NOT_ALLOWED,
    FUTURE_DATE,
    LOCATION_UNAVAILABLE,
    NOT_WITHIN_LOCATION,
    OUTSIDE_FORM_RANGE,
    OUTSIDE_TIME_RANGE,
    SUBMISSIONS_CLOSED,
    AutoOfficer,
    Candidate,
    LocationUnavailable,
    check_submission_window,
    evaluate,
    haversine_m,
    parse_hhmm,
)
from overtime_tool.models import (
    AutoOfficerConfig,
    DatePreset,
    GeoPoint,
    LocationMode,
    SubmissionWindow,
)

NOW = datetime(2025, 11, 30, 10, 0)
CENTER = GeoPoint(lat=24.7136, lng=46.6753)
NEARBY = GeoPoint(lat=24.7146, lng=46.6753)


def _make_config(**overrides) -> AutoOfficerConfig:
    values = dict(enabled=True, time_start=None, time_end=None)
    values.update(overrides)
    return AutoOfficerConfig(**values)


def _candidate(day: date, now: datetime = NOW, position=None, error=None) -> Candidate:
    return Candidate(date=day, now=now, position=position, position_error=error)


class FakeLocator:
    def __init__(self, position=None, error=None, delay_s=0.0):
        self.position = position
        self.error = error
        self.delay_s = delay_s
        self.calls = []

    def get_current_position(self, high_accuracy, timeout_s):
        self.calls.append((high_accuracy, timeout_s))
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.error:
            raise LocationUnavailable(self.error)
        return self.position


class TestDateCheck:
    def test_disabled_allows_everything(self):
        config = AutoOfficerConfig(enabled=False, location_mode=LocationMode.RADIUS)
        assert evaluate(_candidate(date(2020, 1, 1)), config).allowed
        assert evaluate(_candidate(date(2020, 1, 1)), None).allowed

    def test_today_preset(self):
        config = _make_config()
        assert evaluate(_candidate(date(2025, 11, 30)), config).allowed
        result = evaluate(_candidate(date(2025, 11, 29)), config)
        assert not result.allowed
        assert result.reason == DATE_NOT_ALLOWED

    def test_last_n_days(self):
        config = _make_config(preset=DatePreset.LAST_N, n_days=3)
        for day in (28, 29, 30):
            assert evaluate(_candidate(date(2025, 11, day)), config).allowed
        assert evaluate(_candidate(date(2025, 11, 27)), config).reason == DATE_NOT_ALLOWED
        assert evaluate(_candidate(date(2025, 12, 1)), config).reason == DATE_NOT_ALLOWED


class TestTimeCheck:
    def test_overnight_window(self):
        config = _make_config(time_start="22:00", time_end="02:00")
        today = date(2025, 11, 30)
        assert evaluate(_candidate(today, datetime(2025, 11, 30, 23, 30)), config).allowed
        assert evaluate(_candidate(today, datetime(2025, 11, 30, 1, 0)), config).allowed
        result = evaluate(_candidate(today, datetime(2025, 11, 30, 12, 0)), config)
        assert result.reason == OUTSIDE_TIME_RANGE

    def test_bounds_inclusive(self):
        config = _make_config(time_start="08:00", time_end="17:00")
        today = date(2025, 11, 30)
        assert evaluate(_candidate(today, datetime(2025, 11, 30, 8, 0)), config).allowed
        assert evaluate(_candidate(today, datetime(2025, 11, 30, 17, 0)), config).allowed
        assert not evaluate(_candidate(today, datetime(2025, 11, 30, 17, 1)), config).allowed

    def test_unconfigured_window_allows(self):
        config = _make_config(time_start=None, time_end=None)
        assert evaluate(_candidate(date(2025, 11, 30), datetime(2025, 11, 30, 3, 0)), config).allowed

    def test_date_is_checked_first(self):
        config = _make_config(time_start="22:00", time_end="23:00")
        assert evaluate(_candidate(date(2025, 11, 1)), config).reason == DATE_NOT_ALLOWED

    def test_parse_hhmm(self):
        assert parse_hhmm("00:00") == 0
        assert parse_hhmm("23:59") == 1439


class TestGeofence:
    def test_haversine_one_degree_latitude(self):
        assert haversine_m(GeoPoint(0, 0), GeoPoint(1, 0)) == pytest.approx(111_195, abs=1)

    def test_boundary_is_inclusive(self):
        distance = haversine_m(NEARBY, CENTER)
        inside = _make_config(location_mode=LocationMode.RADIUS, center=CENTER, radius_meters=distance)
        outside = _make_config(location_mode=LocationMode.RADIUS, center=CENTER, radius_meters=distance - 1)
        today = date(2025, 11, 30)
        assert evaluate(_candidate(today, position=NEARBY), inside).allowed
        result = evaluate(_candidate(today, position=NEARBY), outside)
        assert result.reason == NOT_WITHIN_LOCATION

    def test_missing_position_denies(self):
        config = _make_config(location_mode=LocationMode.RADIUS, center=CENTER)
        result = evaluate(_candidate(date(2025, 11, 30)), config)
        assert not result.allowed
        assert result.reason == LOCATION_UNAVAILABLE

    def test_position_error_in_reason(self):
        config = _make_config(location_mode=LocationMode.RADIUS, center=CENTER)
        result = evaluate(_candidate(date(2025, 11, 30), error="timeout"), config)
        assert result.reason == f"{LOCATION_UNAVAILABLE} (timeout)"

    def test_radius_without_center_denies(self):
        config = _make_config(location_mode=LocationMode.RADIUS, center=None)
        assert evaluate(_candidate(date(2025, 11, 30), position=CENTER), config).reason == NOT_WITHIN_LOCATION


class TestSubmissionWindow:
    def test_closed(self):
        window = SubmissionWindow(submissions_open=False)
        assert check_submission_window(date(2025, 11, 29), NOW.date(), window).reason == SUBMISSIONS_CLOSED

    def test_future_always_denied(self):
        window = SubmissionWindow(range_start=date(2025, 11, 1), range_end=date(2025, 12, 31))
        assert check_submission_window(date(2025, 12, 1), NOW.date(), window).reason == FUTURE_DATE

    def test_form_range(self):
        window = SubmissionWindow(range_start=date(2025, 11, 10), range_end=date(2025, 11, 20))
        assert check_submission_window(date(2025, 11, 10), NOW.date(), window).allowed
        assert check_submission_window(date(2025, 11, 20), NOW.date(), window).allowed
        assert check_submission_window(date(2025, 11, 21), NOW.date(), window).reason == OUTSIDE_FORM_RANGE

    def test_no_range(self):
        assert check_submission_window(date(2025, 1, 1), NOW.date(), SubmissionWindow()).allowed


class TestAutoOfficer:
    def _radius_config(self) -> AutoOfficerConfig:
        return _make_config(location_mode=LocationMode.RADIUS, center=CENTER, radius_meters=500)

    def test_locates_and_allows(self):
        locator = FakeLocator(position=NEARBY)
        officer = AutoOfficer(clock=lambda: NOW, locator=locator)
        assert officer.check(date(2025, 11, 30), self._radius_config()).allowed
        assert locator.calls == [(True, 7.0)]

    def test_no_lookup_without_radius_rule(self):
        locator = FakeLocator(position=NEARBY)
        officer = AutoOfficer(clock=lambda: NOW, locator=locator)
        assert officer.check(date(2025, 11, 30), _make_config()).allowed
        assert locator.calls == []

    def test_supplied_position_skips_lookup(self):
        locator = FakeLocator(position=GeoPoint(0, 0))
        officer = AutoOfficer(clock=lambda: NOW, locator=locator)
        assert officer.check(date(2025, 11, 30), self._radius_config(), position=NEARBY).allowed
        assert locator.calls == []

    def test_permission_denied(self):
        officer = AutoOfficer(clock=lambda: NOW, locator=FakeLocator(error="permission denied"))
        result = officer.check(date(2025, 11, 30), self._radius_config())
        assert result.reason == f"{LOCATION_UNAVAILABLE} (permission denied)"

    def test_unexpected_locator_error_denies(self):
        class BrokenLocator:
            def get_current_position(self, high_accuracy, timeout_s):
                raise PermissionError("User denied Geolocation")

        officer = AutoOfficer(clock=lambda: NOW, locator=BrokenLocator())
        result = officer.check(date(2025, 11, 30), self._radius_config())
        assert not result.allowed
        assert result.reason == f"{LOCATION_UNAVAILABLE} (User denied Geolocation)"

    def test_no_locator(self):
        officer = AutoOfficer(clock=lambda: NOW)
        result = officer.check(date(2025, 11, 30), self._radius_config())
        assert not result.allowed
        assert result.reason.startswith(LOCATION_UNAVAILABLE)

    def test_hanging_locator_times_out(self):
        locator = FakeLocator(position=NEARBY, delay_s=0.5)
        officer = AutoOfficer(clock=lambda: NOW, locator=locator, timeout_s=0.05, grace_s=0.05)
        result = officer.check(date(2025, 11, 30), self._radius_config())
        assert result.reason == f"{LOCATION_UNAVAILABLE} (timeout)"
