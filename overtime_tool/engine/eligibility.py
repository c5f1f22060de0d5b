"""Eligibility guards for saving and submitting overtime.

Two independent gates are stacked:

- the Auto Officer: admin rules on the entry date (today / last N days),
  the time of day, and an optional circular geofence;
- the submission window: the global open/closed switch, the optional
  form date range, and a hard ban on future dates.

``evaluate`` and ``check_submission_window`` are pure. ``AutoOfficer``
supplies the clock and the position lookup and must be called right before
every save or submit.
"""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Protocol

from overtime_tool.log import get_logger
from overtime_tool.models import (
    AutoOfficerConfig,
    DatePreset,
    GeoPoint,
    GuardResult,
    LocationMode,
    SubmissionWindow,
)

logger = get_logger(__name__)

EARTH_RADIUS_M = 6_371_000

DATE_NOT_ALLOWED = "Date not allowed"
OUTSIDE_TIME_RANGE = "Outside allowed time range"
NOT_WITHIN_LOCATION = "Not within allowed location"
LOCATION_UNAVAILABLE = "Location unavailable"
SUBMISSIONS_CLOSED = "Submissions are closed"
FUTURE_DATE = "Future dates are not allowed"
OUTSIDE_FORM_RANGE = "Date is outside the allowed submission window"


@dataclass(frozen=True)
class Candidate:
    """A proposed entry as seen at the moment of the action."""
    date: date
    now: datetime
    position: Optional[GeoPoint] = None
    position_error: Optional[str] = None


class LocationUnavailable(Exception):
    """Raised by a locator when no position can be obtained."""


class Locator(Protocol):
    def get_current_position(self, high_accuracy: bool, timeout_s: float) -> GeoPoint:
        ...


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in meters."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def parse_hhmm(value: str) -> int:
    """Minutes since midnight for ``HH:MM``."""
    hours, _, minutes = value.strip().partition(":")
    return int(hours) * 60 + int(minutes or 0)


def allowed_dates(config: AutoOfficerConfig, today: date) -> tuple[date, date]:
    if config.preset is DatePreset.LAST_N:
        return today - timedelta(days=max(config.n_days, 1) - 1), today
    return today, today


def in_time_window(now_minutes: int, start: int, end: int) -> bool:
    if start <= end:
        return start <= now_minutes <= end
    # Window wraps past midnight.
    return now_minutes >= start or now_minutes <= end


def check_date(candidate: Candidate, config: AutoOfficerConfig) -> GuardResult:
    start, end = allowed_dates(config, candidate.now.date())
    if not start <= candidate.date <= end:
        return GuardResult.deny(DATE_NOT_ALLOWED)
    return GuardResult.allow()


def check_time(candidate: Candidate, config: AutoOfficerConfig) -> GuardResult:
    if not (config.time_start and config.time_end):
        return GuardResult.allow()
    try:
        start, end = parse_hhmm(config.time_start), parse_hhmm(config.time_end)
    except ValueError:
        logger.warning("time_window_malformed", start=config.time_start, end=config.time_end)
        return GuardResult.allow()
    now_minutes = candidate.now.hour * 60 + candidate.now.minute
    if not in_time_window(now_minutes, start, end):
        return GuardResult.deny(OUTSIDE_TIME_RANGE)
    return GuardResult.allow()


def check_location(candidate: Candidate, config: AutoOfficerConfig) -> GuardResult:
    if config.location_mode is not LocationMode.RADIUS:
        return GuardResult.allow()
    if config.center is None:
        # A radius rule without a center cannot be satisfied.
        return GuardResult.deny(NOT_WITHIN_LOCATION)
    if candidate.position is None:
        reason = LOCATION_UNAVAILABLE
        if candidate.position_error:
            reason = f"{LOCATION_UNAVAILABLE} ({candidate.position_error})"
        return GuardResult.deny(reason)
    if haversine_m(candidate.position, config.center) > config.radius_meters:
        return GuardResult.deny(NOT_WITHIN_LOCATION)
    return GuardResult.allow()


def evaluate(candidate: Candidate, config: Optional[AutoOfficerConfig]) -> GuardResult:
    """Run the Auto Officer checks in order; the first denial wins."""
    if config is None or not config.enabled:
        return GuardResult.allow()
    for check in (check_date, check_time, check_location):
        result = check(candidate, config)
        if not result.allowed:
            return result
    return GuardResult.allow()


def check_submission_window(day: date, today: date, window: SubmissionWindow) -> GuardResult:
    if not window.submissions_open:
        return GuardResult.deny(SUBMISSIONS_CLOSED)
    if day > today:
        return GuardResult.deny(FUTURE_DATE)
    if not in_form_range(day, window):
        return GuardResult.deny(OUTSIDE_FORM_RANGE)
    return GuardResult.allow()


def in_form_range(day: date, window: SubmissionWindow) -> bool:
    if not window.has_range:
        return True
    return window.range_start <= day <= window.range_end


class AutoOfficer:
    """Evaluates the Auto Officer against the live clock and position.

    The position request is bounded by ``timeout_s``; a second hard guard of
    ``timeout_s + grace_s`` covers locators that never return. Any failure to
    obtain a position denies.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        locator: Optional[Locator] = None,
        timeout_s: float = 7.0,
        grace_s: float = 0.2,
    ) -> None:
        self.clock = clock
        self.locator = locator
        self.timeout_s = timeout_s
        self.grace_s = grace_s

    def now(self) -> datetime:
        return self.clock()

    def locate(self, config: Optional[AutoOfficerConfig]) -> tuple[Optional[GeoPoint], Optional[str]]:
        """Fetch a position only when a radius rule is active."""
        if config is None or not config.enabled or config.location_mode is not LocationMode.RADIUS:
            return None, None
        if self.locator is None:
            return None, "geolocation not available"
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self.locator.get_current_position, True, self.timeout_s)
        try:
            return future.result(timeout=self.timeout_s + self.grace_s), None
        except FutureTimeout:
            return None, "timeout"
        except LocationUnavailable as e:
            return None, str(e) or "permission denied"
        except Exception as e:
            logger.warning("locator_failed", error=repr(e))
            return None, str(e) or "unavailable"
        finally:
            executor.shutdown(wait=False)

    def candidate(
        self,
        day: date,
        position: Optional[GeoPoint] = None,
        config: Optional[AutoOfficerConfig] = None,
    ) -> Candidate:
        """Snapshot the clock and, unless supplied, the device position."""
        error = None
        if position is None:
            position, error = self.locate(config)
        return Candidate(date=day, now=self.now(), position=position, position_error=error)

    def check(
        self,
        day: date,
        config: Optional[AutoOfficerConfig],
        position: Optional[GeoPoint] = None,
    ) -> GuardResult:
        result = evaluate(self.candidate(day, position, config), config)
        if not result.allowed:
            logger.info("eligibility_denied", date=day.isoformat(), reason=result.reason)
        return result
