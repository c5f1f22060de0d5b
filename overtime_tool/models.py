"""Canonical data model for the overtime tracking system."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional


class DayType(Enum):
    WEEKDAY = "Weekday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"
    HOLIDAY = "Holiday"


class EntryStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DISAPPROVED = "disapproved"

    @classmethod
    def parse(cls, value: Any) -> Optional["EntryStatus"]:
        """Unknown or missing status strings map to None (never counted)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class DraftStatus(Enum):
    """Status shown on a staged item, mirroring its entry once submitted."""
    SAVED = "saved"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DISAPPROVED = "disapproved"


class RateMode(Enum):
    HOURLY = "hourly"
    DAILY = "daily"


class DatePreset(Enum):
    TODAY = "today"
    LAST_N = "lastN"


class LocationMode(Enum):
    NONE = "none"
    RADIUS = "radius"


def _decimal(value: Any) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")
    return result if result.is_finite() else Decimal("0")


def _enum(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def parse_day(value: Any) -> date:
    """Calendar date from a date or a ``YYYY-MM-DD`` string, with no timezone step."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip().split("T")[0])


def _date_or_none(value: Any) -> Optional[date]:
    if not value:
        return None
    try:
        return parse_day(value)
    except ValueError:
        return None


def entry_key(staff_id: str, day: date) -> str:
    """Identity key of an entry: one document per (staff, date)."""
    return f"{staff_id}_{day.isoformat()}"


@dataclass(frozen=True)
class StaffMember:
    id: str
    name: str
    role: str = ""
    password: str = ""
    joined_at: Optional[str] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "StaffMember":
        return cls(
            id=str(doc.get("id", "")),
            name=str(doc.get("name", "")),
            role=str(doc.get("role", "")),
            password=str(doc.get("password", "")),
            joined_at=doc.get("joinedAt"),
        )


@dataclass(frozen=True)
class OvertimeEntry:
    """One logical overtime record per (staff_id, date)."""
    staff_id: str
    date: date
    hours: Optional[int] = None
    task_id: str = ""
    status: Optional[EntryStatus] = None
    submitted_at: Optional[str] = None
    approved_at: Optional[str] = None
    approved_by: Optional[str] = None
    rejected_at: Optional[str] = None
    rejected_by: Optional[str] = None
    disapproved_at: Optional[str] = None
    disapproved_by: Optional[str] = None
    edited_at: Optional[str] = None

    @property
    def key(self) -> str:
        return entry_key(self.staff_id, self.date)

    @property
    def is_approved(self) -> bool:
        return self.status is EntryStatus.APPROVED

    @classmethod
    def from_doc(cls, doc: dict) -> Optional["OvertimeEntry"]:
        """Build from a stored document; returns None when unusable."""
        day = _date_or_none(doc.get("date"))
        staff_id = doc.get("staffId")
        if day is None or staff_id in (None, ""):
            return None
        hours = doc.get("hours")
        try:
            hours = int(hours) if hours not in (None, "") else None
        except (TypeError, ValueError):
            hours = None
        return cls(
            staff_id=str(staff_id),
            date=day,
            hours=hours,
            task_id=str(doc.get("taskId") or ""),
            status=EntryStatus.parse(doc.get("status")),
            submitted_at=doc.get("submittedAt"),
            approved_at=doc.get("approvedAt"),
            approved_by=doc.get("approvedBy"),
            rejected_at=doc.get("rejectedAt"),
            rejected_by=doc.get("rejectedBy"),
            disapproved_at=doc.get("disapprovedAt"),
            disapproved_by=doc.get("disapprovedBy"),
            edited_at=doc.get("editedAt"),
        )

    def to_doc(self) -> dict:
        doc = {
            "staffId": self.staff_id,
            "date": self.date.isoformat(),
            "hours": self.hours,
            "taskId": self.task_id,
            "status": self.status.value if self.status else None,
            "submittedAt": self.submitted_at,
            "approvedAt": self.approved_at,
            "approvedBy": self.approved_by,
            "rejectedAt": self.rejected_at,
            "rejectedBy": self.rejected_by,
            "disapprovedAt": self.disapproved_at,
            "disapprovedBy": self.disapproved_by,
            "editedAt": self.edited_at,
        }
        return {k: v for k, v in doc.items() if v is not None}


@dataclass(frozen=True)
class SavedDraftItem:
    """A staged, not-yet-submitted day entry."""
    staff_id: str
    date: date
    hours: int
    task_id: str = ""
    valid_for_submit: bool = True
    status: DraftStatus = DraftStatus.SAVED
    saved_at: Optional[str] = None
    submitted_at: Optional[str] = None

    @property
    def removable(self) -> bool:
        return self.status not in (DraftStatus.PENDING, DraftStatus.APPROVED)

    @property
    def submittable(self) -> bool:
        return self.valid_for_submit and self.status in (
            DraftStatus.SAVED, DraftStatus.REJECTED, DraftStatus.DISAPPROVED,
        )

    def with_status(self, status: DraftStatus) -> "SavedDraftItem":
        return replace(self, status=status)

    @classmethod
    def from_doc(cls, doc: dict) -> Optional["SavedDraftItem"]:
        day = _date_or_none(doc.get("date"))
        if day is None:
            return None
        try:
            hours = int(doc.get("hours") or 0)
        except (TypeError, ValueError):
            hours = 0
        return cls(
            staff_id=str(doc.get("staffId", "")),
            date=day,
            hours=hours,
            task_id=str(doc.get("taskId") or ""),
            valid_for_submit=bool(doc.get("validForSubmit", False)),
            status=_enum(DraftStatus, doc.get("status"), DraftStatus.SAVED),
            saved_at=doc.get("savedAt"),
            submitted_at=doc.get("submittedAt"),
        )

    def to_doc(self) -> dict:
        doc = {
            "staffId": self.staff_id,
            "date": self.date.isoformat(),
            "hours": self.hours,
            "taskId": self.task_id,
            "validForSubmit": self.valid_for_submit,
            "status": self.status.value,
            "savedAt": self.saved_at,
            "submittedAt": self.submitted_at,
        }
        return {k: v for k, v in doc.items() if v is not None}


@dataclass(frozen=True)
class RateConfig:
    """Amount per unit for each rate bucket. Holidays use the Sunday rate."""
    mode: RateMode = RateMode.HOURLY
    weekday: Decimal = Decimal("0")
    saturday: Decimal = Decimal("0")
    sunday: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        for name in ("weekday", "saturday", "sunday"):
            if getattr(self, name) < 0:
                raise ValueError(f"Rate '{name}' must not be negative, got {getattr(self, name)}")

    @classmethod
    def from_doc(cls, doc: Optional[dict]) -> "RateConfig":
        doc = doc or {}
        return cls(
            mode=_enum(RateMode, doc.get("mode"), RateMode.HOURLY),
            weekday=max(_decimal(doc.get("weekday", 0)), Decimal("0")),
            saturday=max(_decimal(doc.get("saturday", 0)), Decimal("0")),
            sunday=max(_decimal(doc.get("sunday", 0)), Decimal("0")),
        )

    def to_doc(self) -> dict:
        return {
            "mode": self.mode.value,
            "weekday": str(self.weekday),
            "saturday": str(self.saturday),
            "sunday": str(self.sunday),
        }


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass(frozen=True)
class AutoOfficerConfig:
    """Admin rules restricting when and where overtime may be logged."""
    enabled: bool = False
    preset: DatePreset = DatePreset.TODAY
    n_days: int = 1
    time_start: Optional[str] = "00:00"
    time_end: Optional[str] = "23:59"
    location_mode: LocationMode = LocationMode.NONE
    center: Optional[GeoPoint] = None
    radius_meters: float = 100.0

    @classmethod
    def from_doc(cls, doc: Optional[dict]) -> "AutoOfficerConfig":
        doc = doc or {}
        center = None
        raw_center = doc.get("center") or {}
        try:
            center = GeoPoint(lat=float(raw_center["lat"]), lng=float(raw_center["lng"]))
        except (KeyError, TypeError, ValueError):
            center = None
        try:
            n_days = max(int(doc.get("nDays") or 1), 1)
        except (TypeError, ValueError):
            n_days = 1
        try:
            radius = float(doc.get("radiusMeters", 100))
        except (TypeError, ValueError):
            radius = 100.0
        return cls(
            enabled=bool(doc.get("enabled", False)),
            preset=_enum(DatePreset, doc.get("preset"), DatePreset.TODAY),
            n_days=n_days,
            time_start=doc.get("timeStart", "00:00") or None,
            time_end=doc.get("timeEnd", "23:59") or None,
            location_mode=_enum(LocationMode, doc.get("locationMode"), LocationMode.NONE),
            center=center,
            radius_meters=radius,
        )

    def to_doc(self) -> dict:
        doc = {
            "enabled": self.enabled,
            "preset": self.preset.value,
            "nDays": self.n_days,
            "timeStart": self.time_start,
            "timeEnd": self.time_end,
            "locationMode": self.location_mode.value,
            "radiusMeters": self.radius_meters,
        }
        if self.center is not None:
            doc["center"] = {"lat": self.center.lat, "lng": self.center.lng}
        return doc


@dataclass(frozen=True)
class SubmissionWindow:
    submissions_open: bool = True
    range_start: Optional[date] = None
    range_end: Optional[date] = None

    @property
    def has_range(self) -> bool:
        return self.range_start is not None and self.range_end is not None

    @classmethod
    def from_doc(cls, doc: Optional[dict]) -> "SubmissionWindow":
        doc = doc or {}
        return cls(
            submissions_open=bool(doc.get("submissionsOpen", True)),
            range_start=_date_or_none(doc.get("formRangeStart")),
            range_end=_date_or_none(doc.get("formRangeEnd")),
        )


@dataclass(frozen=True)
class GuardResult:
    """Outcome of an eligibility check. Denials carry a reason."""
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "GuardResult":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "GuardResult":
        return cls(allowed=False, reason=reason)


@dataclass
class ActionResult:
    """Outcome of a state-changing action."""
    ok: bool
    reason: Optional[str] = None
    entry: Optional[OvertimeEntry] = None
    notes: list[str] = field(default_factory=list)

    @classmethod
    def success(cls, entry: Optional[OvertimeEntry] = None, notes: Optional[list[str]] = None) -> "ActionResult":
        return cls(ok=True, entry=entry, notes=list(notes or []))

    @classmethod
    def failure(cls, reason: str) -> "ActionResult":
        return cls(ok=False, reason=reason)


class StoreError(Exception):
    """Raised by the persistence layer when a read or write fails."""
