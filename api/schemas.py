"""Pydantic request and response models for the Overtime API."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field


class Position(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class EligibilityRequest(BaseModel):
    date: dt.date
    position: Position | None = None


class EligibilityResponse(BaseModel):
    allowed: bool
    reason: str | None = None
    recheck_interval_s: int
    busy_notice_after_s: int


class DraftRequest(BaseModel):
    staff_id: str
    date: dt.date | None = None
    hours: int
    task_id: str = ""
    position: Position | None = None


class SubmitRequest(BaseModel):
    staff_id: str
    dates: list[dt.date]
    position: Position | None = None


class AdminActionRequest(BaseModel):
    actor_id: str


class EditHoursRequest(BaseModel):
    actor_id: str
    hours: int = Field(..., ge=0)


class EntryOut(BaseModel):
    staff_id: str
    date: str
    hours: int | None = None
    task_id: str = ""
    status: str | None = None


class SavedItemOut(BaseModel):
    date: str
    hours: int
    task_id: str = ""
    status: str
    valid_for_submit: bool
    removable: bool


class ActionResponse(BaseModel):
    success: bool
    entry: EntryOut | None = None
    notes: list[str] = []
    error_type: str | None = None
    errors: list[str] | None = None


class SubmitResponse(BaseModel):
    success: bool
    submitted: list[str] = []
    skipped: dict[str, str] = {}
    failed: dict[str, str] = {}


class SavedItemsResponse(BaseModel):
    staff_id: str
    items: list[SavedItemOut]


class EarningsSummary(BaseModel):
    staff_id: str
    weekday: float
    saturday: float
    sunday_holiday: float
    total: float


class SeriesResponse(BaseModel):
    year: int
    month: int
    staff_id: str | None = None
    amounts: list[float]


class MasterSheetResponse(BaseModel):
    success: bool
    sheet: dict | None = None
    error_type: str | None = None
    errors: list[str] | None = None
