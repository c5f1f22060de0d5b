"""API routes for the Overtime Tracking service."""

from __future__ import annotations

import datetime as dt
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query

from overtime_tool.audit import generate_master_sheet_dict
from overtime_tool.config import get_settings
from overtime_tool.models import ActionResult, GeoPoint, OvertimeEntry
from overtime_tool.service import OvertimeService

from api.schemas import (
    ActionResponse,
    AdminActionRequest,
    DraftRequest,
    EarningsSummary,
    EditHoursRequest,
    EligibilityRequest,
    EligibilityResponse,
    EntryOut,
    MasterSheetResponse,
    Position,
    SavedItemOut,
    SavedItemsResponse,
    SeriesResponse,
    SubmitRequest,
    SubmitResponse,
)

router = APIRouter(prefix="/api/v1")


@lru_cache
def get_service() -> OvertimeService:
    return OvertimeService.from_settings(get_settings())


def _position(position: Position | None) -> GeoPoint | None:
    return GeoPoint(lat=position.lat, lng=position.lng) if position else None


def _entry_out(entry: OvertimeEntry | None) -> EntryOut | None:
    if entry is None:
        return None
    return EntryOut(
        staff_id=entry.staff_id,
        date=entry.date.isoformat(),
        hours=entry.hours,
        task_id=entry.task_id,
        status=entry.status.value if entry.status else None,
    )


def _action_response(result: ActionResult) -> ActionResponse:
    if not result.ok:
        return ActionResponse(success=False, error_type="action_denied", errors=[result.reason])
    return ActionResponse(success=True, entry=_entry_out(result.entry), notes=result.notes)


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


@router.post("/eligibility", response_model=EligibilityResponse)
def eligibility(body: EligibilityRequest, service: OvertimeService = Depends(get_service)):
    """Run the Auto Officer and submission window checks for one date.

    Clients re-run this every ``recheck_interval_s`` while the entry form is open
    and show a busy state once an action takes longer than ``busy_notice_after_s``.
    """
    result = service.check(body.date, _position(body.position))
    return EligibilityResponse(
        allowed=result.allowed,
        reason=result.reason,
        recheck_interval_s=service.settings.recheck_interval_s,
        busy_notice_after_s=service.settings.busy_notice_after_s,
    )


# --- Staff ---
@router.get("/staff/{staff_id}/drafts", response_model=SavedItemsResponse)
def list_drafts(staff_id: str, service: OvertimeService = Depends(get_service)):
    items = [
        SavedItemOut(
            date=item.date.isoformat(),
            hours=item.hours,
            task_id=item.task_id,
            status=item.status.value,
            valid_for_submit=item.valid_for_submit,
            removable=item.removable,
        )
        for item in service.saved_items(staff_id)
    ]
    return SavedItemsResponse(staff_id=staff_id, items=items)


@router.post("/drafts", response_model=ActionResponse)
def save_draft(body: DraftRequest, service: OvertimeService = Depends(get_service)):
    result = service.save_draft(body.staff_id, body.date, body.hours, body.task_id, _position(body.position))
    return _action_response(result)


@router.delete("/staff/{staff_id}/drafts/{day}", response_model=ActionResponse)
def remove_draft(staff_id: str, day: dt.date, service: OvertimeService = Depends(get_service)):
    return _action_response(service.remove_draft(staff_id, day))


@router.post("/drafts/submit", response_model=SubmitResponse)
def submit_drafts(body: SubmitRequest, service: OvertimeService = Depends(get_service)):
    """Bulk submit staged items. Each date reports submitted, skipped or failed."""
    report = service.submit_drafts(body.staff_id, body.dates, _position(body.position))
    return SubmitResponse(
        success=report.ok,
        submitted=[e.date.isoformat() for e in report.submitted],
        skipped={d.isoformat(): reason for d, reason in report.skipped.items()},
        failed={d.isoformat(): reason for d, reason in report.failed.items()},
    )


# --- Admin ---
@router.post("/entries/{staff_id}/{day}/approve", response_model=ActionResponse)
def approve(staff_id: str, day: dt.date, body: AdminActionRequest, service: OvertimeService = Depends(get_service)):
    return _action_response(service.approve(staff_id, day, body.actor_id))


@router.post("/entries/{staff_id}/{day}/reject", response_model=ActionResponse)
def reject(staff_id: str, day: dt.date, body: AdminActionRequest, service: OvertimeService = Depends(get_service)):
    return _action_response(service.reject(staff_id, day, body.actor_id))


@router.post("/entries/{staff_id}/{day}/disapprove", response_model=ActionResponse)
def disapprove(staff_id: str, day: dt.date, body: AdminActionRequest, service: OvertimeService = Depends(get_service)):
    return _action_response(service.disapprove(staff_id, day, body.actor_id))


@router.put("/entries/{staff_id}/{day}/hours", response_model=ActionResponse)
def edit_hours(staff_id: str, day: dt.date, body: EditHoursRequest, service: OvertimeService = Depends(get_service)):
    """Direct hours edit; 0 disapproves the entry."""
    return _action_response(service.edit_hours(staff_id, day, body.hours, body.actor_id))


@router.delete("/entries/{staff_id}/{day}", response_model=ActionResponse)
def delete_entry(
    staff_id: str,
    day: dt.date,
    actor_id: str = Query(..., description="Id of the admin deleting the entry"),
    service: OvertimeService = Depends(get_service),
):
    return _action_response(service.delete_entry(staff_id, day, actor_id))


# --- Earnings ---
@router.get("/earnings/{staff_id}", response_model=EarningsSummary)
def earnings(staff_id: str, service: OvertimeService = Depends(get_service)):
    if staff_id not in service.state.staff_ids:
        raise HTTPException(status_code=404, detail=f"Unknown staff id: {staff_id}")
    breakdown = service.earnings(staff_id)
    return EarningsSummary(
        staff_id=staff_id,
        weekday=float(breakdown.weekday),
        saturday=float(breakdown.saturday),
        sunday_holiday=float(breakdown.sunday_holiday),
        total=float(breakdown.total),
    )


@router.get("/series/{year}/{month}", response_model=SeriesResponse)
def series(
    year: int,
    month: int,
    staff_id: str | None = None,
    service: OvertimeService = Depends(get_service),
):
    if not 1 <= month <= 12:
        raise HTTPException(status_code=422, detail="Month must be between 1 and 12")
    amounts = service.series(year, month, staff_id=staff_id)
    return SeriesResponse(year=year, month=month, staff_id=staff_id, amounts=[float(a) for a in amounts])


@router.get("/master-sheet/{year}/{month}", response_model=MasterSheetResponse)
def master_sheet(year: int, month: int, service: OvertimeService = Depends(get_service)):
    """Fully computed month sheet with per-cell day types."""
    if not 1 <= month <= 12:
        return MasterSheetResponse(
            success=False,
            error_type="validation_error",
            errors=["Month must be between 1 and 12"],
        )
    sheet = service.master_sheet(year, month)
    return MasterSheetResponse(success=True, sheet=generate_master_sheet_dict(sheet, service.snapshot))
