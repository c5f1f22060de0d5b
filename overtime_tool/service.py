"""Application service wiring the store, guards, lifecycle and earnings.

Surfaces (CLI, API) talk to ``OvertimeService`` only. Every save and submit
re-runs the Auto Officer against the current clock and position right before
writing, on top of the staging area's own submission window checks.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from overtime_tool.admin import AdminSettings
from overtime_tool.config import Settings, get_settings
from overtime_tool.engine.earnings import (
    EarningsBreakdown,
    MasterSheet,
    earnings_breakdown,
    master_sheet,
    monthly_series,
)
from overtime_tool.engine.eligibility import (
    AutoOfficer,
    Candidate,
    Locator,
    check_submission_window,
    evaluate,
)
from overtime_tool.engine.lifecycle import EntryLifecycleManager, SubmitReport
from overtime_tool.engine.staging import StagingArea
from overtime_tool.events import Notifier, build_dispatcher
from overtime_tool.log import get_logger
from overtime_tool.models import ActionResult, GeoPoint, GuardResult, SavedDraftItem
from overtime_tool.snapshot import ConfigSnapshot, LiveState
from overtime_tool.store import JsonFileStore

logger = get_logger(__name__)


class OvertimeService:
    def __init__(
        self,
        store,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
        locator: Optional[Locator] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock
        self.dispatcher = build_dispatcher(store, notifier)
        self.officer = AutoOfficer(
            clock=clock,
            locator=locator,
            timeout_s=self.settings.geolocation_timeout_s,
            grace_s=self.settings.geolocation_grace_s,
        )
        self.lifecycle = EntryLifecycleManager(
            store, self.dispatcher, clock=clock, max_hours=self.settings.max_hours_per_day,
        )
        self.staging = StagingArea(store, self.lifecycle, self.dispatcher, clock=clock)
        self.admin = AdminSettings(store, self.dispatcher, clock=clock)
        self.state = LiveState(store).start()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "OvertimeService":
        settings = settings or get_settings()
        return cls(JsonFileStore(settings.data_path), settings=settings, **kwargs)

    @property
    def snapshot(self) -> ConfigSnapshot:
        return self.state.snapshot

    # --- Eligibility ---
    def check(self, day: date, position: Optional[GeoPoint] = None) -> GuardResult:
        """Whether an entry for ``day`` could be submitted right now."""
        result = self.officer.check(day, self.snapshot.auto_officer, position)
        if not result.allowed:
            return result
        return check_submission_window(day, self.clock().date(), self.snapshot.window)

    # --- Staff actions ---
    def saved_items(self, staff_id: str) -> List[SavedDraftItem]:
        return self.staging.items(staff_id)

    def save_draft(
        self,
        staff_id: str,
        day: Optional[date],
        hours: int,
        task_id: str = "",
        position: Optional[GeoPoint] = None,
    ) -> ActionResult:
        if day is not None:
            guard = self.officer.check(day, self.snapshot.auto_officer, position)
            if not guard.allowed:
                return ActionResult.failure(guard.reason)
        return self.staging.save(staff_id, day, hours, task_id, self.snapshot.window)

    def remove_draft(self, staff_id: str, day: date) -> ActionResult:
        return self.staging.remove(staff_id, day)

    def submit_drafts(
        self,
        staff_id: str,
        dates: Iterable[date],
        position: Optional[GeoPoint] = None,
    ) -> SubmitReport:
        """Bulk submit; each date is checked against both guards first.

        The position is read once for the whole batch.
        """
        dates = list(dates)
        config = self.snapshot.auto_officer
        window = self.snapshot.window
        error = None
        if position is None:
            position, error = self.officer.locate(config)
        now = self.officer.now()

        report = SubmitReport()
        allowed = []
        for day in dates:
            guard = evaluate(Candidate(date=day, now=now, position=position, position_error=error), config)
            if guard.allowed:
                guard = check_submission_window(day, now.date(), window)
            if guard.allowed:
                allowed.append(day)
            else:
                report.skipped[day] = guard.reason
        if not allowed:
            logger.info("submit_denied", staff_id=staff_id, dates=len(dates))
            return report

        staged = self.staging.submit(staff_id, allowed)
        staged.skipped.update(report.skipped)
        logger.info(
            "bulk_submitted",
            staff_id=staff_id,
            submitted=len(staged.submitted),
            skipped=len(staged.skipped),
            failed=len(staged.failed),
        )
        return staged

    # --- Admin actions ---
    def approve(self, staff_id: str, day: date, actor_id: str) -> ActionResult:
        return self.lifecycle.approve(staff_id, day, actor_id)

    def reject(self, staff_id: str, day: date, actor_id: str) -> ActionResult:
        return self.lifecycle.reject(staff_id, day, actor_id)

    def disapprove(self, staff_id: str, day: date, actor_id: str) -> ActionResult:
        return self.lifecycle.disapprove(staff_id, day, actor_id)

    def edit_hours(self, staff_id: str, day: date, hours: int, actor_id: str) -> ActionResult:
        return self.lifecycle.edit_hours(staff_id, day, hours, actor_id)

    def delete_entry(self, staff_id: str, day: date, actor_id: str) -> ActionResult:
        return self.lifecycle.delete(staff_id, day, actor_id)

    # --- Earnings ---
    def earnings(self, staff_id: str) -> EarningsBreakdown:
        return earnings_breakdown(staff_id, self.state.entries, self.snapshot, self.state.staff_ids)

    def series(self, year: int, month: int, staff_id: Optional[str] = None) -> List[Decimal]:
        return monthly_series(
            self.state.entries, year, month, self.snapshot,
            staff_ids=self.state.staff_ids, staff_id=staff_id,
        )

    def master_sheet(self, year: int, month: int) -> MasterSheet:
        return master_sheet(self.state.staff, self.state.entries, year, month, self.snapshot)
