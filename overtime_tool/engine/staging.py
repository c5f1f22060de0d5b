"""Saved-item staging area.

Staff accumulate day entries here before one bulk submission. Items are kept
after submission and mirror the status of the entry they produced.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Dict, List, Optional

from overtime_tool.engine.eligibility import in_form_range
from overtime_tool.engine.lifecycle import EntryLifecycleManager, SubmitReport, validate_hours
from overtime_tool.events import DraftRemoved, DraftSaved, EventDispatcher
from overtime_tool.log import get_logger
from overtime_tool.models import (
    ActionResult,
    DraftStatus,
    EntryStatus,
    OvertimeEntry,
    SavedDraftItem,
    StoreError,
    SubmissionWindow,
)
from overtime_tool.store import SAVED_ITEMS

logger = get_logger(__name__)

OUT_OF_WINDOW_NOTE = "Saved. Note: this date is outside the allowed submission window."

_MIRROR = {
    EntryStatus.PENDING: DraftStatus.PENDING,
    EntryStatus.APPROVED: DraftStatus.APPROVED,
    EntryStatus.REJECTED: DraftStatus.REJECTED,
    EntryStatus.DISAPPROVED: DraftStatus.DISAPPROVED,
}


def item_key(staff_id: str, day: date) -> str:
    return f"{staff_id}/{day.isoformat()}"


def mirror_status(item: SavedDraftItem, entry: Optional[OvertimeEntry]) -> SavedDraftItem:
    """Reflect the entry's status on a staged item that has been submitted.

    A submitted item whose entry was deleted goes back to saved so the date
    can be removed, edited or submitted again.
    """
    if item.submitted_at is None:
        return item
    if entry is None:
        return replace(item, status=DraftStatus.SAVED, submitted_at=None)
    if entry.status is None:
        return item
    return item.with_status(_MIRROR[entry.status])


class StagingArea:
    def __init__(
        self,
        store,
        lifecycle: EntryLifecycleManager,
        dispatcher: Optional[EventDispatcher] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.lifecycle = lifecycle
        self.dispatcher = dispatcher or lifecycle.dispatcher
        self.clock = clock

    def items(self, staff_id: str) -> List[SavedDraftItem]:
        """Staged items for one staff member, newest date first, with mirrored status."""
        items = []
        for doc in self.store.all(SAVED_ITEMS).values():
            item = SavedDraftItem.from_doc(doc)
            if item is None or item.staff_id != staff_id:
                continue
            items.append(mirror_status(item, self.lifecycle.get(staff_id, item.date)))
        return sorted(items, key=lambda i: i.date, reverse=True)

    def get(self, staff_id: str, day: date) -> Optional[SavedDraftItem]:
        doc = self.store.get(SAVED_ITEMS, item_key(staff_id, day))
        item = SavedDraftItem.from_doc(doc) if doc else None
        if item is None:
            return None
        return mirror_status(item, self.lifecycle.get(staff_id, day))

    def save(
        self,
        staff_id: str,
        day: Optional[date],
        hours: int,
        task_id: str,
        window: SubmissionWindow,
    ) -> ActionResult:
        """Stage a day entry.

        The Auto Officer must already have allowed the action. Dates outside
        the form range are still saved, but flagged as not submittable.
        """
        if day is None:
            return ActionResult.failure("Please choose a date")
        if not window.submissions_open:
            return ActionResult.failure("Submissions are closed")
        now = self.clock()
        if day > now.date():
            return ActionResult.failure("Future dates are not allowed")
        reason = validate_hours(hours, self.lifecycle.max_hours)
        if reason:
            return ActionResult.failure(reason)
        if self.lifecycle.has_approved(staff_id, day):
            return ActionResult.failure("This date has an approved entry and cannot be re-entered.")
        existing = self.get(staff_id, day)
        if existing is not None and existing.status in (DraftStatus.SAVED, DraftStatus.PENDING):
            return ActionResult.failure("This date is already in your saved list")

        valid = in_form_range(day, window)
        item = SavedDraftItem(
            staff_id=staff_id,
            date=day,
            hours=hours,
            task_id=task_id or "",
            valid_for_submit=valid,
            status=DraftStatus.SAVED,
            saved_at=now.isoformat(),
        )
        try:
            self.store.set(SAVED_ITEMS, item_key(staff_id, day), item.to_doc(), merge=False)
        except StoreError as e:
            logger.error("store_write_failed", key=item_key(staff_id, day), op="save_draft", error=str(e))
            return ActionResult.failure(f"Save failed: {e}")
        logger.info("draft_saved", staff_id=staff_id, date=day.isoformat(), valid_for_submit=valid)
        self.dispatcher.dispatch(DraftSaved(staff_id, day, staff_id, now, hours=hours, valid_for_submit=valid))
        return ActionResult.success(notes=[] if valid else [OUT_OF_WINDOW_NOTE])

    def remove(self, staff_id: str, day: date) -> ActionResult:
        """Remove a staged item; blocked once it is pending or approved."""
        if self.lifecycle.has_approved(staff_id, day):
            return ActionResult.failure("Cannot remove an approved entry")
        item = self.get(staff_id, day)
        if item is None:
            return ActionResult.success(notes=["Nothing to remove"])
        if not item.removable:
            return ActionResult.failure(f"Cannot remove a {item.status.value} entry")
        try:
            self.store.delete(SAVED_ITEMS, item_key(staff_id, day))
        except StoreError as e:
            logger.error("store_write_failed", key=item_key(staff_id, day), op="remove_draft", error=str(e))
            return ActionResult.failure(f"Remove failed: {e}")
        logger.info("draft_removed", staff_id=staff_id, date=day.isoformat())
        self.dispatcher.dispatch(DraftRemoved(staff_id, day, staff_id, self.clock()))
        return ActionResult.success()

    def submit(self, staff_id: str, dates: List[date]) -> SubmitReport:
        """Hand the selected staged items to the lifecycle manager.

        Items stay in the staging area; the submitted ones are marked pending.
        """
        selected: Dict[date, SavedDraftItem] = {}
        report = SubmitReport()
        for day in dates:
            item = self.get(staff_id, day)
            if item is None:
                report.skipped[day] = "Not in your saved list"
            elif item.status in (DraftStatus.PENDING, DraftStatus.APPROVED):
                report.skipped[day] = f"Already {item.status.value}"
            else:
                selected[day] = item

        lifecycle_report = self.lifecycle.submit_bulk(staff_id, selected.values())
        report.submitted = lifecycle_report.submitted
        report.skipped.update(lifecycle_report.skipped)
        report.failed.update(lifecycle_report.failed)

        now = self.clock().isoformat()
        for entry in report.submitted:
            key = item_key(staff_id, entry.date)
            try:
                self.store.set(SAVED_ITEMS, key, {"status": DraftStatus.PENDING.value, "submittedAt": now})
            except StoreError as e:
                # The entry itself is already pending; the mirror catches up on next read.
                logger.warning("store_write_failed", key=key, op="mark_submitted", error=str(e))
        return report

    def refresh(self, staff_id: str) -> List[SavedDraftItem]:
        """Persist mirrored statuses so other clients see them."""
        refreshed = []
        for item in self.items(staff_id):
            key = item_key(staff_id, item.date)
            stored = self.store.get(SAVED_ITEMS, key) or {}
            if stored.get("status") != item.status.value:
                try:
                    self.store.set(SAVED_ITEMS, key, {"status": item.status.value, "submittedAt": item.submitted_at})
                except StoreError as e:
                    logger.warning("store_write_failed", key=key, op="mirror_status", error=str(e))
            refreshed.append(item)
        return refreshed
