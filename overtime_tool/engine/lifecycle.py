"""Entry lifecycle: the state machine of one overtime entry per (staff, date).

Every write is a keyed merge on ``<staffId>_<date>``, so re-sending a
transition is idempotent. Concurrent admins race last-write-wins.

Legal transitions are listed once in ``TRANSITIONS``; every action goes
through ``can_transition``. The only way to take hours away from an approved
entry is disapproval (directly, or by editing its hours to zero).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from overtime_tool.events import (
    EntryApproved,
    EntryDeleted,
    EntryDisapproved,
    EntryEdited,
    EntryRejected,
    EntrySubmitted,
    EventDispatcher,
)
from overtime_tool.log import get_logger
from overtime_tool.models import (
    ActionResult,
    EntryStatus,
    OvertimeEntry,
    SavedDraftItem,
    StoreError,
    entry_key,
)
from overtime_tool.store import ENTRIES

logger = get_logger(__name__)

MAX_HOURS = 12

TRANSITIONS: Dict[Optional[EntryStatus], FrozenSet[EntryStatus]] = {
    None: frozenset({EntryStatus.PENDING, EntryStatus.DISAPPROVED}),
    EntryStatus.PENDING: frozenset({EntryStatus.APPROVED, EntryStatus.REJECTED, EntryStatus.DISAPPROVED}),
    EntryStatus.APPROVED: frozenset({EntryStatus.DISAPPROVED}),
    EntryStatus.REJECTED: frozenset({EntryStatus.PENDING, EntryStatus.DISAPPROVED}),
    EntryStatus.DISAPPROVED: frozenset({EntryStatus.PENDING}),
}


def can_transition(current: Optional[EntryStatus], target: EntryStatus) -> bool:
    if current is target:
        return True
    return target in TRANSITIONS.get(current, frozenset())


def _label(status: Optional[EntryStatus]) -> str:
    return status.value if status else "new"


def validate_hours(hours: object, max_hours: int = MAX_HOURS) -> Optional[str]:
    """Return a reason when ``hours`` is not a whole number in 1..max_hours."""
    if isinstance(hours, bool) or not isinstance(hours, int):
        return "Hours must be a whole number"
    if not 1 <= hours <= max_hours:
        return f"Hours must be between 1 and {max_hours}"
    return None


@dataclass
class SubmitReport:
    submitted: List[OvertimeEntry] = field(default_factory=list)
    skipped: Dict[date, str] = field(default_factory=dict)
    failed: Dict[date, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return bool(self.submitted) and not self.failed


class EntryLifecycleManager:
    def __init__(
        self,
        store,
        dispatcher: Optional[EventDispatcher] = None,
        clock: Callable[[], datetime] = datetime.now,
        max_hours: int = MAX_HOURS,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher or EventDispatcher()
        self.clock = clock
        self.max_hours = max_hours

    # --- Reads ---
    def get(self, staff_id: str, day: date) -> Optional[OvertimeEntry]:
        doc = self.store.get(ENTRIES, entry_key(staff_id, day))
        return OvertimeEntry.from_doc(doc) if doc else None

    def has_approved(self, staff_id: str, day: date) -> bool:
        entry = self.get(staff_id, day)
        return entry is not None and entry.is_approved

    def pending(self, staff_id: Optional[str] = None) -> List[OvertimeEntry]:
        entries = []
        for doc in self.store.all(ENTRIES).values():
            entry = OvertimeEntry.from_doc(doc)
            if entry is None or entry.status is not EntryStatus.PENDING:
                continue
            if staff_id and entry.staff_id != staff_id:
                continue
            entries.append(entry)
        return sorted(entries, key=lambda e: (e.date, e.staff_id))

    # --- Staff actions ---
    def submit(self, staff_id: str, day: date, hours: int, task_id: str = "") -> ActionResult:
        """Draft -> Pending for a single day."""
        reason = validate_hours(hours, self.max_hours)
        if reason:
            return ActionResult.failure(reason)
        now = self.clock()
        if day > now.date():
            return ActionResult.failure("Future dates are not allowed")
        current = self.get(staff_id, day)
        if current is not None and current.is_approved:
            return ActionResult.failure("This date has an approved entry and cannot be re-entered.")
        status = current.status if current else None
        if not can_transition(status, EntryStatus.PENDING):
            return self._illegal(status, EntryStatus.PENDING)
        payload = {
            "staffId": staff_id,
            "date": day.isoformat(),
            "hours": hours,
            "taskId": task_id or "",
            "submittedAt": now.isoformat(),
            "status": EntryStatus.PENDING.value,
        }
        result = self._write(staff_id, day, payload, "entry_submitted")
        if result.ok:
            self.dispatcher.dispatch(EntrySubmitted(staff_id, day, staff_id, now, hours=hours))
        return result

    def submit_bulk(self, staff_id: str, items: Iterable[SavedDraftItem]) -> SubmitReport:
        """Submit staged items; items that are not eligible are skipped with a reason."""
        report = SubmitReport()
        today = self.clock().date()
        for item in items:
            if item.date > today:
                report.skipped[item.date] = "Future dates are not allowed"
                continue
            if not item.valid_for_submit:
                report.skipped[item.date] = "Outside the allowed submission window"
                continue
            if self.has_approved(staff_id, item.date):
                report.skipped[item.date] = "Already approved"
                continue
            result = self.submit(staff_id, item.date, item.hours, item.task_id)
            if result.ok:
                report.submitted.append(result.entry)
            else:
                report.failed[item.date] = result.reason
        return report

    # --- Admin actions ---
    def approve(self, staff_id: str, day: date, actor_id: str) -> ActionResult:
        return self._decide(staff_id, day, actor_id, EntryStatus.APPROVED)

    def reject(self, staff_id: str, day: date, actor_id: str) -> ActionResult:
        return self._decide(staff_id, day, actor_id, EntryStatus.REJECTED)

    def disapprove(self, staff_id: str, day: date, actor_id: str) -> ActionResult:
        """Any -> Disapproved: hours are cleared and the staff may resubmit."""
        current = self.get(staff_id, day)
        status = current.status if current else None
        if status is EntryStatus.DISAPPROVED:
            return ActionResult.success(current, notes=["Entry already disapproved"])
        if not can_transition(status, EntryStatus.DISAPPROVED):
            return self._illegal(status, EntryStatus.DISAPPROVED)
        now = self.clock()
        payload = {
            "staffId": staff_id,
            "date": day.isoformat(),
            "hours": None,
            "status": EntryStatus.DISAPPROVED.value,
            "disapprovedAt": now.isoformat(),
            "disapprovedBy": actor_id,
            "editedAt": now.isoformat(),
        }
        result = self._write(staff_id, day, payload, "entry_disapproved", actor=actor_id, previous=_label(status))
        if result.ok:
            self.dispatcher.dispatch(EntryDisapproved(staff_id, day, actor_id, now))
        return result

    def edit_hours(self, staff_id: str, day: date, hours: int, actor_id: str) -> ActionResult:
        """Direct admin edit. Zero hours means disapproval."""
        if hours == 0 and not isinstance(hours, bool):
            return self.disapprove(staff_id, day, actor_id)
        reason = validate_hours(hours, self.max_hours)
        if reason:
            return ActionResult.failure(reason)
        now = self.clock()
        current = self.get(staff_id, day)
        payload = {
            "staffId": staff_id,
            "date": day.isoformat(),
            "hours": hours,
            "editedAt": now.isoformat(),
        }
        if current is None or current.status in (None, EntryStatus.DISAPPROVED):
            # A missing or cleared entry re-enters the queue for a decision.
            payload["status"] = EntryStatus.PENDING.value
            payload["submittedAt"] = now.isoformat()
        result = self._write(staff_id, day, payload, "entry_edited", actor=actor_id, hours=hours)
        if result.ok:
            self.dispatcher.dispatch(EntryEdited(staff_id, day, actor_id, now, hours=hours))
        return result

    def delete(self, staff_id: str, day: date, actor_id: str) -> ActionResult:
        current = self.get(staff_id, day)
        if current is None:
            return ActionResult.failure("No entry found for this date")
        if current.is_approved:
            return ActionResult.failure(
                "Approved entries cannot be deleted; set hours to 0 to disapprove instead"
            )
        try:
            self.store.delete(ENTRIES, current.key)
        except StoreError as e:
            logger.error("store_write_failed", key=current.key, op="delete", error=str(e))
            return ActionResult.failure(f"Delete failed: {e}")
        logger.info("entry_deleted", key=current.key, actor=actor_id)
        self.dispatcher.dispatch(EntryDeleted(staff_id, day, actor_id, self.clock()))
        return ActionResult.success(current)

    # --- Internals ---
    def _decide(self, staff_id: str, day: date, actor_id: str, target: EntryStatus) -> ActionResult:
        current = self.get(staff_id, day)
        if current is None:
            return ActionResult.failure("No entry found for this date")
        if current.status is target:
            return ActionResult.success(current, notes=[f"Entry already {target.value}"])
        if not can_transition(current.status, target):
            return self._illegal(current.status, target)
        now = self.clock()
        prefix = target.value
        payload = {
            "status": target.value,
            f"{prefix}At": now.isoformat(),
            f"{prefix}By": actor_id,
        }
        result = self._write(staff_id, day, payload, f"entry_{target.value}", actor=actor_id)
        if result.ok:
            event_type = EntryApproved if target is EntryStatus.APPROVED else EntryRejected
            self.dispatcher.dispatch(event_type(staff_id, day, actor_id, now))
        return result

    def _write(self, staff_id: str, day: date, payload: dict, event: str, **context) -> ActionResult:
        key = entry_key(staff_id, day)
        try:
            self.store.set(ENTRIES, key, payload, merge=True)
        except StoreError as e:
            logger.error("store_write_failed", key=key, event=event, error=str(e))
            return ActionResult.failure(f"Update failed: {e}")
        logger.info(event, key=key, **context)
        return ActionResult.success(self.get(staff_id, day))

    @staticmethod
    def _illegal(current: Optional[EntryStatus], target: EntryStatus) -> ActionResult:
        return ActionResult.failure(f"Cannot change an entry from {_label(current)} to {target.value}")
