"""Tests for the entry lifecycle state machine."""

from datetime import date, datetime

import pytest

from overtime_tool.engine.lifecycle import EntryLifecycleManager, can_transition, validate_hours
from overtime_tool.events import EntryApproved, build_dispatcher
from overtime_tool.models import EntryStatus, SavedDraftItem, StoreError
from overtime_tool.store import ENTRIES, LOGS, MESSAGES, MemoryStore

NOW = datetime(2025, 11, 30, 10, 0)
DAY = date(2025, 11, 29)


class FailingStore(MemoryStore):
    def __init__(self):
        super().__init__()
        self.fail = False

    def set(self, collection, key, data, merge=True):
        if self.fail and collection == ENTRIES:
            raise StoreError("network unreachable")
        super().set(collection, key, data, merge)

    def delete(self, collection, key):
        if self.fail and collection == ENTRIES:
            raise StoreError("network unreachable")
        super().delete(collection, key)


def _make_manager(store=None) -> EntryLifecycleManager:
    store = store if store is not None else MemoryStore()
    return EntryLifecycleManager(store, build_dispatcher(store), clock=lambda: NOW)


def _approved(manager: EntryLifecycleManager, hours: int = 4) -> None:
    assert manager.submit("s1", DAY, hours, "t1").ok
    assert manager.approve("s1", DAY, "admin").ok


class TestTransitionTable:
    def test_legal(self):
        assert can_transition(None, EntryStatus.PENDING)
        assert can_transition(EntryStatus.PENDING, EntryStatus.APPROVED)
        assert can_transition(EntryStatus.PENDING, EntryStatus.REJECTED)
        assert can_transition(EntryStatus.APPROVED, EntryStatus.DISAPPROVED)
        assert can_transition(EntryStatus.REJECTED, EntryStatus.PENDING)
        assert can_transition(EntryStatus.DISAPPROVED, EntryStatus.PENDING)

    def test_illegal(self):
        assert not can_transition(EntryStatus.REJECTED, EntryStatus.APPROVED)
        assert not can_transition(EntryStatus.APPROVED, EntryStatus.PENDING)
        assert not can_transition(EntryStatus.APPROVED, EntryStatus.REJECTED)
        assert not can_transition(None, EntryStatus.APPROVED)

    def test_validate_hours(self):
        assert validate_hours(1) is None
        assert validate_hours(12) is None
        assert validate_hours(0) == "Hours must be between 1 and 12"
        assert validate_hours(13) == "Hours must be between 1 and 12"
        assert validate_hours(2.5) == "Hours must be a whole number"
        assert validate_hours(True) == "Hours must be a whole number"


class TestSubmit:
    def test_creates_pending(self):
        store = MemoryStore()
        result = _make_manager(store).submit("s1", DAY, 4, "t1")
        assert result.ok
        assert result.entry.status is EntryStatus.PENDING
        doc = store.get(ENTRIES, "s1_2025-11-29")
        assert doc["hours"] == 4
        assert doc["taskId"] == "t1"
        assert doc["submittedAt"] == NOW.isoformat()

    def test_future_date_refused(self):
        result = _make_manager().submit("s1", date(2025, 12, 1), 4)
        assert not result.ok
        assert result.reason == "Future dates are not allowed"

    def test_invalid_hours_refused(self):
        assert not _make_manager().submit("s1", DAY, 0).ok
        assert not _make_manager().submit("s1", DAY, 13).ok

    def test_approved_date_cannot_be_resubmitted(self):
        manager = _make_manager()
        _approved(manager)
        result = manager.submit("s1", DAY, 6)
        assert not result.ok
        assert manager.get("s1", DAY).hours == 4

    def test_resubmit_after_rejection(self):
        manager = _make_manager()
        manager.submit("s1", DAY, 4)
        manager.reject("s1", DAY, "admin")
        result = manager.submit("s1", DAY, 5)
        assert result.ok
        assert result.entry.status is EntryStatus.PENDING
        assert result.entry.hours == 5

    def test_bulk_skips_ineligible_items(self):
        manager = _make_manager()
        _approved(manager)
        items = [
            SavedDraftItem(staff_id="s1", date=DAY, hours=3),
            SavedDraftItem(staff_id="s1", date=date(2025, 11, 28), hours=3, valid_for_submit=False),
            SavedDraftItem(staff_id="s1", date=date(2025, 12, 2), hours=3),
            SavedDraftItem(staff_id="s1", date=date(2025, 11, 27), hours=2),
        ]
        report = manager.submit_bulk("s1", items)
        assert [e.date for e in report.submitted] == [date(2025, 11, 27)]
        assert set(report.skipped) == {DAY, date(2025, 11, 28), date(2025, 12, 2)}
        assert report.ok


class TestAdminDecisions:
    def test_approve(self):
        store = MemoryStore()
        manager = _make_manager(store)
        _approved(manager)
        doc = store.get(ENTRIES, "s1_2025-11-29")
        assert doc["status"] == "approved"
        assert doc["approvedBy"] == "admin"
        assert doc["approvedAt"] == NOW.isoformat()

    def test_approve_twice_is_idempotent(self):
        manager = _make_manager()
        _approved(manager)
        result = manager.approve("s1", DAY, "admin")
        assert result.ok
        assert result.notes == ["Entry already approved"]

    def test_missing_entry(self):
        result = _make_manager().approve("s1", DAY, "admin")
        assert not result.ok
        assert result.reason == "No entry found for this date"

    def test_rejected_cannot_be_approved(self):
        manager = _make_manager()
        manager.submit("s1", DAY, 4)
        manager.reject("s1", DAY, "admin")
        result = manager.approve("s1", DAY, "admin")
        assert not result.ok
        assert result.reason == "Cannot change an entry from rejected to approved"

    def test_audit_log_written(self):
        store = MemoryStore()
        _approved(_make_manager(store))
        actions = [log["action"] for log in store.all(LOGS).values()]
        assert actions == ["Entry Submitted (bulk)", "Entry Approved"]

    def test_pending_queue(self):
        manager = _make_manager()
        manager.submit("s2", DAY, 2)
        manager.submit("s1", date(2025, 11, 28), 3)
        assert [(e.staff_id, e.date) for e in manager.pending()] == [
            ("s1", date(2025, 11, 28)),
            ("s2", DAY),
        ]
        assert manager.pending("s1")[0].hours == 3


class TestDisapproval:
    def test_zero_hours_on_approved_disapproves(self):
        store = MemoryStore()
        manager = _make_manager(store)
        _approved(manager)
        result = manager.edit_hours("s1", DAY, 0, "admin")
        assert result.ok
        assert result.entry.status is EntryStatus.DISAPPROVED
        assert result.entry.hours is None
        assert result.entry.disapproved_by == "admin"
        [message] = store.all(MESSAGES).values()
        assert "2025-11-29" in message["message"]

    def test_resubmit_after_disapproval(self):
        manager = _make_manager()
        _approved(manager)
        manager.edit_hours("s1", DAY, 0, "admin")
        result = manager.submit("s1", DAY, 6)
        assert result.ok
        assert result.entry.status is EntryStatus.PENDING
        assert result.entry.hours == 6

    def test_disapprove_twice(self):
        store = MemoryStore()
        manager = _make_manager(store)
        manager.submit("s1", DAY, 4)
        manager.disapprove("s1", DAY, "admin")
        result = manager.disapprove("s1", DAY, "admin")
        assert result.ok
        assert result.notes == ["Entry already disapproved"]
        assert len(store.all(MESSAGES)) == 1


class TestEditAndDelete:
    def test_edit_keeps_status(self):
        manager = _make_manager()
        _approved(manager)
        result = manager.edit_hours("s1", DAY, 7, "admin")
        assert result.entry.status is EntryStatus.APPROVED
        assert result.entry.hours == 7
        assert result.entry.edited_at == NOW.isoformat()

    def test_edit_missing_creates_pending(self):
        result = _make_manager().edit_hours("s1", DAY, 3, "admin")
        assert result.ok
        assert result.entry.status is EntryStatus.PENDING

    def test_edit_rejects_bad_hours(self):
        assert _make_manager().edit_hours("s1", DAY, 15, "admin").reason == "Hours must be between 1 and 12"

    def test_delete_approved_refused(self):
        manager = _make_manager()
        _approved(manager)
        result = manager.delete("s1", DAY, "admin")
        assert not result.ok
        assert "set hours to 0" in result.reason
        assert manager.get("s1", DAY) is not None

    def test_delete_pending(self):
        manager = _make_manager()
        manager.submit("s1", DAY, 4)
        assert manager.delete("s1", DAY, "admin").ok
        assert manager.get("s1", DAY) is None

    def test_delete_missing(self):
        assert not _make_manager().delete("s1", DAY, "admin").ok


class TestStoreFailures:
    def test_write_failure_reported(self):
        store = FailingStore()
        manager = _make_manager(store)
        store.fail = True
        result = manager.submit("s1", DAY, 4)
        assert not result.ok
        assert result.reason == "Update failed: network unreachable"
        assert manager.get("s1", DAY) is None
        assert store.all(LOGS) == {}

    def test_failed_approval_emits_nothing(self):
        store = FailingStore()
        manager = _make_manager(store)
        manager.submit("s1", DAY, 4)
        store.fail = True
        assert not manager.approve("s1", DAY, "admin").ok
        assert not any(isinstance(e, EntryApproved) for e in manager.dispatcher.history)
        assert manager.get("s1", DAY).status is EntryStatus.PENDING

    def test_side_effect_failure_keeps_transition(self):
        manager = _make_manager()
        manager.submit("s1", DAY, 4)

        def broken(event):
            raise RuntimeError("log store offline")

        manager.dispatcher.register(EntryApproved, broken)
        assert manager.approve("s1", DAY, "admin").ok
        assert manager.get("s1", DAY).is_approved

    @pytest.mark.parametrize("status", ["pending", "rejected"])
    def test_delete_failure_reported(self, status):
        store = FailingStore()
        manager = _make_manager(store)
        manager.submit("s1", DAY, 4)
        if status == "rejected":
            manager.reject("s1", DAY, "admin")
        store.fail = True
        assert manager.delete("s1", DAY, "admin").reason.startswith("Delete failed")
