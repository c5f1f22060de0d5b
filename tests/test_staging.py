"""Tests for the saved-item staging area."""

from datetime import date, datetime

from overtime_tool.engine.lifecycle import EntryLifecycleManager
from overtime_tool.engine.staging import OUT_OF_WINDOW_NOTE, StagingArea
from overtime_tool.events import build_dispatcher
from overtime_tool.models import DraftStatus, EntryStatus, StoreError, SubmissionWindow
from overtime_tool.store import SAVED_ITEMS, MemoryStore

NOW = datetime(2025, 11, 30, 10, 0)
DAY = date(2025, 11, 29)
OPEN = SubmissionWindow()


class FailingStore(MemoryStore):
    def set(self, collection, key, data, merge=True):
        if collection == SAVED_ITEMS:
            raise StoreError("disk full")
        super().set(collection, key, data, merge)


def _make_staging(store=None) -> StagingArea:
    store = store if store is not None else MemoryStore()
    lifecycle = EntryLifecycleManager(store, build_dispatcher(store), clock=lambda: NOW)
    return StagingArea(store, lifecycle, clock=lambda: NOW)


class TestSave:
    def test_save(self):
        staging = _make_staging()
        result = staging.save("s1", DAY, 4, "t1", OPEN)
        assert result.ok
        assert result.notes == []
        [item] = staging.items("s1")
        assert item.status is DraftStatus.SAVED
        assert item.valid_for_submit
        assert item.task_id == "t1"

    def test_outside_form_range_saved_with_note(self):
        window = SubmissionWindow(range_start=date(2025, 11, 1), range_end=date(2025, 11, 15))
        staging = _make_staging()
        result = staging.save("s1", DAY, 4, "", window)
        assert result.ok
        assert result.notes == [OUT_OF_WINDOW_NOTE]
        assert not staging.get("s1", DAY).valid_for_submit

    def test_refusals(self):
        staging = _make_staging()
        assert staging.save("s1", None, 4, "", OPEN).reason == "Please choose a date"
        assert staging.save("s1", DAY, 4, "", SubmissionWindow(submissions_open=False)).reason == "Submissions are closed"
        assert staging.save("s1", date(2025, 12, 1), 4, "", OPEN).reason == "Future dates are not allowed"
        assert staging.save("s1", DAY, 0, "", OPEN).reason == "Hours must be between 1 and 12"
        assert staging.items("s1") == []

    def test_duplicate_date(self):
        staging = _make_staging()
        staging.save("s1", DAY, 4, "", OPEN)
        result = staging.save("s1", DAY, 5, "", OPEN)
        assert result.reason == "This date is already in your saved list"
        assert staging.get("s1", DAY).hours == 4

    def test_approved_date_refused(self):
        staging = _make_staging()
        staging.lifecycle.submit("s1", DAY, 4)
        staging.lifecycle.approve("s1", DAY, "admin")
        assert not staging.save("s1", DAY, 5, "", OPEN).ok

    def test_rejected_item_can_be_replaced(self):
        staging = _make_staging()
        staging.save("s1", DAY, 4, "", OPEN)
        staging.submit("s1", [DAY])
        staging.lifecycle.reject("s1", DAY, "admin")
        assert staging.get("s1", DAY).status is DraftStatus.REJECTED
        result = staging.save("s1", DAY, 6, "", OPEN)
        assert result.ok
        assert staging.get("s1", DAY).hours == 6

    def test_store_failure(self):
        staging = _make_staging(FailingStore())
        result = staging.save("s1", DAY, 4, "", OPEN)
        assert not result.ok
        assert result.reason == "Save failed: disk full"
        assert staging.items("s1") == []

    def test_items_newest_first_per_staff(self):
        staging = _make_staging()
        staging.save("s1", date(2025, 11, 27), 2, "", OPEN)
        staging.save("s1", DAY, 3, "", OPEN)
        staging.save("s2", date(2025, 11, 28), 1, "", OPEN)
        assert [i.date for i in staging.items("s1")] == [DAY, date(2025, 11, 27)]


class TestRemove:
    def test_remove_saved(self):
        staging = _make_staging()
        staging.save("s1", DAY, 4, "", OPEN)
        assert staging.remove("s1", DAY).ok
        assert staging.items("s1") == []

    def test_remove_absent(self):
        result = _make_staging().remove("s1", DAY)
        assert result.ok
        assert result.notes == ["Nothing to remove"]

    def test_pending_blocks_removal(self):
        staging = _make_staging()
        staging.save("s1", DAY, 4, "", OPEN)
        staging.submit("s1", [DAY])
        result = staging.remove("s1", DAY)
        assert not result.ok
        assert result.reason == "Cannot remove a pending entry"

    def test_approved_blocks_removal(self):
        staging = _make_staging()
        staging.save("s1", DAY, 4, "", OPEN)
        staging.submit("s1", [DAY])
        staging.lifecycle.approve("s1", DAY, "admin")
        result = staging.remove("s1", DAY)
        assert result.reason == "Cannot remove an approved entry"
        assert staging.get("s1", DAY).status is DraftStatus.APPROVED


class TestSubmit:
    def test_submit_marks_items_pending(self):
        staging = _make_staging()
        staging.save("s1", DAY, 4, "t1", OPEN)
        report = staging.submit("s1", [DAY])
        assert report.ok
        assert report.submitted[0].status is EntryStatus.PENDING
        assert staging.store.get(SAVED_ITEMS, "s1/2025-11-29")["status"] == "pending"
        assert staging.get("s1", DAY).status is DraftStatus.PENDING

    def test_submit_skips(self):
        window = SubmissionWindow(range_start=date(2025, 11, 1), range_end=date(2025, 11, 15))
        staging = _make_staging()
        staging.save("s1", DAY, 4, "", window)
        report = staging.submit("s1", [DAY, date(2025, 11, 20)])
        assert report.submitted == []
        assert report.skipped[date(2025, 11, 20)] == "Not in your saved list"
        assert report.skipped[DAY] == "Outside the allowed submission window"
        assert not report.ok

    def test_submit_twice(self):
        staging = _make_staging()
        staging.save("s1", DAY, 4, "", OPEN)
        staging.submit("s1", [DAY])
        report = staging.submit("s1", [DAY])
        assert report.skipped[DAY] == "Already pending"

    def test_refresh_persists_mirrored_status(self):
        staging = _make_staging()
        staging.save("s1", DAY, 4, "", OPEN)
        staging.submit("s1", [DAY])
        staging.lifecycle.approve("s1", DAY, "admin")
        [item] = staging.refresh("s1")
        assert item.status is DraftStatus.APPROVED
        assert staging.store.get(SAVED_ITEMS, "s1/2025-11-29")["status"] == "approved"

    def test_deleted_entry_returns_item_to_saved(self):
        staging = _make_staging()
        staging.save("s1", DAY, 4, "", OPEN)
        staging.submit("s1", [DAY])
        assert staging.lifecycle.delete("s1", DAY, "admin").ok
        item = staging.get("s1", DAY)
        assert item.status is DraftStatus.SAVED
        assert item.submitted_at is None
        assert item.removable

        [refreshed] = staging.refresh("s1")
        assert refreshed.status is DraftStatus.SAVED
        stored = staging.store.get(SAVED_ITEMS, "s1/2025-11-29")
        assert stored["status"] == "saved"
        assert stored["submittedAt"] is None

        report = staging.submit("s1", [DAY])
        assert report.submitted[0].status is EntryStatus.PENDING
        assert staging.get("s1", DAY).status is DraftStatus.PENDING
