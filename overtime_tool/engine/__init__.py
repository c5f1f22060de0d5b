"""Classification, eligibility, lifecycle and earnings engines."""
from overtime_tool.engine.day_classifier import classify_day
from overtime_tool.engine.rates import amount_for
from overtime_tool.engine.eligibility import AutoOfficer, evaluate, check_submission_window
from overtime_tool.engine.lifecycle import EntryLifecycleManager
from overtime_tool.engine.staging import StagingArea
from overtime_tool.engine.earnings import master_sheet, monthly_series, total_earnings

__all__ = [
    "classify_day",
    "amount_for",
    "AutoOfficer",
    "evaluate",
    "check_submission_window",
    "EntryLifecycleManager",
    "StagingArea",
    "master_sheet",
    "monthly_series",
    "total_earnings",
]
