"""Admin configuration writes.

Holidays, rates, the Auto Officer rules and the submission window all live
in the settings collection. Each save is a keyed merge; listeners of the
settings collection (``LiveState``) rebuild their snapshot afterwards.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Optional

from overtime_tool.events import SYSTEM_ACTOR, EventDispatcher, HolidayToggled, SettingsChanged
from overtime_tool.log import get_logger
from overtime_tool.models import ActionResult, AutoOfficerConfig, RateConfig, StoreError
from overtime_tool.snapshot import ConfigSnapshot, parse_holidays
from overtime_tool.store import AUTO_OFFICER_DOC, CONFIG_DOC, RATES_DOC, SETTINGS

logger = get_logger(__name__)

Confirm = Callable[[str], bool]


def holiday_prompt(day: date, declared: bool) -> str:
    """Question shown before a holiday is declared or cancelled."""
    if declared:
        return f"Do you want to cancel public holiday for {day.isoformat()}?"
    return f"Do you want to declare {day.isoformat()} a public holiday?"


class AdminSettings:
    def __init__(
        self,
        store,
        dispatcher: Optional[EventDispatcher] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher or EventDispatcher()
        self.clock = clock

    def snapshot(self) -> ConfigSnapshot:
        return ConfigSnapshot.from_store(self.store)

    def toggle_holiday(self, day: date, actor_id: str, confirm: Confirm) -> ActionResult:
        """Declare or cancel a holiday; nothing changes unless ``confirm`` returns True."""
        config_doc = self.store.get(SETTINGS, CONFIG_DOC) or {}
        holidays = set(parse_holidays(config_doc.get("holidays")))
        declared = day in holidays
        if not confirm(holiday_prompt(day, declared)):
            return ActionResult.failure("Cancelled")
        if declared:
            holidays.discard(day)
        else:
            holidays.add(day)
        payload = {"holidays": sorted(d.isoformat() for d in holidays)}
        result = self._save(CONFIG_DOC, payload, "holiday_toggled", date=day.isoformat(), declared=not declared)
        if result.ok:
            self.dispatcher.dispatch(HolidayToggled(SYSTEM_ACTOR, day, actor_id, self.clock(), declared=not declared))
        return result

    def save_rates(self, rates: RateConfig, actor_id: str) -> ActionResult:
        return self._save_setting(RATES_DOC, rates.to_doc(), "Rates", actor_id)

    def save_auto_officer(self, config: AutoOfficerConfig, actor_id: str) -> ActionResult:
        if config.n_days < 1:
            return ActionResult.failure("Number of days must be at least 1")
        if config.radius_meters < 0:
            return ActionResult.failure("Radius must not be negative")
        return self._save_setting(AUTO_OFFICER_DOC, config.to_doc(), "Auto Officer", actor_id)

    def reset_auto_officer(self, actor_id: str) -> ActionResult:
        """Switch the Auto Officer off; the saved rules are kept."""
        return self._save_setting(AUTO_OFFICER_DOC, {"enabled": False}, "Auto Officer", actor_id)

    def set_form_range(self, start: Optional[date], end: Optional[date], actor_id: str) -> ActionResult:
        if (start is None) != (end is None):
            return ActionResult.failure("Both range dates are required")
        if start is not None and start > end:
            return ActionResult.failure("Range start must not be after range end")
        payload = {
            "formRangeStart": start.isoformat() if start else None,
            "formRangeEnd": end.isoformat() if end else None,
        }
        return self._save_setting(CONFIG_DOC, payload, "Submission Window", actor_id)

    def clear_form_range(self, actor_id: str) -> ActionResult:
        return self.set_form_range(None, None, actor_id)

    def set_submissions_open(self, is_open: bool, actor_id: str) -> ActionResult:
        return self._save_setting(CONFIG_DOC, {"submissionsOpen": bool(is_open)}, "Submissions", actor_id)

    def toggle_submissions(self, actor_id: str) -> ActionResult:
        return self.set_submissions_open(not self.snapshot().window.submissions_open, actor_id)

    def _save_setting(self, doc: str, payload: dict, setting: str, actor_id: str) -> ActionResult:
        result = self._save(doc, payload, "settings_saved", setting=setting, actor=actor_id)
        if result.ok:
            self.dispatcher.dispatch(SettingsChanged(SYSTEM_ACTOR, None, actor_id, self.clock(), setting=setting))
        return result

    def _save(self, doc: str, payload: dict, event: str, **context) -> ActionResult:
        try:
            self.store.set(SETTINGS, doc, payload, merge=True)
        except StoreError as e:
            logger.error("store_write_failed", key=doc, event=event, error=str(e))
            return ActionResult.failure(f"Save failed: {e}")
        logger.info(event, **context)
        return ActionResult.success()
