"""Immutable configuration snapshots and the live state that refreshes them.

Engine functions take a ``ConfigSnapshot`` explicitly. ``LiveState`` is the
only place that listens to the store; after any of the five inputs (staff,
entries, rates, holidays/window config, Auto Officer) changes it rebuilds
its view and calls the registered recompute listeners. Derived totals are
never cached here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, FrozenSet, List, Optional

from overtime_tool.log import get_logger
from overtime_tool.models import (
    AutoOfficerConfig,
    OvertimeEntry,
    RateConfig,
    StaffMember,
    SubmissionWindow,
    parse_day,
)
from overtime_tool.store import AUTO_OFFICER_DOC, CONFIG_DOC, ENTRIES, RATES_DOC, SETTINGS, STAFF

logger = get_logger(__name__)


def parse_holidays(raw) -> FrozenSet[date]:
    days = set()
    for value in raw or []:
        try:
            days.add(parse_day(value))
        except (TypeError, ValueError):
            logger.warning("holiday_ignored", value=value)
    return frozenset(days)


@dataclass(frozen=True)
class ConfigSnapshot:
    rates: RateConfig = field(default_factory=RateConfig)
    holidays: FrozenSet[date] = frozenset()
    auto_officer: AutoOfficerConfig = field(default_factory=AutoOfficerConfig)
    window: SubmissionWindow = field(default_factory=SubmissionWindow)

    @classmethod
    def from_documents(
        cls,
        rates_doc: Optional[dict] = None,
        config_doc: Optional[dict] = None,
        auto_officer_doc: Optional[dict] = None,
    ) -> "ConfigSnapshot":
        config_doc = config_doc or {}
        return cls(
            rates=RateConfig.from_doc(rates_doc),
            holidays=parse_holidays(config_doc.get("holidays")),
            auto_officer=AutoOfficerConfig.from_doc(auto_officer_doc),
            window=SubmissionWindow.from_doc(config_doc),
        )

    @classmethod
    def from_store(cls, store) -> "ConfigSnapshot":
        return cls.from_documents(
            store.get(SETTINGS, RATES_DOC),
            store.get(SETTINGS, CONFIG_DOC),
            store.get(SETTINGS, AUTO_OFFICER_DOC),
        )


def load_staff(docs: Dict[str, dict]) -> List[StaffMember]:
    members = []
    for key, doc in docs.items():
        member = StaffMember.from_doc({"id": key, **doc})
        if member.id:
            members.append(member)
    return members


def load_entries(docs: Dict[str, dict]) -> List[OvertimeEntry]:
    entries = []
    for key, doc in docs.items():
        entry = OvertimeEntry.from_doc(doc)
        if entry is None:
            logger.warning("entry_unreadable", key=key)
            continue
        entries.append(entry)
    return entries


class LiveState:
    """Latest locally observed staff, entries and configuration."""

    def __init__(self, store) -> None:
        self.store = store
        self.staff: List[StaffMember] = []
        self.entries: List[OvertimeEntry] = []
        self.snapshot = ConfigSnapshot()
        self._listeners: List[Callable[["LiveState"], None]] = []
        self._unsubscribers: List[Callable[[], None]] = []

    def start(self) -> "LiveState":
        self._unsubscribers = [
            self.store.subscribe(STAFF, self._on_staff),
            self.store.subscribe(ENTRIES, self._on_entries),
            self.store.subscribe(SETTINGS, self._on_settings),
        ]
        return self

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def on_change(self, listener: Callable[["LiveState"], None]) -> None:
        self._listeners.append(listener)

    @property
    def staff_ids(self) -> FrozenSet[str]:
        return frozenset(s.id for s in self.staff)

    def _on_staff(self, docs: Dict[str, dict]) -> None:
        self.staff = load_staff(docs)
        self._changed()

    def _on_entries(self, docs: Dict[str, dict]) -> None:
        self.entries = load_entries(docs)
        self._changed()

    def _on_settings(self, docs: Dict[str, dict]) -> None:
        self.snapshot = ConfigSnapshot.from_documents(
            docs.get(RATES_DOC),
            docs.get(CONFIG_DOC),
            docs.get(AUTO_OFFICER_DOC),
        )
        self._changed()

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener(self)
