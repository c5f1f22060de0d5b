"""Domain events and their best-effort side effects.

The lifecycle manager and staging area only emit events. Audit log records,
staff notification messages and toasts are written here, after the primary
write has already succeeded; a failing handler is logged and never undoes
that write.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Deque, Dict, List, Optional, Protocol, Type

from overtime_tool.log import get_logger
from overtime_tool.store import LOGS, MESSAGES, STAFF

logger = get_logger(__name__)

SYSTEM_ACTOR = "system"


@dataclass(frozen=True)
class DomainEvent:
    staff_id: str
    date: Optional[date]
    actor_id: str
    at: datetime

    action = "Event"
    toast = ""
    toast_level = "success"
    # Logged against the staff member rather than the system actor.
    log_as_staff = False

    def details(self) -> str:
        return f"ID: {self.staff_id}_{self.date.isoformat()}" if self.date else ""


@dataclass(frozen=True)
class EntrySubmitted(DomainEvent):
    hours: int = 0

    action = "Entry Submitted (bulk)"
    log_as_staff = True

    def details(self) -> str:
        return f"{self.hours} hrs for {self.date.isoformat()}"


@dataclass(frozen=True)
class EntryApproved(DomainEvent):
    action = "Entry Approved"
    toast = "Entry approved"


@dataclass(frozen=True)
class EntryRejected(DomainEvent):
    action = "Entry Rejected"
    toast = "Entry rejected"


@dataclass(frozen=True)
class EntryDisapproved(DomainEvent):
    action = "Entry Disapproved"
    log_as_staff = True
    toast = "Overtime disapproved"
    toast_level = "warning"

    def details(self) -> str:
        return f"Date: {self.date.isoformat()}"

    def message(self) -> str:
        return (
            f"Your overtime for {self.date.isoformat()} was disapproved by admin. "
            "You may resubmit using the entry form."
        )


@dataclass(frozen=True)
class EntryEdited(DomainEvent):
    hours: int = 0

    action = "Entry Updated"
    toast = "Entry saved"


@dataclass(frozen=True)
class EntryDeleted(DomainEvent):
    action = "Entry Deleted"
    toast = "Entry deleted"


@dataclass(frozen=True)
class DraftSaved(DomainEvent):
    hours: int = 0
    valid_for_submit: bool = True

    action = "Entry Saved"
    log_as_staff = True

    def details(self) -> str:
        return f"{self.hours} hrs for {self.date.isoformat()}"


@dataclass(frozen=True)
class DraftRemoved(DomainEvent):
    action = "Saved Entry Removed"
    log_as_staff = True

    def details(self) -> str:
        return f"Date: {self.date.isoformat()}"


@dataclass(frozen=True)
class HolidayToggled(DomainEvent):
    declared: bool = True

    @property
    def action(self) -> str:
        return "Holiday Declared" if self.declared else "Holiday Removed"

    @property
    def toast(self) -> str:
        return "Holiday declared" if self.declared else "Holiday removed"

    def details(self) -> str:
        return self.date.isoformat()


@dataclass(frozen=True)
class SettingsChanged(DomainEvent):
    setting: str = ""

    @property
    def action(self) -> str:
        return f"{self.setting} Updated"

    @property
    def toast(self) -> str:
        return f"{self.setting} saved"

    def details(self) -> str:
        return ""


Handler = Callable[[DomainEvent], None]


class Notifier(Protocol):
    def show_toast(self, message: str, level: str) -> None:
        ...


class EventDispatcher:
    """Routes events to handlers; handler failures are swallowed and logged."""

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[Handler]] = {}
        self.history: Deque[DomainEvent] = deque(maxlen=500)

    def register(self, event_type: Type[DomainEvent], handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def dispatch(self, event: DomainEvent) -> None:
        self.history.append(event)
        for event_type, handlers in self._handlers.items():
            if not isinstance(event, event_type):
                continue
            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.warning(
                        "side_effect_failed",
                        event=type(event).__name__,
                        handler=getattr(handler, "__name__", repr(handler)),
                        error=str(e),
                    )


def audit_log_handler(store) -> Handler:
    """Append ``{staffId, action, details, timestamp}`` to the log collection."""

    def write_log(event: DomainEvent) -> None:
        store.add(LOGS, {
            "staffId": event.staff_id if event.log_as_staff else SYSTEM_ACTOR,
            "action": event.action,
            "details": event.details(),
            "actorId": event.actor_id,
            "timestamp": event.at.isoformat(),
        })

    return write_log


def disapproval_message_handler(store) -> Handler:
    """Tell the staff member their entry was disapproved and may be resubmitted."""

    def write_message(event: DomainEvent) -> None:
        if not isinstance(event, EntryDisapproved):
            return
        staff_doc = store.get(STAFF, event.staff_id) or {}
        store.add(MESSAGES, {
            "staffId": event.staff_id,
            "staffName": staff_doc.get("name") or event.staff_id,
            "message": event.message(),
            "submittedAt": event.at.isoformat(),
            "autoGenerated": True,
        })

    return write_message


def toast_handler(notifier: Notifier) -> Handler:
    def show(event: DomainEvent) -> None:
        if event.toast:
            notifier.show_toast(event.toast, event.toast_level)

    return show


def build_dispatcher(store, notifier: Optional[Notifier] = None) -> EventDispatcher:
    dispatcher = EventDispatcher()
    dispatcher.register(DomainEvent, audit_log_handler(store))
    dispatcher.register(EntryDisapproved, disapproval_message_handler(store))
    if notifier is not None:
        dispatcher.register(DomainEvent, toast_handler(notifier))
    return dispatcher
