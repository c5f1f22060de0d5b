"""Earnings engine.

All money is computed here, with Decimal precision, from approved entries
only. Dashboard totals, the monthly chart series and the master sheet share
``_approved`` and ``amount_for`` so they can never disagree. Entries whose
staff id is not in the current staff list are ignored everywhere.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Collection, Dict, Iterable, Iterator, List, Optional

from overtime_tool.engine.day_classifier import classify_day, day_label, days_in_month
from overtime_tool.engine.rates import amount_for
from overtime_tool.models import DayType, EntryStatus, OvertimeEntry, StaffMember
from overtime_tool.snapshot import ConfigSnapshot

ZERO = Decimal("0")


def _approved(
    entries: Iterable[OvertimeEntry],
    staff_ids: Optional[Collection[str]] = None,
) -> Iterator[OvertimeEntry]:
    for entry in entries:
        if entry.status is not EntryStatus.APPROVED:
            continue
        if staff_ids is not None and entry.staff_id not in staff_ids:
            continue
        yield entry


@dataclass
class EarningsBreakdown:
    """Earnings split by rate bucket. Holidays fall in the Sunday bucket."""
    weekday: Decimal = ZERO
    saturday: Decimal = ZERO
    sunday_holiday: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.weekday + self.saturday + self.sunday_holiday

    def add(self, day_type: DayType, amount: Decimal) -> None:
        if day_type is DayType.WEEKDAY:
            self.weekday += amount
        elif day_type is DayType.SATURDAY:
            self.saturday += amount
        else:
            self.sunday_holiday += amount


def earnings_breakdown(
    staff_id: str,
    entries: Iterable[OvertimeEntry],
    snapshot: ConfigSnapshot,
    staff_ids: Optional[Collection[str]] = None,
) -> EarningsBreakdown:
    breakdown = EarningsBreakdown()
    if staff_ids is not None and staff_id not in staff_ids:
        return breakdown
    for entry in _approved(entries):
        if entry.staff_id != staff_id:
            continue
        day_type = classify_day(entry.date, snapshot.holidays)
        breakdown.add(day_type, amount_for(entry.hours, day_type, snapshot.rates))
    return breakdown


def total_earnings(
    staff_id: str,
    entries: Iterable[OvertimeEntry],
    snapshot: ConfigSnapshot,
    staff_ids: Optional[Collection[str]] = None,
) -> Decimal:
    return earnings_breakdown(staff_id, entries, snapshot, staff_ids).total


def monthly_series(
    entries: Iterable[OvertimeEntry],
    year: int,
    month: int,
    snapshot: ConfigSnapshot,
    staff_ids: Optional[Collection[str]] = None,
    staff_id: Optional[str] = None,
) -> List[Decimal]:
    """Per-day earnings for one month; index 0 is the 1st.

    ``staff_id=None`` aggregates every current staff member.
    """
    series = [ZERO] * days_in_month(year, month)
    for entry in _approved(entries, staff_ids):
        if staff_id is not None and entry.staff_id != staff_id:
            continue
        if entry.date.year != year or entry.date.month != month:
            continue
        day_type = classify_day(entry.date, snapshot.holidays)
        series[entry.date.day - 1] += amount_for(entry.hours, day_type, snapshot.rates)
    return series


@dataclass(frozen=True)
class DayColumn:
    day: int
    date: date
    day_type: DayType
    label: str


@dataclass(frozen=True)
class MasterCell:
    """Approved hours for one staff and day, with the day type for formatting."""
    date: date
    day_type: DayType
    hours: Optional[int] = None
    amount: Decimal = ZERO

    @property
    def is_blank(self) -> bool:
        return self.hours is None


@dataclass
class MasterSheetRow:
    number: int
    staff: StaffMember
    cells: List[MasterCell] = field(default_factory=list)
    earnings: EarningsBreakdown = field(default_factory=EarningsBreakdown)

    @property
    def total_hours(self) -> int:
        return sum(c.hours or 0 for c in self.cells)

    @property
    def total(self) -> Decimal:
        return self.earnings.total


@dataclass
class MasterSheet:
    """Staff x day matrix of approved hours with per-staff earnings."""
    year: int
    month: int
    columns: List[DayColumn]
    rows: List[MasterSheetRow]

    @property
    def grand_total(self) -> Decimal:
        return sum((r.total for r in self.rows), ZERO)

    @property
    def day_totals(self) -> List[Decimal]:
        totals = [ZERO] * len(self.columns)
        for row in self.rows:
            for i, cell in enumerate(row.cells):
                totals[i] += cell.amount
        return totals


def month_columns(year: int, month: int, snapshot: ConfigSnapshot) -> List[DayColumn]:
    columns = []
    for day in range(1, days_in_month(year, month) + 1):
        dt = date(year, month, day)
        columns.append(DayColumn(
            day=day,
            date=dt,
            day_type=classify_day(dt, snapshot.holidays),
            label=day_label(dt),
        ))
    return columns


def master_sheet(
    staff: List[StaffMember],
    entries: Iterable[OvertimeEntry],
    year: int,
    month: int,
    snapshot: ConfigSnapshot,
) -> MasterSheet:
    """Build the fully computed month sheet.

    Cells and subtotals are filled from the same classified amounts, one
    entry at a time, so the grid and its totals always agree.
    """
    columns = month_columns(year, month, snapshot)
    staff_ids = {s.id for s in staff}

    by_staff: Dict[str, Dict[date, OvertimeEntry]] = defaultdict(dict)
    for entry in _approved(entries, staff_ids):
        if entry.date.year == year and entry.date.month == month:
            by_staff[entry.staff_id][entry.date] = entry

    rows = []
    for number, member in enumerate(staff, start=1):
        row = MasterSheetRow(number=number, staff=member)
        approved = by_staff.get(member.id, {})
        for column in columns:
            entry = approved.get(column.date)
            if entry is None:
                row.cells.append(MasterCell(date=column.date, day_type=column.day_type))
                continue
            amount = amount_for(entry.hours, column.day_type, snapshot.rates)
            row.cells.append(MasterCell(
                date=column.date,
                day_type=column.day_type,
                hours=entry.hours,
                amount=amount,
            ))
            row.earnings.add(column.day_type, amount)
        rows.append(row)

    return MasterSheet(year=year, month=month, columns=columns, rows=rows)
