"""Rate table: converts an entry's quantity into money by day type."""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from overtime_tool.models import DayType, RateConfig, RateMode

CENT = Decimal("0.01")


def rate_for(day_type: DayType, rates: RateConfig) -> Decimal:
    if day_type is DayType.WEEKDAY:
        return rates.weekday
    if day_type is DayType.SATURDAY:
        return rates.saturday
    # Holidays are paid at the Sunday rate; there is no separate holiday rate.
    return rates.sunday


def quantity_for(hours: Optional[int], rates: RateConfig) -> Decimal:
    """Billable units: hours in hourly mode, 1 per worked day in daily mode."""
    hours = hours or 0
    if rates.mode is RateMode.DAILY:
        return Decimal("1") if hours > 0 else Decimal("0")
    return Decimal(hours)


def amount_for(hours: Optional[int], day_type: DayType, rates: RateConfig) -> Decimal:
    return (quantity_for(hours, rates) * rate_for(day_type, rates)).quantize(CENT, ROUND_HALF_UP)
