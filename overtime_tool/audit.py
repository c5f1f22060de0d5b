"""Master sheet export.

Hands the fully computed month sheet to renderers as plain JSON data. Every
cell carries its day type so a renderer can color weekends and holidays
without re-deriving any business rule.
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from overtime_tool.engine.earnings import MasterSheet
from overtime_tool.snapshot import ConfigSnapshot


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal values."""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


def generate_master_sheet_dict(sheet: MasterSheet, snapshot: ConfigSnapshot) -> dict:
    """Build the export dictionary from a computed master sheet (no file I/O)."""
    rows = []
    for row in sheet.rows:
        rows.append({
            "number": row.number,
            "staff_id": row.staff.id,
            "name": row.staff.name,
            "role": row.staff.role,
            "cells": [
                {
                    "date": cell.date.isoformat(),
                    "day_type": cell.day_type.value,
                    "hours": cell.hours,
                    "amount": float(cell.amount),
                }
                for cell in row.cells
            ],
            "total_hours": row.total_hours,
            "earnings": {
                "weekday": float(row.earnings.weekday),
                "saturday": float(row.earnings.saturday),
                "sunday_holiday": float(row.earnings.sunday_holiday),
                "total": float(row.total),
            },
        })

    return {
        "year": sheet.year,
        "month": sheet.month,
        "rates_used": {
            "mode": snapshot.rates.mode.value,
            "weekday": float(snapshot.rates.weekday),
            "saturday": float(snapshot.rates.saturday),
            "sunday_holiday": float(snapshot.rates.sunday),
        },
        "holidays": sorted(
            d.isoformat() for d in snapshot.holidays
            if d.year == sheet.year and d.month == sheet.month
        ),
        "columns": [
            {
                "day": column.day,
                "date": column.date.isoformat(),
                "day_type": column.day_type.value,
                "label": column.label,
            }
            for column in sheet.columns
        ],
        "rows": rows,
        "summary": {
            "total_staff": len(sheet.rows),
            "total_hours": sum(r.total_hours for r in sheet.rows),
            "day_totals": [float(t) for t in sheet.day_totals],
            "grand_total": float(sheet.grand_total),
        },
    }


def generate_master_sheet(sheet: MasterSheet, snapshot: ConfigSnapshot, output_path: str | Path) -> Path:
    """Write the master sheet export JSON file."""
    output_path = Path(output_path)
    export = generate_master_sheet_dict(sheet, snapshot)
    output_path.write_text(json.dumps(export, indent=2, cls=DecimalEncoder), encoding='utf-8')
    return output_path
