"""CLI entry point.

Usage:
    python -m overtime_tool earnings STAFF_ID
    python -m overtime_tool series 2025 11 --staff STAFF_ID
    python -m overtime_tool master-sheet 2025 11 --out "Master_Sheet.json"
    python -m overtime_tool approve STAFF_ID 2025-11-29 --actor admin
    python -m overtime_tool edit-hours STAFF_ID 2025-11-29 0 --actor admin
    python -m overtime_tool toggle-holiday 2025-12-25
    python -m overtime_tool check 2025-11-29 --lat 24.71 --lng 46.67
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from overtime_tool.config import get_settings
from overtime_tool.log import configure_logging
from overtime_tool.models import ActionResult, GeoPoint, StoreError

app = typer.Typer(help="Overtime tracking: approvals, earnings and master sheet export.")

DATE_FORMATS = ["%Y-%m-%d"]


def _service(data: Optional[str]):
    from overtime_tool.service import OvertimeService

    settings = get_settings()
    configure_logging(settings.log_level)
    if data:
        settings = settings.model_copy(update={"data_path": Path(data)})
    try:
        return OvertimeService.from_settings(settings)
    except StoreError as e:
        typer.echo(f"FATAL ERROR: {e}", err=True)
        raise typer.Exit(1)


def _report(result: ActionResult, success: str) -> None:
    if not result.ok:
        typer.echo(f"ERROR: {result.reason}", err=True)
        raise typer.Exit(1)
    typer.echo(success)
    for note in result.notes:
        typer.echo(f"  NOTE: {note}")


DataOption = typer.Option(None, "--data", help="Path to the JSON data file (defaults to OVERTIME_DATA_PATH)")
ActorOption = typer.Option("admin", "--actor", help="Id of the admin performing the action")


@app.command()
def earnings(
    staff_id: str = typer.Argument(..., help="Staff id"),
    data: Optional[str] = DataOption,
) -> None:
    """Show approved earnings for one staff member, by rate bucket."""
    service = _service(data)
    if staff_id not in service.state.staff_ids:
        typer.echo(f"ERROR: Unknown staff id: {staff_id}", err=True)
        raise typer.Exit(1)
    breakdown = service.earnings(staff_id)
    typer.echo(f"Staff: {staff_id}")
    typer.echo(f"  Weekday:        {breakdown.weekday}")
    typer.echo(f"  Saturday:       {breakdown.saturday}")
    typer.echo(f"  Sunday/Holiday: {breakdown.sunday_holiday}")
    typer.echo(f"  TOTAL:          {breakdown.total}")


@app.command()
def series(
    year: int = typer.Argument(...),
    month: int = typer.Argument(..., min=1, max=12),
    staff: Optional[str] = typer.Option(None, "--staff", help="Limit to one staff member"),
    data: Optional[str] = DataOption,
) -> None:
    """Print per-day approved earnings for a month."""
    service = _service(data)
    for day, amount in enumerate(service.series(year, month, staff_id=staff), start=1):
        typer.echo(f"{year:04d}-{month:02d}-{day:02d}  {amount}")


@app.command("master-sheet")
def master_sheet(
    year: int = typer.Argument(...),
    month: int = typer.Argument(..., min=1, max=12),
    out: str = typer.Option("Master_Sheet.json", "--out", help="Output JSON file path"),
    data: Optional[str] = DataOption,
) -> None:
    """Export the month's master sheet as JSON."""
    from overtime_tool.audit import generate_master_sheet

    service = _service(data)
    sheet = service.master_sheet(year, month)
    for row in sheet.rows:
        typer.echo(f"  {row.number}. {row.staff.name} ({row.staff.id}): {row.total_hours}h = {row.total}")
    typer.echo(f"\n  GRAND TOTAL: {sheet.grand_total}")
    try:
        path = generate_master_sheet(sheet, service.snapshot, out)
    except OSError as e:
        typer.echo(f"FATAL ERROR: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"  Master sheet saved to: {path}")


@app.command()
def approve(
    staff_id: str,
    day: datetime = typer.Argument(..., formats=DATE_FORMATS),
    actor: str = ActorOption,
    data: Optional[str] = DataOption,
) -> None:
    """Approve a pending entry."""
    _report(_service(data).approve(staff_id, day.date(), actor), "Entry approved")


@app.command()
def reject(
    staff_id: str,
    day: datetime = typer.Argument(..., formats=DATE_FORMATS),
    actor: str = ActorOption,
    data: Optional[str] = DataOption,
) -> None:
    """Reject a pending entry."""
    _report(_service(data).reject(staff_id, day.date(), actor), "Entry rejected")


@app.command()
def disapprove(
    staff_id: str,
    day: datetime = typer.Argument(..., formats=DATE_FORMATS),
    actor: str = ActorOption,
    data: Optional[str] = DataOption,
) -> None:
    """Disapprove an entry, clearing its hours; the staff member may resubmit."""
    _report(_service(data).disapprove(staff_id, day.date(), actor), "Entry disapproved")


@app.command("edit-hours")
def edit_hours(
    staff_id: str,
    day: datetime = typer.Argument(..., formats=DATE_FORMATS),
    hours: int = typer.Argument(..., min=0, help="New hours; 0 disapproves the entry"),
    actor: str = ActorOption,
    data: Optional[str] = DataOption,
) -> None:
    """Set an entry's hours directly."""
    message = "Entry disapproved" if hours == 0 else "Entry saved"
    _report(_service(data).edit_hours(staff_id, day.date(), hours, actor), message)


@app.command("delete-entry")
def delete_entry(
    staff_id: str,
    day: datetime = typer.Argument(..., formats=DATE_FORMATS),
    actor: str = ActorOption,
    data: Optional[str] = DataOption,
) -> None:
    """Delete a non-approved entry."""
    _report(_service(data).delete_entry(staff_id, day.date(), actor), "Entry deleted")


@app.command("toggle-holiday")
def toggle_holiday(
    day: datetime = typer.Argument(..., formats=DATE_FORMATS),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    actor: str = ActorOption,
    data: Optional[str] = DataOption,
) -> None:
    """Declare or cancel a public holiday."""
    service = _service(data)
    confirm = (lambda prompt: True) if yes else typer.confirm
    holiday = day.date() in service.snapshot.holidays
    message = "Holiday removed" if holiday else "Holiday declared"
    _report(service.admin.toggle_holiday(day.date(), actor, confirm), message)


@app.command()
def check(
    day: datetime = typer.Argument(..., formats=DATE_FORMATS),
    lat: Optional[float] = typer.Option(None, "--lat", help="Current latitude"),
    lng: Optional[float] = typer.Option(None, "--lng", help="Current longitude"),
    data: Optional[str] = DataOption,
) -> None:
    """Check whether an entry for DAY could be submitted now."""
    if (lat is None) != (lng is None):
        typer.echo("ERROR: --lat and --lng must be given together", err=True)
        raise typer.Exit(1)
    position = GeoPoint(lat=lat, lng=lng) if lat is not None else None
    result = _service(data).check(day.date(), position)
    if not result.allowed:
        typer.echo(f"DENIED: {result.reason}")
        raise typer.Exit(1)
    typer.echo("ALLOWED")


if __name__ == "__main__":
    app()
