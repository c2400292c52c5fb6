"""
Conflict report rendering.

Two outputs for the same list of ConflictGroup objects:
- plain text (for pipes, logs and tests)
- rich tables (default in the terminal)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from schedconflicts.model import Appointment, ConflictGroup

NO_CONFLICTS_TEXT = "No scheduling conflicts found 🎉"
UNNAMED = "(unnamed)"


def _fmt_ts(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M")
    return "" if value is None else str(value)


def person_label(group: ConflictGroup) -> str:
    name = (group.person or "").strip()
    return name if name else UNNAMED


def _sorted_appointments(appts: Iterable[Appointment]) -> list[Appointment]:
    # display order only; unorderable bounds keep their original position
    appts = list(appts)
    try:
        return sorted(appts, key=lambda a: a.start)
    except TypeError:
        return appts


def appointment_line(appt: Appointment) -> str:
    return f"{appt.appointment_id}  {_fmt_ts(appt.start)} – {_fmt_ts(appt.end)}"


def render_plain(groups: list[ConflictGroup]) -> str:
    """
    Render the report as plain text.
    """
    if not groups:
        return NO_CONFLICTS_TEXT

    lines: list[str] = [f"Conflicts found for {len(groups)} people:"]
    for group in groups:
        lines.append("")
        lines.append(f"== {person_label(group)} ({len(group.conflicting_appointments)}) ==")
        for appt in _sorted_appointments(group.conflicting_appointments):
            lines.append(f"- {appointment_line(appt)}")
    return "\n".join(lines)


def print_report(
    groups: list[ConflictGroup],
    console: Optional[Console] = None,
    extra_columns: Optional[list[str]] = None,
) -> None:
    """
    Print one rich table per person. extra_columns names raw record cells
    to show next to start/end.
    """
    console = console or Console()
    if not groups:
        console.print(f"[bold]{NO_CONFLICTS_TEXT}[/]")
        return

    extra_columns = extra_columns or []
    for group in groups:
        table = Table(box=box.ROUNDED, title=f"[bold red]{person_label(group)}[/]", title_justify="left")
        table.add_column("Appointment")
        table.add_column("Start")
        table.add_column("End")
        for col in extra_columns:
            table.add_column(col)

        for appt in _sorted_appointments(group.conflicting_appointments):
            row = [appt.appointment_id, _fmt_ts(appt.start), _fmt_ts(appt.end)]
            row.extend(_fmt_ts(appt.fields.get(col)) for col in extra_columns)
            table.add_row(*row)

        console.print(table)
