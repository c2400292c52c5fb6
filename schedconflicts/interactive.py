"""
Interactive settings menu.

Numbered prompts (rich console) to pick the people table with its name and
link fields, then the appointments table with its start/end fields and the
view to check. Only fields of a supported type are offered.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional, Sequence

from rich.console import Console

from schedconflicts.config import (
    DATE_FIELD_TYPES,
    LINK_FIELD_TYPES,
    NAME_FIELD_TYPES,
    FieldMapping,
    with_appointments_table,
    with_people_table,
)
from schedconflicts.errors import ConfigError
from schedconflicts.records import Snapshot, Table

console = Console()

PromptFn = Callable[[str], str]
PrintFn = Callable[[str], None]


def _println(msg: str = "") -> None:
    console.print(msg)


def _prompt(msg: str) -> str:
    return console.input(msg)


def _choose(
    title: str,
    options: Sequence[tuple[str, str]],
    current: str,
    prompt_fn: PromptFn,
    print_fn: PrintFn,
    allow_none: bool = False,
) -> Optional[str]:
    """
    Numbered menu over (id, label) options.

    Enter keeps the current value. Returns the chosen id, "" for [0] when
    allow_none, or None when there is nothing to choose from.
    """
    if not options:
        print_fn(f"{title}: nothing to choose from.")
        return None

    while True:
        print_fn(f"\n{title}")
        if allow_none:
            print_fn("[0] (none)")
        for i, (oid, label) in enumerate(options, start=1):
            marker = " *" if oid == current else ""
            print_fn(f"[{i}] {label}{marker}")

        pick = prompt_fn("Select (Enter = keep): ").strip()
        if pick == "":
            return current
        if allow_none and pick == "0":
            return ""
        if not pick.isdigit():
            print_fn("Not a number.")
            continue
        idx = int(pick)
        if not (1 <= idx <= len(options)):
            print_fn("Out of range.")
            continue
        return options[idx - 1][0]


def _table_options(snapshot: Snapshot) -> list[tuple[str, str]]:
    return [(t.table_id, t.name) for t in snapshot.tables]


def _field_options(table: Table, allowed: frozenset[str]) -> list[tuple[str, str]]:
    return [(f.field_id, f"{f.name} ({f.type})") for f in table.fields if f.type in allowed]


def run_settings(
    snapshot: Snapshot,
    mapping: FieldMapping,
    prompt_fn: PromptFn = _prompt,
    print_fn: PrintFn = _println,
) -> FieldMapping:
    """
    Walk through table, field and view selection and return the new mapping.
    Nothing is saved here; the caller decides.
    """
    print_fn("=== Schedule conflicts settings ===")

    # People table + fields
    while True:
        picked = _choose(
            "Which table holds the people/items being scheduled?",
            _table_options(snapshot),
            mapping.people_table_id,
            prompt_fn,
            print_fn,
        )
        if picked is None:
            return mapping
        try:
            mapping = with_people_table(mapping, picked)
            break
        except ConfigError as exc:
            print_fn(f"Oops! {exc}")

    people = snapshot.find_table(mapping.people_table_id)
    if people is not None:
        name_id = _choose(
            f"{people.name}: name field",
            _field_options(people, NAME_FIELD_TYPES),
            mapping.people_name_field_id,
            prompt_fn,
            print_fn,
        )
        link_id = _choose(
            f"{people.name}: appointments linked field",
            _field_options(people, LINK_FIELD_TYPES),
            mapping.people_appointments_link_field_id,
            prompt_fn,
            print_fn,
        )
        mapping = replace(
            mapping,
            people_name_field_id=name_id or "",
            people_appointments_link_field_id=link_id or "",
        )

    # Appointments table + fields + view
    while True:
        picked = _choose(
            "Which table holds the events/bookings?",
            _table_options(snapshot),
            mapping.appointments_table_id,
            prompt_fn,
            print_fn,
        )
        if picked is None:
            return mapping
        try:
            mapping = with_appointments_table(mapping, picked)
            break
        except ConfigError as exc:
            print_fn(f"Oops! {exc}")

    appts = snapshot.find_table(mapping.appointments_table_id)
    if appts is not None:
        start_id = _choose(
            f"{appts.name}: start field",
            _field_options(appts, DATE_FIELD_TYPES),
            mapping.appointments_start_field_id,
            prompt_fn,
            print_fn,
        )
        end_id = _choose(
            f"{appts.name}: end field",
            _field_options(appts, DATE_FIELD_TYPES),
            mapping.appointments_end_field_id,
            prompt_fn,
            print_fn,
        )
        view_id = _choose(
            f"Select {appts.name} view to check for conflicts",
            [(v.view_id, v.name) for v in appts.views],
            mapping.view_id,
            prompt_fn,
            print_fn,
            allow_none=True,
        )
        mapping = replace(
            mapping,
            appointments_start_field_id=start_id or "",
            appointments_end_field_id=end_id or "",
            view_id=view_id or "",
        )

    if mapping.is_complete():
        print_fn("Settings complete.")
    else:
        print_fn(f"Still missing: {', '.join(mapping.missing_keys())}")
    return mapping
