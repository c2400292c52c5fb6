"""
CLI (Command Line Interface).

    schedconflicts conflicts [--snapshot PATH] [--view VIEW] [--plain] [--pairs] [--columns A,B]
    schedconflicts configure --people-table ... --start-field ...
    schedconflicts settings
    schedconflicts show-config
    schedconflicts fetch <url>

Every command handler returns an exit code; main() raises it as SystemExit.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import asdict, replace
from pathlib import Path

import requests
from rich.console import Console

from schedconflicts.config import (
    FieldMapping,
    load_field_mapping,
    save_field_mapping,
    update_field_mapping,
    validate_field_mapping,
)
from schedconflicts.conflicts import detect_conflicts, find_conflicting_pairs, person_appointments
from schedconflicts.errors import ScheduleConflictsError
from schedconflicts.fetch import default_snapshot_path, fetch_snapshot
from schedconflicts.records import Snapshot, build_appointments, build_people, load_snapshot
from schedconflicts.render import appointment_line, print_report, render_plain

logger = logging.getLogger(__name__)


def _snapshot_path(args: argparse.Namespace) -> Path:
    raw = (getattr(args, "snapshot", None) or "").strip()
    return Path(raw) if raw else default_snapshot_path()


def _load(args: argparse.Namespace) -> tuple[FieldMapping, Snapshot]:
    mapping = load_field_mapping(args.config)
    snapshot = load_snapshot(_snapshot_path(args))
    return mapping, snapshot


def _cmd_conflicts(args: argparse.Namespace) -> int:
    """
    Run the detector on the configured view and print the report.
    """
    try:
        mapping, snapshot = _load(args)
        if args.view:
            mapping = replace(mapping, view_id=args.view.strip())
        people = build_people(snapshot, mapping)
        appointments = build_appointments(snapshot, mapping)
    except ScheduleConflictsError as exc:
        print(f"Error: {exc}")
        return 1

    groups = detect_conflicts(people, appointments)
    logger.debug("%d people, %d appointments, %d conflict groups", len(people), len(appointments), len(groups))

    if args.plain:
        print(render_plain(groups))
    else:
        columns = [c.strip() for c in (args.columns or "").split(",") if c.strip()]
        print_report(groups, console=Console(), extra_columns=columns)

    if args.pairs and groups:
        print("\nConflicting pairs:")
        for person in people:
            pairs = find_conflicting_pairs(person_appointments(person, appointments))
            for a, b in pairs:
                name = person.display_name or "(unnamed)"
                print(f"- {name}: {appointment_line(a)}  <->  {appointment_line(b)}")

    return 0


def _cmd_configure(args: argparse.Namespace) -> int:
    """
    Update individual mapping keys from flags and save the result.
    With --snapshot, table/field/view names are stored as ids.
    """
    mapping = load_field_mapping(args.config)
    try:
        snapshot = load_snapshot(_snapshot_path(args)) if args.snapshot else None
        mapping = update_field_mapping(
            mapping,
            snapshot=snapshot,
            people_table_id=args.people_table,
            people_name_field_id=args.name_field,
            people_appointments_link_field_id=args.link_field,
            appointments_table_id=args.appointments_table,
            appointments_start_field_id=args.start_field,
            appointments_end_field_id=args.end_field,
            view_id=args.view,
        )
    except ScheduleConflictsError as exc:
        print(f"Error: {exc}")
        return 1

    save_field_mapping(mapping, args.config)
    if mapping.is_complete():
        print("Config saved (complete).")
    else:
        print(f"Config saved. Still missing: {', '.join(mapping.missing_keys())}")
    return 0


def _cmd_settings(args: argparse.Namespace) -> int:
    """
    Interactive settings menu.
    """
    from schedconflicts.interactive import run_settings

    try:
        mapping, snapshot = _load(args)
    except ScheduleConflictsError as exc:
        print(f"Error: {exc}")
        return 1

    mapping = run_settings(snapshot, mapping)
    save_field_mapping(mapping, args.config)
    return 0


def _cmd_show_config(args: argparse.Namespace) -> int:
    """
    Print the current mapping; with --snapshot also check it.
    """
    mapping = load_field_mapping(args.config)
    for key, value in asdict(mapping).items():
        print(f"{key}: {value or '-'}")

    if not args.snapshot:
        return 0

    try:
        snapshot = load_snapshot(_snapshot_path(args))
    except ScheduleConflictsError as exc:
        print(f"Error: {exc}")
        return 1

    problems = validate_field_mapping(mapping, snapshot)
    if not problems:
        print("Config OK.")
        return 0
    print("Problems:")
    for p in problems:
        print(f"- {p}")
    return 1


def _cmd_fetch(args: argparse.Namespace) -> int:
    """
    Download a snapshot into the local cache (or --out).
    """
    url = (args.url or "").strip()
    if not url:
        print("Please provide a snapshot URL.")
        return 1
    try:
        out = fetch_snapshot(url, out_path=args.out, token=args.token)
    except (requests.RequestException, ScheduleConflictsError) as exc:
        print(f"Error: {exc}")
        return 1
    print(f"Snapshot saved to: {out}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="schedconflicts", description="Find double-booked people")
    parser.add_argument("--config", type=str, default=None, help="Config file (default: package data/config.json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_conf = sub.add_parser("conflicts", help="Show scheduling conflicts")
    p_conf.add_argument("--snapshot", type=str, default=None, help="Snapshot JSON (default: cached snapshot)")
    p_conf.add_argument("--view", type=str, default=None, help="Appointments view id or name (overrides config)")
    p_conf.add_argument("--plain", action="store_true", help="Plain text output")
    p_conf.add_argument("--pairs", action="store_true", help="Also list each conflicting pair")
    p_conf.add_argument("--columns", type=str, default="", help="Comma-separated record cells to show (e.g. Title)")

    p_cfg = sub.add_parser("configure", help="Set tables/fields/view")
    p_cfg.add_argument("--people-table", type=str, default=None)
    p_cfg.add_argument("--name-field", type=str, default=None)
    p_cfg.add_argument("--link-field", type=str, default=None)
    p_cfg.add_argument("--appointments-table", type=str, default=None)
    p_cfg.add_argument("--start-field", type=str, default=None)
    p_cfg.add_argument("--end-field", type=str, default=None)
    p_cfg.add_argument("--view", type=str, default=None)
    p_cfg.add_argument("--snapshot", type=str, default=None, help="Snapshot JSON used to turn names into ids")

    p_set = sub.add_parser("settings", help="Interactive settings menu")
    p_set.add_argument("--snapshot", type=str, default=None, help="Snapshot JSON (default: cached snapshot)")

    p_show = sub.add_parser("show-config", help="Print config (and check it against a snapshot)")
    p_show.add_argument("--snapshot", type=str, default=None, help="Snapshot JSON to validate against")

    p_fetch = sub.add_parser("fetch", help="Download a snapshot")
    p_fetch.add_argument("url", type=str, help="Snapshot URL")
    p_fetch.add_argument("--out", type=str, default=None, help="Output path")
    p_fetch.add_argument("--token", type=str, default=None, help="Bearer token")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "conflicts":
        raise SystemExit(_cmd_conflicts(args))
    if args.command == "configure":
        raise SystemExit(_cmd_configure(args))
    if args.command == "settings":
        raise SystemExit(_cmd_settings(args))
    if args.command == "show-config":
        raise SystemExit(_cmd_show_config(args))
    if args.command == "fetch":
        raise SystemExit(_cmd_fetch(args))

    raise SystemExit(2)
