"""
Record source (snapshot JSON -> Person / Appointment objects).

- Reads a base snapshot exported to JSON (tables with fields, views, records)
- Resolves cell values through the FieldMapping
- Builds:
  - the people list (every record of the people table)
  - the appointment batch (records of the chosen view, in view order)

Snapshot layout:

    {"tables": [{"id": ..., "name": ...,
                 "fields":  [{"id": ..., "name": ..., "type": ...}],
                 "views":   [{"id": ..., "name": ..., "recordIds": [...]}],
                 "records": [{"id": ..., "fields": {<field id or name>: value}}]}]}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from schedconflicts.config import FieldMapping
from schedconflicts.errors import ConfigError, SnapshotError
from schedconflicts.model import Appointment, Person

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Snapshot structure
# ---------------------------------------------------------------------------


@dataclass
class Field:
    field_id: str
    name: str
    type: str


@dataclass
class View:
    view_id: str
    name: str
    record_ids: List[str]


@dataclass
class Record:
    record_id: str
    cells: Dict[str, Any]


@dataclass
class Table:
    table_id: str
    name: str
    fields: List[Field] = field(default_factory=list)
    views: List[View] = field(default_factory=list)
    records: List[Record] = field(default_factory=list)

    def find_field(self, key: str) -> Optional[Field]:
        """Look a field up by id, then by name."""
        for f in self.fields:
            if f.field_id == key:
                return f
        for f in self.fields:
            if f.name == key:
                return f
        return None

    def find_view(self, key: str) -> Optional[View]:
        for v in self.views:
            if v.view_id == key:
                return v
        for v in self.views:
            if v.name == key:
                return v
        return None

    def cell(self, record: Record, fld: Field) -> Any:
        """
        Cell value of record for fld. Cells may be keyed by field id or name.
        """
        if fld.field_id in record.cells:
            return record.cells[fld.field_id]
        return record.cells.get(fld.name)


@dataclass
class Snapshot:
    tables: List[Table]

    def find_table(self, key: str) -> Optional[Table]:
        """Look a table up by id, then by name."""
        for t in self.tables:
            if t.table_id == key:
                return t
        for t in self.tables:
            if t.name == key:
                return t
        return None


def _str(x: Any) -> str:
    return "" if x is None else str(x).strip()


def _parse_table(raw: Any) -> Table:
    if not isinstance(raw, dict):
        raise SnapshotError("Every table must be a JSON object")

    table_id = _str(raw.get("id"))
    if not table_id:
        raise SnapshotError("Table without id")

    fields_out: list[Field] = []
    for f in raw.get("fields") or []:
        if isinstance(f, dict) and _str(f.get("id")):
            fields_out.append(Field(field_id=_str(f.get("id")), name=_str(f.get("name")), type=_str(f.get("type"))))

    views_out: list[View] = []
    for v in raw.get("views") or []:
        if isinstance(v, dict) and _str(v.get("id")):
            ids = [_str(x) for x in v.get("recordIds") or [] if _str(x)]
            views_out.append(View(view_id=_str(v.get("id")), name=_str(v.get("name")), record_ids=ids))

    records_out: list[Record] = []
    for r in raw.get("records") or []:
        if not isinstance(r, dict) or not _str(r.get("id")):
            logger.debug("Skipping record without id in table %s", table_id)
            continue
        cells = r.get("fields")
        records_out.append(Record(record_id=_str(r.get("id")), cells=cells if isinstance(cells, dict) else {}))

    return Table(
        table_id=table_id,
        name=_str(raw.get("name")) or table_id,
        fields=fields_out,
        views=views_out,
        records=records_out,
    )


def snapshot_from_dict(data: Any) -> Snapshot:
    """
    Build a Snapshot from decoded JSON. Raises SnapshotError on bad shape.
    """
    if not isinstance(data, dict) or not isinstance(data.get("tables"), list):
        raise SnapshotError('Snapshot must be a JSON object with a "tables" list')
    return Snapshot(tables=[_parse_table(t) for t in data["tables"]])


def load_snapshot(path: str | Path) -> Snapshot:
    """
    Load a snapshot JSON file.
    """
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise SnapshotError(f"Snapshot file not found: {p}") from exc
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise SnapshotError(f"Cannot read snapshot {p}: {exc}") from exc
    return snapshot_from_dict(data)


# ---------------------------------------------------------------------------
# Cell value resolution
# ---------------------------------------------------------------------------


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Turn a raw cell value into an aware datetime, or None.

    Accepted:
    - ISO-8601 strings ("2024-05-01T09:00:00.000Z", "2024-05-01")
    - numbers (epoch milliseconds)
    - datetime objects
    - lookup / rollup lists (first element wins)
    Naive values are taken as UTC.
    """
    if isinstance(value, list):
        return parse_timestamp(value[0]) if value else None

    if isinstance(value, bool) or value is None:
        return None

    dt: Optional[datetime] = None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        try:
            dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _display_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, list):
        parts = [_str(v.get("name") if isinstance(v, dict) else v) for v in value]
        return ", ".join(p for p in parts if p)
    return str(value)


def _linked_ids(value: Any) -> list[str]:
    """
    Link cells come as [{"id": "rec..", "name": ..}] or as ["rec..", ...].
    """
    if not isinstance(value, list):
        return []
    out: list[str] = []
    for item in value:
        rid = _str(item.get("id")) if isinstance(item, dict) else _str(item)
        if rid:
            out.append(rid)
    return out


# ---------------------------------------------------------------------------
# Mapping -> model objects
# ---------------------------------------------------------------------------


def _require_table(snapshot: Snapshot, table_id: str, label: str) -> Table:
    table = snapshot.find_table(table_id)
    if table is None:
        raise SnapshotError(f"{label} table {table_id!r} not found in snapshot")
    return table


def _require_field(table: Table, field_id: str, label: str) -> Field:
    fld = table.find_field(field_id)
    if fld is None:
        raise SnapshotError(f"{label} field {field_id!r} not found in table {table.name!r}")
    return fld


def _require_complete(mapping: FieldMapping) -> None:
    if not mapping.is_complete():
        raise ConfigError(f"Field mapping incomplete, missing: {', '.join(mapping.missing_keys())}")


def _cells_by_id_and_name(table: Table, record: Record) -> dict[str, Any]:
    """
    Copy of the record cells reachable under both field id and field name,
    whichever of the two the snapshot used.
    """
    out: dict[str, Any] = dict(record.cells)
    for fld in table.fields:
        value = table.cell(record, fld)
        if value is None:
            continue
        out.setdefault(fld.field_id, value)
        if fld.name:
            out.setdefault(fld.name, value)
    return out


def build_appointments(snapshot: Snapshot, mapping: FieldMapping) -> list[Appointment]:
    """
    Build the appointment batch: records of the configured view (or the
    whole table when no view is set). Records whose start or end cannot be
    read are left out of the batch.
    """
    _require_complete(mapping)
    table = _require_table(snapshot, mapping.appointments_table_id, "Appointments")
    start_field = _require_field(table, mapping.appointments_start_field_id, "Start")
    end_field = _require_field(table, mapping.appointments_end_field_id, "End")

    records = table.records
    if mapping.view_id:
        view = table.find_view(mapping.view_id)
        if view is None:
            raise SnapshotError(f"View {mapping.view_id!r} not found in table {table.name!r}")
        by_id = {r.record_id: r for r in table.records}
        records = [by_id[rid] for rid in view.record_ids if rid in by_id]

    out: list[Appointment] = []
    for rec in records:
        start = parse_timestamp(table.cell(rec, start_field))
        end = parse_timestamp(table.cell(rec, end_field))
        if start is None or end is None:
            logger.warning("Appointment %s has no valid start/end, left out of the batch", rec.record_id)
            continue
        cells = _cells_by_id_and_name(table, rec)
        out.append(Appointment(appointment_id=rec.record_id, start=start, end=end, fields=cells))

    logger.debug("Built %d appointments from table %s", len(out), table.name)
    return out


def build_people(snapshot: Snapshot, mapping: FieldMapping) -> list[Person]:
    """
    Build the people list from the people table, in table order.
    """
    _require_complete(mapping)
    table = _require_table(snapshot, mapping.people_table_id, "People")
    name_field = _require_field(table, mapping.people_name_field_id, "Name")
    link_field = _require_field(table, mapping.people_appointments_link_field_id, "Link")

    people = [
        Person(
            person_id=rec.record_id,
            display_name=_display_name(table.cell(rec, name_field)),
            appointment_ids=_linked_ids(table.cell(rec, link_field)),
        )
        for rec in table.records
    ]
    logger.debug("Built %d people from table %s", len(people), table.name)
    return people
