"""
Persistent field mapping.

This module manages the file:

    data/config.json

The mapping tells the record layer which table holds the people, which one
holds the appointments, and which fields carry name, link, start and end.
It is passed explicitly to whatever needs it; nothing here is global.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from schedconflicts.errors import ConfigError

if TYPE_CHECKING:
    from schedconflicts.records import Snapshot


NAME_FIELD_TYPES = frozenset(
    {
        "singleLineText",
        "formula",
        "autoNumber",
        "number",
        "barcode",
        "email",
        "phoneNumber",
        "url",
        "multilineText",
    }
)
LINK_FIELD_TYPES = frozenset({"multipleRecordLinks"})
DATE_FIELD_TYPES = frozenset({"date", "dateTime", "multipleLookupValues", "rollup", "formula"})

SAME_TABLE_MESSAGE = (
    "You cannot choose the same table in both sections. Please choose a different table. "
    "The people and appointments tables must be linked together with a linked record field."
)


@dataclass(frozen=True)
class FieldMapping:
    """
    Which tables/fields/view the record layer reads. Empty string = not set.
    """

    people_table_id: str = ""
    people_name_field_id: str = ""
    people_appointments_link_field_id: str = ""
    appointments_table_id: str = ""
    appointments_start_field_id: str = ""
    appointments_end_field_id: str = ""
    view_id: str = ""

    def is_complete(self) -> bool:
        """
        True once every table and field is chosen. The view is optional.
        """
        return all(
            (
                self.people_table_id,
                self.people_name_field_id,
                self.people_appointments_link_field_id,
                self.appointments_table_id,
                self.appointments_start_field_id,
                self.appointments_end_field_id,
            )
        )

    def missing_keys(self) -> list[str]:
        return [f.name for f in fields(self) if f.name != "view_id" and not getattr(self, f.name)]


def _default_config_path() -> Path:
    """
    Return the default path of config.json inside the package.

    A function instead of a constant, so tests and the CLI can override it.
    """
    base_dir = Path(__file__).resolve().parent
    return base_dir / "data" / "config.json"


def load_field_mapping(path: str | Path | None = None) -> FieldMapping:
    """
    Load the field mapping from config.json.

    Missing or broken file -> empty mapping. Unknown keys are ignored.
    """
    config_path = Path(path) if path is not None else _default_config_path()

    if not config_path.exists():
        return FieldMapping()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError):
        return FieldMapping()
    if not isinstance(data, dict):
        return FieldMapping()

    values: dict[str, str] = {}
    for f in fields(FieldMapping):
        raw = data.get(f.name)
        if isinstance(raw, str):
            values[f.name] = raw.strip()
    return FieldMapping(**values)


def save_field_mapping(mapping: FieldMapping, path: str | Path | None = None) -> None:
    """
    Save the field mapping to config.json, creating parent directories.
    """
    config_path = Path(path) if path is not None else _default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(asdict(mapping), indent=2, ensure_ascii=False), encoding="utf-8")


def with_people_table(mapping: FieldMapping, table_id: str) -> FieldMapping:
    """
    Select the people table. The name and link fields belong to the old
    table, so they are cleared.
    """
    table_id = table_id.strip()
    if table_id and table_id == mapping.appointments_table_id:
        raise ConfigError(SAME_TABLE_MESSAGE)
    if table_id == mapping.people_table_id:
        return mapping
    return replace(
        mapping,
        people_table_id=table_id,
        people_name_field_id="",
        people_appointments_link_field_id="",
    )


def with_appointments_table(mapping: FieldMapping, table_id: str) -> FieldMapping:
    """
    Select the appointments table. Start/end fields and the view are cleared.
    """
    table_id = table_id.strip()
    if table_id and table_id == mapping.people_table_id:
        raise ConfigError(SAME_TABLE_MESSAGE)
    if table_id == mapping.appointments_table_id:
        return mapping
    return replace(
        mapping,
        appointments_table_id=table_id,
        appointments_start_field_id="",
        appointments_end_field_id="",
        view_id="",
    )


def resolve_field_mapping(mapping: FieldMapping, snapshot: Snapshot) -> FieldMapping:
    """
    Replace table, field and view names with their ids where the snapshot
    knows them. Unknown keys are left as they are.
    """
    people = snapshot.find_table(mapping.people_table_id) if mapping.people_table_id else None
    appts = snapshot.find_table(mapping.appointments_table_id) if mapping.appointments_table_id else None

    def _field_id(table: Any, key: str) -> str:
        fld = table.find_field(key) if table is not None and key else None
        return fld.field_id if fld is not None else key

    view = appts.find_view(mapping.view_id) if appts is not None and mapping.view_id else None

    return replace(
        mapping,
        people_table_id=people.table_id if people is not None else mapping.people_table_id,
        people_name_field_id=_field_id(people, mapping.people_name_field_id),
        people_appointments_link_field_id=_field_id(people, mapping.people_appointments_link_field_id),
        appointments_table_id=appts.table_id if appts is not None else mapping.appointments_table_id,
        appointments_start_field_id=_field_id(appts, mapping.appointments_start_field_id),
        appointments_end_field_id=_field_id(appts, mapping.appointments_end_field_id),
        view_id=view.view_id if view is not None else mapping.view_id,
    )


def _table_key(snapshot: Optional[Snapshot], key: str) -> str:
    if snapshot is None or not key:
        return key
    table = snapshot.find_table(key)
    return table.table_id if table is not None else key


def update_field_mapping(
    mapping: FieldMapping,
    snapshot: Optional[Snapshot] = None,
    **changes: Any,
) -> FieldMapping:
    """
    Apply CLI-style changes (None = keep).

    The same-table rule is checked on the final pair of tables, so people
    and appointments tables can be swapped in one call. A changed table
    clears its old fields before the fields given in the same call apply.
    With a snapshot, names are resolved to ids; without one, table keys
    are compared exactly as given.
    """
    known = {f.name for f in fields(FieldMapping)}
    unknown = {k for k, v in changes.items() if v is not None} - known
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    if snapshot is not None:
        mapping = resolve_field_mapping(mapping, snapshot)

    people_table = changes.pop("people_table_id", None)
    appointments_table = changes.pop("appointments_table_id", None)

    new_people = mapping.people_table_id
    if people_table is not None:
        new_people = _table_key(snapshot, str(people_table).strip())
    new_appts = mapping.appointments_table_id
    if appointments_table is not None:
        new_appts = _table_key(snapshot, str(appointments_table).strip())

    if new_people and new_people == new_appts:
        raise ConfigError(SAME_TABLE_MESSAGE)

    if new_people != mapping.people_table_id:
        mapping = replace(
            mapping,
            people_table_id=new_people,
            people_name_field_id="",
            people_appointments_link_field_id="",
        )
    if new_appts != mapping.appointments_table_id:
        mapping = replace(
            mapping,
            appointments_table_id=new_appts,
            appointments_start_field_id="",
            appointments_end_field_id="",
            view_id="",
        )

    rest = {k: str(v).strip() for k, v in changes.items() if v is not None}
    mapping = replace(mapping, **rest)
    if snapshot is not None:
        mapping = resolve_field_mapping(mapping, snapshot)
    return mapping

def _check_field(problems: list[str], table: Any, field_id: str, label: str, allowed: frozenset[str]) -> None:
    if not field_id:
        return
    fld = table.find_field(field_id)
    if fld is None:
        problems.append(f"{label} field {field_id!r} not found in table {table.name!r}")
    elif fld.type not in allowed:
        problems.append(f"{label} field {fld.name!r} has unsupported type {fld.type!r}")


def validate_field_mapping(mapping: FieldMapping, snapshot: Snapshot) -> list[str]:
    """
    Check the mapping against a snapshot. Returns human-readable problems
    (empty list = usable).
    """
    problems: list[str] = [f"{key} is not set" for key in mapping.missing_keys()]

    people = snapshot.find_table(mapping.people_table_id) if mapping.people_table_id else None
    appts = snapshot.find_table(mapping.appointments_table_id) if mapping.appointments_table_id else None

    if mapping.people_table_id and people is None:
        problems.append(f"People table {mapping.people_table_id!r} not found")
    if mapping.appointments_table_id and appts is None:
        problems.append(f"Appointments table {mapping.appointments_table_id!r} not found")
    if people is not None and appts is not None and people.table_id == appts.table_id:
        problems.append(SAME_TABLE_MESSAGE)

    if people is not None:
        _check_field(problems, people, mapping.people_name_field_id, "Name", NAME_FIELD_TYPES)
        _check_field(problems, people, mapping.people_appointments_link_field_id, "Link", LINK_FIELD_TYPES)

    if appts is not None:
        _check_field(problems, appts, mapping.appointments_start_field_id, "Start", DATE_FIELD_TYPES)
        _check_field(problems, appts, mapping.appointments_end_field_id, "End", DATE_FIELD_TYPES)
        if mapping.view_id and appts.find_view(mapping.view_id) is None:
            problems.append(f"View {mapping.view_id!r} not found in table {appts.name!r}")

    return problems
