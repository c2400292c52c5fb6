"""
Central data model definitions used across the project.

These structures are built fresh for every detection run:
- the record layer turns snapshot records into Person / Appointment objects
- the detector turns them into ConflictGroup objects
- the presentation layer only reads ConflictGroup objects
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Appointment:
    """
    One time-bounded booking.

    start/end are expected to be comparable timestamps (start <= end is
    assumed but not checked). fields keeps the raw record cells for display.
    """

    appointment_id: str
    start: Any
    end: Any
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Person:
    """
    A person (or resource) with the ids of the appointments linked to it.

    appointment_ids may contain ids that are not part of the current batch.
    """

    person_id: str
    display_name: Optional[str]
    appointment_ids: List[str] = field(default_factory=list)


@dataclass
class ConflictGroup:
    """
    Report unit: a person's display name plus every appointment that
    overlaps at least one other appointment of that person.
    """

    person: Optional[str]
    conflicting_appointments: List[Appointment]
