"""
Conflict detection.

Given people and the appointments of the current batch, report per person
every appointment that overlaps another appointment of the same person.

Overlap rule for first=[s1,e1] and second=[s2,e2]:
    s1 < s2 < e1            (second starts inside first)
    OR s1 < e2 < e1         (second ends inside first)
    OR s2 <= s1 AND e2 >= e1  (second contains first, bounds inclusive)

Touching appointments (e1 == s2) are NOT conflicts.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from schedconflicts.model import Appointment, ConflictGroup, Person


def overlaps(first: Appointment, second: Appointment) -> bool:
    """
    Apply the overlap rule to one pair.

    Bounds Python cannot compare (None, naive vs aware datetimes, ...) never
    produce a conflict.
    """
    s1, e1 = first.start, first.end
    s2, e2 = second.start, second.end
    try:
        return bool((s1 < s2 < e1) or (s1 < e2 < e1) or (s2 <= s1 and e2 >= e1))
    except TypeError:
        return False


def _index(appointments: Iterable[Appointment]) -> dict[str, Appointment]:
    """
    Batch index by id. The first appointment with a given id wins.
    """
    by_id: dict[str, Appointment] = {}
    for appt in appointments:
        by_id.setdefault(appt.appointment_id, appt)
    return by_id


def _resolve(appointment_ids: Iterable[str], by_id: dict[str, Appointment]) -> list[Appointment]:
    """
    Map ids to appointments of the batch, keeping link order.
    Unknown ids are dropped, repeated ids are kept once.
    """
    out: list[Appointment] = []
    seen: set[str] = set()
    for aid in appointment_ids:
        if aid in seen:
            continue
        appt = by_id.get(aid)
        if appt is None:
            continue
        seen.add(aid)
        out.append(appt)
    return out


def find_conflicting_pairs(appointments: Sequence[Appointment]) -> list[tuple[Appointment, Appointment]]:
    """
    Find overlapping pairs (A,B) within one person's appointments.
    Each unordered pair is tested once (i<j).
    """
    pairs: list[tuple[Appointment, Appointment]] = []
    for i in range(len(appointments)):
        a = appointments[i]
        for j in range(i + 1, len(appointments)):
            b = appointments[j]
            if overlaps(a, b):
                pairs.append((a, b))
    return pairs


def person_appointments(person: Person, appointments: Sequence[Appointment]) -> list[Appointment]:
    """
    Return the appointments of the batch that are linked to person.
    """
    return _resolve(person.appointment_ids, _index(appointments))


def detect_conflicts(people: Sequence[Person], appointments: Sequence[Appointment]) -> list[ConflictGroup]:
    """
    Build the conflict report, one ConflictGroup per person with at least
    one overlap, in the order of people.
    """
    by_id = _index(appointments)

    groups: list[ConflictGroup] = []
    for person in people:
        resolved = _resolve(person.appointment_ids, by_id)
        if len(resolved) < 2:
            continue

        # keyed by id: an appointment clashing with several others shows up once
        conflicting: dict[str, Appointment] = {}
        for a, b in find_conflicting_pairs(resolved):
            conflicting.setdefault(a.appointment_id, a)
            conflicting.setdefault(b.appointment_id, b)

        if conflicting:
            groups.append(
                ConflictGroup(person=person.display_name, conflicting_appointments=list(conflicting.values()))
            )

    return groups
