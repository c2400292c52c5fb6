"""
schedconflicts – find double-booked people in a schedule snapshot.
"""

from schedconflicts.conflicts import detect_conflicts
from schedconflicts.model import Appointment, ConflictGroup, Person

__all__ = ["Appointment", "ConflictGroup", "Person", "detect_conflicts"]
