"""
Exception types raised by the record and configuration layers.

The conflict detector itself never raises; these errors only describe
problems with the snapshot or the field mapping supplied by the user.
"""

from __future__ import annotations


class ScheduleConflictsError(Exception):
    """Base class for all errors of this package."""


class ConfigError(ScheduleConflictsError):
    """The field mapping is incomplete or inconsistent."""


class SnapshotError(ScheduleConflictsError):
    """The snapshot file is unreadable or does not match the mapping."""
