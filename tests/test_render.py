import io
import unittest
from datetime import datetime, timezone

from rich.console import Console

from schedconflicts.model import Appointment, ConflictGroup
from schedconflicts.render import NO_CONFLICTS_TEXT, print_report, render_plain


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 5, 6, hour, minute, tzinfo=timezone.utc)


def _group(person):
    return ConflictGroup(
        person=person,
        conflicting_appointments=[
            Appointment("a2", _at(9, 30), _at(10, 30), {"Title": "Dentist"}),
            Appointment("a1", _at(9), _at(10), {"Title": "Standup"}),
        ],
    )


class TestRenderPlain(unittest.TestCase):
    def test_empty_report(self) -> None:
        self.assertEqual(render_plain([]), NO_CONFLICTS_TEXT)

    def test_groups_sorted_by_start(self) -> None:
        text = render_plain([_group("Ann"), _group("")])
        self.assertIn("== Ann (2) ==", text)
        self.assertIn("== (unnamed) (2) ==", text)
        self.assertLess(text.index("a1  2024-05-06 09:00"), text.index("a2  2024-05-06 09:30"))


class TestPrintReport(unittest.TestCase):
    def test_rich_tables(self) -> None:
        buf = io.StringIO()
        console = Console(file=buf, width=120, color_system=None)
        print_report([_group("Ann")], console=console, extra_columns=["Title"])
        out = buf.getvalue()
        self.assertIn("Ann", out)
        self.assertIn("Standup", out)
        self.assertIn("2024-05-06 10:30", out)

    def test_rich_empty(self) -> None:
        buf = io.StringIO()
        print_report([], console=Console(file=buf, width=120, color_system=None))
        self.assertIn("No scheduling conflicts found", buf.getvalue())


if __name__ == "__main__":
    unittest.main()
