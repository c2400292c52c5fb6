"""
Tests for CLI entry points.

These tests focus on:
- argument validation and exit codes
- the conflicts command end-to-end on a small snapshot
- config persistence through a temporary --config file
  (to avoid touching real user data during tests)
"""

import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

from schedconflicts.cli import main
from schedconflicts.config import load_field_mapping

SNAPSHOT_PATH = Path(__file__).resolve().parent / "data" / "base_snapshot.json"

CONFIGURE_ARGS = [
    "configure",
    "--people-table", "tblPeople",
    "--name-field", "fldName",
    "--link-field", "fldAppts",
    "--appointments-table", "tblAppts",
    "--start-field", "fldStart",
    "--end-field", "fldEnd",
    "--view", "viwConfirmed",
]


class TestCLI(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.config = str(Path(self._tmp.name) / "config.json")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, argv: list) -> tuple:
        buf = io.StringIO()
        with contextlib.redirect_stdout(buf):
            with self.assertRaises(SystemExit) as ctx:
                main(argv)
        return ctx.exception.code, buf.getvalue()

    def test_fetch_requires_url(self) -> None:
        code, out = self._run(["--config", self.config, "fetch", ""])
        self.assertNotEqual(code, 0)
        self.assertIn("Please provide a snapshot URL.", out)

    def test_configure_saves_mapping(self) -> None:
        code, out = self._run(["--config", self.config] + CONFIGURE_ARGS)
        self.assertEqual(code, 0)
        self.assertIn("complete", out)
        mapping = load_field_mapping(self.config)
        self.assertEqual(mapping.view_id, "viwConfirmed")
        self.assertTrue(mapping.is_complete())

    def test_configure_with_snapshot_stores_ids(self) -> None:
        code, out = self._run(
            ["--config", self.config, "configure", "--snapshot", str(SNAPSHOT_PATH),
             "--people-table", "People", "--name-field", "Name", "--view", "Confirmed",
             "--appointments-table", "Appointments"]
        )
        self.assertEqual(code, 0)
        mapping = load_field_mapping(self.config)
        self.assertEqual(mapping.people_table_id, "tblPeople")
        self.assertEqual(mapping.people_name_field_id, "fldName")
        self.assertEqual(mapping.appointments_table_id, "tblAppts")
        self.assertEqual(mapping.view_id, "viwConfirmed")

        code, out = self._run(
            ["--config", self.config, "configure", "--snapshot", str(SNAPSHOT_PATH),
             "--appointments-table", "tblPeople"]
        )
        self.assertEqual(code, 1)
        self.assertIn("same table", out)

    def test_configure_same_table_fails(self) -> None:
        code, out = self._run(
            ["--config", self.config, "configure", "--people-table", "tblAppts", "--appointments-table", "tblAppts"]
        )
        self.assertEqual(code, 1)
        self.assertIn("same table", out)
        self.assertFalse(Path(self.config).exists())

    def test_conflicts_plain(self) -> None:
        self._run(["--config", self.config] + CONFIGURE_ARGS)
        code, out = self._run(["--config", self.config, "conflicts", "--snapshot", str(SNAPSHOT_PATH), "--plain"])
        self.assertEqual(code, 0)
        self.assertIn("== Ann (2) ==", out)
        self.assertNotIn("Bob", out)

    def test_conflicts_view_override_and_pairs(self) -> None:
        self._run(["--config", self.config] + CONFIGURE_ARGS)
        code, out = self._run(
            ["--config", self.config, "conflicts", "--snapshot", str(SNAPSHOT_PATH), "--view", "All", "--plain", "--pairs"]
        )
        self.assertEqual(code, 0)
        self.assertIn("== (unnamed) (2) ==", out)
        self.assertIn("- Ann: a1", out)
        self.assertIn("<->", out)

    def test_conflicts_none_found(self) -> None:
        data = json.loads(SNAPSHOT_PATH.read_text(encoding="utf-8"))
        data["tables"][0]["records"] = [{"id": "recBob", "fields": {"fldName": "Bob", "fldAppts": ["b1", "b2"]}}]
        snap = Path(self._tmp.name) / "snap.json"
        snap.write_text(json.dumps(data), encoding="utf-8")
        self._run(["--config", self.config] + CONFIGURE_ARGS)
        code, out = self._run(["--config", self.config, "conflicts", "--snapshot", str(snap), "--plain"])
        self.assertEqual(code, 0)
        self.assertIn("No scheduling conflicts found", out)

    def test_conflicts_without_config_fails(self) -> None:
        code, out = self._run(["--config", self.config, "conflicts", "--snapshot", str(SNAPSHOT_PATH)])
        self.assertEqual(code, 1)
        self.assertIn("Field mapping incomplete", out)

    def test_conflicts_missing_snapshot_fails(self) -> None:
        self._run(["--config", self.config] + CONFIGURE_ARGS)
        missing = str(Path(self._tmp.name) / "nope.json")
        code, out = self._run(["--config", self.config, "conflicts", "--snapshot", missing])
        self.assertEqual(code, 1)
        self.assertIn("Snapshot file not found", out)

    def test_show_config_validates(self) -> None:
        self._run(["--config", self.config] + CONFIGURE_ARGS)
        code, out = self._run(["--config", self.config, "show-config", "--snapshot", str(SNAPSHOT_PATH)])
        self.assertEqual(code, 0)
        self.assertIn("people_table_id: tblPeople", out)
        self.assertIn("Config OK.", out)

        self._run(["--config", self.config, "configure", "--view", "viwGone"])
        code, out = self._run(["--config", self.config, "show-config", "--snapshot", str(SNAPSHOT_PATH)])
        self.assertEqual(code, 1)
        self.assertIn("View 'viwGone' not found", out)


if __name__ == "__main__":
    unittest.main()
