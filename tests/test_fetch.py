import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import requests

from schedconflicts.errors import SnapshotError
from schedconflicts.fetch import fetch_snapshot

SNAPSHOT_PATH = Path(__file__).resolve().parent / "data" / "base_snapshot.json"


def _response(payload=None, status=200, text=None):
    resp = mock.Mock()
    resp.status_code = status
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    if text is not None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    return resp


class TestFetchSnapshot(unittest.TestCase):
    def test_saves_valid_snapshot(self) -> None:
        payload = json.loads(SNAPSHOT_PATH.read_text(encoding="utf-8"))
        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "raw" / "snap.json"
            with mock.patch("schedconflicts.fetch.requests.get", return_value=_response(payload)) as get:
                path = fetch_snapshot("https://example.test/base.json", out, token="secret")
            self.assertEqual(path, out)
            self.assertEqual(json.loads(out.read_text(encoding="utf-8")), payload)
            headers = get.call_args.kwargs["headers"]
            self.assertEqual(headers["Authorization"], "Bearer secret")

    def test_http_error_propagates(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "snap.json"
            with mock.patch("schedconflicts.fetch.requests.get", return_value=_response(status=500)):
                with self.assertRaises(requests.HTTPError):
                    fetch_snapshot("https://example.test/base.json", out)
            self.assertFalse(out.exists())

    def test_non_snapshot_payload_not_written(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "snap.json"
            with mock.patch("schedconflicts.fetch.requests.get", return_value=_response({"rows": []})):
                with self.assertRaises(SnapshotError):
                    fetch_snapshot("https://example.test/base.json", out)
            with mock.patch("schedconflicts.fetch.requests.get", return_value=_response(text="<html>")):
                with self.assertRaises(SnapshotError):
                    fetch_snapshot("https://example.test/base.json", out)
            self.assertFalse(out.exists())


if __name__ == "__main__":
    unittest.main()
