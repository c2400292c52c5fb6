"""
Snapshot download.

Fetches a base snapshot (JSON) over HTTP and caches it as:

    data/raw/snapshot.json

The payload is checked to be a snapshot before anything is written.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

import requests

from schedconflicts.errors import SnapshotError
from schedconflicts.records import snapshot_from_dict

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

PACKAGE_DIR = Path(__file__).resolve().parent
RAW_DIR = PACKAGE_DIR / "data" / "raw"


def default_snapshot_path() -> Path:
    return RAW_DIR / "snapshot.json"


# ---------------------------------------------------------------------------
# Core logic
# ---------------------------------------------------------------------------


def fetch_snapshot(
    url: str,
    out_path: str | Path | None = None,
    token: str | None = None,
    timeout: float = 30,
) -> Path:
    """
    Download a snapshot JSON document and cache it on disk.

    The payload is checked before writing, so a broken download never
    replaces a good cached snapshot.
    """
    out = Path(out_path) if out_path is not None else default_snapshot_path()

    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    logger.info("Fetching snapshot from %s", url)
    resp = requests.get(url, headers=headers, timeout=timeout)
    resp.raise_for_status()

    try:
        data = resp.json()
    except ValueError as exc:
        raise SnapshotError(f"Response from {url} is not JSON") from exc

    snapshot = snapshot_from_dict(data)

    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved snapshot with %d tables to %s", len(snapshot.tables), out)
    return out


# ---------------------------------------------------------------------------
# CLI entry
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="schedconflicts.fetch", description="Download a base snapshot (JSON)")
    p.add_argument("url", type=str, help="Snapshot URL")
    p.add_argument("--out", type=str, default=None, help="Output path (default: package data/raw/snapshot.json)")
    p.add_argument("--token", type=str, default=None, help="Bearer token for the snapshot endpoint")
    return p


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    out = fetch_snapshot(args.url.strip(), out_path=args.out, token=args.token)
    print(f"Snapshot saved to: {out}")


if __name__ == "__main__":
    main()
