"""Participant directory.

The dataset is a JSON array of participant objects, for example::

    [{"name": "John Doe", "bib": "001", "category": "5K"}]

It is read once, from a local path or an http(s) URL. A missing,
unreachable or malformed dataset never blocks the app: the directory still
becomes ready, just with no records, and the cause is logged.

Lookups compare Bib Numbers case-insensitively. The stored identifier is
kept exactly as the dataset wrote it, since it ends up in the download
filename.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 10.0


class DatasetLoadError(Exception):
    """The participant dataset could not be fetched or parsed."""


@dataclass(frozen=True)
class ParticipantRecord:
    identifier: str
    display_name: str
    category: Optional[str] = None

    @property
    def lookup_key(self) -> str:
        return normalize_identifier(self.identifier)


def normalize_identifier(raw: Any) -> str:
    """Trim and uppercase a Bib Number for comparison."""
    if raw is None:
        return ""
    return str(raw).strip().upper()


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def read_dataset(source: str | Path, *, timeout: float = DEFAULT_REQUEST_TIMEOUT) -> List[Any]:
    """Fetch and decode the raw participant list.

    Raises DatasetLoadError on any transport or format problem.
    """
    src = str(source)
    if _is_url(src):
        try:
            resp = requests.get(src, timeout=timeout)
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise DatasetLoadError(f"Could not fetch participants from {src}: {exc}") from exc
    else:
        path = Path(src)
        if not path.exists():
            raise DatasetLoadError(f"Participants file not found: {path}")
        try:
            with path.open("r", encoding="utf-8") as fh:
                payload = json.load(fh)
        except (OSError, ValueError) as exc:
            raise DatasetLoadError(f"Could not read participants file {path}: {exc}") from exc

    if not isinstance(payload, list):
        raise DatasetLoadError(
            f"Participants payload from {src} must be a JSON array, got {type(payload).__name__}"
        )
    return payload


def parse_records(rows: List[Any]) -> List[ParticipantRecord]:
    """Turn raw dataset rows into records, skipping rows without a bib or name."""
    records: List[ParticipantRecord] = []
    seen: Dict[str, int] = {}
    for idx, row in enumerate(rows):
        if not isinstance(row, dict):
            logger.warning("Skipping participant row %d: expected an object, got %r", idx, row)
            continue

        bib = row.get("bib")
        name = row.get("name")
        if bib is None or str(bib).strip() == "" or not name:
            logger.warning("Skipping participant row %d: missing bib or name", idx)
            continue

        category = row.get("category")
        record = ParticipantRecord(
            identifier=str(bib).strip(),
            display_name=str(name),
            category=str(category) if category is not None else None,
        )

        key = record.lookup_key
        if key in seen:
            # First match wins at lookup time.
            logger.warning(
                "Duplicate bib %r at row %d (first seen at row %d); the first entry will be used",
                record.identifier,
                idx,
                seen[key],
            )
        else:
            seen[key] = idx
        records.append(record)
    return records


class ParticipantDirectory:
    """Read-only participant list with a one-way ready flag."""

    def __init__(self, *, request_timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self._records: List[ParticipantRecord] = []
        self._ready = False
        self._request_timeout = request_timeout
        self._lock = threading.Lock()

    @classmethod
    def from_records(cls, records: List[ParticipantRecord]) -> "ParticipantDirectory":
        """Build an already-loaded directory (tests and scripts)."""
        directory = cls()
        directory._records = list(records)
        directory._ready = True
        return directory

    def __len__(self) -> int:
        return len(self._records)

    def is_ready(self) -> bool:
        return self._ready

    def load(self, source: str | Path) -> int:
        """Load the dataset once. Returns the number of records loaded.

        Never raises for dataset problems: on failure the directory is ready
        and empty.
        """
        with self._lock:
            if self._ready:
                logger.info("Participant directory already loaded; ignoring load from %s", source)
                return len(self._records)

            try:
                records = parse_records(read_dataset(source, timeout=self._request_timeout))
            except DatasetLoadError as exc:
                logger.warning("%s. Using empty participant data.", exc)
                records = []
            else:
                logger.info("Loaded %d participants from %s", len(records), source)

            self._records = records
            # Set last: readers only see ready once records are in place.
            self._ready = True
            return len(records)

    def start_background_load(self, source: str | Path) -> threading.Thread:
        thread = threading.Thread(
            target=self.load,
            args=(source,),
            name="participants-load",
            daemon=True,
        )
        thread.start()
        return thread

    def find_by_identifier(self, identifier: str) -> Optional[ParticipantRecord]:
        if not self._ready:
            return None
        key = normalize_identifier(identifier)
        if not key:
            return None
        for record in self._records:
            if record.lookup_key == key:
                return record
        return None
