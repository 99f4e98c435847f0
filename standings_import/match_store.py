"""
Per-deck storage of match records.

MatchStore keeps one JSON list per deck, newest first, on top of a small
string key-value interface so the backing store can be swapped in tests.
"""

import logging
import json
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from standings_import.models import MatchRecord
from standings_import.utils import load_json, save_json


def key_for_deck(deck_id: str) -> str:
    return f"ldb:results:{deck_id}"


def generate_record_id() -> str:
    return uuid.uuid4().hex


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class KeyValueStore(Protocol):
    """Durable string-keyed storage."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryStore:
    """Dict-backed store, used for tests and dry runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """
    Store backed by a single JSON object file mapping keys to strings.

    Every write rewrites the whole file atomically (temp file + rename).
    Reads treat an unreadable file as empty; writes refuse to replace it.
    """

    def __init__(self, path: str, logger: Optional[logging.Logger] = None):
        self.path = Path(path)
        self.logger = logger
        self._lock = threading.Lock()

    def _read_all(self, strict: bool = False) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = load_json(str(self.path), self.logger)
            if not isinstance(data, dict):
                raise IOError(f"Store file {self.path} must contain a JSON object")
        except IOError as e:
            if strict:
                raise
            if self.logger:
                self.logger.warning(f"Ignoring unreadable store file {self.path}: {e}")
            return {}
        return data

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        """
        Raises:
            IOError: If the existing file cannot be read, or the write fails
        """
        with self._lock:
            data = self._read_all(strict=True)
            data[key] = value
            save_json(str(self.path), data, self.logger)


class MatchStore:
    """Newest-first list of match records per deck."""

    def __init__(self, store: KeyValueStore, logger: Optional[logging.Logger] = None):
        """
        Args:
            store: Backing key-value store
            logger: Logger instance
        """
        self.store = store
        self.logger = logger
        # guards every read-modify-write on this instance
        self._lock = threading.RLock()

    def _read_entries(self, deck_id: str) -> List[Any]:
        """
        Stored entries for a deck, for read-modify-write.

        Entries that decode become MatchRecord; the rest stay raw JSON values.

        Raises:
            ValueError: If a value is stored but is not a JSON list
        """
        raw = self.store.get(key_for_deck(deck_id))
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ValueError(f"Stored match records for deck {deck_id} are not valid JSON: {e}")
        if not isinstance(data, list):
            raise ValueError(
                f"Stored match records for deck {deck_id} must be a list, got {type(data).__name__}"
            )

        entries = []
        for item in data:
            try:
                entries.append(MatchRecord.from_dict(item))
            except (ValueError, TypeError) as e:
                if self.logger:
                    self.logger.warning(f"Skipping undecodable match record in deck {deck_id}: {e}")
                entries.append(item)
        return entries

    def _write_entries(self, deck_id: str, entries: List[Any]) -> None:
        self._check_unique_ids(entries)
        payload = json.dumps(
            [entry.to_dict() if isinstance(entry, MatchRecord) else entry for entry in entries],
            ensure_ascii=False
        )
        with self._lock:
            self.store.set(key_for_deck(deck_id), payload)
        if self.logger:
            self.logger.debug(f"Persisted {len(entries)} match records for deck {deck_id}")

    def list(self, deck_id: str) -> List[MatchRecord]:
        """
        Records for a deck, newest first.

        Stored items that cannot be decoded are skipped. Returns an empty list
        when nothing is stored or the stored value cannot be read; never raises.
        """
        try:
            entries = self._read_entries(deck_id)
        except Exception as e:
            if self.logger:
                self.logger.warning(f"Could not read match records for deck {deck_id}: {e}")
            return []
        return [entry for entry in entries if isinstance(entry, MatchRecord)]

    def count(self, deck_id: str) -> int:
        return len(self.list(deck_id))

    def persist(self, deck_id: str, records: Iterable[MatchRecord]) -> None:
        """
        Replace the full stored list for a deck.

        Raises:
            ValueError: If two records share an id
            IOError: If the backing store fails to write
        """
        self._write_entries(deck_id, list(records))

    def bulk_add(self, deck_id: str, records: Iterable[MatchRecord]) -> int:
        """
        Stamp and prepend new records, keeping their order.

        Missing ids and timestamps are generated; deck_id is always set.
        Stored items that cannot be decoded are kept as they are.

        Returns:
            Number of records inserted

        Raises:
            ValueError: If a supplied id is already taken, or the stored list
                cannot be read (nothing is written)
        """
        now = utc_now_iso()
        stamped = [
            record.stamped(
                id=record.id or generate_record_id(),
                date_iso=record.date_iso or now,
                deck_id=deck_id,
            )
            for record in records
        ]

        with self._lock:
            existing = self._read_entries(deck_id)
            self._write_entries(deck_id, stamped + existing)

        if self.logger:
            self.logger.info(f"Added {len(stamped)} match records to deck {deck_id}")
        return len(stamped)

    def delete_one(self, deck_id: str, record_id: str) -> bool:
        """
        Remove one record by id. Returns False if it was not found.

        Raises:
            ValueError: If the stored list cannot be read (nothing is written)
        """
        with self._lock:
            existing = self._read_entries(deck_id)
            remaining = [entry for entry in existing if self._entry_id(entry) != record_id]
            if len(remaining) == len(existing):
                return False
            self._write_entries(deck_id, remaining)
        return True

    def clear(self, deck_id: str) -> None:
        """
        Remove all records for a deck.

        Raises:
            ValueError: If the stored list cannot be read (nothing is written)
        """
        with self._lock:
            self._read_entries(deck_id)
            self._write_entries(deck_id, [])
        if self.logger:
            self.logger.info(f"Cleared match records for deck {deck_id}")

    @staticmethod
    def _entry_id(entry: Any) -> Optional[str]:
        if isinstance(entry, MatchRecord):
            return entry.id
        if isinstance(entry, dict):
            return entry.get('id')
        return None

    @classmethod
    def _check_unique_ids(cls, entries: List[Any]) -> None:
        seen = set()
        duplicates = set()
        for entry in entries:
            entry_id = cls._entry_id(entry)
            if not isinstance(entry_id, str):
                continue
            if entry_id in seen:
                duplicates.add(entry_id)
            seen.add(entry_id)
        if duplicates:
            raise ValueError(f"Duplicate match record ids: {sorted(duplicates)}")
