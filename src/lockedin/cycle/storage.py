"""Check-in and contract storage over a minimal key-value collaborator.

The backend only needs synchronous get / set / remove of strings. Two
backends ship here: an in-memory dict for tests and sessions, and a
JSON file for the CLI. Any object with the same three methods works.

Keys:
    locked-in-contract                 the active contract (one per store)
    locked-in-checkins-{contract_id}   resolved check-in records

Corrupt stored history loads as empty with a warning rather than
blocking the session. A corrupt contract loads as None.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from lockedin.models.check_in import CheckInRecord
from lockedin.models.contract import Contract

logger = logging.getLogger(__name__)

CONTRACT_KEY = "locked-in-contract"
CHECKIN_KEY_PREFIX = "locked-in-checkins-"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Dict-backed store. Writes are visible to the next read immediately."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._data)


class JsonFileKeyValueStore:
    """Single JSON document on disk, rewritten on every set/remove.

    The file is loaded once at construction. A missing file is an empty
    store.
    """

    def __init__(self, storage_path: Path) -> None:
        self._path = storage_path
        self._data: Dict[str, str] = {}
        if storage_path.exists():
            with storage_path.open("r", encoding="utf-8") as f:
                loaded = json.load(f)
            if not isinstance(loaded, dict):
                raise ValueError(f"Store file must hold a JSON object: {storage_path}")
            self._data = {str(k): str(v) for k, v in loaded.items()}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, sort_keys=True)
        tmp.replace(self._path)


def checkin_key(contract_id: str) -> str:
    return f"{CHECKIN_KEY_PREFIX}{contract_id}"


class CheckInRepository:
    """Persists the resolved records of one or more contracts."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load(self, contract_id: str) -> List[CheckInRecord]:
        """Return stored records in day order (empty on missing or corrupt data)."""
        raw = self._store.get(checkin_key(contract_id))
        if not raw:
            return []
        try:
            parsed = json.loads(raw)
            if not isinstance(parsed, dict):
                raise ValueError("check-in history must be a JSON object")
            records = [CheckInRecord.from_dict(v) for v in parsed.values()]
        except ValueError as exc:
            logger.warning(
                "Discarding corrupt check-in history for contract %s: %s",
                contract_id, exc,
            )
            return []
        return sorted(records, key=lambda r: r.day_number)

    def save(self, contract_id: str, records: Dict[int, CheckInRecord]) -> None:
        payload = {str(day): r.to_dict() for day, r in sorted(records.items())}
        self._store.set(checkin_key(contract_id), json.dumps(payload, sort_keys=True))

    def clear(self, contract_id: str) -> None:
        self._store.remove(checkin_key(contract_id))


class ContractRepository:
    """Persists the single active contract."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load(self) -> Optional[Contract]:
        raw = self._store.get(CONTRACT_KEY)
        if not raw:
            return None
        try:
            return Contract.from_dict(json.loads(raw))
        except ValueError as exc:
            logger.warning("Discarding corrupt stored contract: %s", exc)
            return None

    def save(self, contract: Contract) -> None:
        self._store.set(CONTRACT_KEY, json.dumps(contract.to_dict(), sort_keys=True))

    def clear(self) -> None:
        self._store.remove(CONTRACT_KEY)
