"""Local key-value persistence.

Each collection lives as one JSON blob under a fixed string key, the same
shape a browser's local storage would hold. Repositories never update a
record in place: they load the whole collection, change it in memory and
write the whole collection back. A single writer is assumed; two processes
sharing one data file can overwrite each other's changes.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Callable, Dict, Generic, List, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from receiptpro.services.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class StorageKeys:
    BUSINESS_PROFILES = "receipt_business_profiles"
    RECEIPTS = "receipt_receipts"
    INVOICES = "receipt_invoices"
    CURRENT_PROFILE = "receipt_current_profile"
    SETTINGS = "receipt_settings"
    EMAIL_SETTINGS = "email_settings"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


class MemoryStore:
    """Process-local store, used by tests and when no data file is wanted."""

    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class JsonFileStore:
    """Store backed by a single JSON object on disk, rewritten on every write."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            logger.exception("Unable to read data file %s", self._path)
            raise PersistenceError(f"Unable to read {self._path}", cause=exc) from exc
        if not isinstance(data, dict):
            raise PersistenceError(f"Data file {self._path} does not hold a JSON object")
        return {str(key): str(value) for key, value in data.items()}

    def _dump(self, data: Dict[str, str]) -> None:
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            logger.exception("Unable to write data file %s", self._path)
            raise PersistenceError(f"Unable to write {self._path}", cause=exc) from exc

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._dump(data)

    def clear(self) -> None:
        self._dump({})


ModelT = TypeVar("ModelT", bound=BaseModel)


class CollectionRepository(Generic[ModelT]):
    """A list of records stored under one key and addressed by ``id``."""

    def __init__(self, store: KeyValueStore, key: str, model: Type[ModelT]) -> None:
        self._store = store
        self._key = key
        self._model = model
        self._adapter: TypeAdapter[List[ModelT]] = TypeAdapter(List[model])  # type: ignore[valid-type]

    @property
    def key(self) -> str:
        return self._key

    def _read(self) -> List[ModelT]:
        raw = self._store.get(self._key)
        if not raw:
            return []
        try:
            return self._adapter.validate_json(raw)
        except ValidationError as exc:
            logger.exception("Stored collection %s is corrupt", self._key)
            raise PersistenceError(f"Stored collection {self._key} is corrupt", cause=exc) from exc

    def _write(self, records: List[ModelT]) -> None:
        self._store.set(self._key, self._adapter.dump_json(records).decode("utf-8"))

    async def get_all(self) -> List[ModelT]:
        return self._read()

    async def get(self, record_id: str) -> Optional[ModelT]:
        return next((record for record in self._read() if record.id == record_id), None)

    async def find(self, predicate: Callable[[ModelT], bool]) -> List[ModelT]:
        return [record for record in self._read() if predicate(record)]

    async def upsert(self, record: ModelT) -> ModelT:
        records = self._read()
        for index, existing in enumerate(records):
            if existing.id == record.id:
                records[index] = record
                break
        else:
            records.append(record)
        self._write(records)
        return record

    async def delete(self, record_id: str) -> bool:
        records = self._read()
        remaining = [record for record in records if record.id != record_id]
        if len(remaining) == len(records):
            return False
        self._write(remaining)
        return True


class SingletonRepository(Generic[ModelT]):
    """A single optional value stored under one key."""

    def __init__(self, store: KeyValueStore, key: str, model: Type[ModelT]) -> None:
        self._store = store
        self._key = key
        self._model = model

    async def get(self) -> Optional[ModelT]:
        raw = self._store.get(self._key)
        if not raw:
            return None
        try:
            return self._model.model_validate_json(raw)
        except ValidationError as exc:
            logger.exception("Stored value %s is corrupt", self._key)
            raise PersistenceError(f"Stored value {self._key} is corrupt", cause=exc) from exc

    async def save(self, value: ModelT) -> ModelT:
        self._store.set(self._key, value.model_dump_json())
        return value

    async def clear(self) -> None:
        self._store.delete(self._key)
