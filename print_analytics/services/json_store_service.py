"""
Flat-file JSON store: one ``<collection>.json`` document per collection

Each file carries the envelope ``{data, timestamp, type, recordCount}``.
Writes go to a temp file that is renamed over the target, and an
``asyncio.Lock`` serialises read-modify-write cycles within the process.
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..utils.exceptions import StorageError
from ..utils.timeutils import to_iso, utc_now
from .storage import COLLECTIONS, StorageBackend

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings"
AUTH_LOG_FILE = "auth_log"


def _sort_key(record: Dict[str, Any], field: str):
    value = record.get(field)
    # None sorts after real values in ascending order
    return ((1,) if value is None else (0, value), str(record.get('id')))


class JsonStoreService(StorageBackend):
    """Single-process JSON file backend"""

    name = "json"

    def __init__(self, data_dir: Path, auth_log_limit: int = 100, backup_on_write: bool = False):
        self.data_dir = Path(data_dir)
        self.auth_log_limit = auth_log_limit
        self.backup_on_write = backup_on_write
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"JSON store initialized in {self.data_dir}")

    async def close(self) -> None:
        pass

    async def ping(self) -> bool:
        return self.data_dir.is_dir() and os.access(self.data_dir, os.W_OK)

    # File helpers

    def _path(self, name: str) -> Path:
        return self.data_dir / f"{name}.json"

    def _read(self, name: str, default):
        path = self._path(name)
        if not path.exists():
            return default
        try:
            with open(path, 'r', encoding='utf-8') as f:
                content = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {path}: {e}")
            raise StorageError(f"Failed to read {name}: {e}") from e

        # Envelope files keep the payload under "data"; the auth log is a bare list
        if isinstance(content, dict) and 'data' in content:
            return content['data']
        return content

    def _write_file(self, path: Path, payload) -> None:
        fd, temp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2)
            os.replace(temp_path, path)
        except OSError as e:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            logger.error(f"Failed to write {path}: {e}")
            raise StorageError(f"Failed to write {path.name}: {e}") from e

    def _write(self, name: str, data) -> None:
        timestamp = to_iso(utc_now())
        envelope = {
            'data': data,
            'timestamp': timestamp,
            'type': name,
            'recordCount': len(data) if isinstance(data, (list, dict)) else 1,
        }
        self._write_file(self._path(name), envelope)

        if self.backup_on_write:
            stamp = timestamp.replace(':', '-').replace('.', '-')
            self._write_file(self.data_dir / f"{name}_backup_{stamp}.json", envelope)

    def _collection(self, collection: str) -> List[Dict[str, Any]]:
        if collection not in COLLECTIONS:
            raise StorageError(f"Unknown collection: {collection}")
        return self._read(collection, [])

    # Record operations

    async def list_records(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 100,
    ) -> Tuple[List[Dict[str, Any]], int]:
        records = self._collection(collection)
        for field, value in (filters or {}).items():
            if value is not None:
                records = [r for r in records if r.get(field) == value]

        records.sort(key=lambda r: _sort_key(r, sort_by), reverse=(sort_order == "desc"))
        start = (page - 1) * limit
        return records[start:start + limit], len(records)

    async def get_record(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        for record in self._collection(collection):
            if str(record.get('id')) == record_id:
                return record
        return None

    async def insert_record(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        async with self._lock:
            records = self._collection(collection)
            if any(str(r.get('id')) == record['id'] for r in records):
                raise StorageError(f"Duplicate {collection} id {record['id']}")
            records.append(record)
            self._write(collection, records)
        logger.info(f"Inserted {collection} record {record['id']}")
        return record

    async def replace_record(self, collection: str, record_id: str, record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        async with self._lock:
            records = self._collection(collection)
            for index, existing in enumerate(records):
                if str(existing.get('id')) == record_id:
                    records[index] = {**record, 'id': record_id}
                    self._write(collection, records)
                    logger.info(f"Replaced {collection} record {record_id}")
                    return records[index]
        return None

    async def delete_record(self, collection: str, record_id: str) -> bool:
        async with self._lock:
            records = self._collection(collection)
            remaining = [r for r in records if str(r.get('id')) != record_id]
            if len(remaining) == len(records):
                logger.warning(f"{collection} record {record_id} not found for deletion")
                return False
            self._write(collection, remaining)
        logger.info(f"Deleted {collection} record {record_id}")
        return True

    async def count_records(self, collection: str) -> int:
        return len(self._collection(collection))

    async def sum_field(self, collection: str, field: str) -> float:
        return float(sum(float(r.get(field) or 0) for r in self._collection(collection)))

    # Settings

    async def get_settings(self) -> Dict[str, Any]:
        return dict(self._read(SETTINGS_FILE, {}))

    async def upsert_settings(self, values: Dict[str, Any]) -> Dict[str, Any]:
        async with self._lock:
            settings = dict(self._read(SETTINGS_FILE, {}))
            settings.update(values)
            self._write(SETTINGS_FILE, settings)
        logger.info(f"Upserted settings: {', '.join(values)}")
        return settings

    # Auth log

    async def append_auth_log(self, entry: Dict[str, Any]) -> None:
        async with self._lock:
            entries = list(self._read(AUTH_LOG_FILE, []))
            entries.append(entry)
            # Keep only the most recent attempts
            entries = entries[-self.auth_log_limit:]
            self._write_file(self._path(AUTH_LOG_FILE), entries)

    async def list_auth_logs(self, limit: int = 100) -> List[Dict[str, Any]]:
        entries = list(self._read(AUTH_LOG_FILE, []))
        return list(reversed(entries))[:limit]
