"""
Storage backend interface and factory
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..core.config import get_project_root
from ..utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

COLLECTIONS = ("jobs", "feedback", "projects")


class StorageBackend(ABC):
    """
    Async document store for jobs, feedback, projects, settings and the auth log

    Records cross this interface as camelCase dictionaries, the same shape the
    API returns. Backends only persist; domain rules live in RecordService.
    """

    name = "abstract"

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables / data directory. Safe to call twice."""

    @abstractmethod
    async def close(self) -> None:
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """True when the store is reachable"""

    @abstractmethod
    async def list_records(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 100,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        One page of a collection

        Filters are equality matches on API field names. Ties on the sort
        key are broken by id in the same direction.

        Returns:
            (records on the page, total matching records)
        """

    @abstractmethod
    async def get_record(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def insert_record(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def replace_record(self, collection: str, record_id: str, record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Overwrite every field of an existing record; None when absent"""

    @abstractmethod
    async def delete_record(self, collection: str, record_id: str) -> bool:
        pass

    @abstractmethod
    async def count_records(self, collection: str) -> int:
        pass

    @abstractmethod
    async def sum_field(self, collection: str, field: str) -> float:
        pass

    @abstractmethod
    async def get_settings(self) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def upsert_settings(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Upsert each key independently and return the full mapping"""

    @abstractmethod
    async def append_auth_log(self, entry: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def list_auth_logs(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Most recent entries first"""


def resolve_data_dir(data_dir) -> Path:
    """Relative data directories are anchored at the project root"""
    path = Path(data_dir)
    if not path.is_absolute():
        path = get_project_root() / path
    return path


def create_storage(config: Dict[str, Any]) -> StorageBackend:
    """Build the backend selected by ``storage.backend``"""
    storage_config = config.get("storage", {})
    backend = storage_config.get("backend", "sqlite")
    data_dir = resolve_data_dir(storage_config.get("data_dir", "data"))

    if backend == "sqlite":
        from .database_service import DatabaseService

        database_url = storage_config.get("database_url")
        if not database_url:
            database_url = f"sqlite+aiosqlite:///{data_dir / 'print_analytics.db'}"
        return DatabaseService(database_url=database_url, data_dir=data_dir)

    if backend == "json":
        from .json_store_service import JsonStoreService

        return JsonStoreService(
            data_dir=data_dir,
            auth_log_limit=storage_config.get("auth_log_limit", 100),
            backup_on_write=storage_config.get("backup_on_write", False),
        )

    raise ConfigurationError(f"Unsupported storage backend: {backend}")
