"""
Database service for the local SQLite document store
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.exc import SQLAlchemyError

from ..models.database import Base, AuthLog, Setting, COLLECTION_MODELS
from ..utils.exceptions import StorageError, ValidationError
from ..utils.timeutils import parse_iso, utc_now
from .storage import StorageBackend

logger = logging.getLogger(__name__)


class DatabaseService(StorageBackend):
    """
    SQLAlchemy async store (sqlite+aiosqlite by default)

    Every write runs in its own session and commits a single row, which is
    the atomicity unit the API relies on.
    """

    name = "sqlite"

    def __init__(self, database_url: str, data_dir: Optional[Path] = None):
        """
        Initialize database service

        Args:
            database_url: SQLAlchemy async URL
            data_dir: Directory to create for file-based SQLite databases
        """
        self.database_url = database_url
        self.data_dir = Path(data_dir) if data_dir else None
        self._initialized = False

        connect_args = {}
        if database_url.startswith("sqlite"):
            connect_args = {
                "check_same_thread": False,
                "timeout": 30,  # seconds to wait on a locked database
            }

        self.engine = create_async_engine(
            database_url,
            echo=False,
            future=True,
            pool_pre_ping=True,
            connect_args=connect_args,
        )

        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        logger.info(f"Database service created for {database_url}")

    async def initialize(self):
        """
        Create database tables if they don't exist
        """
        if self._initialized:
            return
        if self.data_dir is not None and self.database_url.startswith("sqlite"):
            self.data_dir.mkdir(parents=True, exist_ok=True)
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database: {e}")
            raise StorageError(f"Failed to initialize database: {e}") from e
        self._initialized = True
        logger.info("Database tables initialized successfully")

    async def close(self):
        """
        Close database connections
        """
        await self.engine.dispose()
        self._initialized = False
        logger.info("Database connections closed")

    @asynccontextmanager
    async def get_session(self):
        """
        Get async database session with automatic cleanup
        """
        async with self.async_session() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Database operation failed: {e}")
                raise StorageError(str(e)) from e
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        try:
            async with self.get_session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except StorageError:
            return False

    # Record operations

    def _model(self, collection: str):
        try:
            return COLLECTION_MODELS[collection]
        except KeyError:
            raise StorageError(f"Unknown collection: {collection}")

    def _column(self, model, field: str):
        column_name = model.FIELD_COLUMNS.get(field)
        if column_name is None:
            raise ValidationError("Validation failed", [
                {'field': field, 'message': f"Field '{field}' cannot be used here"}
            ])
        return getattr(model, column_name)

    async def list_records(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 100,
    ) -> Tuple[List[Dict[str, Any]], int]:
        model = self._model(collection)
        conditions = [
            self._column(model, field) == value
            for field, value in (filters or {}).items()
            if value is not None
        ]

        sort_column = self._column(model, sort_by)
        if sort_order == "asc":
            ordering = (sort_column.asc(), model.id.asc())
        else:
            ordering = (sort_column.desc(), model.id.desc())

        async with self.get_session() as session:
            total = await session.scalar(
                select(func.count()).select_from(model).where(*conditions)
            )
            result = await session.scalars(
                select(model)
                .where(*conditions)
                .order_by(*ordering)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            items = [row.to_dict() for row in result.all()]

        return items, total or 0

    async def get_record(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        model = self._model(collection)
        async with self.get_session() as session:
            row = await session.get(model, record_id)
            return row.to_dict() if row else None

    async def insert_record(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        model = self._model(collection)
        async with self.get_session() as session:
            row = model.from_dict(record)
            session.add(row)
            await session.commit()
            logger.info(f"Inserted {collection} record {row.id}")
            return row.to_dict()

    async def replace_record(self, collection: str, record_id: str, record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        model = self._model(collection)
        async with self.get_session() as session:
            existing = await session.get(model, record_id)
            if existing is None:
                return None

            replacement = model.from_dict({**record, 'id': record_id})
            for column in model.__table__.columns:
                if column.key == 'id':
                    continue
                setattr(existing, column.key, getattr(replacement, column.key))

            await session.commit()
            logger.info(f"Replaced {collection} record {record_id}")
            return existing.to_dict()

    async def delete_record(self, collection: str, record_id: str) -> bool:
        model = self._model(collection)
        async with self.get_session() as session:
            existing = await session.get(model, record_id)
            if existing is None:
                logger.warning(f"{collection} record {record_id} not found for deletion")
                return False
            await session.delete(existing)
            await session.commit()
            logger.info(f"Deleted {collection} record {record_id}")
            return True

    async def count_records(self, collection: str) -> int:
        model = self._model(collection)
        async with self.get_session() as session:
            return await session.scalar(select(func.count()).select_from(model)) or 0

    async def sum_field(self, collection: str, field: str) -> float:
        model = self._model(collection)
        column = self._column(model, field)
        async with self.get_session() as session:
            total = await session.scalar(select(func.coalesce(func.sum(column), 0)))
            return float(total or 0)

    # Settings operations

    async def get_settings(self) -> Dict[str, Any]:
        async with self.get_session() as session:
            result = await session.scalars(select(Setting).order_by(Setting.key))
            return {setting.key: setting.value for setting in result.all()}

    async def upsert_settings(self, values: Dict[str, Any]) -> Dict[str, Any]:
        async with self.get_session() as session:
            for key, value in values.items():
                existing = await session.get(Setting, key)
                if existing:
                    existing.value = value
                    existing.updated_at = utc_now()
                else:
                    session.add(Setting(key=key, value=value, updated_at=utc_now()))
            await session.commit()
        logger.info(f"Upserted settings: {', '.join(values)}")
        return await self.get_settings()

    # Auth log operations

    async def append_auth_log(self, entry: Dict[str, Any]) -> None:
        async with self.get_session() as session:
            session.add(AuthLog(
                ip=entry.get('ip') or 'unknown',
                user_agent=entry.get('userAgent'),
                action=entry.get('action') or 'login',
                success=bool(entry.get('success')),
                timestamp=parse_iso(entry.get('timestamp')) or utc_now(),
            ))
            await session.commit()

    async def list_auth_logs(self, limit: int = 100) -> List[Dict[str, Any]]:
        async with self.get_session() as session:
            result = await session.scalars(
                select(AuthLog)
                .order_by(AuthLog.timestamp.desc(), AuthLog.id.desc())
                .limit(limit)
            )
            return [entry.to_dict() for entry in result.all()]
