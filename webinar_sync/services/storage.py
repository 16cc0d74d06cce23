"""
@file: webinar_sync/services/storage.py
@description: Хранилище пайплайна: upsert с conflict target, insert, delete и select по фильтру
@dependencies: sqlmodel, sqlalchemy
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from webinar_sync.core.logging import get_logger
from webinar_sync.exceptions import StorageError
from webinar_sync.models import TABLE_MODELS
from webinar_sync.utils.datetime_utils import utc_now

logger = get_logger(__name__)


def collapse_by_key(rows: Iterable[Dict[str, Any]], conflict_columns: Sequence[str]) -> List[Dict[str, Any]]:
    """
    Схлопывает строки с одинаковым ключом конфликта (побеждает последняя).

    PostgreSQL не позволяет одному INSERT ... ON CONFLICT затронуть строку дважды.
    Порядок первых появлений ключей сохраняется.
    """
    collapsed: Dict[tuple, Dict[str, Any]] = {}
    for row in rows:
        key = tuple(row.get(column) for column in conflict_columns)
        collapsed[key] = row
    return list(collapsed.values())


class SyncStorage(ABC):
    """Интерфейс хранилища, от которого зависит пайплайн"""

    @abstractmethod
    async def upsert(
        self,
        table: str,
        rows: List[Dict[str, Any]],
        conflict_columns: Sequence[str]
    ) -> int:
        """Вставить или обновить строки по ключу конфликта. Возвращает число затронутых строк."""

    @abstractmethod
    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> int:
        """Добавить строки (append-only таблицы)"""

    @abstractmethod
    async def delete(self, table: str, filters: Dict[str, Any]) -> int:
        """Удалить строки, удовлетворяющие всем фильтрам на равенство"""

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Выбрать строки по фильтрам на равенство"""


class SqlStorage(SyncStorage):
    """Реализация хранилища на асинхронной сессии SQLModel (PostgreSQL)"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _table(self, table: str):
        model = TABLE_MODELS.get(table)
        if model is None:
            raise StorageError(f"Unknown table: {table}")
        return model.__table__

    def _prepare_rows(self, sa_table, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Оставляет только колонки таблицы и заполняет служебные поля"""
        columns = set(sa_table.c.keys())
        now = utc_now()
        prepared = []
        for row in rows:
            values = {key: value for key, value in row.items() if key in columns}
            values.setdefault("id", uuid4())
            values.setdefault("created_at", now)
            values["updated_at"] = now
            prepared.append(values)
        return prepared

    async def upsert(
        self,
        table: str,
        rows: List[Dict[str, Any]],
        conflict_columns: Sequence[str]
    ) -> int:
        if not rows:
            return 0

        sa_table = self._table(table)
        prepared = self._prepare_rows(sa_table, collapse_by_key(rows, conflict_columns))

        try:
            for values in prepared:
                stmt = pg_insert(sa_table).values(**values)
                update_columns = {
                    key: stmt.excluded[key]
                    for key in values
                    if key not in ("id", "created_at") and key not in conflict_columns
                }
                stmt = stmt.on_conflict_do_update(
                    index_elements=list(conflict_columns),
                    set_=update_columns
                )
                await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Upsert into {table} failed: {e}")
            raise StorageError(f"Upsert into {table} failed: {e}") from e

        logger.debug(f"Upserted {len(prepared)} rows into {table}")
        return len(prepared)

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> int:
        if not rows:
            return 0

        sa_table = self._table(table)
        prepared = self._prepare_rows(sa_table, rows)

        try:
            await self.session.execute(sa_table.insert(), prepared)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Insert into {table} failed: {e}")
            raise StorageError(f"Insert into {table} failed: {e}") from e

        return len(prepared)

    async def delete(self, table: str, filters: Dict[str, Any]) -> int:
        if not filters:
            raise StorageError("Refusing to delete without filters")

        sa_table = self._table(table)
        stmt = delete(sa_table).where(*[sa_table.c[key] == value for key, value in filters.items()])

        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Delete from {table} failed: {e}")
            raise StorageError(f"Delete from {table} failed: {e}") from e

        return result.rowcount or 0

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        sa_table = self._table(table)
        stmt = select(sa_table)
        if filters:
            stmt = stmt.where(*[sa_table.c[key] == value for key, value in filters.items()])
        if order_by:
            column = sa_table.c[order_by]
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit:
            stmt = stmt.limit(limit)

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Select from {table} failed: {e}")
            raise StorageError(f"Select from {table} failed: {e}") from e

        return [dict(row) for row in result.mappings().all()]
