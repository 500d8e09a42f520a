"""
Crude — SQLAlchemy Entity Adapter
===================================

What:  Entity implementation over an async SQLAlchemy declarative model.
Why:   Gives CrudController a real storage backend using the same async
       engine/session stack as the rest of the application.
How:   One AsyncSession per operation, opened from an injected
       async_sessionmaker. Query mappings become equality filters on mapped
       columns; identifiers become primary-key lookups.
Who:   Constructed by the application factory (one per mounted model) and
       handed to a CrudController.

Translation rules:
    - Query mapping {field: value} → WHERE field = value AND ... (None → IS NULL)
    - Unknown query fields → PersistenceError (never silently ignored)
    - String values for integer/float columns are coerced; form fields and
      URL segments always arrive as strings
    - create/update only assign mapped, non-primary-key attributes; other
      keys are dropped (a strict schema, like a document model would be)
    - read / read_limit order by primary key so pages are stable

Error Translation:
    SQLAlchemyError → rollback → PersistenceError (driver detail in context
    and in the log, generic message for the client).
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import Column, func, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import Select

from crude.exceptions import NotFoundError, PersistenceError
from crude.services.entity_base import Entity

logger = logging.getLogger(__name__)

_COERCIBLE_TYPES = (int, float)


class SqlAlchemyEntity(Entity):
    """
    Entity backed by a SQLAlchemy declarative model.

    Args:
        model:            Declarative model class
        session_factory:  async_sessionmaker producing AsyncSession objects;
                          should use expire_on_commit=False because returned
                          records are read after their session closes
        current_user:     Optional identity the entity acts for
    """

    def __init__(
        self,
        model: Any,
        session_factory: async_sessionmaker[AsyncSession],
        current_user: Optional[Any] = None,
    ):
        super().__init__(model, current_user)
        self._session_factory = session_factory
        mapper = inspect(model)
        self._columns: Dict[str, Column] = {
            attr.key: attr.columns[0] for attr in mapper.column_attrs
        }
        self._primary_keys = {
            key for key, column in self._columns.items() if column.primary_key
        }
        self._order_by = [getattr(model, key) for key in self._primary_keys]
        self.resource = model.__name__.lower()

    # ── Translation helpers ───────────────────────────────────────────────

    @staticmethod
    def _coerce(column: Column, value: Any) -> Any:
        """Convert string values for numeric columns; leave the rest alone."""
        if not isinstance(value, str):
            return value
        try:
            python_type = column.type.python_type
        except NotImplementedError:
            return value
        if python_type not in _COERCIBLE_TYPES:
            return value
        try:
            return python_type(value)
        except (TypeError, ValueError):
            return value

    def _filtered(self, stmt: Select, query: Optional[Mapping[str, Any]]) -> Select:
        """Apply a query mapping as equality filters."""
        conditions = []
        for key, value in (query or {}).items():
            column = self._columns.get(key)
            if column is None:
                raise PersistenceError(
                    message=f"Invalid query for {self.resource}",
                    context={"field": key},
                )
            conditions.append(getattr(self.model, key) == self._coerce(column, value))
        if conditions:
            stmt = stmt.where(*conditions)
        return stmt

    def _identity(self, ident: Any) -> Any:
        # Single-column primary keys only
        key = next(iter(self._primary_keys))
        return self._coerce(self._columns[key], ident)

    def _assignable(self, item_data: Mapping[str, Any]) -> Dict[str, Any]:
        """Keep mapped, non-identity attributes; coerce their values."""
        values = {}
        dropped = []
        for key, value in item_data.items():
            column = self._columns.get(key)
            if column is None or key in self._primary_keys:
                dropped.append(key)
                continue
            values[key] = self._coerce(column, value)
        if dropped:
            logger.debug("Ignoring non-assignable %s fields: %s", self.resource, dropped)
        return values

    async def _load(self, session: AsyncSession, id_or_query: Any) -> Optional[Any]:
        if isinstance(id_or_query, Mapping):
            stmt = self._filtered(select(self.model), id_or_query).limit(1)
            result = await session.execute(stmt)
            return result.scalars().first()
        return await session.get(self.model, self._identity(id_or_query))

    def _persistence_error(self, operation: str, exc: SQLAlchemyError) -> PersistenceError:
        logger.error("Database error during %s on %s: %s", operation, self.resource, str(exc))
        return PersistenceError(
            context={
                "operation": operation,
                "resource": self.resource,
                "error_type": type(exc).__name__,
            },
        )

    # ── Entity contract ───────────────────────────────────────────────────

    async def create(self, item_data: Mapping[str, Any]) -> Any:
        item = self.model(**self._assignable(item_data))
        async with self._session_factory() as session:
            try:
                session.add(item)
                await session.commit()
                await session.refresh(item)
            except SQLAlchemyError as e:
                await session.rollback()
                raise self._persistence_error("create", e)
        logger.info("Created %s %r", self.resource, item)
        return item

    async def read_one(self, id_or_query: Any) -> Optional[Any]:
        async with self._session_factory() as session:
            try:
                return await self._load(session, id_or_query)
            except SQLAlchemyError as e:
                raise self._persistence_error("read_one", e)

    async def read(self, query: Optional[Mapping[str, Any]] = None) -> Sequence[Any]:
        stmt = self._filtered(select(self.model), query).order_by(*self._order_by)
        return await self._fetch_all("read", stmt)

    async def read_limit(
        self,
        query: Optional[Mapping[str, Any]],
        skip: int,
        limit: int,
    ) -> Sequence[Any]:
        stmt = (
            self._filtered(select(self.model), query)
            .order_by(*self._order_by)
            .offset(skip)
            .limit(limit)
        )
        return await self._fetch_all("read_limit", stmt)

    async def _fetch_all(self, operation: str, stmt: Select) -> List[Any]:
        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                return list(result.scalars().all())
            except SQLAlchemyError as e:
                raise self._persistence_error(operation, e)

    async def count(self, query: Optional[Mapping[str, Any]] = None) -> int:
        stmt = self._filtered(select(func.count()).select_from(self.model), query)
        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                return int(result.scalar_one())
            except SQLAlchemyError as e:
                raise self._persistence_error("count", e)

    async def update(self, id_or_query: Any, item_data: Mapping[str, Any]) -> Any:
        async with self._session_factory() as session:
            try:
                item = await self._load(session, id_or_query)
                if item is None:
                    raise NotFoundError(resource=self.resource, resource_id=str(id_or_query))
                for key, value in self._assignable(item_data).items():
                    setattr(item, key, value)
                await session.commit()
                await session.refresh(item)
            except SQLAlchemyError as e:
                await session.rollback()
                raise self._persistence_error("update", e)
        logger.info("Updated %s %r", self.resource, item)
        return item

    async def delete(self, id_or_query: Any) -> None:
        async with self._session_factory() as session:
            try:
                item = await self._load(session, id_or_query)
                if item is None:
                    raise NotFoundError(resource=self.resource, resource_id=str(id_or_query))
                await session.delete(item)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise self._persistence_error("delete", e)
        logger.info("Deleted %s %s", self.resource, id_or_query)

    def schema_paths(self) -> Mapping[str, str]:
        return {key: type(column.type).__name__ for key, column in self._columns.items()}
