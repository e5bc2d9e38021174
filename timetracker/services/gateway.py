"""Typed record-store access for the five tables the app reads and writes.

Every operation is awaited and resolves to a :class:`GatewayResult`; backend
failures never raise out of the gateway. Callers inspect ``result.error`` and
decide how to surface it. Records travel as plain dicts keyed by column name;
``select("project", "task")`` nests the related row under the relation name.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable

from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import RelationshipDirection, selectinload, sessionmaker
from starlette.concurrency import run_in_threadpool

from ..models import AuthorizedEmail, Project, Task, TimeEntry, User
from ..models._columns import utcnow

logger = logging.getLogger(__name__)

TABLES: dict[str, type] = {
    "users": User,
    "authorized_emails": AuthorizedEmail,
    "projects": Project,
    "tasks": Task,
    "time_entries": TimeEntry,
}

NOT_CONFIGURED = "backend not configured"


class GatewayError(Exception):
    """Raised inside the gateway and folded into a ``GatewayResult``."""


@dataclass
class GatewayResult:
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _normalize(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    return value


class TableQuery:
    """Chainable select against one table."""

    def __init__(self, gateway: "DataGateway", table: str) -> None:
        self.gateway = gateway
        self.table = table
        self.expand: tuple[str, ...] = ()
        self.filters: list[tuple[str, str, Any]] = []
        self.orders: list[tuple[str, bool]] = []
        self.single_row = False

    def select(self, *expand: str) -> "TableQuery":
        self.expand = tuple(expand)
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        self.filters.append(("eq", column, _normalize(value)))
        return self

    def gte(self, column: str, value: Any) -> "TableQuery":
        self.filters.append(("gte", column, _normalize(value)))
        return self

    def lte(self, column: str, value: Any) -> "TableQuery":
        self.filters.append(("lte", column, _normalize(value)))
        return self

    def order(self, column: str, *, descending: bool = False) -> "TableQuery":
        self.orders.append((column, descending))
        return self

    def single(self) -> "TableQuery":
        self.single_row = True
        return self

    async def execute(self) -> GatewayResult:
        return await self.gateway.run_select(self)


class DataGateway(abc.ABC):
    def table(self, name: str) -> TableQuery:
        return TableQuery(self, name)

    @abc.abstractmethod
    async def run_select(self, query: TableQuery) -> GatewayResult: ...

    @abc.abstractmethod
    async def insert(self, table: str, values: dict[str, Any]) -> GatewayResult: ...

    @abc.abstractmethod
    async def upsert(self, table: str, values: dict[str, Any], *, on: str) -> GatewayResult: ...

    @abc.abstractmethod
    async def update(self, table: str, record_id: str, values: dict[str, Any]) -> GatewayResult: ...

    @abc.abstractmethod
    async def delete(self, table: str, record_id: str) -> GatewayResult: ...


class UnconfiguredGateway(DataGateway):
    """Stand-in used when the backend URL or key is missing."""

    async def run_select(self, query: TableQuery) -> GatewayResult:
        return GatewayResult(error=NOT_CONFIGURED)

    async def insert(self, table: str, values: dict[str, Any]) -> GatewayResult:
        return GatewayResult(error=NOT_CONFIGURED)

    async def upsert(self, table: str, values: dict[str, Any], *, on: str) -> GatewayResult:
        return GatewayResult(error=NOT_CONFIGURED)

    async def update(self, table: str, record_id: str, values: dict[str, Any]) -> GatewayResult:
        return GatewayResult(error=NOT_CONFIGURED)

    async def delete(self, table: str, record_id: str) -> GatewayResult:
        return GatewayResult(error=NOT_CONFIGURED)


_FILTERS: dict[str, Callable[[Any, Any], Any]] = {
    "eq": lambda column, value: column == value,
    "gte": lambda column, value: column >= value,
    "lte": lambda column, value: column <= value,
}


class SqlGateway(DataGateway):
    """Gateway backed by SQLAlchemy; each call gets its own session."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    # ---- public operations

    async def run_select(self, query: TableQuery) -> GatewayResult:
        return await self._call("select", query.table, self._select, query)

    async def insert(self, table: str, values: dict[str, Any]) -> GatewayResult:
        return await self._call("insert", table, self._insert, table, values)

    async def upsert(self, table: str, values: dict[str, Any], *, on: str) -> GatewayResult:
        return await self._call("upsert", table, self._upsert, table, values, on)

    async def update(self, table: str, record_id: str, values: dict[str, Any]) -> GatewayResult:
        return await self._call("update", table, self._update, table, record_id, values)

    async def delete(self, table: str, record_id: str) -> GatewayResult:
        return await self._call("delete", table, self._delete, table, record_id)

    async def _call(self, operation: str, table: str, fn: Callable[..., Any], *args: Any) -> GatewayResult:
        try:
            data = await run_in_threadpool(fn, *args)
        except (GatewayError, SQLAlchemyError) as exc:
            logger.warning(
                "gateway.%s failed",
                operation,
                extra={"extra_data": {"table": table, "operation": operation, "error": str(exc)}},
            )
            return GatewayResult(error=str(exc))
        return GatewayResult(data=data)

    # ---- mapping helpers

    @staticmethod
    def _model(table: str) -> type:
        try:
            return TABLES[table]
        except KeyError:
            raise GatewayError(f"unknown table: {table}") from None

    @staticmethod
    def _attribute_keys(model: type) -> dict[str, str]:
        """Map column names to mapped attribute names."""

        return {attr.columns[0].name: attr.key for attr in inspect(model).column_attrs}

    def _attribute(self, model: type, column: str) -> str:
        keys = self._attribute_keys(model)
        if column not in keys:
            raise GatewayError(f"unknown column: {model.__tablename__}.{column}")
        return keys[column]

    @staticmethod
    def _relation(model: type, name: str) -> None:
        relationships = inspect(model).relationships
        if name not in relationships or relationships[name].direction is not RelationshipDirection.MANYTOONE:
            raise GatewayError(f"cannot expand {model.__tablename__}.{name}")

    def _record(self, row: Any) -> dict[str, Any]:
        return {column: getattr(row, key) for column, key in self._attribute_keys(type(row)).items()}

    def _assign(self, obj: Any, values: dict[str, Any]) -> None:
        model = type(obj)
        for column, value in values.items():
            setattr(obj, self._attribute(model, column), _normalize(value))

    # ---- synchronous bodies run in the threadpool

    def _select(self, query: TableQuery) -> Any:
        model = self._model(query.table)
        stmt = select(model)
        for op, column, value in query.filters:
            attr = getattr(model, self._attribute(model, column))
            stmt = stmt.where(_FILTERS[op](attr, value))
        for column, descending in query.orders:
            attr = getattr(model, self._attribute(model, column))
            stmt = stmt.order_by(attr.desc() if descending else attr.asc())
        for name in query.expand:
            self._relation(model, name)
            stmt = stmt.options(selectinload(getattr(model, name)))
        with self._session_factory() as db:
            rows = db.execute(stmt).scalars().all()
            records = []
            for row in rows:
                record = self._record(row)
                for name in query.expand:
                    related = getattr(row, name)
                    record[name] = self._record(related) if related is not None else None
                records.append(record)
        if query.single_row:
            if len(records) != 1:
                raise GatewayError(f"expected a single row from {query.table}, found {len(records)}")
            return records[0]
        return records

    def _insert(self, table: str, values: dict[str, Any]) -> dict[str, Any]:
        model = self._model(table)
        obj = model()
        self._assign(obj, values)
        with self._session_factory() as db:
            db.add(obj)
            db.commit()
            return self._record(obj)

    def _upsert(self, table: str, values: dict[str, Any], on: str) -> dict[str, Any]:
        model = self._model(table)
        if on not in values:
            raise GatewayError(f"upsert key {on} missing from values")
        key_attr = getattr(model, self._attribute(model, on))
        with self._session_factory() as db:
            obj = db.execute(select(model).where(key_attr == values[on])).scalars().first()
            if obj is None:
                obj = model()
                db.add(obj)
            elif hasattr(obj, "updated_at") and "updated_at" not in values:
                obj.updated_at = utcnow()
            self._assign(obj, values)
            db.commit()
            return self._record(obj)

    def _update(self, table: str, record_id: str, values: dict[str, Any]) -> dict[str, Any]:
        model = self._model(table)
        with self._session_factory() as db:
            obj = db.get(model, record_id)
            if obj is None:
                raise GatewayError(f"{table} row {record_id} not found")
            self._assign(obj, values)
            if hasattr(obj, "updated_at") and "updated_at" not in values:
                obj.updated_at = utcnow()
            db.commit()
            return self._record(obj)

    def _delete(self, table: str, record_id: str) -> dict[str, Any]:
        model = self._model(table)
        with self._session_factory() as db:
            obj = db.get(model, record_id)
            if obj is None:
                raise GatewayError(f"{table} row {record_id} not found")
            record = self._record(obj)
            db.delete(obj)
            db.commit()
            return record
