"""
SQLAlchemy implementation of the entity store.

Each call runs in its own session and commits before returning, so a mutation
is either fully applied or not at all. After a successful commit the affected
row is published on the change feed.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type

from sqlalchemy import Date, DateTime, Select, func, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from peopledesk.core.exceptions import StoreError
from peopledesk.db.base_class import Base
from peopledesk.models.department import Department
from peopledesk.models.employee import Employee
from peopledesk.models.employee_document import EmployeeDocument
from peopledesk.models.leave_request import LeaveRequest
from peopledesk.realtime.events import ChangeEvent, EventType
from peopledesk.realtime.feed import ChangeFeed
from peopledesk.store.base import CollectionName, EntityStore
from peopledesk.store.query import Collection, QuerySpec, Row

logger = logging.getLogger(__name__)

MODELS: Dict[Collection, Type[Base]] = {
    Collection.EMPLOYEES: Employee,
    Collection.DEPARTMENTS: Department,
    Collection.LEAVE_REQUESTS: LeaveRequest,
    Collection.EMPLOYEE_DOCUMENTS: EmployeeDocument,
}


def to_row(obj: Base) -> Row:
    """Plain dict of an ORM object's column attributes."""
    return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}


@contextmanager
def _translate_errors(operation: str, collection: Collection):
    try:
        yield
    except IntegrityError as exc:
        raise StoreError(
            f"{operation} on {collection.value} violates a constraint: {exc.orig}",
            reason="constraint",
        ) from exc
    except SQLAlchemyError as exc:
        raise StoreError(f"{operation} on {collection.value} failed: {exc}", reason="store_error") from exc
    except (OSError, ConnectionError) as exc:
        raise StoreError(f"Store unavailable during {operation} on {collection.value}: {exc}", reason="unavailable") from exc


class SQLAlchemyEntityStore(EntityStore):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], feed: Optional[ChangeFeed] = None):
        self._session_factory = session_factory
        self._feed = feed

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _collection(collection: CollectionName) -> Collection:
        try:
            return Collection(collection)
        except ValueError:
            raise StoreError(f"Unknown collection: {collection}", reason="unknown_collection")

    def _model(self, collection: Collection) -> Type[Base]:
        return MODELS[collection]

    @staticmethod
    def _column(model: Type[Base], field: str):
        columns = model.__table__.columns
        if field not in columns:
            raise StoreError(f"Unknown field '{field}' on {model.__tablename__}", reason="unknown_field")
        return getattr(model, field)

    def _coerce(self, model: Type[Base], values: Mapping[str, Any]) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for key, value in values.items():
            column = self._column(model, key)
            if isinstance(value, Enum):
                value = value.value
            if isinstance(value, str) and value:
                column_type = column.property.columns[0].type
                try:
                    if isinstance(column_type, DateTime):
                        value = datetime.fromisoformat(value)
                    elif isinstance(column_type, Date):
                        value = date.fromisoformat(value)
                except ValueError:
                    raise StoreError(f"Invalid date for {key}: {value!r}", reason="validation")
            data[key] = value
        return data

    def _apply(self, stmt: Select, model: Type[Base], spec: QuerySpec, ordered: bool = True) -> Select:
        for predicate in spec.active_filters:
            value = predicate.value.value if isinstance(predicate.value, Enum) else predicate.value
            stmt = stmt.where(self._column(model, predicate.field) == value)
        if spec.search is not None and not spec.search.unrestricted:
            column = self._column(model, spec.search.field)
            stmt = stmt.where(column.icontains(spec.search.term, autoescape=True))
        if ordered and spec.order is not None:
            column = self._column(model, spec.order.field)
            stmt = stmt.order_by(column.desc() if spec.order.descending else column.asc())
        if ordered and spec.limit is not None:
            stmt = stmt.limit(spec.limit)
        return stmt

    async def _publish(self, collection: Collection, event_type: EventType, row: Row) -> None:
        if self._feed is None:
            return
        try:
            await self._feed.publish(ChangeEvent(collection.value, event_type, row))
        except StoreError as exc:
            # The write is committed; listeners catch up on their next change
            logger.warning(f"Change event for {collection.value} not published: {exc.message}")

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    async def query(self, collection: CollectionName, spec: Optional[QuerySpec] = None) -> List[Row]:
        name = self._collection(collection)
        model = self._model(name)
        spec = spec or QuerySpec()
        stmt = self._apply(select(model), model, spec)
        with _translate_errors("query", name):
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = [to_row(obj) for obj in result.scalars().all()]
        logger.debug(f"query {name.value} {spec.describe()} -> {len(rows)} rows")
        return rows

    async def get(self, collection: CollectionName, row_id: str) -> Optional[Row]:
        name = self._collection(collection)
        model = self._model(name)
        with _translate_errors("get", name):
            async with self._session_factory() as session:
                obj = await session.get(model, row_id)
                return to_row(obj) if obj is not None else None

    async def count(self, collection: CollectionName, spec: Optional[QuerySpec] = None) -> int:
        name = self._collection(collection)
        model = self._model(name)
        stmt = self._apply(select(func.count()).select_from(model), model, spec or QuerySpec(), ordered=False)
        with _translate_errors("count", name):
            async with self._session_factory() as session:
                return int((await session.execute(stmt)).scalar_one())

    async def count_by(self, collection: CollectionName, field: str, spec: Optional[QuerySpec] = None) -> Dict[Any, int]:
        name = self._collection(collection)
        model = self._model(name)
        column = self._column(model, field)
        stmt = self._apply(select(column, func.count()), model, spec or QuerySpec(), ordered=False).group_by(column)
        with _translate_errors("count_by", name):
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return {value: int(total) for value, total in result.all()}

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------

    async def insert(self, collection: CollectionName, values: Mapping[str, Any]) -> Row:
        name = self._collection(collection)
        model = self._model(name)
        data = self._coerce(model, values)
        with _translate_errors("insert", name):
            async with self._session_factory() as session:
                obj = model(**data)
                session.add(obj)
                await session.commit()
                row = to_row(obj)
        logger.info(f"Inserted {name.value} {row.get('id')}")
        await self._publish(name, EventType.INSERT, row)
        return row

    async def update(self, collection: CollectionName, row_id: str, changes: Mapping[str, Any]) -> Row:
        name = self._collection(collection)
        model = self._model(name)
        data = self._coerce(model, changes)
        data.pop("id", None)
        with _translate_errors("update", name):
            async with self._session_factory() as session:
                obj = await session.get(model, row_id)
                if obj is None:
                    raise StoreError(f"{name.value} {row_id} not found", reason="not_found")
                for key, value in data.items():
                    setattr(obj, key, value)
                await session.commit()
                row = to_row(obj)
        logger.info(f"Updated {name.value} {row_id}: {sorted(data)}")
        await self._publish(name, EventType.UPDATE, row)
        return row

    async def delete(self, collection: CollectionName, row_id: str) -> Row:
        name = self._collection(collection)
        model = self._model(name)
        with _translate_errors("delete", name):
            async with self._session_factory() as session:
                obj = await session.get(model, row_id)
                if obj is None:
                    raise StoreError(f"{name.value} {row_id} not found", reason="not_found")
                row = to_row(obj)
                await session.delete(obj)
                await session.commit()
        logger.info(f"Deleted {name.value} {row_id}")
        await self._publish(name, EventType.DELETE, row)
        return row
