"""Generic repository for SQLAlchemy models.

Sessions are always passed in explicitly; the repository holds no state
besides the mapped class. Feature repositories subclass it and express their
queries as filter criteria:

    class NotificationRecordRepository(BaseRepository[NotificationRecord]):
        async def list_failed(self, session, *, limit=100):
            return await self.list(session, NotificationRecord.status == DeliveryStatus.FAILED, limit=limit)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import Select, func, select
from sqlalchemy import delete as sql_delete

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(slots=True, frozen=True)
class SearchResult[T]:
    """One page of a filtered query plus the unpaginated total."""

    items: Sequence[T]
    total: int
    limit: int
    offset: int

    @property
    def has_next(self) -> bool:
        return self.offset + len(self.items) < self.total


class BaseRepository[T]:
    """CRUD helpers shared by feature repositories."""

    __slots__ = ("model", "_logger")

    # Above this many rows a bulk delete is logged at WARNING
    BULK_DELETE_WARN_THRESHOLD = 10

    def __init__(self, model: type[T]) -> None:
        self.model = model
        self._logger = logging.getLogger(f"repository.{model.__name__}")

    async def get(self, session: AsyncSession, id: Any) -> T | None:  # noqa: A002
        instance = await session.get(self.model, id)
        self._logger.debug("db.get %s(%s) -> %s", self.model.__name__, id, "found" if instance else "missing")
        return instance

    async def list(
        self,
        session: AsyncSession,
        *criteria: Any,
        limit: int = 100,
        offset: int = 0,
        order_by: Any | None = None,
    ) -> Sequence[T]:
        """Entities matching all ``criteria``, one page at a time."""
        stmt = select(self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        result = await session.execute(stmt.limit(limit).offset(offset))
        items = result.scalars().all()
        self._logger.debug("db.list %s(limit=%d, offset=%d) -> %d", self.model.__name__, limit, offset, len(items))
        return items

    async def search(
        self,
        session: AsyncSession,
        statement: Select[tuple[T]],
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> SearchResult[T]:
        """Paginate a pre-built statement and count its full result."""
        count_stmt = select(func.count()).select_from(statement.order_by(None).subquery())
        total = (await session.execute(count_stmt)).scalar_one()

        result = await session.execute(statement.limit(limit).offset(offset))
        items = result.scalars().all()
        self._logger.debug("db.search %s -> %d/%d", self.model.__name__, len(items), total)
        return SearchResult(items=items, total=total, limit=limit, offset=offset)

    async def count(self, session: AsyncSession, *criteria: Any) -> int:
        """Count entities matching all ``criteria`` (all entities when empty)."""
        stmt = select(func.count()).select_from(self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        return int((await session.execute(stmt)).scalar_one())

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Add, flush and refresh so server-side defaults are loaded."""
        session.add(instance)
        await session.flush()
        await session.refresh(instance)
        self._logger.debug("db.create %s(id=%s)", self.model.__name__, getattr(instance, "id", None))
        return instance

    async def create_many(self, session: AsyncSession, instances: Iterable[T]) -> Sequence[T]:
        instances_list = list(instances)
        session.add_all(instances_list)
        await session.flush()
        for instance in instances_list:
            await session.refresh(instance)
        return instances_list

    async def delete(self, session: AsyncSession, instance: T) -> None:
        await session.delete(instance)
        await session.flush()
        self._logger.info(
            "Entity deleted",
            extra={"entity": self.model.__name__, "id": str(getattr(instance, "id", None))},
        )

    async def delete_where(self, session: AsyncSession, *criteria: Any) -> int:
        """Delete every row matching ``criteria`` in one statement; returns the row count."""
        result = await session.execute(sql_delete(self.model).where(*criteria))
        await session.flush()
        deleted = cast("int", getattr(result, "rowcount", 0) or 0)

        if deleted > self.BULK_DELETE_WARN_THRESHOLD:
            self._logger.warning("Bulk delete executed", extra={"entity": self.model.__name__, "deleted": deleted})
        else:
            self._logger.debug("db.delete_where %s -> %d", self.model.__name__, deleted)
        return deleted


__all__ = ["BaseRepository", "SearchResult"]
