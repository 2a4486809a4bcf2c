"""
repositories/base.py
--------------------
Tenant-scoped data access.

Every tenant-owned table is read and written through a TenantRepository.
All methods take `company_id` as a required keyword-only argument and the
SQL is built here, always with `Model.company_id == company_id` in the
WHERE clause (or set on INSERT). Forgetting the tenant is a TypeError at
the call site instead of a silent cross-tenant read.

Bulk update/delete statements run with synchronize_session=False; refresh
any already-loaded instance before trusting its attributes afterwards.
"""

from typing import Any, Generic, List, Optional, Sequence, TypeVar

from sqlalchemy import ColumnElement, Select, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bizdesk.core.exceptions import NotFound
from bizdesk.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class TenantRepository(Generic[ModelT]):
    model: type[ModelT]
    not_found_message: str = "Record not found"

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        model = cls.__dict__.get("model")
        if model is not None and "company_id" not in model.__table__.columns:
            raise TypeError(
                f"{cls.__name__}: {model.__name__} has no company_id column "
                "and cannot be tenant-scoped"
            )

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ── Query building ───────────────────────────────────────────────────────

    def tenant_filter(self, company_id: str) -> ColumnElement[bool]:
        if not company_id:
            raise ValueError(f"company_id is required to access {self.model.__tablename__}")
        return self.model.company_id == company_id

    def select(self, *criteria: ColumnElement[bool], company_id: str) -> Select:
        """Base SELECT for custom queries; the tenant filter is already applied."""
        return select(self.model).where(self.tenant_filter(company_id), *criteria)

    def select_columns(self, *columns: Any, company_id: str) -> Select:
        """SELECT of arbitrary columns or aggregates over this table, tenant filter applied."""
        return select(*columns).select_from(self.model).where(self.tenant_filter(company_id))

    # ── Reads ────────────────────────────────────────────────────────────────

    async def get(self, id: str, *, company_id: str) -> Optional[ModelT]:
        result = await self.db.execute(self.select(self.model.id == id, company_id=company_id))
        return result.scalar_one_or_none()

    async def get_or_404(self, id: str, *, company_id: str) -> ModelT:
        obj = await self.get(id, company_id=company_id)
        if obj is None:
            raise NotFound(self.not_found_message)
        return obj

    async def first(self, *criteria: ColumnElement[bool], company_id: str) -> Optional[ModelT]:
        result = await self.db.execute(self.select(*criteria, company_id=company_id).limit(1))
        return result.scalar_one_or_none()

    async def list(
        self,
        *criteria: ColumnElement[bool],
        company_id: str,
        order_by: Sequence[Any] = (),
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[ModelT]:
        stmt = self.select(*criteria, company_id=company_id)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count(self, *criteria: ColumnElement[bool], company_id: str) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(self.model)
            .where(self.tenant_filter(company_id), *criteria)
        )
        return result.scalar_one()

    async def page(
        self,
        *criteria: ColumnElement[bool],
        company_id: str,
        order_by: Sequence[Any] = (),
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[int, List[ModelT]]:
        """(total_count, page_of_rows)"""
        total = await self.count(*criteria, company_id=company_id)
        rows = await self.list(
            *criteria, company_id=company_id, order_by=order_by, offset=offset, limit=limit
        )
        return total, rows

    # ── Writes ───────────────────────────────────────────────────────────────

    def add(self, obj: ModelT, *, company_id: str) -> ModelT:
        """Attach a new instance to the session, stamped with the tenant."""
        self.tenant_filter(company_id)
        current = getattr(obj, "company_id", None)
        if current is not None and current != company_id:
            raise ValueError("Refusing to store a row under a different company")
        obj.company_id = company_id
        self.db.add(obj)
        return obj

    async def create(self, *, company_id: str, **values: Any) -> ModelT:
        if "company_id" in values:
            raise ValueError("company_id comes from the tenant context, not from values")
        obj = self.add(self.model(**values), company_id=company_id)
        await self.db.flush()
        return obj

    async def update_where(
        self,
        *criteria: ColumnElement[bool],
        company_id: str,
        values: dict[str, Any],
    ) -> int:
        """Bulk UPDATE inside the tenant. Returns the number of rows changed."""
        if "company_id" in values:
            raise ValueError("company_id cannot be reassigned")
        result = await self.db.execute(
            update(self.model)
            .where(self.tenant_filter(company_id), *criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete(self, id: str, *, company_id: str) -> bool:
        return await self.delete_where(self.model.id == id, company_id=company_id) > 0

    async def delete_where(self, *criteria: ColumnElement[bool], company_id: str) -> int:
        result = await self.db.execute(
            delete(self.model)
            .where(self.tenant_filter(company_id), *criteria)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def ids(self, *criteria: ColumnElement[bool], company_id: str) -> List[str]:
        result = await self.db.execute(
            select(self.model.id).where(self.tenant_filter(company_id), *criteria)
        )
        return list(result.scalars().all())
