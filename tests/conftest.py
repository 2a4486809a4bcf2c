"""
Shared fixtures.

Each test gets its own SQLite database file and its own application built
with create_application(database). Rows are created straight through the
ORM; tokens are minted with the same helpers the login routes use.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./bizdesk-test.db")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["APP_ENV"] = "test"

from typing import Optional

import httpx
import pytest

from bizdesk.core.security import hash_password
from bizdesk.db.session import Database
from bizdesk.models import Company, CompanyStatus, Product, SuperAdmin, User
from bizdesk.services.auth_service import issue_token
from bizdesk.services.superadmin_service import issue_superadmin_token
from main import create_application

PASSWORD = "Secret123"


@pytest.fixture(scope="session")
def password_hash() -> str:
    # bcrypt at 12 rounds is slow; hash once per run
    return hash_password(PASSWORD)


@pytest.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def app(database):
    return create_application(database)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def session(database):
    async with database.session_factory() as s:
        yield s


class Factory:
    """Creates committed rows for tests."""

    def __init__(self, database: Database, password_hash: str) -> None:
        self.database = database
        self.password_hash = password_hash
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def _save(self, obj):
        async with self.database.session_factory() as s:
            s.add(obj)
            await s.commit()
        return obj

    async def company(self, name: Optional[str] = None, status: str = CompanyStatus.active.value, **fields) -> Company:
        return await self._save(
            Company(
                company_name=name or f"Company {self._next()}",
                business_type="general",
                currency="UGX",
                status=status,
                settings={"currency": "UGX"},
                industry_features={},
                **fields,
            )
        )

    async def user(self, company: Company, role: str = "admin", email: Optional[str] = None, **fields) -> User:
        return await self._save(
            User(
                company_id=company.id,
                name=f"{role.title()} User",
                email=email or f"{role}{self._next()}@example.com",
                hashed_password=self.password_hash,
                role=role,
                is_company_admin=fields.pop("is_company_admin", False),
                permissions=fields.pop("permissions", []),
                **fields,
            )
        )

    async def superadmin(self, email: Optional[str] = None, is_active: bool = True) -> SuperAdmin:
        return await self._save(
            SuperAdmin(
                name="Platform Operator",
                email=email or f"operator{self._next()}@example.com",
                hashed_password=self.password_hash,
                is_active=is_active,
            )
        )

    async def product(self, company: Company, quantity: int = 10, price: float = 1000, **fields) -> Product:
        n = self._next()
        return await self._save(
            Product(
                company_id=company.id,
                name=fields.pop("name", f"Product {n}"),
                sku=fields.pop("sku", f"SKU-{n}"),
                selling_price=price,
                cost_price=fields.pop("cost_price", price / 2),
                quantity=quantity,
                reorder_level=fields.pop("reorder_level", 5),
                **fields,
            )
        )


@pytest.fixture
def factory(database, password_hash) -> Factory:
    return Factory(database, password_hash)


def auth_headers(principal) -> dict:
    if isinstance(principal, SuperAdmin):
        token, _ = issue_superadmin_token(principal)
    else:
        token, _ = issue_token(principal)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def tenant(factory):
    """An active company with an admin, a manager and a sales user."""
    company = await factory.company()
    admin = await factory.user(company, "admin", is_company_admin=True)
    manager = await factory.user(company, "manager")
    sales = await factory.user(company, "sales")
    return {"company": company, "admin": admin, "manager": manager, "sales": sales}


@pytest.fixture
def headers():
    return auth_headers
