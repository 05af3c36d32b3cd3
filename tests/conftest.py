import os

# Must be set before app modules build the engine and settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.main import app
from app.database import Base, get_db, get_session_factory
from app.api.deps import get_password_hash, create_access_token
from app.models.customer import Supplier
from app.models.inventory import Product
from app.models.user import User
from app.models.warehouse import Warehouse
from app.services.audit_recorder import Actor


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Per-test SQLite database file; each session gets its own connection."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db(session_factory):
    """Session for arranging data and asserting on it. Commit after writes."""
    async with session_factory() as session:
        yield session


async def _create_user(db: AsyncSession, email: str, role: str) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash("testpassword123"),
        name=email.split("@")[0].title(),
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin_user(test_db: AsyncSession):
    return await _create_user(test_db, "admin@example.com", "ADMIN")


@pytest_asyncio.fixture
async def manager_user(test_db: AsyncSession):
    return await _create_user(test_db, "manager@example.com", "MANAGER")


@pytest_asyncio.fixture
async def operator_user(test_db: AsyncSession):
    return await _create_user(test_db, "operator@example.com", "OPERATOR")


@pytest_asyncio.fixture
async def actor(admin_user: User) -> Actor:
    return Actor.from_user(admin_user)


@pytest_asyncio.fixture
async def main_warehouse(test_db: AsyncSession) -> Warehouse:
    warehouse = Warehouse(name="Main", location="HQ")
    test_db.add(warehouse)
    await test_db.commit()
    await test_db.refresh(warehouse)
    return warehouse


@pytest_asyncio.fixture
async def second_warehouse(test_db: AsyncSession) -> Warehouse:
    warehouse = Warehouse(name="Overflow", location="Dock 2")
    test_db.add(warehouse)
    await test_db.commit()
    await test_db.refresh(warehouse)
    return warehouse


@pytest_asyncio.fixture
async def widget(test_db: AsyncSession) -> Product:
    product = Product(sku="WID-1", name="Widget", category="Electronics", price=9.99, cost_price=4.5, min_stock=10)
    test_db.add(product)
    await test_db.commit()
    await test_db.refresh(product)
    return product


@pytest_asyncio.fixture
async def gadget(test_db: AsyncSession) -> Product:
    product = Product(sku="GAD-1", name="Gadget", category="Electronics", price=19.99, cost_price=8.0, min_stock=5)
    test_db.add(product)
    await test_db.commit()
    await test_db.refresh(product)
    return product


@pytest_asyncio.fixture
async def supplier(test_db: AsyncSession) -> Supplier:
    party = Supplier(name="Acme Supply", contact="Jo")
    test_db.add(party)
    await test_db.commit()
    await test_db.refresh(party)
    return party


@pytest_asyncio.fixture
async def client(session_factory):
    """Create test client bound to the per-test database.

    Each request gets a fresh session, like the real get_db dependency.
    """

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_auth_headers():
    return auth_headers


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, admin_user: User):
    client.headers.update(auth_headers(admin_user))
    return client


@pytest_asyncio.fixture
async def operator_client(client: AsyncClient, operator_user: User):
    client.headers.update(auth_headers(operator_user))
    return client
