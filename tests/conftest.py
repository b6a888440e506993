"""
Shared fixtures.

Every test gets its own in-memory SQLite database and an httpx client bound
to the ASGI app, with tokens for two separate organizations.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["GST_ENFORCE_FORWARD_TRANSITIONS"] = "false"

import uuid

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from erp import models  # noqa: F401
from erp.core.security import create_access_token
from erp.database import Base, build_engine, get_db
from erp.main import app


ORG_A = uuid.uuid4()
ORG_B = uuid.uuid4()
USER_A = uuid.uuid4()
USER_B = uuid.uuid4()


def auth_headers(user_id: uuid.UUID, organization_id: uuid.UUID) -> dict:
    token = create_access_token(subject=user_id, organization_id=organization_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        ac.headers.update(auth_headers(USER_A, ORG_A))
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def other_org_headers() -> dict:
    return auth_headers(USER_B, ORG_B)


# ==================== Factories ====================

@pytest.fixture
def create_customer(client):
    async def _create(**overrides) -> dict:
        payload = {"name": "Asha Traders", "gstin": "29ABCDE1234F1Z5", "state": "Karnataka"}
        payload.update(overrides)
        response = await client.post("/api/v1/customers", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create


@pytest.fixture
def create_item(client):
    async def _create(**overrides) -> dict:
        payload = {
            "name": "Steel Bottle",
            "item_type": "product",
            "unit_price": "500.00",
            "tax_rate": "18",
            "hsn_sac_code": "7323",
            "stock_quantity": 10,
        }
        payload.update(overrides)
        response = await client.post("/api/v1/items", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create


@pytest.fixture
def create_employee(client):
    async def _create(**overrides) -> dict:
        payload = {
            "full_name": "Ravi Kumar",
            "role_title": "Cashier",
            "joining_date": "2024-04-01",
        }
        payload.update(overrides)
        response = await client.post("/api/v1/employees", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create


@pytest.fixture
def checkout(client):
    async def _checkout(customer_id: str, lines: list, **overrides):
        payload = {
            "customer_id": customer_id,
            "line_items": [{"item_id": item_id, "quantity": qty} for item_id, qty in lines],
        }
        payload.update(overrides)
        return await client.post("/api/v1/invoices", json=payload)
    return _checkout
