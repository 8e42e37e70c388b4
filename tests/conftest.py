"""Shared pytest fixtures for codec, store, gateway and API tests."""

from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine

from shortlinks.codec import HashCodec
from shortlinks.config import Settings
from shortlinks.database import build_engine, close_db, init_db
from shortlinks.dependencies import ServiceManager, get_service_manager
from shortlinks.gateway import MessageGateway
from shortlinks.main import app

TEST_SALT = "shortlinks test salt"


def make_settings(database_path: Path, **overrides) -> Settings:
    values = {
        "DATABASE_URL": f"sqlite+aiosqlite:///{database_path}",
        "HASH_SALT": TEST_SALT,
        "MAX_POOL_SIZE": 10,
        "POOL_TIMEOUT_SECONDS": 10.0,
        "BASE_URL": "http://sho.rt",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class CheckoutCounter:
    """Counts pooled connection checkouts on an engine."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.count = 0
        event.listen(engine.sync_engine, "checkout", self._on_checkout)

    def _on_checkout(self, dbapi_connection, connection_record, connection_proxy) -> None:
        self.count += 1


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path / "shortlinks.db")


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    db_engine = build_engine(settings)
    await init_db(db_engine)
    yield db_engine
    await close_db(db_engine)


@pytest_asyncio.fixture
async def gateway(engine: AsyncEngine) -> AsyncGenerator[MessageGateway, None]:
    message_gateway = MessageGateway(engine)
    yield message_gateway
    await message_gateway.close()


@pytest.fixture
def codec(settings: Settings) -> HashCodec:
    return HashCodec(settings.HASH_SALT, min_length=settings.HASH_MIN_LENGTH)


@pytest.fixture
def checkouts(engine: AsyncEngine) -> CheckoutCounter:
    return CheckoutCounter(engine)


@pytest_asyncio.fixture
async def manager(settings: Settings, engine: AsyncEngine) -> AsyncGenerator[ServiceManager, None]:
    service_manager = ServiceManager()
    await service_manager.initialize(settings, engine=engine)
    yield service_manager
    await service_manager.cleanup()


@pytest_asyncio.fixture
async def client(manager: ServiceManager) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_service_manager() -> ServiceManager:
        return manager

    app.dependency_overrides[get_service_manager] = override_get_service_manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
