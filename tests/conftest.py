import os
from typing import AsyncGenerator, List, Optional

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine
)
from sqlalchemy.pool import NullPool

from app.config import settings
from app.database import Base, get_db
from app.dependencies import (
    get_coingecko_client, get_custody_client, get_event_bus,
    get_exchange_rate_client, get_mail_service
)
from app.events import EventBus
from app.exceptions import ExternalServiceError
from app.main import app
from app.models import User
from app.services.custody import AssetActivation, VaultAccount, VaultAsset
from app.services.price_feeds import CoinGeckoClient, ExchangeRateClient

# По умолчанию тесты идут на SQLite-файле, для Postgres задайте
# TEST_DATABASE_URL
TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///./test_estate.db",
)

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)

TestAsyncSessionLocal = async_sessionmaker(
    test_engine, expire_on_commit=False, class_=AsyncSession, autoflush=False
)

COINGECKO_URL = "https://api.coingecko.test/api/v3"
EXCHANGE_RATE_URL = "https://api.exchangerate.test/v4"


class FakeCustody:
    """Кастодиальный провайдер в памяти с настраиваемыми сбоями."""

    def __init__(self):
        self.address: Optional[str] = "0.0.6761316"
        self.fail_on: Optional[str] = None
        self.assets: List[VaultAsset] = []
        self.vaults: List[VaultAccount] = []
        self.activations: List[dict] = []

    async def create_vault(self, owner_id: str, label: str) -> VaultAccount:
        if self.fail_on == "create_vault":
            raise ExternalServiceError("create_vault", "HTTP 500: boom")
        vault = VaultAccount(
            id=str(len(self.vaults) + 1), name=label, customerRefId=owner_id
        )
        self.vaults.append(vault)
        return vault

    async def activate_asset(
        self, vault_id: str, asset_id: str, idempotency_key=None
    ) -> AssetActivation:
        self.activations.append(
            {
                "vault_id": vault_id,
                "asset_id": asset_id,
                "idempotency_key": idempotency_key,
            }
        )
        if self.fail_on == "activate_asset":
            raise ExternalServiceError("activate_asset", "HTTP 400: bad")
        return AssetActivation(id=asset_id, address=self.address)

    async def get_vault(self, vault_id: str) -> VaultAccount:
        return VaultAccount(id=vault_id, assets=self.assets)


class FakeMail:
    """Запоминает отправленные уведомления вместо отправки."""

    def __init__(self):
        self.sent: List[dict] = []

    async def send_wallet_created(self, email: str, wallet) -> None:
        self.sent.append({"email": email, "wallet_id": wallet.id})


def rates_handler(request: httpx.Request) -> httpx.Response:
    """Ответы CoinGecko и exchangerate-api."""
    if request.url.path.endswith("/simple/price"):
        return httpx.Response(200, json={"hedera-hashgraph": {"usd": 0.25}})
    if request.url.path.endswith("/latest/USD"):
        return httpx.Response(
            200, json={"base": "USD", "rates": {"USD": 1, "NGN": 1500.5}}
        )
    return httpx.Response(404, json={"error": "not found"})


@pytest.fixture(scope="function", autouse=True)
async def setup_database():
    """Создание и удаление таблиц перед и после каждого теста."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await test_engine.dispose()


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Фикстура для получения сессии БД."""
    async with TestAsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def user(db_session: AsyncSession) -> User:
    """Зарегистрированный пользователь."""
    user = User(email="investor@example.com", full_name="Ada Investor")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def auth_headers(user: User) -> dict:
    token = jwt.encode(
        {"sub": user.id}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def custody() -> FakeCustody:
    return FakeCustody()


@pytest.fixture
def mail() -> FakeMail:
    return FakeMail()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def rates_transport() -> httpx.MockTransport:
    return httpx.MockTransport(rates_handler)


@pytest.fixture
async def coingecko(rates_transport) -> AsyncGenerator[CoinGeckoClient, None]:
    http = httpx.AsyncClient(transport=rates_transport, base_url=COINGECKO_URL)
    yield CoinGeckoClient(COINGECKO_URL, client=http)
    await http.aclose()


@pytest.fixture
async def forex(rates_transport) -> AsyncGenerator[ExchangeRateClient, None]:
    http = httpx.AsyncClient(
        transport=rates_transport, base_url=EXCHANGE_RATE_URL
    )
    yield ExchangeRateClient(EXCHANGE_RATE_URL, client=http)
    await http.aclose()


@pytest.fixture
async def client(
    db_session: AsyncSession,
    custody: FakeCustody,
    mail: FakeMail,
    bus: EventBus,
    coingecko: CoinGeckoClient,
    forex: ExchangeRateClient,
) -> AsyncGenerator[AsyncClient, None]:
    """Фикстура для создания асинхронного клиента тестирования."""
    def override_get_db():
        async def _override_get_db():
            yield db_session
        return _override_get_db

    app.dependency_overrides[get_db] = override_get_db()
    app.dependency_overrides[get_custody_client] = lambda: custody
    app.dependency_overrides[get_mail_service] = lambda: mail
    app.dependency_overrides[get_event_bus] = lambda: bus
    app.dependency_overrides[get_coingecko_client] = lambda: coingecko
    app.dependency_overrides[get_exchange_rate_client] = lambda: forex

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        timeout=30.0
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def session_factory() -> async_sessionmaker:
    """Фабрика отдельных сессий для проверки закоммиченных данных."""
    return TestAsyncSessionLocal
