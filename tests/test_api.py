from decimal import Decimal

from httpx import AsyncClient
from jose import jwt
from sqlalchemy import func, select

from app.config import settings
from app.models import UserWallet
from app.services.custody import VaultAsset


class TestWalletAPI:
    """Тесты для эндпоинтов работы с кошельками."""

    async def test_health_check(self, client: AsyncClient):
        """Тест эндпоинта проверки здоровья."""
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"

    async def test_get_wallet_requires_auth(self, client: AsyncClient):
        """Без токена кошелек не отдается."""
        response = await client.get("/wallet")
        assert response.status_code == 401

    async def test_get_wallet_with_unknown_user(self, client: AsyncClient):
        """Токен пользователя, которого нет в БД."""
        token = jwt.encode(
            {"sub": "ghost"}, settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM
        )
        response = await client.get(
            "/wallet", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    async def test_get_nonexistent_wallet(
        self, client: AsyncClient, auth_headers
    ):
        """Тест получения кошелька, который еще не выпущен."""
        response = await client.get("/wallet", headers=auth_headers)
        assert response.status_code == 404
        assert "not found" in response.json()["detail"].lower()

    async def test_create_and_get_wallet(
        self, client: AsyncClient, auth_headers, user, custody, mail
    ):
        """Выпуск кошелька и получение его в обертке status/data."""
        response = await client.post("/wallet", headers=auth_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "success"
        data = body["data"]
        assert data["user_id"] == user.id
        assert data["vault_id"] == "1"
        assert data["wallet_address"] == "0.0.6761316"
        assert data["evm_address"] == (
            "0000000000000000000000000000000000672b64"
        )
        assert data["asset"] == settings.FIREBLOCKS_ASSET_ID
        assert data["currency"] == "HBAR"
        assert data["network_type"] == "TESTNET"
        assert data["is_active"] is True
        assert Decimal(data["balance"]) == 0

        assert custody.vaults[0].name == user.email
        assert custody.vaults[0].customer_ref_id == user.id
        assert mail.sent == [{"email": user.email, "wallet_id": data["id"]}]

        response = await client.get("/wallet", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"status": "success", "data": data}

    async def test_create_wallet_twice(
        self, client: AsyncClient, auth_headers, custody
    ):
        """Повторный выпуск не создает второе хранилище."""
        first = await client.post("/wallet", headers=auth_headers)
        assert first.status_code == 201

        second = await client.post("/wallet", headers=auth_headers)
        assert second.status_code == 409
        assert len(custody.vaults) == 1

    async def test_create_wallet_vault_failure(
        self, client: AsyncClient, auth_headers, custody, db_session
    ):
        """Ошибка создания хранилища возвращается как 500 с именем шага."""
        custody.fail_on = "create_vault"

        response = await client.post("/wallet", headers=auth_headers)

        assert response.status_code == 500
        assert "create_vault" in response.json()["detail"]
        count = await db_session.scalar(select(func.count(UserWallet.id)))
        assert count == 0

    async def test_create_wallet_without_address(
        self, client: AsyncClient, auth_headers, custody
    ):
        """Активация без адреса: кошелек не сохраняется."""
        custody.address = None

        response = await client.post("/wallet", headers=auth_headers)

        assert response.status_code == 500
        assert "activate_asset" in response.json()["detail"]

        response = await client.get("/wallet", headers=auth_headers)
        assert response.status_code == 404

    async def test_wallet_balance_from_provider(
        self, client: AsyncClient, auth_headers, custody
    ):
        """Баланс берется у провайдера, а не из локальной записи."""
        custody.assets = [
            VaultAsset(id="BTC_TEST", total=Decimal("1")),
            VaultAsset(id=settings.FIREBLOCKS_ASSET_ID, total=Decimal("12.5")),
        ]
        await client.post("/wallet", headers=auth_headers)

        response = await client.get("/wallet/balance", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["asset"] == settings.FIREBLOCKS_ASSET_ID
        assert Decimal(data["balance"]) == Decimal("12.5")

    async def test_deactivate_and_activate(
        self, client: AsyncClient, auth_headers
    ):
        """Переключение активности кошелька."""
        created = await client.post("/wallet", headers=auth_headers)
        wallet_id = created.json()["data"]["id"]

        response = await client.post(
            f"/wallet/{wallet_id}/deactivate", headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["is_active"] is False

        response = await client.post(
            f"/wallet/{wallet_id}/activate", headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["is_active"] is True

    async def test_toggle_nonexistent_wallet(
        self, client: AsyncClient, auth_headers
    ):
        response = await client.post(
            "/wallet/non-existent-uuid/deactivate", headers=auth_headers
        )
        assert response.status_code == 404


class TestRatesAPI:
    """Тесты пересчета по курсам."""

    async def test_hbar_to_usd(self, client: AsyncClient):
        response = await client.get("/rates/hbar-usd", params={"amount": 100})

        assert response.status_code == 200
        data = response.json()
        assert data["from_currency"] == "HBAR"
        assert data["to_currency"] == "USD"
        assert Decimal(data["converted_amount"]) == Decimal("25.00")

    async def test_usd_to_ngn(self, client: AsyncClient):
        response = await client.get("/rates/usd-ngn", params={"amount": 2})

        assert response.status_code == 200
        assert Decimal(response.json()["converted_amount"]) == Decimal(
            "3001.00"
        )

    async def test_non_positive_amount(self, client: AsyncClient):
        """Нулевая сумма отклоняется валидацией."""
        response = await client.get("/rates/hbar-usd", params={"amount": 0})
        assert response.status_code == 422

    async def test_converted_amount_out_of_range(self, client: AsyncClient):
        """Результат вне диапазона денежной колонки дает 422."""
        response = await client.get(
            "/rates/usd-ngn", params={"amount": "1" + "0" * 20}
        )
        assert response.status_code == 422
