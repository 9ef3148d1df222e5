"""Клиент кастодиального провайдера Fireblocks (REST API v1)."""
import hashlib
import json
import time
import uuid
from decimal import Decimal
from pathlib import Path
from typing import Any, List, Optional

import httpx
import structlog
from jose import jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.config import Settings
from app.exceptions import ExternalServiceError

logger = structlog.get_logger(__name__)

TOKEN_TTL_SECONDS = 55


class VaultAsset(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    total: Decimal = Decimal("0")
    available: Optional[Decimal] = None


class VaultAccount(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str = ""
    customer_ref_id: Optional[str] = Field(default=None, alias="customerRefId")
    assets: List[VaultAsset] = Field(default_factory=list)


class AssetActivation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    address: Optional[str] = None
    status: Optional[str] = None


def new_idempotency_key() -> str:
    return uuid.uuid4().hex


class FireblocksClient:
    """
    Тонкая обертка над REST API Fireblocks.

    Каждый запрос подписывается JWT (RS256) секретным ключом API,
    в токен входит хэш тела запроса. Ошибки транспорта и некорректные
    ответы оборачиваются в ExternalServiceError с именем операции.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        secret_key: Optional[str] = None,
        secret_key_path: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self._secret_key = secret_key
        self._secret_key_path = secret_key_path
        self._client = client or httpx.AsyncClient(base_url=base_url)

    @classmethod
    def from_settings(cls, settings: Settings) -> "FireblocksClient":
        return cls(
            api_key=settings.FIREBLOCKS_API_KEY,
            base_url=settings.FIREBLOCKS_BASE_URL,
            secret_key_path=settings.FIREBLOCKS_SECRET_KEY_PATH,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def secret_key(self) -> str:
        # Ключ читается при первом запросе к провайдеру
        if self._secret_key is None:
            self._secret_key = Path(self._secret_key_path).read_text(
                encoding="utf-8"
            )
        return self._secret_key

    def _sign(self, path: str, body: bytes) -> str:
        now = int(time.time())
        payload = {
            "uri": path,
            "nonce": uuid.uuid4().hex,
            "iat": now,
            "exp": now + TOKEN_TTL_SECONDS,
            "sub": self.api_key,
            "bodyHash": hashlib.sha256(body).hexdigest(),
        }
        return jwt.encode(payload, self.secret_key, algorithm="RS256")

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        payload: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> Any:
        body = json.dumps(payload).encode() if payload is not None else b""
        request_headers = {
            "X-API-Key": self.api_key,
            "Authorization": f"Bearer {self._sign(path, body)}",
        }
        if payload is not None:
            request_headers["Content-Type"] = "application/json"
        request_headers.update(headers or {})

        try:
            response = await self._client.request(
                method, path, content=body or None, headers=request_headers
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "fireblocks_request_failed",
                operation=operation,
                status_code=e.response.status_code,
                response=e.response.text,
            )
            raise ExternalServiceError(
                operation, f"HTTP {e.response.status_code}: {e.response.text}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                "fireblocks_request_failed", operation=operation, error=str(e)
            )
            raise ExternalServiceError(operation, str(e)) from e

    async def create_vault(self, owner_id: str, label: str) -> VaultAccount:
        """Создает хранилище (vault account) для владельца."""
        data = await self._request(
            "create_vault",
            "POST",
            "/v1/vault/accounts",
            payload={
                "name": label,
                "customerRefId": owner_id,
                "hiddenOnUI": False,
                "autoFuel": False,
            },
        )
        vault = self._parse("create_vault", VaultAccount, data)
        logger.info("fireblocks_vault_created", vault_id=vault.id)
        return vault

    async def activate_asset(
        self,
        vault_id: str,
        asset_id: str,
        idempotency_key: Optional[str] = None,
    ) -> AssetActivation:
        """
        Активирует актив в хранилище.

        Без явного idempotency_key для каждого вызова генерируется новый,
        поэтому повтор такого вызова провайдер не распознает как дубль.
        """
        key = idempotency_key or new_idempotency_key()
        data = await self._request(
            "activate_asset",
            "POST",
            f"/v1/vault/accounts/{vault_id}/{asset_id}/activate",
            payload={},
            headers={"Idempotency-Key": key},
        )
        activation = self._parse("activate_asset", AssetActivation, data)
        logger.info(
            "fireblocks_asset_activated",
            vault_id=vault_id,
            asset_id=asset_id,
            address=activation.address,
        )
        return activation

    async def get_vault(self, vault_id: str) -> VaultAccount:
        data = await self._request(
            "get_vault", "GET", f"/v1/vault/accounts/{vault_id}"
        )
        return self._parse("get_vault", VaultAccount, data)

    @staticmethod
    def _parse(operation: str, model, data: Any):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ExternalServiceError(
                operation, f"malformed response: {e}"
            ) from e
