"""Клиенты внешних источников курсов (CoinGecko, exchangerate-api)."""
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

import httpx
import structlog

from app.exceptions import ExternalServiceError

logger = structlog.get_logger(__name__)


class CoinGeckoClient:
    """Курс криптовалюты к фиатной валюте."""

    def __init__(
        self, base_url: str, client: Optional[httpx.AsyncClient] = None
    ):
        self._client = client or httpx.AsyncClient(base_url=base_url)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_rate(self, asset: str, fiat_currency: str) -> Decimal:
        """
        Возвращает цену одной единицы asset в fiat_currency.

        :param asset: Идентификатор монеты в CoinGecko ("hedera-hashgraph")
        :param fiat_currency: Код валюты в нижнем регистре ("usd")
        :raises ExternalServiceError: При ошибке запроса или ответа
        """
        try:
            response = await self._client.get(
                "/simple/price",
                params={"ids": asset, "vs_currencies": fiat_currency},
            )
            response.raise_for_status()
            price = response.json()[asset][fiat_currency]
            return Decimal(str(price))
        except (
            httpx.HTTPError, ValueError, KeyError, TypeError, InvalidOperation
        ) as e:
            logger.error(
                "coingecko_rate_failed",
                asset=asset,
                currency=fiat_currency,
                error=str(e),
            )
            raise ExternalServiceError(
                "coingecko.get_rate",
                f"Failed to fetch {asset}/{fiat_currency} rate: {e}",
            ) from e


class ExchangeRateClient:
    """Курсы фиатных валют относительно базовой."""

    def __init__(
        self, base_url: str, client: Optional[httpx.AsyncClient] = None
    ):
        self._client = client or httpx.AsyncClient(base_url=base_url)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_rates(self, base_currency: str) -> Dict[str, Decimal]:
        try:
            response = await self._client.get(
                f"/latest/{base_currency.upper()}"
            )
            response.raise_for_status()
            rates = response.json()["rates"]
            return {
                currency: Decimal(str(rate))
                for currency, rate in rates.items()
            }
        except (
            httpx.HTTPError, ValueError, KeyError, TypeError,
            AttributeError, InvalidOperation
        ) as e:
            logger.error(
                "exchange_rates_failed", base=base_currency, error=str(e)
            )
            raise ExternalServiceError(
                "exchangerate.get_rates",
                f"Failed to fetch {base_currency} rates: {e}",
            ) from e
