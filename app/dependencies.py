from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.events import EventBus, events
from app.models import User
from app.services.custody import FireblocksClient
from app.services.mail_service import MailService
from app.services.price_feeds import CoinGeckoClient, ExchangeRateClient
from app.services.property_service import PropertyService
from app.services.wallet_service import WalletService

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_custody_client() -> FireblocksClient:
    return FireblocksClient.from_settings(settings)


@lru_cache
def get_coingecko_client() -> CoinGeckoClient:
    return CoinGeckoClient(settings.COINGECKO_BASE_URL)


@lru_cache
def get_exchange_rate_client() -> ExchangeRateClient:
    return ExchangeRateClient(settings.EXCHANGE_RATE_BASE_URL)


@lru_cache
def get_mail_service() -> MailService:
    return MailService(
        api_key=settings.RESEND_API_KEY,
        sender=settings.MAIL_FROM,
        templates_dir=settings.MAIL_TEMPLATES_DIR,
        base_url=settings.RESEND_BASE_URL,
    )


def get_event_bus() -> EventBus:
    return events


async def close_clients() -> None:
    """Закрывает HTTP-клиенты, созданные за время работы приложения."""
    for factory in (
        get_custody_client,
        get_coingecko_client,
        get_exchange_rate_client,
        get_mail_service,
    ):
        if factory.cache_info().currsize:
            await factory().aclose()
            factory.cache_clear()


def get_wallet_service(
    db: AsyncSession = Depends(get_db),
    custody: FireblocksClient = Depends(get_custody_client),
    coingecko: CoinGeckoClient = Depends(get_coingecko_client),
    forex: ExchangeRateClient = Depends(get_exchange_rate_client),
    mail: MailService = Depends(get_mail_service),
) -> WalletService:
    return WalletService(
        db=db,
        custody=custody,
        coingecko=coingecko,
        forex=forex,
        mail=mail,
        asset_id=settings.FIREBLOCKS_ASSET_ID,
        network_type=settings.WALLET_NETWORK,
    )


def get_property_service(
    db: AsyncSession = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
) -> PropertyService:
    return PropertyService(db, bus)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(
        bearer_scheme
    ),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Пользователь из JWT в заголовке Authorization (claim sub)."""
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized

    try:
        claims = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        raise unauthorized

    user_id = claims.get("sub")
    if not user_id:
        raise unauthorized

    user = await db.get(User, user_id)
    if not user:
        raise unauthorized
    return user
