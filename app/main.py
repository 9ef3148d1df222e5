# app/main.py
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import List

import structlog
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import engine, get_db
from app.dependencies import (
    close_clients, get_current_user, get_property_service,
    get_wallet_service
)
from app.events import PROPERTY_CREATED, events, log_property_created
from app.exceptions import (
    ExternalServiceError, InvalidMoneyError, NotFoundError,
    WalletAlreadyExistsError
)
from app.logging_config import configure_logging
from app.models import User
from app.schemas import (
    ConversionResponse, CostQuoteRequest, Envelope, PropertyCreate,
    PropertyResponse, UnitCosts, WalletBalanceResponse, WalletResponse
)
from app.services.property_service import PropertyService, quote
from app.services.wallet_service import WalletService

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Контекстный менеджер lifespan управляет событиями запуска и остановки.
    """
    configure_logging()
    events.on(PROPERTY_CREATED, log_property_created)
    logger.info("app_startup", project=settings.PROJECT_NAME)
    # Таблицы создаются через миграции Alembic
    yield
    logger.info("app_shutdown")
    events.off(PROPERTY_CREATED, log_property_created)
    await close_clients()
    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API токенизации недвижимости: объекты, кошельки, курсы",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(WalletAlreadyExistsError)
async def conflict_handler(request: Request, exc: WalletAlreadyExistsError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(InvalidMoneyError)
async def invalid_money_handler(request: Request, exc: InvalidMoneyError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(ExternalServiceError)
async def external_service_handler(
    request: Request, exc: ExternalServiceError
):
    logger.error(
        "external_service_error",
        path=request.url.path,
        operation=exc.operation,
        error=exc.detail,
    )
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Проверяет, что приложение работает и может подключиться к БД."""
    try:
        await db.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        return {
            "status": "unhealthy", "database": "disconnected", "error": str(e)
        }


@app.get(
    "/wallet",
    response_model=Envelope[WalletResponse],
    summary="Получить кошелек пользователя",
)
async def get_user_wallet(
    user: User = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service),
):
    """Кошелек аутентифицированного пользователя."""
    wallet = await service.get_user_wallet(user.id)
    return Envelope(data=WalletResponse.model_validate(wallet))


@app.post(
    "/wallet",
    response_model=Envelope[WalletResponse],
    status_code=201,
    summary="Выпустить кошелек",
    description="""
    Создает хранилище у кастодиального провайдера, активирует актив
    и сохраняет кошелек.

    Особенности:
    - Повторных попыток нет: ошибка провайдера возвращается как 500
    - Если у пользователя уже есть кошелек, возвращается 409
    """
)
async def create_wallet(
    user: User = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service),
):
    wallet = await service.create_wallet(user)
    return Envelope(data=WalletResponse.model_validate(wallet))


@app.get(
    "/wallet/balance",
    response_model=Envelope[WalletBalanceResponse],
    summary="Баланс кошелька у провайдера",
)
async def get_wallet_balance(
    user: User = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service),
):
    wallet = await service.get_user_wallet(user.id)
    balance = await service.get_wallet_balance(wallet.id)
    return Envelope(
        data=WalletBalanceResponse(
            wallet_id=wallet.id, asset=wallet.asset, balance=balance
        )
    )


async def _get_owned_wallet(
    wallet_id: str, user: User, service: WalletService
):
    wallet = await service.get_wallet(wallet_id)
    if wallet.user_id != user.id:
        raise HTTPException(
            status_code=404,
            detail=f"Wallet with id {wallet_id} not found"
        )
    return wallet


@app.post(
    "/wallet/{wallet_id}/activate",
    response_model=Envelope[WalletResponse],
    summary="Включить кошелек",
)
async def activate_wallet(
    wallet_id: str,
    user: User = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service),
):
    await _get_owned_wallet(wallet_id, user, service)
    wallet = await service.activate_wallet(wallet_id)
    return Envelope(data=WalletResponse.model_validate(wallet))


@app.post(
    "/wallet/{wallet_id}/deactivate",
    response_model=Envelope[WalletResponse],
    summary="Выключить кошелек",
)
async def deactivate_wallet(
    wallet_id: str,
    user: User = Depends(get_current_user),
    service: WalletService = Depends(get_wallet_service),
):
    await _get_owned_wallet(wallet_id, user, service)
    wallet = await service.deactivate_wallet(wallet_id)
    return Envelope(data=WalletResponse.model_validate(wallet))


@app.get(
    "/rates/hbar-usd",
    response_model=ConversionResponse,
    summary="Пересчитать HBAR в USD",
)
async def convert_hbar_to_usd(
    amount: Decimal = Query(gt=0),
    service: WalletService = Depends(get_wallet_service),
):
    converted = await service.convert_hbar_to_usd(amount)
    return ConversionResponse(
        from_currency="HBAR",
        to_currency="USD",
        amount=amount,
        converted_amount=converted,
    )


@app.get(
    "/rates/usd-ngn",
    response_model=ConversionResponse,
    summary="Пересчитать USD в NGN",
)
async def convert_usd_to_ngn(
    amount: Decimal = Query(gt=0),
    service: WalletService = Depends(get_wallet_service),
):
    converted = await service.convert_usd_to_ngn(amount)
    return ConversionResponse(
        from_currency="USD",
        to_currency="NGN",
        amount=amount,
        converted_amount=converted,
    )


@app.get(
    "/properties",
    response_model=List[PropertyResponse],
    summary="Список объектов",
)
async def list_properties(
    service: PropertyService = Depends(get_property_service),
):
    return await service.list()


@app.post(
    "/properties/quote",
    response_model=UnitCosts,
    summary="Предварительный расчет стоимости",
    description="""
    Считает затраты на покупку, комиссии и итоговую цену без сохранения.
    Ставки по умолчанию: покупка 5%, транзакция 5%, MOF 3%.
    """
)
async def quote_property(data: CostQuoteRequest):
    return quote(data)


@app.get(
    "/properties/{property_id}",
    response_model=PropertyResponse,
    summary="Получить объект",
)
async def get_property(
    property_id: str,
    service: PropertyService = Depends(get_property_service),
):
    return await service.get_by_id(property_id)


@app.post(
    "/properties",
    response_model=PropertyResponse,
    status_code=201,
    summary="Создать объект",
)
async def create_property(
    data: PropertyCreate,
    service: PropertyService = Depends(get_property_service),
):
    """Создание объекта с расчетом стоимости в одной транзакции."""
    try:
        return await service.create_full(data)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.get("/")
async def root():
    """Корневой эндпоинт."""
    return {"message": "Property Tokenization API is running"}
