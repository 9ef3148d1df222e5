from datetime import datetime
from decimal import Decimal
from typing import Any, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

from app.models import Currency, NetworkType

DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    """Обертка ответа вида {"status": "success", "data": ...}."""

    status: str = "success"
    data: DataT


class WalletResponse(BaseModel):
    """Схема для ответа с информацией о кошельке."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    network_type: NetworkType
    vault_id: str
    wallet_address: str
    evm_address: str
    asset: str
    currency: Currency
    is_active: bool
    balance: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WalletBalanceResponse(BaseModel):
    """Баланс кошелька по данным кастодиального провайдера."""

    wallet_id: str
    asset: str
    balance: Decimal


class ConversionResponse(BaseModel):
    """Результат пересчета суммы по текущему курсу."""

    from_currency: str
    to_currency: str
    amount: Decimal
    converted_amount: Decimal


class UnitCosts(BaseModel):
    """Расчет стоимости объекта: все суммы строками с двумя знаками."""

    property_price: str
    purchase_costs: str
    transaction_fees: str
    mof_fees: str
    total_cost: str


# Колонки ставок Numeric(6, 2)
MAX_PCT = 9999.99


class CostQuoteRequest(BaseModel):
    """Запрос на предварительный расчет стоимости."""

    property_price: Union[float, str] = 0
    purchase_pct: Optional[float] = Field(default=None, ge=0, le=MAX_PCT)
    transaction_pct: Optional[float] = Field(default=None, ge=0, le=MAX_PCT)
    mof_pct: Optional[float] = Field(default=None, ge=0, le=MAX_PCT)


class PropertyCreate(CostQuoteRequest):
    """Схема для создания объекта недвижимости."""

    title: str = Field(min_length=1)
    description: Optional[str] = None
    location: Optional[str] = None
    num_units: Optional[int] = Field(
        default=None, ge=1, description="Количество долей, не меньше 1"
    )
    image_urls: Optional[List[str]] = None
    governors_consent_url: Optional[str] = None
    deed_of_assignment_url: Optional[str] = None
    survey_plan_url: Optional[str] = None
    features: Optional[Any] = None
    amenities: Optional[Any] = None
    why_invest: Optional[Any] = None


class PropertyResponse(BaseModel):
    """Схема для ответа с информацией об объекте."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    property_price: Decimal
    purchase_pct: Decimal
    transaction_pct: Decimal
    mof_pct: Decimal
    purchase_costs: Decimal
    transaction_fees: Decimal
    mof_fees: Decimal
    listing_price: Decimal
    price_per_unit: Decimal
    num_units: int
    image_urls: Optional[List[str]] = None
    governors_consent_url: Optional[str] = None
    deed_of_assignment_url: Optional[str] = None
    survey_plan_url: Optional[str] = None
    features: Optional[Any] = None
    amenities: Optional[Any] = None
    why_invest: Optional[Any] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
