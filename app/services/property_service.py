from decimal import Decimal
from typing import List

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.events import PROPERTY_CREATED, EventBus
from app.exceptions import NotFoundError
from app.models import Property
from app.repositories.property_repository import PropertyRepository
from app.schemas import CostQuoteRequest, PropertyCreate, UnitCosts
from app.services.costs import (
    DEFAULT_MOF_PCT, DEFAULT_PURCHASE_PCT, DEFAULT_TRANSACTION_PCT,
    compute_unit_costs, price_per_unit
)

logger = structlog.get_logger(__name__)


def _pct(value, default: Decimal) -> Decimal:
    return default if value is None else Decimal(str(value))


def quote(data: CostQuoteRequest) -> UnitCosts:
    """Расчет стоимости без сохранения; пропущенные ставки 5/5/3."""
    return compute_unit_costs(
        data.property_price,
        _pct(data.purchase_pct, DEFAULT_PURCHASE_PCT),
        _pct(data.transaction_pct, DEFAULT_TRANSACTION_PCT),
        _pct(data.mof_pct, DEFAULT_MOF_PCT),
    )


class PropertyService:
    """Сервис объектов недвижимости."""

    def __init__(self, db: AsyncSession, events: EventBus):
        self.db = db
        self.repo = PropertyRepository(db)
        self.events = events

    async def list(self) -> List[Property]:
        return await self.repo.list()

    async def get_by_id(self, property_id: str) -> Property:
        property_ = await self.repo.get(property_id)
        if not property_:
            raise NotFoundError("Property not found")
        return property_

    async def create_full(self, data: PropertyCreate) -> Property:
        """
        Создать объект вместе с расчетом стоимости в одной транзакции.

        Событие property.created отправляется только после успешного
        коммита. При любой ошибке транзакция откатывается, объект
        не сохраняется и событие не отправляется.

        :param data: Описание объекта, ставки и количество долей
        :return: Сохраненный объект с id и временными метками
        """
        try:
            costs = quote(data)
            property_ = Property(
                title=data.title,
                description=data.description,
                location=data.location,
                property_price=Decimal(costs.property_price),
                purchase_pct=_pct(data.purchase_pct, DEFAULT_PURCHASE_PCT),
                transaction_pct=_pct(
                    data.transaction_pct, DEFAULT_TRANSACTION_PCT
                ),
                mof_pct=_pct(data.mof_pct, DEFAULT_MOF_PCT),
                purchase_costs=Decimal(costs.purchase_costs),
                transaction_fees=Decimal(costs.transaction_fees),
                mof_fees=Decimal(costs.mof_fees),
                listing_price=Decimal(costs.total_cost),
                price_per_unit=Decimal(
                    price_per_unit(costs.total_cost, data.num_units)
                ),
                num_units=data.num_units or 1,
                image_urls=data.image_urls or None,
                governors_consent_url=data.governors_consent_url or None,
                deed_of_assignment_url=data.deed_of_assignment_url or None,
                survey_plan_url=data.survey_plan_url or None,
                features=data.features,
                amenities=data.amenities,
                why_invest=data.why_invest,
            )
            saved = await self.repo.save(property_)
            await self.db.commit()
        except (SQLAlchemyError, ValueError) as e:
            await self.db.rollback()
            logger.error(
                "property_create_failed", title=data.title, error=str(e)
            )
            raise e

        self.events.emit(PROPERTY_CREATED, saved)
        return saved
