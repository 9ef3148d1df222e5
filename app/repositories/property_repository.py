from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Property


class PropertyRepository:
    """Репозиторий для объектов недвижимости."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list(self) -> List[Property]:
        result = await self.db.execute(
            select(Property).order_by(Property.created_at.desc())
        )
        return list(result.scalars().all())

    async def get(self, property_id: str) -> Optional[Property]:
        result = await self.db.execute(
            select(Property).where(Property.id == property_id)
        )
        return result.scalar_one_or_none()

    async def save(self, property_: Property) -> Property:
        """
        Добавить объект в текущую транзакцию без коммита.
        После flush у объекта есть id и серверные временные метки.
        """
        self.db.add(property_)
        await self.db.flush()
        await self.db.refresh(property_)
        return property_
