from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import UserWallet


class WalletRepository:
    """Репозиторий для операций с кошельками."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_wallet(self, wallet_id: str) -> Optional[UserWallet]:
        """
        Получить кошелек по ID.

        :param wallet_id: UUID кошелька
        :return: Объект UserWallet или None
        """
        result = await self.db.execute(
            select(UserWallet).where(UserWallet.id == wallet_id)
        )
        return result.scalar_one_or_none()

    async def get_user_wallet(self, user_id: str) -> Optional[UserWallet]:
        """
        Получить кошелек пользователя (самый ранний, если их несколько).

        :param user_id: UUID пользователя
        :return: Объект UserWallet или None
        """
        result = await self.db.execute(
            select(UserWallet)
            .where(UserWallet.user_id == user_id)
            .order_by(UserWallet.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def save(self, wallet: UserWallet) -> UserWallet:
        """
        Сохранить кошелек и зафиксировать транзакцию.

        :param wallet: Новый или измененный объект UserWallet
        :return: Сохраненный объект с заполненными id и временными метками
        """
        try:
            self.db.add(wallet)
            await self.db.commit()
            await self.db.refresh(wallet)
            return wallet
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

    async def set_active(
        self, wallet_id: str, is_active: bool
    ) -> Optional[UserWallet]:
        """
        Включить или выключить кошелек.

        :param wallet_id: UUID кошелька
        :param is_active: Новое состояние
        :return: Обновленный объект UserWallet или None, если не найден
        """
        wallet = await self.get_wallet(wallet_id)
        if not wallet:
            return None

        wallet.is_active = is_active
        return await self.save(wallet)
