import hashlib
from decimal import Decimal

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    ExternalServiceError, NotFoundError, WalletAlreadyExistsError,
    WalletProvisioningError
)
from app.models import Currency, NetworkType, User, UserWallet
from app.repositories.wallet_repository import WalletRepository
from app.services.addresses import hedera_account_to_evm_address
from app.services.costs import to_money
from app.services.custody import FireblocksClient
from app.services.mail_service import MailService
from app.services.price_feeds import CoinGeckoClient, ExchangeRateClient

logger = structlog.get_logger(__name__)

HBAR_COINGECKO_ID = "hedera-hashgraph"


def activation_idempotency_key(vault_id: str, asset_id: str) -> str:
    """Стабильный ключ идемпотентности для активации актива в хранилище."""
    return hashlib.sha256(f"{vault_id}:{asset_id}".encode()).hexdigest()


class WalletService:
    """
    Выпуск кастодиальных кошельков и операции с ними.

    Выпуск кошелька идет строго последовательно:
    создание хранилища -> активация актива -> вычисление EVM-адреса ->
    сохранение записи. Повторов и компенсаций нет: если хранилище уже
    создано, а следующий шаг упал, оно остается у провайдера.
    """

    def __init__(
        self,
        db: AsyncSession,
        custody: FireblocksClient,
        coingecko: CoinGeckoClient,
        forex: ExchangeRateClient,
        mail: MailService,
        asset_id: str,
        network_type: str = NetworkType.TESTNET.value,
    ):
        self.repo = WalletRepository(db)
        self.custody = custody
        self.coingecko = coingecko
        self.forex = forex
        self.mail = mail
        self.asset_id = asset_id
        self.network_type = NetworkType(network_type)

    async def create_wallet(self, user: User) -> UserWallet:
        """
        Выпустить кошелек для пользователя.

        :param user: Владелец кошелька
        :return: Сохраненный объект UserWallet
        :raises WalletAlreadyExistsError: Если кошелек уже есть
        :raises ExternalServiceError: Если не удалось создать хранилище
        :raises WalletProvisioningError: Если хранилище создано,
            но кошелек выпустить не удалось
        """
        if await self.repo.get_user_wallet(user.id):
            raise WalletAlreadyExistsError("Wallet already exists")

        log = logger.bind(user_id=user.id, asset_id=self.asset_id)

        vault = await self.custody.create_vault(
            owner_id=user.id, label=user.email
        )
        log = log.bind(vault_id=vault.id)

        try:
            activation = await self.custody.activate_asset(
                vault.id,
                self.asset_id,
                idempotency_key=activation_idempotency_key(
                    vault.id, self.asset_id
                ),
            )
            if not activation.address:
                raise WalletProvisioningError(
                    "activate_asset",
                    "Failed to retrieve account address",
                    vault_id=vault.id,
                )

            try:
                evm_address = hedera_account_to_evm_address(
                    activation.address
                )
            except ValueError as e:
                raise WalletProvisioningError(
                    "derive_evm_address", str(e), vault_id=vault.id
                ) from e

            wallet = UserWallet(
                user_id=user.id,
                network_type=self.network_type,
                vault_id=vault.id,
                wallet_address=activation.address,
                evm_address=evm_address,
                asset=self.asset_id,
                currency=Currency.HBAR,
                is_active=True,
                balance=Decimal("0"),
            )
            try:
                wallet = await self.repo.save(wallet)
            except SQLAlchemyError as e:
                raise WalletProvisioningError(
                    "save_wallet", str(e), vault_id=vault.id
                ) from e
        except ExternalServiceError as e:
            log.error(
                "wallet_vault_orphaned", operation=e.operation, error=e.detail
            )
            if isinstance(e, WalletProvisioningError):
                raise
            raise WalletProvisioningError(
                e.operation, e.detail, vault_id=vault.id
            ) from e

        log.info("wallet_created", wallet_id=wallet.id)
        await self.mail.send_wallet_created(user.email, wallet)
        return wallet

    async def get_user_wallet(self, user_id: str) -> UserWallet:
        wallet = await self.repo.get_user_wallet(user_id)
        if not wallet:
            raise NotFoundError("Wallet not found")
        return wallet

    async def get_wallet(self, wallet_id: str) -> UserWallet:
        wallet = await self.repo.get_wallet(wallet_id)
        if not wallet:
            raise NotFoundError("Wallet not found")
        return wallet

    async def get_wallet_balance(self, wallet_id: str) -> Decimal:
        """
        Баланс кошелька по данным провайдера.
        Если актив в хранилище не найден, баланс равен 0.
        """
        wallet = await self.get_wallet(wallet_id)
        vault = await self.custody.get_vault(wallet.vault_id)
        for asset in vault.assets:
            if asset.id == wallet.asset:
                return asset.total
        return Decimal("0")

    async def activate_wallet(self, wallet_id: str) -> UserWallet:
        wallet = await self.repo.set_active(wallet_id, True)
        if not wallet:
            raise NotFoundError("Wallet not found")
        return wallet

    async def deactivate_wallet(self, wallet_id: str) -> UserWallet:
        wallet = await self.repo.set_active(wallet_id, False)
        if not wallet:
            raise NotFoundError("Wallet not found")
        return wallet

    async def convert_hbar_to_usd(self, hbar_amount: Decimal) -> Decimal:
        rate = await self.coingecko.get_rate(HBAR_COINGECKO_ID, "usd")
        return to_money(hbar_amount * rate)

    async def convert_usd_to_ngn(self, usd_amount: Decimal) -> Decimal:
        rates = await self.forex.get_rates("USD")
        if "NGN" not in rates:
            raise ExternalServiceError(
                "exchangerate.get_rates", "NGN rate missing in response"
            )
        return to_money(usd_amount * rates["NGN"])
