import enum
import uuid

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Enum, ForeignKey, Integer, Numeric,
    String, Text, func
)
from sqlalchemy.orm import relationship

from app.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class NetworkType(str, enum.Enum):
    """Сеть, в которой открыт кошелек."""

    TESTNET = "TESTNET"
    MAINNET = "MAINNET"


class Currency(str, enum.Enum):
    HBAR = "HBAR"


class User(Base):
    """
    Пользователь платформы. Создается процессом регистрации,
    здесь используется только для аутентификации и выпуска кошелька.
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True, default=_uuid)
    email = Column(String, nullable=False, unique=True)
    full_name = Column(String, nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    wallets = relationship("UserWallet", back_populates="user")

    def __repr__(self) -> str:
        return f"<User(id='{self.id}', email='{self.email}')>"


class UserWallet(Base):
    """
    Кастодиальный кошелек пользователя.

    Адреса и идентификатор хранилища задаются один раз при создании.
    Поле balance носит справочный характер: источник истины по балансу
    это кастодиальный провайдер.
    """
    __tablename__ = "user_wallets"

    id = Column(String, primary_key=True, index=True, default=_uuid)
    user_id = Column(
        String, ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True
    )
    network_type = Column(
        Enum(NetworkType, name="network_type"),
        nullable=False, default=NetworkType.TESTNET
    )
    vault_id = Column(String, nullable=False)
    wallet_address = Column(String, nullable=False)
    evm_address = Column(String, nullable=False)
    asset = Column(String, nullable=False)
    currency = Column(
        Enum(Currency, name="wallet_currency"),
        nullable=False, default=Currency.HBAR
    )
    is_active = Column(Boolean, nullable=False, default=True)
    balance = Column(
        Numeric(precision=20, scale=8), nullable=False, default=0
    )
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True), nullable=False,
        server_default=func.now(), onupdate=func.now()
    )

    user = relationship("User", back_populates="wallets")

    def __repr__(self) -> str:
        return (
            f"<UserWallet(id='{self.id}', vault_id='{self.vault_id}', "
            f"address='{self.wallet_address}', active={self.is_active})>"
        )


class Property(Base):
    """
    Объект недвижимости, выставленный на токенизацию.

    Производные денежные поля (purchase_costs, transaction_fees, mof_fees,
    listing_price, price_per_unit) вычисляются из property_price и
    процентных ставок при создании и отдельно не изменяются.
    """
    __tablename__ = "properties"

    id = Column(String, primary_key=True, index=True, default=_uuid)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String, nullable=True)

    property_price = Column(Numeric(precision=20, scale=2), nullable=False)
    purchase_pct = Column(Numeric(precision=6, scale=2), nullable=False)
    transaction_pct = Column(Numeric(precision=6, scale=2), nullable=False)
    mof_pct = Column(Numeric(precision=6, scale=2), nullable=False)

    purchase_costs = Column(Numeric(precision=20, scale=2), nullable=False)
    transaction_fees = Column(Numeric(precision=20, scale=2), nullable=False)
    mof_fees = Column(Numeric(precision=20, scale=2), nullable=False)
    listing_price = Column(Numeric(precision=20, scale=2), nullable=False)
    price_per_unit = Column(Numeric(precision=20, scale=2), nullable=False)
    num_units = Column(Integer, nullable=False, default=1)

    image_urls = Column(JSON(none_as_null=True), nullable=True)
    governors_consent_url = Column(String, nullable=True)
    deed_of_assignment_url = Column(String, nullable=True)
    survey_plan_url = Column(String, nullable=True)
    features = Column(JSON(none_as_null=True), nullable=True)
    amenities = Column(JSON(none_as_null=True), nullable=True)
    why_invest = Column(JSON(none_as_null=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True), nullable=False,
        server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<Property(id='{self.id}', title='{self.title}', "
            f"listing_price={self.listing_price})>"
        )
