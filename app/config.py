from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    """Класс для хранения настроек приложения."""

    POSTGRES_USER: str = "estate_user"
    POSTGRES_PASSWORD: str = "estate_password"
    POSTGRES_DB: str = "estate_db"
    POSTGRES_HOST: str = "db"
    POSTGRES_PORT: int = 5432
    DB_ECHO: bool = False

    @property
    def DATABASE_URL(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:"
            f"{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    PROJECT_NAME: str = "Property Tokenization API"

    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    # Кастодиальный провайдер (Fireblocks)
    FIREBLOCKS_API_KEY: str = ""
    FIREBLOCKS_SECRET_KEY_PATH: str = "secrets/fireblocks_secret.key"
    FIREBLOCKS_BASE_URL: str = "https://sandbox-api.fireblocks.io"
    FIREBLOCKS_ASSET_ID: str = "HBAR_TEST"
    WALLET_NETWORK: str = "TESTNET"

    # Курсы валют
    COINGECKO_BASE_URL: str = "https://api.coingecko.com/api/v3"
    EXCHANGE_RATE_BASE_URL: str = "https://api.exchangerate-api.com/v4"

    # Почта (Resend)
    RESEND_API_KEY: str = ""
    RESEND_BASE_URL: str = "https://api.resend.com"
    MAIL_FROM: str = "no-reply@estate.local"
    MAIL_TEMPLATES_DIR: str = str(BASE_DIR / "templates" / "email")

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"

    model_config = SettingsConfigDict(env_file=".env")


settings = Settings()
