import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # Database
    POSTGRES_CONNECTION_STRING: str = os.getenv("POSTGRES_CONNECTION_STRING", "")
    SQLITE_FALLBACK_URL: str = os.getenv("SQLITE_FALLBACK_URL", "sqlite+aiosqlite:///./checkout_service.db")

    # API
    API_TOKEN: str = os.getenv("API_TOKEN", "")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Payments
    PAYMENTS_BASE_URL: str = os.getenv("PAYMENTS_BASE_URL", "http://localhost:8001")
    PAYMENT_RETURN_URL: str = os.getenv("PAYMENT_RETURN_URL", "http://localhost:3000/payment/return")

    # Checkout
    RESTOCK_ON_CANCEL: bool = _as_bool(os.getenv("RESTOCK_ON_CANCEL", "false"))

    @property
    def DATABASE_URL(self) -> str:
        """Асинхронный URL для приложения"""
        if not self.POSTGRES_CONNECTION_STRING:
            return self.SQLITE_FALLBACK_URL
        return self.POSTGRES_CONNECTION_STRING.replace("postgres://", "postgresql+asyncpg://")

    @property
    def SYNC_DATABASE_URL(self) -> str:
        """Синхронный URL для Alembic"""
        if not self.POSTGRES_CONNECTION_STRING:
            return self.SQLITE_FALLBACK_URL.replace("sqlite+aiosqlite://", "sqlite://")
        return self.POSTGRES_CONNECTION_STRING.replace("postgres://", "postgresql://")


settings = Settings()
