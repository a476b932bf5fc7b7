import logging
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI

from checkout_service.config import settings
from checkout_service.database import engine
from checkout_service.infrastructure.db_schema import metadata
from checkout_service.presentation.api import router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Таблицы созданы")

    yield

    logger.info("Приложение останавливается...")
    await engine.dispose()


app = FastAPI(
    title="Checkout Service",
    description="Корзина, оформление заказов и складские остатки маркетплейса",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(router, prefix="/api")


@app.get("/health")
async def health():
    return {"status": "healthy"}
