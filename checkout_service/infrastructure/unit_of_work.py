from contextlib import asynccontextmanager
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout_service.domain.exceptions import ConflictError
from checkout_service.infrastructure.repositories import (
    SQLAlchemyUserRepository,
    SQLAlchemySellerRepository,
    SQLAlchemyProductRepository,
    SQLAlchemyInventoryRepository,
    SQLAlchemyCartRepository,
    SQLAlchemyOrderRepository,
    SQLAlchemyNotificationRepository
)


class UnitOfWork:
    """Одна сессия = одна транзакция БД; без commit изменения откатываются"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def __call__(self):
        async with self._session_factory() as session:
            try:
                uow_impl = _UnitOfWorkImpl(session)
                yield uow_impl
                # Если commit не вызван, откат
                await session.rollback()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(f"Нарушение уникальности: {e.orig}") from e
            except Exception:
                await session.rollback()
                raise


class _UnitOfWorkImpl:
    def __init__(self, session: AsyncSession):
        self._session = session
        self.users = SQLAlchemyUserRepository(session)
        self.sellers = SQLAlchemySellerRepository(session)
        self.products = SQLAlchemyProductRepository(session)
        self.inventory = SQLAlchemyInventoryRepository(session)
        self.carts = SQLAlchemyCartRepository(session)
        self.orders = SQLAlchemyOrderRepository(session)
        self.notifications = SQLAlchemyNotificationRepository(session)

    async def commit(self):
        await self._session.commit()

    async def rollback(self):
        await self._session.rollback()
