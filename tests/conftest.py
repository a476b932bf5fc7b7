"""Pytest fixtures for checkout_service tests."""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from checkout_service.domain.models import Size
from checkout_service.infrastructure.db_schema import (
    metadata, users_tbl, sellers_tbl, products_tbl, size_stocks_tbl, carts_tbl
)
from checkout_service.infrastructure.notifications import SQLNotificationSink
from checkout_service.infrastructure.unit_of_work import UnitOfWork


class Db:
    """Direct reads used by assertions."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def stock(self, size_stock_id: str) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(size_stocks_tbl.c.quantity).where(size_stocks_tbl.c.id == size_stock_id)
            )
            return result.scalar_one()

    async def count(self, table, *criteria) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(table).where(*criteria))
            return result.scalar_one()

    async def cart_total(self, user_id: str) -> Decimal:
        async with self._session_factory() as session:
            result = await session.execute(
                select(carts_tbl.c.total_cart_value).where(carts_tbl.c.user_id == user_id)
            )
            return Decimal(str(result.scalar_one())).quantize(Decimal("0.01"))


@pytest.fixture
async def session_factory(tmp_path):
    """Fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'checkout.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def uow(session_factory):
    return UnitOfWork(session_factory)


@pytest.fixture
def notifications(uow):
    return SQLNotificationSink(uow)


@pytest.fixture
def db(session_factory):
    return Db(session_factory)


@pytest.fixture
async def market(session_factory):
    """Buyer, two sellers and their products with stock.

    seller-a sells product-x (10.00) and product-y (20.00),
    seller-b sells product-z (5.00).
    """
    async with session_factory() as session:
        await session.execute(insert(users_tbl), [
            {"id": "user-1", "name": "Buyer One", "email": "buyer1@example.com"},
            {"id": "user-2", "name": "Buyer Two", "email": "buyer2@example.com"},
            {"id": "user-sa", "name": "Seller A Owner", "email": "sa@example.com"},
            {"id": "user-sb", "name": "Seller B Owner", "email": "sb@example.com"},
        ])
        await session.execute(insert(sellers_tbl), [
            {"id": "seller-a", "user_id": "user-sa", "manager_name": "Alice Store", "email": "sa@example.com"},
            {"id": "seller-b", "user_id": "user-sb", "manager_name": None, "email": "sb@example.com"},
        ])
        await session.execute(insert(products_tbl), [
            {"id": "product-x", "seller_id": "seller-a", "name": "Shirt", "price": Decimal("10.00")},
            {"id": "product-y", "seller_id": "seller-a", "name": "Jacket", "price": Decimal("20.00")},
            {"id": "product-z", "seller_id": "seller-b", "name": "Socks", "price": Decimal("5.00")},
        ])
        await session.execute(insert(size_stocks_tbl), [
            {"id": "stock-x-m", "product_id": "product-x", "size": Size.M, "quantity": 5},
            {"id": "stock-x-l", "product_id": "product-x", "size": Size.L, "quantity": 3},
            {"id": "stock-y-m", "product_id": "product-y", "size": Size.M, "quantity": 10},
            {"id": "stock-z-s", "product_id": "product-z", "size": Size.S, "quantity": 4},
        ])
        await session.commit()

    return SimpleNamespace(
        buyer="user-1",
        other_buyer="user-2",
        seller_a="seller-a",
        seller_a_user="user-sa",
        seller_b="seller-b",
        seller_b_user="user-sb",
    )
