"""Cart operations and the cart total invariant."""

from decimal import Decimal

import pytest

from checkout_service.application.cart import (
    AddToCartDTO, AddToCartUseCase, GetCartUseCase, GetSellerCartItemsUseCase,
    RemoveCartItemUseCase, RemoveSellerItemsUseCase, UpdateCartItemQuantityUseCase,
    UNKNOWN_SELLER
)
from checkout_service.domain.exceptions import (
    CartItemNotFoundError, CartNotFoundError, InsufficientStockError, InvalidQuantityError,
    ProductNotFoundError, StockUnitNotFoundError, UserNotFoundError
)
from checkout_service.domain.models import Size
from checkout_service.infrastructure.db_schema import cart_items_tbl


def add(user_id, product_id, size, quantity):
    return AddToCartDTO(user_id=user_id, product_id=product_id, size=size, quantity=quantity)


async def test_add_to_cart_creates_cart_and_item(uow, db, market):
    item = await AddToCartUseCase(uow)(add("user-1", "product-x", Size.M, 2))

    assert item.quantity == 2
    assert item.total_price == Decimal("20.00")
    assert item.size_stock.id == "stock-x-m"
    assert item.product.id == "product-x"
    assert await db.cart_total("user-1") == Decimal("20.00")


async def test_add_to_cart_beyond_stock_creates_nothing(uow, db, market):
    with pytest.raises(InsufficientStockError):
        await AddToCartUseCase(uow)(add("user-1", "product-x", Size.M, 10))

    assert await db.count(cart_items_tbl) == 0
    assert await db.stock("stock-x-m") == 5


async def test_add_same_unit_merges_into_one_item(uow, db, market):
    add_to_cart = AddToCartUseCase(uow)
    first = await add_to_cart(add("user-1", "product-x", Size.M, 1))
    second = await add_to_cart(add("user-1", "product-x", Size.M, 2))

    assert second.id == first.id
    assert second.quantity == 3
    assert second.total_price == Decimal("30.00")
    assert await db.count(cart_items_tbl) == 1
    assert await db.cart_total("user-1") == Decimal("30.00")


async def test_merge_checks_combined_quantity_against_stock(uow, market):
    add_to_cart = AddToCartUseCase(uow)
    await add_to_cart(add("user-1", "product-x", Size.L, 2))
    with pytest.raises(InsufficientStockError):
        await add_to_cart(add("user-1", "product-x", Size.L, 2))


@pytest.mark.parametrize("dto,error", [
    (add("user-1", "product-x", Size.M, 0), InvalidQuantityError),
    (add("user-unknown", "product-x", Size.M, 1), UserNotFoundError),
    (add("user-1", "product-unknown", Size.M, 1), ProductNotFoundError),
    (add("user-1", "product-x", Size.XXL, 1), StockUnitNotFoundError),
])
async def test_add_to_cart_validation(uow, market, dto, error):
    with pytest.raises(error):
        await AddToCartUseCase(uow)(dto)


async def test_get_cart_without_cart_returns_empty_view(uow, market):
    view = await GetCartUseCase(uow)("user-1")

    assert view.id == "user-1"
    assert view.total_cart_value == Decimal("0")
    assert view.cart_items == []
    assert view.items_by_seller == []


async def test_get_cart_groups_by_seller(uow, market):
    add_to_cart = AddToCartUseCase(uow)
    await add_to_cart(add("user-1", "product-x", Size.M, 1))
    await add_to_cart(add("user-1", "product-z", Size.S, 2))
    await add_to_cart(add("user-1", "product-y", Size.M, 1))

    view = await GetCartUseCase(uow)("user-1")

    assert view.total_cart_value == Decimal("40.00")
    assert len(view.cart_items) == 3
    groups = {group.seller_id: group for group in view.items_by_seller}
    assert set(groups) == {"seller-a", "seller-b"}
    assert groups["seller-a"].seller_name == "Alice Store"
    assert groups["seller-a"].total_value == Decimal("30.00")
    assert len(groups["seller-a"].items) == 2
    # У продавца без имени менеджера подставляется заглушка
    assert groups["seller-b"].seller_name == UNKNOWN_SELLER
    assert groups["seller-b"].total_value == Decimal("10.00")


async def test_get_seller_cart_items(uow, market):
    add_to_cart = AddToCartUseCase(uow)
    await add_to_cart(add("user-1", "product-x", Size.M, 1))
    await add_to_cart(add("user-1", "product-z", Size.S, 1))

    group = await GetSellerCartItemsUseCase(uow)("user-1", "seller-b")

    assert group.seller_id == "seller-b"
    assert [item.size_stock_id for item in group.items] == ["stock-z-s"]
    assert group.total_value == Decimal("5.00")


async def test_update_quantity_recomputes_totals(uow, db, market):
    item = await AddToCartUseCase(uow)(add("user-1", "product-x", Size.M, 1))

    updated = await UpdateCartItemQuantityUseCase(uow)(item.id, "user-1", 4)

    assert updated.quantity == 4
    assert updated.total_price == Decimal("40.00")
    assert await db.cart_total("user-1") == Decimal("40.00")


async def test_update_quantity_beyond_stock(uow, db, market):
    item = await AddToCartUseCase(uow)(add("user-1", "product-x", Size.L, 1))

    with pytest.raises(InsufficientStockError):
        await UpdateCartItemQuantityUseCase(uow)(item.id, "user-1", 4)
    assert await db.cart_total("user-1") == Decimal("10.00")


async def test_update_quantity_rejects_zero(uow, market):
    item = await AddToCartUseCase(uow)(add("user-1", "product-x", Size.M, 1))
    with pytest.raises(InvalidQuantityError):
        await UpdateCartItemQuantityUseCase(uow)(item.id, "user-1", 0)


async def test_foreign_item_is_not_found(uow, market):
    item = await AddToCartUseCase(uow)(add("user-1", "product-x", Size.M, 1))

    with pytest.raises(CartItemNotFoundError):
        await UpdateCartItemQuantityUseCase(uow)(item.id, "user-2", 2)
    with pytest.raises(CartItemNotFoundError):
        await RemoveCartItemUseCase(uow)(item.id, "user-2")


async def test_remove_item_recomputes_total(uow, db, market):
    add_to_cart = AddToCartUseCase(uow)
    shirt = await add_to_cart(add("user-1", "product-x", Size.M, 1))
    await add_to_cart(add("user-1", "product-y", Size.M, 1))

    await RemoveCartItemUseCase(uow)(shirt.id, "user-1")

    assert await db.count(cart_items_tbl) == 1
    assert await db.cart_total("user-1") == Decimal("20.00")


async def test_remove_seller_items(uow, db, market):
    add_to_cart = AddToCartUseCase(uow)
    await add_to_cart(add("user-1", "product-x", Size.M, 2))
    await add_to_cart(add("user-1", "product-y", Size.M, 1))
    await add_to_cart(add("user-1", "product-z", Size.S, 1))

    result = await RemoveSellerItemsUseCase(uow)("user-1", "seller-a")

    assert result.count == 2
    assert result.total_price_reduction == Decimal("40.00")
    assert await db.cart_total("user-1") == Decimal("5.00")
    view = await GetCartUseCase(uow)("user-1")
    assert [group.seller_id for group in view.items_by_seller] == ["seller-b"]


async def test_remove_seller_items_nothing_to_remove(uow, db, market):
    await AddToCartUseCase(uow)(add("user-1", "product-z", Size.S, 1))

    result = await RemoveSellerItemsUseCase(uow)("user-1", "seller-a")

    assert result.count == 0
    assert result.total_price_reduction == Decimal("0")
    assert await db.cart_total("user-1") == Decimal("5.00")


async def test_remove_seller_items_without_cart(uow, market):
    with pytest.raises(CartNotFoundError):
        await RemoveSellerItemsUseCase(uow)("user-1", "seller-a")


async def test_repeated_add_accumulates_until_stock_runs_out(uow, db, market):
    add_to_cart = AddToCartUseCase(uow)
    await add_to_cart(add("user-1", "product-x", Size.M, 2))
    item = await add_to_cart(add("user-1", "product-x", Size.M, 3))

    assert item.quantity == 5
    assert await db.cart_total("user-1") == Decimal("50.00")
    with pytest.raises(InsufficientStockError):
        await add_to_cart(add("user-1", "product-x", Size.M, 1))
    assert await db.cart_total("user-1") == Decimal("50.00")
