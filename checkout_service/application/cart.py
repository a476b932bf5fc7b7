import logging
import uuid
from decimal import Decimal
from typing import List
from pydantic import BaseModel

from checkout_service.domain.models import Cart, CartItem, CartView, SellerCartGroup, SellerSummary, Size
from checkout_service.domain.grouping import group_by
from checkout_service.domain.exceptions import (
    CartItemNotFoundError, CartNotFoundError, InsufficientStockError, InvalidQuantityError,
    ProductNotFoundError, StockUnitNotFoundError, UserNotFoundError
)

logger = logging.getLogger(__name__)

UNKNOWN_SELLER = "Unknown Seller"


class AddToCartDTO(BaseModel):
    user_id: str
    product_id: str
    size: Size
    quantity: int


class RemovedItemsResult(BaseModel):
    count: int
    total_price_reduction: Decimal


def _total(items: List[CartItem]) -> Decimal:
    return sum((item.total_price for item in items), Decimal("0"))


def _seller_group(seller_id: str, items: List[CartItem], seller: SellerSummary | None) -> SellerCartGroup:
    return SellerCartGroup(
        seller_id=seller_id,
        seller_name=(seller.manager_name if seller else None) or UNKNOWN_SELLER,
        items=items,
        total_value=_total(items)
    )


class AddToCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, dto: AddToCartDTO) -> CartItem:
        if dto.quantity <= 0:
            raise InvalidQuantityError("Количество должно быть больше 0")

        async with self._uow() as uow:
            if not await uow.users.get_by_id(dto.user_id):
                raise UserNotFoundError(f"Пользователь {dto.user_id} не найден")

            product = await uow.products.get_by_id(dto.product_id)
            if not product:
                raise ProductNotFoundError(f"Товар {dto.product_id} не найден")

            unit = await uow.inventory.get_by_product_and_size(dto.product_id, dto.size)
            if not unit:
                raise StockUnitNotFoundError(f"Размер {dto.size.value} для товара {dto.product_id} не найден")

            cart = await uow.carts.get_by_user(dto.user_id, for_update=True)
            if not cart:
                cart = Cart(id=str(uuid.uuid4()), user_id=dto.user_id, total_cart_value=Decimal("0"))
                await uow.carts.create(cart)
                logger.info(f"Создана корзина {cart.id} для пользователя {dto.user_id}")

            existing = await uow.carts.get_item_by_size_stock(cart.id, unit.id)
            already_in_cart = existing.quantity if existing else 0
            if not unit.can_supply(already_in_cart + dto.quantity):
                raise InsufficientStockError(unit.quantity, already_in_cart + dto.quantity)

            item_total = product.price * dto.quantity
            if existing:
                await uow.carts.update_item(
                    existing.id,
                    quantity=existing.quantity + dto.quantity,
                    total_price=existing.total_price + item_total
                )
                cart_item_id = existing.id
                logger.info(f"Обновлено количество позиции корзины {cart_item_id}")
            else:
                cart_item_id = str(uuid.uuid4())
                await uow.carts.create_item(
                    CartItem(
                        id=cart_item_id,
                        cart_id=cart.id,
                        user_id=dto.user_id,
                        size_stock_id=unit.id,
                        quantity=dto.quantity,
                        total_price=item_total
                    )
                )
                logger.info(f"Добавлена позиция {cart_item_id} в корзину {cart.id}")

            await uow.carts.recalculate_total(cart.id)
            cart_item = await uow.carts.get_item(cart_item_id)
            await uow.commit()

        return cart_item


class GetCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> CartView:
        async with self._uow() as uow:
            cart = await uow.carts.get_by_user(user_id)
            if not cart:
                return CartView(
                    id=user_id,
                    user_id=user_id,
                    total_cart_value=Decimal("0"),
                    cart_items=[],
                    items_by_seller=[]
                )
            items = await uow.carts.get_items(cart.id)
            sellers = await uow.sellers.get_many(list({item.seller_id for item in items}))

        groups = group_by(items, lambda item: item.seller_id)
        return CartView(
            id=cart.id,
            user_id=cart.user_id,
            total_cart_value=cart.total_cart_value,
            cart_items=items,
            items_by_seller=[
                _seller_group(seller_id, seller_items, sellers.get(seller_id))
                for seller_id, seller_items in groups.items()
            ]
        )


class GetSellerCartItemsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, seller_id: str) -> SellerCartGroup:
        async with self._uow() as uow:
            seller = await uow.sellers.get_by_id(seller_id)
            cart = await uow.carts.get_by_user(user_id)
            items = await uow.carts.get_items(cart.id, seller_id=seller_id) if cart else []
        return _seller_group(seller_id, items, seller)


class UpdateCartItemQuantityUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, cart_item_id: str, user_id: str, quantity: int) -> CartItem:
        if quantity <= 0:
            raise InvalidQuantityError("Количество должно быть больше 0")

        async with self._uow() as uow:
            item = await _get_owned_item(uow, cart_item_id, user_id)
            await uow.carts.get_by_id(item.cart_id, for_update=True)
            # Перечитываем позицию под блокировкой корзины
            item = await _get_owned_item(uow, cart_item_id, user_id)

            if not item.size_stock.can_supply(quantity):
                raise InsufficientStockError(item.size_stock.quantity, quantity)

            await uow.carts.update_item(
                cart_item_id,
                quantity=quantity,
                total_price=item.product.price * quantity
            )
            await uow.carts.recalculate_total(item.cart_id)
            updated = await uow.carts.get_item(cart_item_id)
            await uow.commit()

        logger.info(f"Количество позиции корзины {cart_item_id} изменено на {quantity}")
        return updated


class RemoveCartItemUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, cart_item_id: str, user_id: str) -> None:
        async with self._uow() as uow:
            item = await _get_owned_item(uow, cart_item_id, user_id)
            await uow.carts.get_by_id(item.cart_id, for_update=True)
            await uow.carts.delete_items([cart_item_id])
            await uow.carts.recalculate_total(item.cart_id)
            await uow.commit()

        logger.info(f"Удалена позиция корзины {cart_item_id}")


class RemoveSellerItemsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, seller_id: str) -> RemovedItemsResult:
        async with self._uow() as uow:
            cart = await uow.carts.get_by_user(user_id, for_update=True)
            if not cart:
                raise CartNotFoundError(f"Корзина пользователя {user_id} не найдена")

            items = await uow.carts.get_items(cart.id, seller_id=seller_id)
            if not items:
                return RemovedItemsResult(count=0, total_price_reduction=Decimal("0"))

            reduction = _total(items)
            count = await uow.carts.delete_items([item.id for item in items])
            await uow.carts.adjust_total(cart.id, -reduction)
            await uow.commit()

        logger.info(f"Удалено {count} позиций продавца {seller_id} из корзины {cart.id}")
        return RemovedItemsResult(count=count, total_price_reduction=reduction)


async def _get_owned_item(uow, cart_item_id: str, user_id: str) -> CartItem:
    """Чужая позиция неотличима от несуществующей"""
    item = await uow.carts.get_item(cart_item_id)
    if not item or item.user_id != user_id:
        raise CartItemNotFoundError(f"Позиция корзины {cart_item_id} не найдена")
    return item
