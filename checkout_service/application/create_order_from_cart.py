import logging
import uuid
from decimal import Decimal
from typing import List
from pydantic import BaseModel

from checkout_service.domain.models import CartItem, Order, OrderItem, ShippingInfo
from checkout_service.domain.grouping import group_by
from checkout_service.domain.exceptions import CartNotFoundError, EmptySelectionError
from checkout_service.application.interfaces import NotificationSink
from checkout_service.application.notifications import notify_quietly
from checkout_service.application.create_order import new_order, new_shipment, short_id

logger = logging.getLogger(__name__)


class CreateOrderFromCartDTO(BaseModel):
    user_id: str
    cart_id: str
    shipping: ShippingInfo
    selected_cart_item_ids: List[str] = []


class CreateOrderFromCartUseCase:
    """Оформление корзины: один заказ на каждого продавца, все в одной транзакции"""

    def __init__(self, unit_of_work, notifications_service: NotificationSink):
        self._uow = unit_of_work
        self._notifications = notifications_service

    async def __call__(self, dto: CreateOrderFromCartDTO) -> List[Order]:
        logger.info(f"Оформление корзины {dto.cart_id} пользователя {dto.user_id}")

        async with self._uow() as uow:
            cart = await uow.carts.get_by_id(dto.cart_id, for_update=True)
            if not cart or cart.user_id != dto.user_id:
                raise CartNotFoundError(f"Корзина {dto.cart_id} не найдена")

            items = await uow.carts.get_items(cart.id)
            if not items:
                raise EmptySelectionError(f"Корзина {dto.cart_id} пуста")
            if dto.selected_cart_item_ids:
                selected = set(dto.selected_cart_item_ids)
                items = [item for item in items if item.id in selected]
            if not items:
                raise EmptySelectionError("Выбранные позиции не найдены в корзине")

            groups = group_by(items, lambda item: item.seller_id)
            sellers = await uow.sellers.get_many(list(groups))

            orders = []
            for seller_id, seller_items in groups.items():
                order = await self._create_seller_order(uow, dto, seller_id, seller_items)
                orders.append(order)

            remaining_total = await uow.carts.recalculate_total(cart.id)
            await uow.commit()

        logger.info(
            f"Из корзины {dto.cart_id} создано заказов: {len(orders)}, "
            f"остаток корзины {remaining_total}"
        )

        for order in orders:
            seller = sellers.get(order.seller_id)
            if seller:
                await notify_quietly(
                    self._notifications, seller.user_id,
                    f"New order #{short_id(order.id)} has been placed"
                )
        if len(orders) > 1:
            buyer_message = f"Your {len(orders)} orders have been placed successfully"
        else:
            buyer_message = f"Your order #{short_id(orders[0].id)} has been placed successfully"
        await notify_quietly(self._notifications, dto.user_id, buyer_message)

        return orders

    async def _create_seller_order(self, uow, dto: CreateOrderFromCartDTO, seller_id: str,
                                   items: List[CartItem]) -> Order:
        total_price = sum((item.total_price for item in items), Decimal("0"))
        order = new_order(dto.user_id, seller_id, dto.shipping, total_price)
        await uow.orders.create(order)

        for item in items:
            await uow.orders.create_item(
                OrderItem(
                    id=str(uuid.uuid4()),
                    order_id=order.id,
                    size_stock_id=item.size_stock_id,
                    quantity=item.quantity,
                    total_price=item.total_price
                )
            )
            await uow.inventory.decrement(item.size_stock_id, item.quantity)

        await uow.carts.delete_items([item.id for item in items])
        await uow.orders.create_shipment(new_shipment(order.id))
        logger.info(f"Заказ {order.id} продавца {seller_id}: {len(items)} позиций, сумма {total_price}")
        return order
