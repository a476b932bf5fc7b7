import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List
from pydantic import BaseModel

from checkout_service.domain.models import (
    Order, OrderItem, OrderStatus, PaymentStatus, Shipment, ShippingInfo
)
from checkout_service.domain.exceptions import (
    InvalidQuantityError, InvalidRequestError, SellerNotFoundError,
    StockUnitNotFoundError, UserNotFoundError
)
from checkout_service.application.interfaces import NotificationSink
from checkout_service.application.notifications import notify_quietly

logger = logging.getLogger(__name__)

SHIPMENT_PENDING = "PENDING"
CENT = Decimal("0.01")


class OrderItemDTO(BaseModel):
    size_stock_id: str
    quantity: int
    price: Decimal

    def line_total(self) -> Decimal:
        return (self.price * self.quantity).quantize(CENT)


class CreateOrderDTO(BaseModel):
    user_id: str
    seller_id: str
    shipping: ShippingInfo
    order_items: List[OrderItemDTO]


def new_order(user_id: str, seller_id: str, shipping: ShippingInfo, total_price: Decimal) -> Order:
    now = datetime.now(timezone.utc)
    return Order(
        id=str(uuid.uuid4()),
        user_id=user_id,
        seller_id=seller_id,
        phone_number=shipping.phone_number,
        address=shipping.address,
        postal_code=shipping.postal_code,
        payment_method=shipping.payment_method,
        total_price=total_price,
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        created_at=now,
        updated_at=now
    )


def new_shipment(order_id: str) -> Shipment:
    return Shipment(id=str(uuid.uuid4()), order_id=order_id, status=SHIPMENT_PENDING)


def short_id(order_id: str) -> str:
    return order_id[:8]


class CreateOrderUseCase:
    """Прямое оформление заказа у одного продавца"""

    def __init__(self, unit_of_work, notifications_service: NotificationSink):
        self._uow = unit_of_work
        self._notifications = notifications_service

    async def __call__(self, order_data: CreateOrderDTO) -> Order:
        logger.info(f"Создание заказа для пользователя {order_data.user_id}, продавец {order_data.seller_id}")

        if not order_data.order_items:
            raise InvalidRequestError("Заказ должен содержать хотя бы одну позицию")
        for item in order_data.order_items:
            if item.quantity <= 0:
                raise InvalidQuantityError("Количество должно быть больше 0")
            if item.price <= 0:
                raise InvalidRequestError("Цена должна быть больше 0")
            if item.price != item.price.quantize(CENT):
                raise InvalidRequestError("Цена указывается с точностью до 0.01")

        async with self._uow() as uow:
            if not await uow.users.get_by_id(order_data.user_id):
                raise UserNotFoundError(f"Пользователь {order_data.user_id} не найден")
            seller = await uow.sellers.get_by_id(order_data.seller_id)
            if not seller:
                raise SellerNotFoundError(f"Продавец {order_data.seller_id} не найден")

            units = await uow.inventory.get_with_products(
                [item.size_stock_id for item in order_data.order_items]
            )
            for item in order_data.order_items:
                if item.size_stock_id not in units:
                    raise StockUnitNotFoundError(f"Остаток {item.size_stock_id} не найден")
                _, product = units[item.size_stock_id]
                if product.seller_id != order_data.seller_id:
                    raise InvalidRequestError(
                        f"Товар {product.id} не принадлежит продавцу {order_data.seller_id}"
                    )

            # 1. Сумма заказа = сумма позиций, округленных до копеек
            total_price = sum(
                (item.line_total() for item in order_data.order_items), Decimal("0")
            )
            # 2. Заказ, позиции и списание остатков в одной транзакции
            order = new_order(order_data.user_id, order_data.seller_id, order_data.shipping, total_price)
            await uow.orders.create(order)
            for item in order_data.order_items:
                await uow.orders.create_item(
                    OrderItem(
                        id=str(uuid.uuid4()),
                        order_id=order.id,
                        size_stock_id=item.size_stock_id,
                        quantity=item.quantity,
                        total_price=item.line_total()
                    )
                )
                await uow.inventory.decrement(item.size_stock_id, item.quantity)
            # 3. Доставка
            await uow.orders.create_shipment(new_shipment(order.id))
            await uow.commit()

        logger.info(f"Заказ создан: {order.id}, сумма {order.total_price}")

        # Уведомления после commit
        await notify_quietly(
            self._notifications, seller.user_id,
            f"New order #{short_id(order.id)} has been placed"
        )
        await notify_quietly(
            self._notifications, order.user_id,
            f"Your order #{short_id(order.id)} has been confirmed"
        )
        return order
