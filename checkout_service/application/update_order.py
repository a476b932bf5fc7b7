import logging
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from checkout_service.domain.models import Order, OrderStatus, PaymentStatus
from checkout_service.domain.exceptions import (
    InvalidRequestError, InvalidStatusTransitionError, OrderNotFoundError
)
from checkout_service.application.interfaces import NotificationSink
from checkout_service.application.notifications import notify_quietly
from checkout_service.application.create_order import short_id

logger = logging.getLogger(__name__)


class UpdateOrderDTO(BaseModel):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    cancel_reason: Optional[str] = None
    delivery_date: Optional[datetime] = None
    shipment_status: Optional[str] = None


class UpdateOrderUseCase:
    def __init__(self, unit_of_work, notifications_service: NotificationSink, restock_on_cancel: bool = False):
        self._uow = unit_of_work
        self._notifications = notifications_service
        self._restock_on_cancel = restock_on_cancel

    async def __call__(self, order_id: str, patch: UpdateOrderDTO) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id, for_update=True)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")

            values = {}
            status_changed = patch.status is not None and patch.status != order.status
            if status_changed:
                if not order.can_transition_to(patch.status):
                    raise InvalidStatusTransitionError(order.status, patch.status)
                values["status"] = patch.status

            if patch.payment_status is not None and patch.payment_status != order.payment_status:
                if order.is_paid():
                    raise InvalidRequestError(f"Оплата заказа {order_id} уже подтверждена")
                values["payment_status"] = patch.payment_status

            if patch.cancel_reason is not None:
                values["cancel_reason"] = patch.cancel_reason
            if patch.delivery_date is not None:
                values["delivery_date"] = patch.delivery_date
            if values:
                await uow.orders.update(order_id, **values)

            shipment_values = {}
            if patch.shipment_status is not None:
                shipment_values["status"] = patch.shipment_status
            if patch.delivery_date is not None:
                shipment_values["delivery_date"] = patch.delivery_date
            if shipment_values:
                await uow.orders.update_shipment(order_id, **shipment_values)

            if status_changed and patch.status == OrderStatus.CANCELLED and self._restock_on_cancel:
                for item in await uow.orders.get_items(order_id):
                    await uow.inventory.restock(item.size_stock_id, item.quantity)
                logger.info(f"Остатки по заказу {order_id} возвращены на склад")

            updated = await uow.orders.get_by_id(order_id)
            await uow.commit()

        if status_changed:
            logger.info(f"Заказ {order_id}: {order.status.value} -> {updated.status.value}")
            await notify_quietly(
                self._notifications, updated.user_id,
                f"Your order #{short_id(order_id)} status has been updated to {updated.status.value}"
            )
        return updated


class CancelOrderUseCase:
    def __init__(self, unit_of_work, notifications_service: NotificationSink, restock_on_cancel: bool = False):
        self._update = UpdateOrderUseCase(unit_of_work, notifications_service, restock_on_cancel)

    async def __call__(self, order_id: str, reason: Optional[str] = None) -> Order:
        return await self._update(
            order_id, UpdateOrderDTO(status=OrderStatus.CANCELLED, cancel_reason=reason)
        )


class DeleteOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str) -> None:
        async with self._uow() as uow:
            if not await uow.orders.get_by_id(order_id, for_update=True):
                raise OrderNotFoundError(f"Заказ {order_id} не найден")
            # Порядок удаления по зависимостям
            await uow.orders.delete_items(order_id)
            await uow.orders.delete_shipment(order_id)
            await uow.orders.delete(order_id)
            await uow.commit()

        logger.info(f"Заказ {order_id} удален")
