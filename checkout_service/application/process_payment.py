import logging
from decimal import Decimal, ROUND_DOWN
from typing import Optional
from pydantic import BaseModel

from checkout_service.domain.models import PaymentMethod, PaymentStatus
from checkout_service.domain.exceptions import InvalidPaymentError, OrderNotFoundError
from checkout_service.application.interfaces import NotificationSink, PaymentGateway
from checkout_service.application.notifications import notify_quietly

logger = logging.getLogger(__name__)


def to_minor_units(amount: Decimal) -> int:
    """Сумма в минимальных единицах валюты, с отбрасыванием дробной части"""
    return int((amount * 100).to_integral_value(rounding=ROUND_DOWN))


class PaymentCallbackResult(BaseModel):
    order_id: Optional[str] = None
    succeeded: bool
    transaction_ref: Optional[str] = None
    message: str


class CreatePaymentUrlUseCase:
    def __init__(self, unit_of_work, payment_gateway: PaymentGateway):
        self._uow = unit_of_work
        self._gateway = payment_gateway

    async def __call__(self, order_id: str, client_ip: str) -> str:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")
            if order.is_paid():
                raise InvalidPaymentError(f"Заказ {order_id} уже оплачен")

        amount = to_minor_units(order.total_price)
        payment_url = await self._gateway.build_payment_url(order_id, amount, client_ip)

        async with self._uow() as uow:
            await uow.orders.update(order_id, payment_method=PaymentMethod.VNPAY)
            await uow.commit()

        logger.info(f"Создана ссылка на оплату заказа {order_id}, сумма {amount}")
        return payment_url


class ProcessPaymentCallbackUseCase:
    def __init__(self, unit_of_work, payment_gateway: PaymentGateway, notifications_service: NotificationSink):
        self._uow = unit_of_work
        self._gateway = payment_gateway
        self._notifications = notifications_service

    async def __call__(self, raw_params: dict) -> PaymentCallbackResult:
        verification = await self._gateway.verify_callback(raw_params)
        if not verification.valid or not verification.order_id:
            raise InvalidPaymentError("Неверная подпись платежа")

        order_id = verification.order_id
        logger.info(f"Обработка payment callback для заказа {order_id}")

        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id, for_update=True)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")

            if not verification.succeeded:
                logger.info(f"Платеж не прошел для заказа {order_id}")
                return PaymentCallbackResult(
                    order_id=order_id,
                    succeeded=False,
                    transaction_ref=verification.transaction_ref,
                    message="Payment failed"
                )

            # Идемпотентность
            if order.is_paid():
                logger.info(f"Заказ {order_id} уже обработан")
                return PaymentCallbackResult(
                    order_id=order_id,
                    succeeded=True,
                    transaction_ref=verification.transaction_ref,
                    message="Payment already processed"
                )

            await uow.orders.update(order_id, payment_status=PaymentStatus.SUCCESS)
            await uow.commit()

        logger.info(f"Заказ {order_id} оплачен, транзакция {verification.transaction_ref}")
        await notify_quietly(
            self._notifications, order.user_id,
            f"Your payment for order {order_id} was successful."
        )
        return PaymentCallbackResult(
            order_id=order_id,
            succeeded=True,
            transaction_ref=verification.transaction_ref,
            message="Payment successful"
        )
