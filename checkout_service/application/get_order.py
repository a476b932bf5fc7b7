from typing import List

from checkout_service.domain.models import OrderDetails
from checkout_service.domain.exceptions import OrderNotFoundError


class GetOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str) -> OrderDetails:
        async with self._uow() as uow:
            order = await uow.orders.get_details(order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")
            return order


class ListSellerOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, seller_id: str) -> List[OrderDetails]:
        async with self._uow() as uow:
            return await uow.orders.list_details(seller_id=seller_id)


class ListUserOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> List[OrderDetails]:
        async with self._uow() as uow:
            return await uow.orders.list_details(user_id=user_id)
