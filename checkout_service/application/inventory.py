import logging
import uuid
from collections import Counter
from typing import List
from pydantic import BaseModel

from checkout_service.domain.models import InventoryUnit, Size
from checkout_service.domain.exceptions import (
    DuplicateSizeError, InvalidQuantityError, ProductNotFoundError, StockUnitNotFoundError
)

logger = logging.getLogger(__name__)


class StockEntryDTO(BaseModel):
    size: Size
    quantity: int


class GetStockUnitUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, product_id: str, size: Size) -> InventoryUnit:
        async with self._uow() as uow:
            unit = await uow.inventory.get_by_product_and_size(product_id, size)
            if not unit:
                raise StockUnitNotFoundError(f"Размер {size.value} для товара {product_id} не найден")
            return unit


class CheckStockUseCase:
    """Проверка: хватает ли остатка (товар, размер) на запрошенное количество"""

    def __init__(self, unit_of_work):
        self._get_unit = GetStockUnitUseCase(unit_of_work)

    async def __call__(self, product_id: str, size: Size, quantity: int) -> bool:
        if quantity <= 0:
            raise InvalidQuantityError("Количество должно быть больше 0")
        unit = await self._get_unit(product_id, size)
        available = unit.can_supply(quantity)
        logger.info(
            f"Проверка остатка {product_id}/{size.value}: запрошено={quantity}, "
            f"в наличии={unit.quantity}, результат={available}"
        )
        return available


class DefineProductStockUseCase:
    """Задает остатки по размерам товара; неуказанные размеры не трогаются"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, product_id: str, entries: List[StockEntryDTO]) -> List[InventoryUnit]:
        duplicates = [size.value for size, count in Counter(e.size for e in entries).items() if count > 1]
        if duplicates:
            raise DuplicateSizeError(f"Размеры должны быть уникальны: {', '.join(duplicates)}")
        if any(e.quantity < 0 for e in entries):
            raise InvalidQuantityError("Остаток не может быть отрицательным")

        async with self._uow() as uow:
            if not await uow.products.get_by_id(product_id):
                raise ProductNotFoundError(f"Товар {product_id} не найден")

            for entry in entries:
                unit = await uow.inventory.get_by_product_and_size(product_id, entry.size)
                if unit:
                    await uow.inventory.set_quantity(unit.id, entry.quantity)
                else:
                    await uow.inventory.create(
                        InventoryUnit(
                            id=str(uuid.uuid4()),
                            product_id=product_id,
                            size=entry.size,
                            quantity=entry.quantity
                        )
                    )

            units = await uow.inventory.list_by_product(product_id)
            await uow.commit()

        logger.info(f"Остатки товара {product_id} обновлены: {len(entries)} размеров")
        return units
