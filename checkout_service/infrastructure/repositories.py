from decimal import Decimal
from typing import Optional, List
from datetime import datetime, timezone
from sqlalchemy import select, insert, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from checkout_service.domain.models import (
    Cart, CartItem, InventoryUnit, Notification, Order, OrderDetails, OrderItem,
    OrderItemDetails, OrderStatus, PaymentMethod, PaymentStatus, Product,
    SellerSummary, Shipment, Size, UserSummary
)
from checkout_service.domain.exceptions import InsufficientStockError, StockUnitNotFoundError
from checkout_service.infrastructure.db_schema import (
    users_tbl, sellers_tbl, products_tbl, size_stocks_tbl, carts_tbl, cart_items_tbl,
    orders_tbl, order_items_tbl, shipments_tbl, notifications_tbl
)
from checkout_service.application.interfaces import (
    UserRepository, SellerRepository, ProductRepository, InventoryRepository,
    CartRepository, OrderRepository, NotificationRepository
)

CENT = Decimal("0.01")

# Колонки остатка и товара для явных join-запросов
UNIT_PRODUCT_COLUMNS = (
    size_stocks_tbl.c.id.label("unit_id"),
    size_stocks_tbl.c.product_id,
    size_stocks_tbl.c.size,
    size_stocks_tbl.c.quantity.label("unit_quantity"),
    products_tbl.c.seller_id,
    products_tbl.c.name.label("product_name"),
    products_tbl.c.price.label("product_price"),
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def to_money(value) -> Decimal:
    return Decimal(str(value if value is not None else 0)).quantize(CENT)


def _unit_from_row(row) -> InventoryUnit:
    return InventoryUnit(
        id=row.unit_id,
        product_id=row.product_id,
        size=Size(row.size),
        quantity=row.unit_quantity
    )


def _product_from_row(row) -> Product:
    return Product(
        id=row.product_id,
        seller_id=row.seller_id,
        name=row.product_name,
        price=to_money(row.product_price)
    )


class SQLAlchemyUserRepository(UserRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, user_id: str) -> Optional[UserSummary]:
        result = await self._session.execute(
            select(users_tbl).where(users_tbl.c.id == user_id)
        )
        row = result.fetchone()
        return UserSummary(id=row.id, name=row.name, email=row.email) if row else None


class SQLAlchemySellerRepository(SellerRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, seller_id: str) -> Optional[SellerSummary]:
        result = await self._session.execute(
            select(sellers_tbl).where(sellers_tbl.c.id == seller_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_many(self, seller_ids: List[str]) -> dict[str, SellerSummary]:
        if not seller_ids:
            return {}
        result = await self._session.execute(
            select(sellers_tbl).where(sellers_tbl.c.id.in_(seller_ids))
        )
        return {row.id: self._to_domain(row) for row in result.fetchall()}

    def _to_domain(self, row) -> SellerSummary:
        return SellerSummary(
            id=row.id,
            user_id=row.user_id,
            manager_name=row.manager_name,
            email=row.email
        )


class SQLAlchemyProductRepository(ProductRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        result = await self._session.execute(
            select(products_tbl).where(products_tbl.c.id == product_id)
        )
        row = result.fetchone()
        if not row:
            return None
        return Product(id=row.id, seller_id=row.seller_id, name=row.name, price=to_money(row.price))


class SQLAlchemyInventoryRepository(InventoryRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, size_stock_id: str) -> Optional[InventoryUnit]:
        result = await self._session.execute(
            select(size_stocks_tbl).where(size_stocks_tbl.c.id == size_stock_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_by_product_and_size(self, product_id: str, size: Size) -> Optional[InventoryUnit]:
        result = await self._session.execute(
            select(size_stocks_tbl).where(
                size_stocks_tbl.c.product_id == product_id,
                size_stocks_tbl.c.size == size
            )
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_with_products(self, size_stock_ids: List[str]) -> dict[str, tuple[InventoryUnit, Product]]:
        if not size_stock_ids:
            return {}
        result = await self._session.execute(
            select(*UNIT_PRODUCT_COLUMNS)
            .join(products_tbl, products_tbl.c.id == size_stocks_tbl.c.product_id)
            .where(size_stocks_tbl.c.id.in_(size_stock_ids))
        )
        return {
            row.unit_id: (_unit_from_row(row), _product_from_row(row))
            for row in result.fetchall()
        }

    async def list_by_product(self, product_id: str) -> List[InventoryUnit]:
        result = await self._session.execute(
            select(size_stocks_tbl)
            .where(size_stocks_tbl.c.product_id == product_id)
            .order_by(size_stocks_tbl.c.size)
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def create(self, unit: InventoryUnit) -> None:
        stmt = insert(size_stocks_tbl).values(
            id=unit.id,
            product_id=unit.product_id,
            size=unit.size,
            quantity=unit.quantity
        )
        await self._session.execute(stmt)

    async def set_quantity(self, size_stock_id: str, quantity: int) -> None:
        stmt = (
            update(size_stocks_tbl)
            .where(size_stocks_tbl.c.id == size_stock_id)
            .values(quantity=quantity)
        )
        await self._session.execute(stmt)

    async def decrement(self, size_stock_id: str, amount: int) -> None:
        """Условное списание: проверка остатка и уменьшение одним UPDATE"""
        stmt = (
            update(size_stocks_tbl)
            .where(
                size_stocks_tbl.c.id == size_stock_id,
                size_stocks_tbl.c.quantity >= amount
            )
            .values(quantity=size_stocks_tbl.c.quantity - amount)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 1:
            return

        unit = await self.get_by_id(size_stock_id)
        if unit is None:
            raise StockUnitNotFoundError(f"Остаток {size_stock_id} не найден")
        raise InsufficientStockError(unit.quantity, amount)

    async def restock(self, size_stock_id: str, amount: int) -> None:
        stmt = (
            update(size_stocks_tbl)
            .where(size_stocks_tbl.c.id == size_stock_id)
            .values(quantity=size_stocks_tbl.c.quantity + amount)
        )
        await self._session.execute(stmt)

    def _to_domain(self, row) -> InventoryUnit:
        return InventoryUnit(
            id=row.id,
            product_id=row.product_id,
            size=Size(row.size),
            quantity=row.quantity
        )


class SQLAlchemyCartRepository(CartRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, cart_id: str, for_update: bool = False) -> Optional[Cart]:
        stmt = select(carts_tbl).where(carts_tbl.c.id == cart_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).fetchone()
        return self._to_domain(row) if row else None

    async def get_by_user(self, user_id: str, for_update: bool = False) -> Optional[Cart]:
        stmt = select(carts_tbl).where(carts_tbl.c.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).fetchone()
        return self._to_domain(row) if row else None

    async def create(self, cart: Cart) -> None:
        stmt = insert(carts_tbl).values(
            id=cart.id,
            user_id=cart.user_id,
            total_cart_value=cart.total_cart_value
        )
        await self._session.execute(stmt)

    async def get_items(self, cart_id: str, seller_id: Optional[str] = None) -> List[CartItem]:
        stmt = (
            select(cart_items_tbl, *UNIT_PRODUCT_COLUMNS)
            .join(size_stocks_tbl, size_stocks_tbl.c.id == cart_items_tbl.c.size_stock_id)
            .join(products_tbl, products_tbl.c.id == size_stocks_tbl.c.product_id)
            .where(cart_items_tbl.c.cart_id == cart_id)
            .order_by(cart_items_tbl.c.created_at, cart_items_tbl.c.id)
        )
        if seller_id is not None:
            stmt = stmt.where(products_tbl.c.seller_id == seller_id)
        result = await self._session.execute(stmt)
        return [self._item_to_domain(row) for row in result.fetchall()]

    async def get_item(self, cart_item_id: str) -> Optional[CartItem]:
        result = await self._session.execute(
            select(cart_items_tbl, *UNIT_PRODUCT_COLUMNS)
            .join(size_stocks_tbl, size_stocks_tbl.c.id == cart_items_tbl.c.size_stock_id)
            .join(products_tbl, products_tbl.c.id == size_stocks_tbl.c.product_id)
            .where(cart_items_tbl.c.id == cart_item_id)
        )
        row = result.fetchone()
        return self._item_to_domain(row) if row else None

    async def get_item_by_size_stock(self, cart_id: str, size_stock_id: str) -> Optional[CartItem]:
        result = await self._session.execute(
            select(cart_items_tbl.c.id).where(
                cart_items_tbl.c.cart_id == cart_id,
                cart_items_tbl.c.size_stock_id == size_stock_id
            )
        )
        cart_item_id = result.scalar_one_or_none()
        return await self.get_item(cart_item_id) if cart_item_id else None

    async def create_item(self, item: CartItem) -> None:
        stmt = insert(cart_items_tbl).values(
            id=item.id,
            cart_id=item.cart_id,
            user_id=item.user_id,
            size_stock_id=item.size_stock_id,
            quantity=item.quantity,
            total_price=item.total_price,
            created_at=_now()
        )
        await self._session.execute(stmt)

    async def update_item(self, cart_item_id: str, quantity: int, total_price: Decimal) -> None:
        stmt = (
            update(cart_items_tbl)
            .where(cart_items_tbl.c.id == cart_item_id)
            .values(quantity=quantity, total_price=total_price)
        )
        await self._session.execute(stmt)

    async def delete_items(self, cart_item_ids: List[str]) -> int:
        if not cart_item_ids:
            return 0
        result = await self._session.execute(
            delete(cart_items_tbl).where(cart_items_tbl.c.id.in_(cart_item_ids))
        )
        return result.rowcount

    async def recalculate_total(self, cart_id: str) -> Decimal:
        """Пересчет суммы корзины по текущему набору позиций"""
        result = await self._session.execute(
            select(func.coalesce(func.sum(cart_items_tbl.c.total_price), 0))
            .where(cart_items_tbl.c.cart_id == cart_id)
        )
        total = to_money(result.scalar_one())
        await self._session.execute(
            update(carts_tbl)
            .where(carts_tbl.c.id == cart_id)
            .values(total_cart_value=total, updated_at=_now())
        )
        return total

    async def adjust_total(self, cart_id: str, delta: Decimal) -> None:
        stmt = (
            update(carts_tbl)
            .where(carts_tbl.c.id == cart_id)
            .values(
                total_cart_value=carts_tbl.c.total_cart_value + delta,
                updated_at=_now()
            )
        )
        await self._session.execute(stmt)

    def _to_domain(self, row) -> Cart:
        return Cart(
            id=row.id,
            user_id=row.user_id,
            total_cart_value=to_money(row.total_cart_value)
        )

    def _item_to_domain(self, row) -> CartItem:
        return CartItem(
            id=row.id,
            cart_id=row.cart_id,
            user_id=row.user_id,
            size_stock_id=row.size_stock_id,
            quantity=row.quantity,
            total_price=to_money(row.total_price),
            size_stock=_unit_from_row(row),
            product=_product_from_row(row)
        )


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, order_id: str, for_update: bool = False) -> Optional[Order]:
        stmt = select(orders_tbl).where(orders_tbl.c.id == order_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).fetchone()
        return self._to_domain(row) if row else None

    async def create(self, order: Order) -> None:
        stmt = insert(orders_tbl).values(
            id=order.id,
            user_id=order.user_id,
            seller_id=order.seller_id,
            phone_number=order.phone_number,
            address=order.address,
            postal_code=order.postal_code,
            payment_method=order.payment_method,
            total_price=order.total_price,
            status=order.status,
            payment_status=order.payment_status,
            cancel_reason=order.cancel_reason,
            delivery_date=order.delivery_date,
            created_at=order.created_at,
            updated_at=order.updated_at
        )
        await self._session.execute(stmt)

    async def update(self, order_id: str, **values) -> None:
        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id)
            .values(updated_at=_now(), **values)
        )
        await self._session.execute(stmt)

    async def delete(self, order_id: str) -> None:
        await self._session.execute(delete(orders_tbl).where(orders_tbl.c.id == order_id))

    async def create_item(self, item: OrderItem) -> None:
        stmt = insert(order_items_tbl).values(
            id=item.id,
            order_id=item.order_id,
            size_stock_id=item.size_stock_id,
            quantity=item.quantity,
            total_price=item.total_price
        )
        await self._session.execute(stmt)

    async def get_items(self, order_id: str) -> List[OrderItem]:
        result = await self._session.execute(
            select(order_items_tbl).where(order_items_tbl.c.order_id == order_id)
        )
        return [
            OrderItem(
                id=row.id,
                order_id=row.order_id,
                size_stock_id=row.size_stock_id,
                quantity=row.quantity,
                total_price=to_money(row.total_price)
            )
            for row in result.fetchall()
        ]

    async def delete_items(self, order_id: str) -> None:
        await self._session.execute(
            delete(order_items_tbl).where(order_items_tbl.c.order_id == order_id)
        )

    async def create_shipment(self, shipment: Shipment) -> None:
        stmt = insert(shipments_tbl).values(
            id=shipment.id,
            order_id=shipment.order_id,
            status=shipment.status,
            delivery_date=shipment.delivery_date
        )
        await self._session.execute(stmt)

    async def get_shipment(self, order_id: str) -> Optional[Shipment]:
        result = await self._session.execute(
            select(shipments_tbl).where(shipments_tbl.c.order_id == order_id)
        )
        row = result.fetchone()
        return self._shipment_to_domain(row) if row else None

    async def update_shipment(self, order_id: str, **values) -> None:
        stmt = (
            update(shipments_tbl)
            .where(shipments_tbl.c.order_id == order_id)
            .values(**values)
        )
        await self._session.execute(stmt)

    async def delete_shipment(self, order_id: str) -> None:
        await self._session.execute(
            delete(shipments_tbl).where(shipments_tbl.c.order_id == order_id)
        )

    async def get_details(self, order_id: str) -> Optional[OrderDetails]:
        details = await self._fetch_details(orders_tbl.c.id == order_id)
        return details[0] if details else None

    async def list_details(self, user_id: Optional[str] = None, seller_id: Optional[str] = None) -> List[OrderDetails]:
        criteria = []
        if user_id is not None:
            criteria.append(orders_tbl.c.user_id == user_id)
        if seller_id is not None:
            criteria.append(orders_tbl.c.seller_id == seller_id)
        return await self._fetch_details(*criteria)

    async def _fetch_details(self, *criteria) -> List[OrderDetails]:
        """Явный план выборки: заказы с участниками, затем позиции, затем доставки"""
        result = await self._session.execute(
            select(
                orders_tbl,
                users_tbl.c.name.label("user_name"),
                users_tbl.c.email.label("user_email"),
                sellers_tbl.c.user_id.label("seller_user_id"),
                sellers_tbl.c.manager_name.label("seller_manager_name"),
                sellers_tbl.c.email.label("seller_email"),
            )
            .outerjoin(users_tbl, users_tbl.c.id == orders_tbl.c.user_id)
            .outerjoin(sellers_tbl, sellers_tbl.c.id == orders_tbl.c.seller_id)
            .where(*criteria)
            .order_by(orders_tbl.c.created_at.desc(), orders_tbl.c.id)
        )
        rows = result.fetchall()
        if not rows:
            return []

        order_ids = [row.id for row in rows]
        items_by_order: dict[str, list[OrderItemDetails]] = {order_id: [] for order_id in order_ids}
        items_result = await self._session.execute(
            select(order_items_tbl, *UNIT_PRODUCT_COLUMNS)
            .join(size_stocks_tbl, size_stocks_tbl.c.id == order_items_tbl.c.size_stock_id)
            .join(products_tbl, products_tbl.c.id == size_stocks_tbl.c.product_id)
            .where(order_items_tbl.c.order_id.in_(order_ids))
        )
        for row in items_result.fetchall():
            items_by_order[row.order_id].append(
                OrderItemDetails(
                    id=row.id,
                    order_id=row.order_id,
                    size_stock_id=row.size_stock_id,
                    quantity=row.quantity,
                    total_price=to_money(row.total_price),
                    size_stock=_unit_from_row(row),
                    product=_product_from_row(row)
                )
            )

        shipments_result = await self._session.execute(
            select(shipments_tbl).where(shipments_tbl.c.order_id.in_(order_ids))
        )
        shipments = {row.order_id: self._shipment_to_domain(row) for row in shipments_result.fetchall()}

        details = []
        for row in rows:
            order = self._to_domain(row)
            user = None
            if row.user_name is not None:
                user = UserSummary(id=row.user_id, name=row.user_name, email=row.user_email)
            seller = None
            if row.seller_user_id is not None:
                seller = SellerSummary(
                    id=row.seller_id,
                    user_id=row.seller_user_id,
                    manager_name=row.seller_manager_name,
                    email=row.seller_email
                )
            details.append(
                OrderDetails(
                    **order.model_dump(),
                    items=items_by_order[order.id],
                    shipment=shipments.get(order.id),
                    user=user,
                    seller=seller
                )
            )
        return details

    def _to_domain(self, row) -> Order:
        """Трансформация DB → Domain"""
        return Order(
            id=row.id,
            user_id=row.user_id,
            seller_id=row.seller_id,
            phone_number=row.phone_number,
            address=row.address,
            postal_code=row.postal_code,
            payment_method=PaymentMethod(row.payment_method),
            total_price=to_money(row.total_price),
            status=OrderStatus(row.status),
            payment_status=PaymentStatus(row.payment_status),
            cancel_reason=row.cancel_reason,
            delivery_date=row.delivery_date,
            created_at=row.created_at,
            updated_at=row.updated_at
        )

    def _shipment_to_domain(self, row) -> Shipment:
        return Shipment(
            id=row.id,
            order_id=row.order_id,
            status=row.status,
            delivery_date=row.delivery_date
        )


class SQLAlchemyNotificationRepository(NotificationRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, notification: Notification) -> None:
        stmt = insert(notifications_tbl).values(
            id=notification.id,
            user_id=notification.user_id,
            message=notification.message,
            is_read=notification.is_read,
            created_at=notification.created_at
        )
        await self._session.execute(stmt)

    async def list_by_user(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        stmt = (
            select(notifications_tbl)
            .where(notifications_tbl.c.user_id == user_id)
            .order_by(notifications_tbl.c.created_at.desc())
        )
        if unread_only:
            stmt = stmt.where(notifications_tbl.c.is_read.is_(False))
        result = await self._session.execute(stmt)
        return [
            Notification(
                id=row.id,
                user_id=row.user_id,
                message=row.message,
                is_read=row.is_read,
                created_at=row.created_at
            )
            for row in result.fetchall()
        ]

    async def count_unread(self, user_id: str) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(notifications_tbl)
            .where(
                notifications_tbl.c.user_id == user_id,
                notifications_tbl.c.is_read.is_(False)
            )
        )
        return result.scalar_one()

    async def mark_as_read(self, notification_id: str) -> bool:
        result = await self._session.execute(
            update(notifications_tbl)
            .where(notifications_tbl.c.id == notification_id)
            .values(is_read=True)
        )
        return result.rowcount == 1

    async def mark_all_as_read(self, user_id: str) -> int:
        result = await self._session.execute(
            update(notifications_tbl)
            .where(
                notifications_tbl.c.user_id == user_id,
                notifications_tbl.c.is_read.is_(False)
            )
            .values(is_read=True)
        )
        return result.rowcount

    async def delete(self, notification_id: str) -> bool:
        result = await self._session.execute(
            delete(notifications_tbl).where(notifications_tbl.c.id == notification_id)
        )
        return result.rowcount == 1

    async def delete_all_by_user(self, user_id: str) -> int:
        result = await self._session.execute(
            delete(notifications_tbl).where(notifications_tbl.c.user_id == user_id)
        )
        return result.rowcount
