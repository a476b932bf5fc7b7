from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, List

from checkout_service.domain.models import (
    Cart, CartItem, InventoryUnit, Notification, Order, OrderDetails, OrderItem,
    PaymentVerification, Product, SellerSummary, Shipment, Size, UserSummary
)


class UserRepository(ABC):
    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[UserSummary]:
        pass


class SellerRepository(ABC):
    @abstractmethod
    async def get_by_id(self, seller_id: str) -> Optional[SellerSummary]:
        pass

    @abstractmethod
    async def get_many(self, seller_ids: List[str]) -> dict[str, SellerSummary]:
        pass


class ProductRepository(ABC):
    @abstractmethod
    async def get_by_id(self, product_id: str) -> Optional[Product]:
        pass


class InventoryRepository(ABC):
    @abstractmethod
    async def get_by_id(self, size_stock_id: str) -> Optional[InventoryUnit]:
        pass

    @abstractmethod
    async def get_by_product_and_size(self, product_id: str, size: Size) -> Optional[InventoryUnit]:
        pass

    @abstractmethod
    async def get_with_products(self, size_stock_ids: List[str]) -> dict[str, tuple[InventoryUnit, Product]]:
        pass

    @abstractmethod
    async def list_by_product(self, product_id: str) -> List[InventoryUnit]:
        pass

    @abstractmethod
    async def create(self, unit: InventoryUnit) -> None:
        pass

    @abstractmethod
    async def set_quantity(self, size_stock_id: str, quantity: int) -> None:
        pass

    @abstractmethod
    async def decrement(self, size_stock_id: str, amount: int) -> None:
        pass

    @abstractmethod
    async def restock(self, size_stock_id: str, amount: int) -> None:
        pass


class CartRepository(ABC):
    @abstractmethod
    async def get_by_id(self, cart_id: str, for_update: bool = False) -> Optional[Cart]:
        pass

    @abstractmethod
    async def get_by_user(self, user_id: str, for_update: bool = False) -> Optional[Cart]:
        pass

    @abstractmethod
    async def create(self, cart: Cart) -> None:
        pass

    @abstractmethod
    async def get_items(self, cart_id: str, seller_id: Optional[str] = None) -> List[CartItem]:
        pass

    @abstractmethod
    async def get_item(self, cart_item_id: str) -> Optional[CartItem]:
        pass

    @abstractmethod
    async def get_item_by_size_stock(self, cart_id: str, size_stock_id: str) -> Optional[CartItem]:
        pass

    @abstractmethod
    async def create_item(self, item: CartItem) -> None:
        pass

    @abstractmethod
    async def update_item(self, cart_item_id: str, quantity: int, total_price: Decimal) -> None:
        pass

    @abstractmethod
    async def delete_items(self, cart_item_ids: List[str]) -> int:
        pass

    @abstractmethod
    async def recalculate_total(self, cart_id: str) -> Decimal:
        pass

    @abstractmethod
    async def adjust_total(self, cart_id: str, delta: Decimal) -> None:
        pass


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: str, for_update: bool = False) -> Optional[Order]:
        pass

    @abstractmethod
    async def create(self, order: Order) -> None:
        pass

    @abstractmethod
    async def update(self, order_id: str, **values) -> None:
        pass

    @abstractmethod
    async def delete(self, order_id: str) -> None:
        pass

    @abstractmethod
    async def create_item(self, item: OrderItem) -> None:
        pass

    @abstractmethod
    async def get_items(self, order_id: str) -> List[OrderItem]:
        pass

    @abstractmethod
    async def delete_items(self, order_id: str) -> None:
        pass

    @abstractmethod
    async def create_shipment(self, shipment: Shipment) -> None:
        pass

    @abstractmethod
    async def get_shipment(self, order_id: str) -> Optional[Shipment]:
        pass

    @abstractmethod
    async def update_shipment(self, order_id: str, **values) -> None:
        pass

    @abstractmethod
    async def delete_shipment(self, order_id: str) -> None:
        pass

    @abstractmethod
    async def get_details(self, order_id: str) -> Optional[OrderDetails]:
        pass

    @abstractmethod
    async def list_details(self, user_id: Optional[str] = None, seller_id: Optional[str] = None) -> List[OrderDetails]:
        pass


class NotificationRepository(ABC):
    @abstractmethod
    async def create(self, notification: Notification) -> None:
        pass

    @abstractmethod
    async def list_by_user(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        pass

    @abstractmethod
    async def count_unread(self, user_id: str) -> int:
        pass

    @abstractmethod
    async def mark_as_read(self, notification_id: str) -> bool:
        pass

    @abstractmethod
    async def mark_all_as_read(self, user_id: str) -> int:
        pass

    @abstractmethod
    async def delete(self, notification_id: str) -> bool:
        pass

    @abstractmethod
    async def delete_all_by_user(self, user_id: str) -> int:
        pass


class UnitOfWork(ABC):
    @property
    @abstractmethod
    def users(self) -> UserRepository:
        pass

    @property
    @abstractmethod
    def sellers(self) -> SellerRepository:
        pass

    @property
    @abstractmethod
    def products(self) -> ProductRepository:
        pass

    @property
    @abstractmethod
    def inventory(self) -> InventoryRepository:
        pass

    @property
    @abstractmethod
    def carts(self) -> CartRepository:
        pass

    @property
    @abstractmethod
    def orders(self) -> OrderRepository:
        pass

    @property
    @abstractmethod
    def notifications(self) -> NotificationRepository:
        pass

    @abstractmethod
    async def __call__(self):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass


class NotificationSink(ABC):
    @abstractmethod
    async def notify(self, user_id: str, message: str) -> Optional[Notification]:
        pass


class PaymentGateway(ABC):
    @abstractmethod
    async def build_payment_url(self, order_id: str, amount: int, client_ip: str) -> str:
        pass

    @abstractmethod
    async def verify_callback(self, raw_params: dict) -> PaymentVerification:
        pass
