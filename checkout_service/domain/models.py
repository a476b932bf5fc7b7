from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class Size(str, Enum):
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"
    XXL = "XXL"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"


class PaymentMethod(str, Enum):
    COD = "COD"
    VIETQR = "VIETQR"
    VNPAY = "VNPAY"


# Допустимые переходы статуса заказа; DELIVERED и CANCELLED терминальные
ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


class UserSummary(BaseModel):
    id: str
    name: str
    email: str


class SellerSummary(BaseModel):
    id: str
    user_id: str
    manager_name: Optional[str] = None
    email: Optional[str] = None


class Product(BaseModel):
    """Value Object: товар продавца"""
    id: str
    seller_id: str
    name: str
    price: Decimal


class InventoryUnit(BaseModel):
    """Складской остаток для пары (товар, размер)"""
    id: str
    product_id: str
    size: Size
    quantity: int

    def can_supply(self, quantity: int) -> bool:
        return self.quantity >= quantity


class CartItem(BaseModel):
    id: str
    cart_id: str
    user_id: str
    size_stock_id: str
    quantity: int
    total_price: Decimal
    size_stock: Optional[InventoryUnit] = None
    product: Optional[Product] = None

    @property
    def seller_id(self) -> Optional[str]:
        return self.product.seller_id if self.product else None


class Cart(BaseModel):
    id: str
    user_id: str
    total_cart_value: Decimal
    items: list[CartItem] = []

    def items_total(self) -> Decimal:
        return sum((item.total_price for item in self.items), Decimal("0"))


class SellerCartGroup(BaseModel):
    seller_id: str
    seller_name: str
    items: list[CartItem]
    total_value: Decimal


class CartView(BaseModel):
    """Корзина пользователя, сгруппированная по продавцам"""
    id: str
    user_id: str
    total_cart_value: Decimal
    cart_items: list[CartItem]
    items_by_seller: list[SellerCartGroup]


class ShippingInfo(BaseModel):
    phone_number: str
    address: str
    postal_code: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.COD


class Order(BaseModel):
    """Domain Entity: заказ одного продавца"""
    id: str
    user_id: str
    seller_id: str
    phone_number: str
    address: str
    postal_code: Optional[str] = None
    payment_method: PaymentMethod
    total_price: Decimal
    status: OrderStatus
    payment_status: PaymentStatus
    cancel_reason: Optional[str] = None
    delivery_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    def can_transition_to(self, status: OrderStatus) -> bool:
        """Бизнес-правило: переходы только вперед по жизненному циклу"""
        return status in ORDER_TRANSITIONS[self.status]

    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.SUCCESS


class OrderItem(BaseModel):
    id: str
    order_id: str
    size_stock_id: str
    quantity: int
    total_price: Decimal


class Shipment(BaseModel):
    id: str
    order_id: str
    status: str
    delivery_date: Optional[datetime] = None


class OrderItemDetails(OrderItem):
    size_stock: Optional[InventoryUnit] = None
    product: Optional[Product] = None


class OrderDetails(Order):
    """Заказ вместе с позициями, доставкой, покупателем и продавцом"""
    items: list[OrderItemDetails] = []
    shipment: Optional[Shipment] = None
    user: Optional[UserSummary] = None
    seller: Optional[SellerSummary] = None


class Notification(BaseModel):
    id: str
    user_id: str
    message: str
    is_read: bool = False
    created_at: datetime


class PaymentVerification(BaseModel):
    """Результат проверки callback от платежного шлюза"""
    valid: bool
    order_id: Optional[str] = None
    succeeded: bool = False
    transaction_ref: Optional[str] = None
