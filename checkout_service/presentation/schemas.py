from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel

from checkout_service.domain.models import (
    OrderStatus, PaymentMethod, PaymentStatus, ShippingInfo, Size
)


class AddToCartRequest(BaseModel):
    user_id: str
    product_id: str
    size: Size
    quantity: int


class UpdateCartItemRequest(BaseModel):
    user_id: str
    quantity: int


class StockEntryRequest(BaseModel):
    size: Size
    quantity: int


class DefineStockRequest(BaseModel):
    stock_size: List[StockEntryRequest]


class OrderItemRequest(BaseModel):
    size_stock_id: str
    quantity: int
    price: Decimal


class ShippingFields(BaseModel):
    phone_number: str
    address: str
    postal_code: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.COD

    def to_shipping(self) -> ShippingInfo:
        return ShippingInfo(
            phone_number=self.phone_number,
            address=self.address,
            postal_code=self.postal_code,
            payment_method=self.payment_method
        )


class CreateOrderRequest(ShippingFields):
    user_id: str
    seller_id: str
    order_items: List[OrderItemRequest]


class CartToOrderRequest(ShippingFields):
    cart_id: str
    user_id: str
    selected_cart_item_ids: List[str] = []


class UpdateOrderRequest(BaseModel):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    shipment_status: Optional[str] = None
    delivery_date: Optional[datetime] = None
    cancel_reason: Optional[str] = None


class CancelOrderRequest(BaseModel):
    reason: Optional[str] = None


class RemovedItemsResponse(BaseModel):
    deleted_count: int
    total_price_reduction: Decimal
    message: str


class StockAvailabilityResponse(BaseModel):
    product_id: str
    size: Size
    quantity: int
    available: bool


class PaymentUrlResponse(BaseModel):
    payment_url: str


class UnreadCountResponse(BaseModel):
    count: int


class MessageResponse(BaseModel):
    status: str = "ok"
    message: str


class ErrorResponse(BaseModel):
    detail: str
