from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout_service.config import settings
from checkout_service.database import get_session_factory
from checkout_service.domain.models import CartItem, CartView, InventoryUnit, Notification, Order, OrderDetails, SellerCartGroup, Size
from checkout_service.domain.exceptions import (
    ConflictError, DomainException, InvalidRequestError, NotFoundError, PaymentServiceError
)
from checkout_service.application.interfaces import PaymentGateway
from checkout_service.application.cart import (
    AddToCartDTO, AddToCartUseCase, GetCartUseCase, GetSellerCartItemsUseCase,
    RemoveCartItemUseCase, RemoveSellerItemsUseCase, UpdateCartItemQuantityUseCase
)
from checkout_service.application.inventory import (
    CheckStockUseCase, DefineProductStockUseCase, GetStockUnitUseCase, StockEntryDTO
)
from checkout_service.application.create_order import CreateOrderDTO, CreateOrderUseCase, OrderItemDTO
from checkout_service.application.create_order_from_cart import CreateOrderFromCartDTO, CreateOrderFromCartUseCase
from checkout_service.application.update_order import (
    CancelOrderUseCase, DeleteOrderUseCase, UpdateOrderDTO, UpdateOrderUseCase
)
from checkout_service.application.get_order import GetOrderUseCase, ListSellerOrdersUseCase, ListUserOrdersUseCase
from checkout_service.application.process_payment import (
    CreatePaymentUrlUseCase, PaymentCallbackResult, ProcessPaymentCallbackUseCase
)
from checkout_service.application.notifications import (
    CountUnreadNotificationsUseCase, DeleteAllNotificationsUseCase, DeleteNotificationUseCase,
    ListNotificationsUseCase, MarkAllNotificationsReadUseCase, MarkNotificationReadUseCase
)
from checkout_service.infrastructure.unit_of_work import UnitOfWork
from checkout_service.infrastructure.notifications import SQLNotificationSink
from checkout_service.infrastructure.http_clients import HTTPPaymentsClient
from checkout_service.presentation.schemas import (
    AddToCartRequest, CancelOrderRequest, CartToOrderRequest, CreateOrderRequest,
    DefineStockRequest, ErrorResponse, MessageResponse, PaymentUrlResponse,
    RemovedItemsResponse, StockAvailabilityResponse, UnreadCountResponse,
    UpdateCartItemRequest, UpdateOrderRequest
)

router = APIRouter()

NOT_FOUND = {404: {"model": ErrorResponse}}
BAD_REQUEST = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


def _http_error(e: DomainException) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, InvalidRequestError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, PaymentServiceError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


# Фабрики для создания use cases
def get_uow(session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory)):
    return UnitOfWork(session_factory)


def get_notification_sink(uow: UnitOfWork = Depends(get_uow)):
    return SQLNotificationSink(uow)


def get_payment_gateway() -> PaymentGateway:
    return HTTPPaymentsClient(settings.PAYMENTS_BASE_URL, settings.API_TOKEN, settings.PAYMENT_RETURN_URL)


# Корзина

@router.post("/cart/items", response_model=CartItem, responses=BAD_REQUEST, status_code=status.HTTP_201_CREATED)
async def add_to_cart(request: AddToCartRequest, uow: UnitOfWork = Depends(get_uow)):
    """Добавить товар в корзину"""
    try:
        dto = AddToCartDTO(
            user_id=request.user_id,
            product_id=request.product_id,
            size=request.size,
            quantity=request.quantity
        )
        return await AddToCartUseCase(uow)(dto)
    except DomainException as e:
        raise _http_error(e)


@router.get("/cart/{user_id}", response_model=CartView)
async def get_cart(user_id: str, uow: UnitOfWork = Depends(get_uow)):
    """Корзина пользователя с группировкой по продавцам"""
    return await GetCartUseCase(uow)(user_id)


@router.get("/cart/{user_id}/sellers/{seller_id}", response_model=SellerCartGroup)
async def get_seller_cart_items(user_id: str, seller_id: str, uow: UnitOfWork = Depends(get_uow)):
    return await GetSellerCartItemsUseCase(uow)(user_id, seller_id)


@router.patch("/cart/items/{cart_item_id}", response_model=CartItem, responses=BAD_REQUEST)
async def update_cart_item(cart_item_id: str, request: UpdateCartItemRequest, uow: UnitOfWork = Depends(get_uow)):
    try:
        return await UpdateCartItemQuantityUseCase(uow)(cart_item_id, request.user_id, request.quantity)
    except DomainException as e:
        raise _http_error(e)


@router.delete("/cart/items/{cart_item_id}", response_model=MessageResponse, responses=NOT_FOUND)
async def remove_cart_item(cart_item_id: str, user_id: str, uow: UnitOfWork = Depends(get_uow)):
    try:
        await RemoveCartItemUseCase(uow)(cart_item_id, user_id)
        return MessageResponse(message="Cart item deleted successfully")
    except DomainException as e:
        raise _http_error(e)


@router.delete("/cart/{user_id}/sellers/{seller_id}", response_model=RemovedItemsResponse, responses=NOT_FOUND)
async def remove_seller_items(user_id: str, seller_id: str, uow: UnitOfWork = Depends(get_uow)):
    try:
        result = await RemoveSellerItemsUseCase(uow)(user_id, seller_id)
        return RemovedItemsResponse(
            deleted_count=result.count,
            total_price_reduction=result.total_price_reduction,
            message=f"{result.count} items removed from cart"
        )
    except DomainException as e:
        raise _http_error(e)


# Остатки

@router.get("/inventory/{product_id}/{size}", response_model=InventoryUnit, responses=NOT_FOUND)
async def get_stock_unit(product_id: str, size: Size, uow: UnitOfWork = Depends(get_uow)):
    try:
        return await GetStockUnitUseCase(uow)(product_id, size)
    except DomainException as e:
        raise _http_error(e)


@router.get("/inventory/{product_id}/{size}/available", response_model=StockAvailabilityResponse, responses=BAD_REQUEST)
async def check_stock(product_id: str, size: Size, quantity: int = 1, uow: UnitOfWork = Depends(get_uow)):
    try:
        available = await CheckStockUseCase(uow)(product_id, size, quantity)
        return StockAvailabilityResponse(product_id=product_id, size=size, quantity=quantity, available=available)
    except DomainException as e:
        raise _http_error(e)


@router.put("/inventory/{product_id}", response_model=List[InventoryUnit], responses=BAD_REQUEST)
async def define_product_stock(product_id: str, request: DefineStockRequest, uow: UnitOfWork = Depends(get_uow)):
    try:
        entries = [StockEntryDTO(size=e.size, quantity=e.quantity) for e in request.stock_size]
        return await DefineProductStockUseCase(uow)(product_id, entries)
    except DomainException as e:
        raise _http_error(e)


# Заказы

@router.post("/orders", response_model=Order, responses=BAD_REQUEST, status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    uow: UnitOfWork = Depends(get_uow),
    notifications: SQLNotificationSink = Depends(get_notification_sink)
):
    """Создать заказ у одного продавца"""
    try:
        dto = CreateOrderDTO(
            user_id=request.user_id,
            seller_id=request.seller_id,
            shipping=request.to_shipping(),
            order_items=[
                OrderItemDTO(size_stock_id=i.size_stock_id, quantity=i.quantity, price=i.price)
                for i in request.order_items
            ]
        )
        return await CreateOrderUseCase(uow, notifications)(dto)
    except DomainException as e:
        raise _http_error(e)


@router.post("/orders/from-cart", response_model=List[Order], responses=BAD_REQUEST, status_code=status.HTTP_201_CREATED)
async def create_orders_from_cart(
    request: CartToOrderRequest,
    uow: UnitOfWork = Depends(get_uow),
    notifications: SQLNotificationSink = Depends(get_notification_sink)
):
    """Оформить корзину: по заказу на каждого продавца"""
    try:
        dto = CreateOrderFromCartDTO(
            user_id=request.user_id,
            cart_id=request.cart_id,
            shipping=request.to_shipping(),
            selected_cart_item_ids=request.selected_cart_item_ids
        )
        return await CreateOrderFromCartUseCase(uow, notifications)(dto)
    except DomainException as e:
        raise _http_error(e)


@router.get("/orders/seller/{seller_id}", response_model=List[OrderDetails])
async def list_seller_orders(seller_id: str, uow: UnitOfWork = Depends(get_uow)):
    return await ListSellerOrdersUseCase(uow)(seller_id)


@router.get("/orders/user/{user_id}", response_model=List[OrderDetails])
async def list_user_orders(user_id: str, uow: UnitOfWork = Depends(get_uow)):
    return await ListUserOrdersUseCase(uow)(user_id)


@router.get("/orders/{order_id}", response_model=OrderDetails, responses=NOT_FOUND)
async def get_order(order_id: str, uow: UnitOfWork = Depends(get_uow)):
    try:
        return await GetOrderUseCase(uow)(order_id)
    except DomainException as e:
        raise _http_error(e)


@router.patch("/orders/{order_id}", response_model=Order, responses=BAD_REQUEST)
async def update_order(
    order_id: str,
    request: UpdateOrderRequest,
    uow: UnitOfWork = Depends(get_uow),
    notifications: SQLNotificationSink = Depends(get_notification_sink)
):
    try:
        patch = UpdateOrderDTO(**request.model_dump())
        use_case = UpdateOrderUseCase(uow, notifications, settings.RESTOCK_ON_CANCEL)
        return await use_case(order_id, patch)
    except DomainException as e:
        raise _http_error(e)


@router.post("/orders/{order_id}/cancel", response_model=Order, responses=BAD_REQUEST)
async def cancel_order(
    order_id: str,
    request: CancelOrderRequest,
    uow: UnitOfWork = Depends(get_uow),
    notifications: SQLNotificationSink = Depends(get_notification_sink)
):
    try:
        use_case = CancelOrderUseCase(uow, notifications, settings.RESTOCK_ON_CANCEL)
        return await use_case(order_id, request.reason)
    except DomainException as e:
        raise _http_error(e)


@router.delete("/orders/{order_id}", response_model=MessageResponse, responses=NOT_FOUND)
async def delete_order(order_id: str, uow: UnitOfWork = Depends(get_uow)):
    try:
        await DeleteOrderUseCase(uow)(order_id)
        return MessageResponse(message="Order deleted successfully")
    except DomainException as e:
        raise _http_error(e)


# Оплата

@router.post("/payments/{order_id}/url", response_model=PaymentUrlResponse, responses=BAD_REQUEST)
async def create_payment_url(
    order_id: str,
    request: Request,
    uow: UnitOfWork = Depends(get_uow),
    gateway: PaymentGateway = Depends(get_payment_gateway)
):
    try:
        client_ip = request.client.host if request.client else "127.0.0.1"
        payment_url = await CreatePaymentUrlUseCase(uow, gateway)(order_id, client_ip)
        return PaymentUrlResponse(payment_url=payment_url)
    except DomainException as e:
        raise _http_error(e)


@router.post("/payments/callback", response_model=PaymentCallbackResult, responses=BAD_REQUEST)
async def payment_callback(
    callback_data: dict,
    uow: UnitOfWork = Depends(get_uow),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifications: SQLNotificationSink = Depends(get_notification_sink)
):
    """Обработка callback от платежного шлюза"""
    try:
        return await ProcessPaymentCallbackUseCase(uow, gateway, notifications)(callback_data)
    except DomainException as e:
        raise _http_error(e)


# Уведомления

@router.get("/notifications/{user_id}", response_model=List[Notification])
async def list_notifications(user_id: str, unread_only: bool = False, uow: UnitOfWork = Depends(get_uow)):
    return await ListNotificationsUseCase(uow)(user_id, unread_only=unread_only)


@router.get("/notifications/{user_id}/unread-count", response_model=UnreadCountResponse)
async def unread_notifications_count(user_id: str, uow: UnitOfWork = Depends(get_uow)):
    return UnreadCountResponse(count=await CountUnreadNotificationsUseCase(uow)(user_id))


@router.post("/notifications/{notification_id}/read", response_model=MessageResponse, responses=NOT_FOUND)
async def mark_notification_read(notification_id: str, uow: UnitOfWork = Depends(get_uow)):
    try:
        await MarkNotificationReadUseCase(uow)(notification_id)
        return MessageResponse(message="Notification marked as read")
    except DomainException as e:
        raise _http_error(e)


@router.post("/notifications/{user_id}/read-all", response_model=MessageResponse)
async def mark_all_notifications_read(user_id: str, uow: UnitOfWork = Depends(get_uow)):
    updated = await MarkAllNotificationsReadUseCase(uow)(user_id)
    return MessageResponse(message=f"{updated} notifications marked as read")


@router.delete("/notifications/user/{user_id}", response_model=MessageResponse)
async def delete_all_notifications(user_id: str, uow: UnitOfWork = Depends(get_uow)):
    deleted = await DeleteAllNotificationsUseCase(uow)(user_id)
    return MessageResponse(message=f"{deleted} notifications deleted")


@router.delete("/notifications/{notification_id}", response_model=MessageResponse, responses=NOT_FOUND)
async def delete_notification(notification_id: str, uow: UnitOfWork = Depends(get_uow)):
    try:
        await DeleteNotificationUseCase(uow)(notification_id)
        return MessageResponse(message="Notification deleted successfully")
    except DomainException as e:
        raise _http_error(e)
