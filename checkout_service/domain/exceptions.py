class DomainException(Exception):
    pass


class NotFoundError(DomainException):
    pass


class InvalidRequestError(DomainException):
    pass


class ConflictError(DomainException):
    pass


class PaymentServiceError(DomainException):
    pass


class ProductNotFoundError(NotFoundError):
    pass


class StockUnitNotFoundError(NotFoundError):
    pass


class CartNotFoundError(NotFoundError):
    pass


class CartItemNotFoundError(NotFoundError):
    pass


class EmptySelectionError(NotFoundError):
    pass


class OrderNotFoundError(NotFoundError):
    pass


class UserNotFoundError(NotFoundError):
    pass


class SellerNotFoundError(NotFoundError):
    pass


class NotificationNotFoundError(NotFoundError):
    pass


class InvalidQuantityError(InvalidRequestError):
    pass


class InsufficientStockError(InvalidRequestError):
    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(f"Недостаточно товара. Доступно: {available}, требуется: {required}")


class DuplicateSizeError(InvalidRequestError):
    pass


class InvalidStatusTransitionError(InvalidRequestError):
    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(f"Недопустимый переход статуса: {current.value} -> {requested.value}")


class InvalidPaymentError(InvalidRequestError):
    pass
