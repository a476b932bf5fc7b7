from sqlalchemy import (
    Table, Column, String, Integer, Numeric, Enum, DateTime, Boolean, MetaData,
    ForeignKey, UniqueConstraint, CheckConstraint
)
from sqlalchemy.sql import func

from checkout_service.domain.models import Size, OrderStatus, PaymentStatus, PaymentMethod

metadata = MetaData()

MONEY = Numeric(12, 2)


users_tbl = Table(
    "users",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("email", String, nullable=False, unique=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now())
)


sellers_tbl = Table(
    "sellers",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, ForeignKey("users.id"), nullable=False, unique=True),
    Column("manager_name", String, nullable=True),
    Column("email", String, nullable=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now())
)


products_tbl = Table(
    "products",
    metadata,
    Column("id", String, primary_key=True),
    Column("seller_id", String, ForeignKey("sellers.id"), nullable=False, index=True),
    Column("name", String, nullable=False),
    Column("price", MONEY, nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now())
)


size_stocks_tbl = Table(
    "size_stocks",
    metadata,
    Column("id", String, primary_key=True),
    Column("product_id", String, ForeignKey("products.id"), nullable=False, index=True),
    Column("size", Enum(Size), nullable=False),
    Column("quantity", Integer, nullable=False, default=0),
    UniqueConstraint("product_id", "size", name="uq_size_stocks_product_size"),
    CheckConstraint("quantity >= 0", name="ck_size_stocks_quantity_non_negative")
)


carts_tbl = Table(
    "carts",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, ForeignKey("users.id"), nullable=False, unique=True),
    Column("total_cart_value", MONEY, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
)


cart_items_tbl = Table(
    "cart_items",
    metadata,
    Column("id", String, primary_key=True),
    Column("cart_id", String, ForeignKey("carts.id"), nullable=False, index=True),
    Column("user_id", String, nullable=False, index=True),
    Column("size_stock_id", String, ForeignKey("size_stocks.id"), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("total_price", MONEY, nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    UniqueConstraint("cart_id", "size_stock_id", name="uq_cart_items_cart_size_stock"),
    CheckConstraint("quantity > 0", name="ck_cart_items_quantity_positive")
)


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, ForeignKey("users.id"), nullable=False, index=True),
    Column("seller_id", String, ForeignKey("sellers.id"), nullable=False, index=True),
    Column("phone_number", String, nullable=False),
    Column("address", String, nullable=False),
    Column("postal_code", String, nullable=True),
    Column("payment_method", Enum(PaymentMethod), nullable=False, default=PaymentMethod.COD),
    Column("total_price", MONEY, nullable=False),
    Column("status", Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING),
    Column("payment_status", Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING),
    Column("cancel_reason", String, nullable=True),
    Column("delivery_date", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
)


order_items_tbl = Table(
    "order_items",
    metadata,
    Column("id", String, primary_key=True),
    Column("order_id", String, ForeignKey("orders.id"), nullable=False, index=True),
    Column("size_stock_id", String, ForeignKey("size_stocks.id"), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("total_price", MONEY, nullable=False)
)


shipments_tbl = Table(
    "shipments",
    metadata,
    Column("id", String, primary_key=True),
    Column("order_id", String, ForeignKey("orders.id"), nullable=False, unique=True),
    Column("status", String, nullable=False, default="PENDING"),
    Column("delivery_date", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now())
)


notifications_tbl = Table(
    "notifications",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, ForeignKey("users.id"), nullable=False, index=True),
    Column("message", String, nullable=False),
    Column("is_read", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now())
)
