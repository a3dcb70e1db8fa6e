import uuid
import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    Numeric,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    CheckConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from buildsetu.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


# Fixed-point money column: two decimal places, never binary float
Money = Numeric(12, 2, asdecimal=True)


# =========================
# ENUMS
# =========================

class Role(str, enum.Enum):
    buyer = "BUYER"
    seller = "SELLER"
    admin = "ADMIN"


class OrderStatus(str, enum.Enum):
    pending = "PENDING"
    confirmed = "CONFIRMED"
    shipped = "SHIPPED"
    delivered = "DELIVERED"
    cancelled = "CANCELLED"


class TicketStatus(str, enum.Enum):
    open = "OPEN"
    in_progress = "IN_PROGRESS"
    resolved = "RESOLVED"
    closed = "CLOSED"


class SenderType(str, enum.Enum):
    user = "USER"
    admin = "ADMIN"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# =========================
# USER
# =========================

class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    email = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    phone = Column(String)

    # Assigned at registration, never updated afterwards
    role = Column(
        Enum(Role, name="user_role", values_callable=_enum_values),
        default=Role.buyer,
        nullable=False,
    )
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow)

    addresses = relationship("Address", back_populates="user")
    products = relationship("Product", back_populates="seller")
    orders = relationship("Order", back_populates="user")
    tickets = relationship("SupportTicket", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin


# =========================
# CATEGORY
# =========================

class Category(Base):
    __tablename__ = "categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True, index=True)
    description = Column(Text)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    products = relationship("Product", back_populates="category")


# =========================
# PRODUCT
# =========================

class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price > 0", name="ck_products_price_positive"),
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    seller_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    category_id = Column(
        UUID(as_uuid=True),
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=False, default="")
    unit = Column(String, nullable=False)

    price = Column(Money, nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)

    # Soft delete flag: order items keep pointing at inactive products
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    seller = relationship("User", back_populates="products")
    category = relationship("Category", back_populates="products")


Index("idx_products_is_active", Product.is_active)
Index("idx_products_created_at", Product.created_at)


# =========================
# ADDRESS
# =========================

class Address(Base):
    __tablename__ = "addresses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    label = Column(String, nullable=False)
    line1 = Column(String, nullable=False)
    line2 = Column(String)
    city = Column(String, nullable=False)
    state = Column(String, nullable=False)
    pincode = Column(String, nullable=False)

    is_default = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="addresses")


# At most one default address per user, enforced by the database as well
Index(
    "uq_addresses_one_default_per_user",
    Address.user_id,
    unique=True,
    postgresql_where=text("is_default"),
    sqlite_where=text("is_default = 1"),
)


# =========================
# ORDER
# =========================

class Order(Base):
    __tablename__ = "orders"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    address_id = Column(
        UUID(as_uuid=True),
        ForeignKey("addresses.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        default=OrderStatus.pending,
        nullable=False,
    )

    # Computed once at creation, never recomputed
    subtotal = Column(Money, nullable=False)
    tax = Column(Money, nullable=False)
    delivery_fee = Column(Money, nullable=False)
    total = Column(Money, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="orders")
    address = relationship("Address")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )


Index("idx_orders_status", Order.status)
Index("idx_orders_created_at", Order.created_at)


# =========================
# ORDER ITEM
# =========================

class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    order_id = Column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = Column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )

    position = Column(Integer, nullable=False, default=0)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Money, nullable=False)   # Snapshot
    line_total = Column(Money, nullable=False)   # Snapshot

    order = relationship("Order", back_populates="items")
    product = relationship("Product")


# =========================
# SUPPORT
# =========================

class SupportTicket(Base):
    __tablename__ = "support_tickets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    subject = Column(String, nullable=False)
    description = Column(Text, nullable=False)

    status = Column(
        Enum(TicketStatus, name="ticket_status", values_callable=_enum_values),
        default=TicketStatus.open,
        nullable=False,
    )

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="tickets")
    messages = relationship(
        "SupportMessage",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by=lambda: [SupportMessage.created_at, SupportMessage.sequence],
    )


class SupportMessage(Base):
    __tablename__ = "support_messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    ticket_id = Column(
        UUID(as_uuid=True),
        ForeignKey("support_tickets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Tie-breaker when two messages share a timestamp
    sequence = Column(Integer, nullable=False, default=0)

    sender_type = Column(
        Enum(SenderType, name="sender_type", values_callable=_enum_values),
        nullable=False,
    )
    message = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    ticket = relationship("SupportTicket", back_populates="messages")


Index("idx_support_messages_ticket_created", SupportMessage.ticket_id, SupportMessage.created_at)
