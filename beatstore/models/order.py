"""
Order and order item models.

Order.status only ever moves pending -> completed or pending -> failed.
Item prices and titles are snapshots taken at checkout.
"""
from enum import Enum as PyEnum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship

from beatstore.models.base import Base, TenantBaseModel, UUIDMixin, enum_column_type


class OrderStatus(str, PyEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentProvider(str, PyEnum):
    STRIPE = "stripe"
    PAYPAL = "paypal"


class ItemType(str, PyEnum):
    BEAT = "beat"
    SOUND_KIT = "sound_kit"


class Order(Base, TenantBaseModel):
    __tablename__ = "orders"

    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    customer_email = Column(String(255), nullable=False, index=True)
    customer_name = Column(String(255), nullable=True)
    total = Column(Numeric(10, 2), nullable=False)
    status = Column(
        enum_column_type(OrderStatus, "order_status"),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )
    payment_provider = Column(
        enum_column_type(PaymentProvider, "payment_provider"),
        nullable=False,
    )
    # Stripe checkout session id or PayPal order id
    provider_order_id = Column(String(255), nullable=True, index=True)
    payment_transaction_id = Column(String(255), nullable=True)
    discount_code = Column(String(100), nullable=True)
    discount_amount = Column(Numeric(10, 2), default=0, nullable=False)
    download_expires_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.position",
        collection_class=ordering_list("position"),
    )

    @property
    def is_completed(self) -> bool:
        return self.status == OrderStatus.COMPLETED

    def __repr__(self) -> str:
        return f"<Order {self.id} {self.status.value} {self.total}>"


class OrderItem(Base, UUIDMixin):
    __tablename__ = "order_items"

    order_id = Column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tenants.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    item_type = Column(
        enum_column_type(ItemType, "order_item_type"),
        default=ItemType.BEAT,
        nullable=False,
    )
    beat_id = Column(UUID(as_uuid=True), ForeignKey("beats.id", ondelete="SET NULL"), nullable=True)
    license_tier_id = Column(
        UUID(as_uuid=True),
        ForeignKey("license_tiers.id", ondelete="SET NULL"),
        nullable=True,
    )
    sound_kit_id = Column(
        UUID(as_uuid=True),
        ForeignKey("sound_kits.id", ondelete="SET NULL"),
        nullable=True,
    )
    beat_title = Column(String(255), nullable=True)
    item_title = Column(String(255), nullable=True)
    license_name = Column(String(100), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    download_count = Column(Integer, default=0, nullable=False)
    # Cart order, kept for e-mails and download listings
    position = Column(Integer, default=0, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    order = relationship("Order", back_populates="items")

    @property
    def title(self) -> str:
        return self.item_title or self.beat_title or "Item"

    def __repr__(self) -> str:
        return f"<OrderItem {self.title} {self.price}>"
