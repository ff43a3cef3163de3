"""Order model."""
import enum
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from portal.database import Base, IdType


class OrderStatus(str, enum.Enum):
    """Order lifecycle status."""
    CONFIRMED = 'confirmed'
    PRODUCTION = 'production'
    DELIVERED_EONITE = 'delivered_eonite'
    AVAILABLE = 'available'
    CANCELLED = 'cancelled'


class PaymentStatus(str, enum.Enum):
    """Payment label set by an operator."""
    PENDING = 'pending'
    PAID = 'paid'
    REFUNDED = 'refunded'


class Order(Base):
    """
    Order (commande).

    Immutable after creation except status, production_progress and
    payment_status, which operators change.
    """

    __tablename__ = 'orders'

    id = Column(IdType, primary_key=True, autoincrement=True)
    order_number = Column(String(32), nullable=False, unique=True, index=True)
    client_id = Column(IdType, ForeignKey('profile.id'), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)
    discount_code = Column(String(64), nullable=True)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_ht = Column(Numeric(12, 2), nullable=False)
    total_ttc = Column(Numeric(12, 2), nullable=False)
    tva_rate = Column(Numeric(5, 2), nullable=False, default=20)
    status = Column(String(30), nullable=False, default=OrderStatus.CONFIRMED.value)
    production_progress = Column(Integer, nullable=False, default=0)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    notes = Column(Text, nullable=True)
    actual_completion = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship('Profile', back_populates='orders')
    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan', order_by='OrderItem.id')

    @property
    def total(self):
        """Total including tax."""
        return self.total_ttc

    def __repr__(self):
        return f"<Order(id={self.id}, number='{self.order_number}', status='{self.status}', total_ttc={self.total_ttc})>"
