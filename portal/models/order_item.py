"""Order Item model."""
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from portal.database import Base, IdType


class OrderItem(Base):
    """Order line, snapshotted at order time; never repriced."""

    __tablename__ = 'order_item'

    id = Column(IdType, primary_key=True, autoincrement=True)
    order_id = Column(IdType, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    client_product_id = Column(IdType, ForeignKey('client_product.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 4), nullable=False)
    line_total = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    order = relationship('Order', back_populates='items')
    client_product = relationship('ClientProduct')

    def __repr__(self):
        return f"<OrderItem(id={self.id}, client_product_id={self.client_product_id}, quantity={self.quantity})>"
