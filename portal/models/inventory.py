"""Inventory model - 1:1 with ClientProduct."""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from portal.database import Base, IdType


class Inventory(Base):
    """Stock held for a client product, with alert and critical thresholds."""

    __tablename__ = 'inventory'

    id = Column(IdType, primary_key=True, autoincrement=True)
    client_product_id = Column(IdType, ForeignKey('client_product.id'), nullable=False, unique=True)
    quantity = Column(Integer, nullable=False, default=0)
    alert_threshold = Column(Integer, nullable=False, default=0)
    critical_threshold = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    last_updated = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationship
    client_product = relationship('ClientProduct', back_populates='inventory')

    @property
    def stock_level(self):
        from portal.services.stock_service import classify_stock
        return classify_stock(self.quantity, self.alert_threshold, self.critical_threshold)

    def __repr__(self):
        return f"<Inventory(client_product_id={self.client_product_id}, quantity={self.quantity})>"
