"""Promotion model (time-bounded price reduction on one product)."""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from portal.database import Base, IdType


class Promotion(Base):
    """Promotion shown in the catalog; lowers the unit price of its product."""

    __tablename__ = 'promotion'

    id = Column(IdType, primary_key=True, autoincrement=True)
    product_id = Column(IdType, ForeignKey('product.id'), nullable=True, index=True)
    title = Column(String(200), nullable=True)
    discount_percent = Column(Numeric(5, 2), nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    product = relationship('Product', back_populates='promotions')

    def is_current(self, at=None):
        """Active and not expired at the given instant."""
        at = at or datetime.now(timezone.utc)
        valid_until = self.valid_until
        if valid_until.tzinfo is None:
            valid_until = valid_until.replace(tzinfo=timezone.utc)
        return bool(self.is_active) and valid_until >= at

    def __repr__(self):
        return f"<Promotion(id={self.id}, product_id={self.product_id}, discount_percent={self.discount_percent})>"
