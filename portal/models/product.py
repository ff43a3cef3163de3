"""Product model."""
from sqlalchemy import Column, String, Text, Boolean, Numeric, Integer, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from portal.database import Base, IdType


class Product(Base):
    """Catalog product. Never deleted, only deactivated."""

    __tablename__ = 'product'

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    size = Column(String(50), nullable=True)
    category = Column(String(30), nullable=False, default='standard')  # standard, window, special, seasonal
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(12, 4), nullable=False)
    min_order_quantity = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    variants = relationship(
        'ProductVariant', back_populates='product',
        order_by='ProductVariant.id', cascade='all, delete-orphan'
    )
    promotions = relationship('Promotion', back_populates='product')

    @property
    def has_variants(self):
        return bool(self.variants)

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', base_price={self.base_price})>"
