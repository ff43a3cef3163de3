"""Product Variant model."""
from sqlalchemy import Column, String, Boolean, Numeric, Integer, ForeignKey
from sqlalchemy.orm import relationship
from portal.database import Base, IdType


class ProductVariant(Base):
    """
    Product Variant (size/price/minimum of a product).

    When a product has variants, price and minimum order quantity are read
    from the selected variant, never from the parent product.
    """

    __tablename__ = 'product_variant'

    id = Column(IdType, primary_key=True, autoincrement=True)
    product_id = Column(IdType, ForeignKey('product.id'), nullable=False, index=True)
    size = Column(String(50), nullable=False)
    price = Column(Numeric(12, 4), nullable=False)
    min_order_quantity = Column(Integer, nullable=False, default=1)
    is_default = Column(Boolean, nullable=False, default=False)

    # Relationships
    product = relationship('Product', back_populates='variants')

    def __repr__(self):
        return f"<ProductVariant(id={self.id}, product_id={self.product_id}, size='{self.size}')>"
