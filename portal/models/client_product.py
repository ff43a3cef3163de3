"""Client Product model - the client-specific sellable product reference."""
from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from portal.database import Base, IdType


class ClientProduct(Base):
    """
    Client Product - join between a client and a catalog product/variant.

    Stable key for cart lines, inventory and order items. Created lazily on
    the first add-to-cart; unique per (client, product, variant).
    variant_key mirrors variant_id with 0 for "no variant" so the unique
    constraint also holds when there is no variant (NULLs are distinct).
    """

    __tablename__ = 'client_product'
    __table_args__ = (
        UniqueConstraint('client_id', 'product_id', 'variant_key', name='uq_client_product_identity'),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    client_id = Column(IdType, ForeignKey('profile.id'), nullable=False, index=True)
    product_id = Column(IdType, ForeignKey('product.id'), nullable=False)
    variant_id = Column(IdType, ForeignKey('product_variant.id'), nullable=True)
    variant_key = Column(Integer, nullable=False, default=0)
    display_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # Stock declared by the client themselves
    client_stock = Column(Integer, nullable=False, default=0)
    client_stock_updated_at = Column(DateTime(timezone=True), nullable=True)

    total_ordered = Column(Integer, nullable=False, default=0)
    last_order_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    client = relationship('Profile', back_populates='client_products')
    product = relationship('Product')
    variant = relationship('ProductVariant')
    inventory = relationship('Inventory', uselist=False, back_populates='client_product', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<ClientProduct(id={self.id}, client_id={self.client_id}, product_id={self.product_id}, variant_id={self.variant_id})>"
