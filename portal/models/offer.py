"""Offer model (promotional code)."""
from sqlalchemy import Column, String, Boolean, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from portal.database import Base, IdType


class Offer(Base):
    """
    Offer - promotional code.

    An offer with no associated products is global (whole cart); with one
    or more products it is scoped to matching cart lines only.
    """

    __tablename__ = 'offer'

    id = Column(IdType, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=True)
    discount_code = Column(String(64), nullable=True, unique=True, index=True)
    discount_percent = Column(Numeric(5, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    offer_products = relationship('OfferProduct', back_populates='offer', cascade='all, delete-orphan')

    @property
    def associated_product_ids(self):
        return frozenset(op.product_id for op in self.offer_products)

    @property
    def is_global(self):
        return not self.offer_products

    def __repr__(self):
        return f"<Offer(id={self.id}, code='{self.discount_code}', percent={self.discount_percent})>"


class OfferProduct(Base):
    """Association between an offer and a catalog product."""

    __tablename__ = 'offer_product'
    __table_args__ = (UniqueConstraint('offer_id', 'product_id', name='uq_offer_product'),)

    id = Column(IdType, primary_key=True, autoincrement=True)
    offer_id = Column(IdType, ForeignKey('offer.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(IdType, ForeignKey('product.id'), nullable=False)

    # Relationships
    offer = relationship('Offer', back_populates='offer_products')
    product = relationship('Product')

    def __repr__(self):
        return f"<OfferProduct(offer_id={self.offer_id}, product_id={self.product_id})>"
