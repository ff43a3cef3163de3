"""
Pricing resolver.

Pure reads of catalog and promotion data at the instant of the call. The
cart captures the resolved price when a line is added and never asks again.
"""
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy.orm import Session

from portal.models import Product, ProductVariant, Promotion
from portal.exceptions import NotFoundError, ValidationError

HUNDRED = Decimal('100')
# Unit prices are stored with 4 decimals
UNIT_PRICE_STEP = Decimal('0.0001')


def _to_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def resolve_price(product: Product, variant: Optional[ProductVariant] = None,
                  promotion: Optional[Promotion] = None) -> Decimal:
    """Effective unit price of a product, optionally a variant and an active promotion."""
    base_price = _to_decimal(variant.price if variant is not None else product.base_price)

    if promotion is not None and promotion.discount_percent:
        percent = _to_decimal(promotion.discount_percent)
        return (base_price * (1 - percent / HUNDRED)).quantize(UNIT_PRICE_STEP, rounding=ROUND_HALF_UP)
    return base_price


def effective_min_order_quantity(product: Product, variant: Optional[ProductVariant] = None) -> int:
    """Minimum order quantity, read from the variant when one is selected."""
    if variant is not None:
        return int(variant.min_order_quantity)
    return int(product.min_order_quantity)


def default_variant(product: Product) -> Optional[ProductVariant]:
    """Variant flagged as default, else the first one, else None."""
    if not product.variants:
        return None
    for variant in product.variants:
        if variant.is_default:
            return variant
    return product.variants[0]


def select_variant(product: Product, variant_id: Optional[int] = None) -> Optional[ProductVariant]:
    """
    Resolve the variant to price a product with.

    A product with variants is always priced from one of them: the requested
    variant when given, otherwise the default one.
    """
    if variant_id is None:
        return default_variant(product)
    for variant in product.variants:
        if variant.id == int(variant_id):
            return variant
    raise ValidationError('validation.variant_mismatch')


def get_active_promotion(session: Session, product_id: int, at: Optional[datetime] = None) -> Optional[Promotion]:
    """
    First active, non-expired promotion for a product.

    More than one active promotion per product is not arbitrated: the
    lowest id wins.
    """
    at = at or datetime.now(timezone.utc)
    candidates = session.query(Promotion).filter(
        Promotion.product_id == product_id,
        Promotion.is_active == True  # noqa: E712
    ).order_by(Promotion.id).all()
    for promotion in candidates:
        if promotion.is_current(at):
            return promotion
    return None


def get_active_promotions(session: Session, at: Optional[datetime] = None) -> dict:
    """Map of product_id -> first active promotion, for catalog listings."""
    at = at or datetime.now(timezone.utc)
    promotions = {}
    rows = session.query(Promotion).filter(
        Promotion.is_active == True,  # noqa: E712
        Promotion.product_id.isnot(None)
    ).order_by(Promotion.id).all()
    for promotion in rows:
        if promotion.product_id not in promotions and promotion.is_current(at):
            promotions[promotion.product_id] = promotion
    return promotions


def get_sellable_product(session: Session, product_id: int) -> Product:
    """Fetch an active catalog product or raise."""
    product = session.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError()
    if not product.is_active:
        raise ValidationError('validation.product_inactive', name=product.name)
    return product
