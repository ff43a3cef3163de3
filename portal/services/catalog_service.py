"""Catalog listing: active products with variants, promotions and effective prices."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from portal.models import Product
from portal.services import pricing_service


def _variant_dict(product, variant, promotion) -> Dict[str, Any]:
    return {
        'id': variant.id,
        'size': variant.size,
        'price': variant.price,
        'effective_price': pricing_service.resolve_price(product, variant, promotion),
        'min_order_quantity': variant.min_order_quantity,
        'is_default': bool(variant.is_default),
    }


def build_catalog(session: Session, category: Optional[str] = None,
                  at: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """
    Active products ordered by category then base price, each with its
    default variant, active promotion and effective unit price.
    """
    at = at or datetime.now(timezone.utc)
    query = session.query(Product).options(selectinload(Product.variants)).filter(
        Product.is_active == True  # noqa: E712
    )
    if category:
        query = query.filter(Product.category == category)
    products = query.order_by(Product.category, Product.base_price, Product.id).all()
    promotions = pricing_service.get_active_promotions(session, at)

    catalog = []
    for product in products:
        promotion = promotions.get(product.id)
        variant = pricing_service.default_variant(product)
        catalog.append({
            'id': product.id,
            'name': product.name,
            'category': product.category,
            'size': product.size,
            'description': product.description,
            'base_price': product.base_price,
            'min_order_quantity': pricing_service.effective_min_order_quantity(product, variant),
            'default_variant_id': variant.id if variant is not None else None,
            'effective_price': pricing_service.resolve_price(product, variant, promotion),
            'promotion': {
                'id': promotion.id,
                'title': promotion.title,
                'discount_percent': promotion.discount_percent,
                'valid_until': promotion.valid_until.isoformat() if promotion.valid_until else None,
            } if promotion else None,
            'variants': [_variant_dict(product, v, promotion) for v in product.variants],
        })
    return catalog


def get_catalog(session: Session, category: Optional[str] = None) -> List[Dict[str, Any]]:
    """Catalog listing through the shared cache."""
    from flask import current_app
    from portal.services.cache_service import get_cache, GLOBAL_SCOPE

    cache = get_cache()
    return cache.memoize(
        GLOBAL_SCOPE, 'catalog', category or 'all',
        lambda: build_catalog(session, category),
        ttl=current_app.config.get('CACHE_CATALOG_TTL', 300)
    )
