"""Models package - exports all SQLAlchemy models."""
from portal.models.profile import Profile, ProfileRole

# Catalog
from portal.models.product import Product
from portal.models.product_variant import ProductVariant
from portal.models.promotion import Promotion
from portal.models.offer import Offer, OfferProduct

# Client-specific
from portal.models.client_product import ClientProduct
from portal.models.inventory import Inventory

# Orders
from portal.models.order import Order, OrderStatus, PaymentStatus
from portal.models.order_item import OrderItem
from portal.models.order_sequence import OrderSequence

__all__ = [
    'Profile', 'ProfileRole',
    'Product', 'ProductVariant', 'Promotion', 'Offer', 'OfferProduct',
    'ClientProduct', 'Inventory',
    'Order', 'OrderStatus', 'PaymentStatus', 'OrderItem', 'OrderSequence',
]
