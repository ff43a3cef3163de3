"""
Cart ledger - the lines a client intends to order, before persistence.

The ledger is an explicit value object owned by the caller (stored in the
Flask session between requests as a plain dict and rebuilt with
CartLedger.from_dict). It never reprices a line: the unit price is captured
once, when the line is added.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.models import ClientProduct, Inventory, Product, ProductVariant, Promotion
from portal.exceptions import BelowMinimumQuantityError, NotFoundError, ValidationError
from portal.services import pricing_service

logger = logging.getLogger(__name__)

DEFAULT_ALERT_THRESHOLD = 1000
DEFAULT_CRITICAL_THRESHOLD = 500


@dataclass
class CartLine:
    """One sellable product in the cart."""

    client_product_id: int
    product_id: int
    variant_id: Optional[int]
    name: str
    quantity: int
    unit_price: Decimal
    min_order_quantity: int

    @property
    def line_subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'client_product_id': self.client_product_id,
            'product_id': self.product_id,
            'variant_id': self.variant_id,
            'name': self.name,
            'quantity': self.quantity,
            'unit_price': str(self.unit_price),
            'min_order_quantity': self.min_order_quantity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CartLine':
        return cls(
            client_product_id=int(data['client_product_id']),
            product_id=int(data['product_id']),
            variant_id=int(data['variant_id']) if data.get('variant_id') is not None else None,
            name=data.get('name', ''),
            quantity=int(data['quantity']),
            unit_price=Decimal(str(data['unit_price'])),
            min_order_quantity=int(data.get('min_order_quantity', 1)),
        )


def _require_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(detail='quantity')
    return quantity


@dataclass
class CartLedger:
    """In-memory cart keyed by sellable product reference."""

    lines: List[CartLine] = field(default_factory=list)
    _listeners: List[Callable[['CartLedger'], None]] = field(default_factory=list, repr=False, compare=False)

    def subscribe(self, listener: Callable[['CartLedger'], None]) -> None:
        """Register a callback run after every mutation (e.g. discount recompute)."""
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def find_line(self, client_product_id: int) -> Optional[int]:
        for index, line in enumerate(self.lines):
            if line.client_product_id == client_product_id:
                return index
        return None

    def add(self, client_product_id: int, product: Product, variant: Optional[ProductVariant],
            quantity: int, promotion: Optional[Promotion] = None) -> CartLine:
        """
        Add a quantity of a product/variant under its sellable reference.

        Quantities of an existing line are summed; a new line captures the
        price resolved right now.
        """
        quantity = _require_quantity(quantity)
        minimum = pricing_service.effective_min_order_quantity(product, variant)
        if quantity < minimum:
            raise BelowMinimumQuantityError(quantity, minimum)

        index = self.find_line(client_product_id)
        if index is not None:
            line = self.lines[index]
            line.quantity += quantity
        else:
            line = CartLine(
                client_product_id=client_product_id,
                product_id=product.id,
                variant_id=variant.id if variant is not None else None,
                name=display_name(product, variant),
                quantity=quantity,
                unit_price=pricing_service.resolve_price(product, variant, promotion),
                min_order_quantity=minimum,
            )
            self.lines.append(line)

        self._notify()
        return line

    def remove(self, index: int) -> CartLine:
        """Delete a line unconditionally."""
        self._check_index(index)
        line = self.lines.pop(index)
        self._notify()
        return line

    def set_quantity(self, index: int, quantity: int) -> bool:
        """
        Overwrite a line quantity.

        Below the line minimum the call is a no-op and returns False.
        """
        self._check_index(index)
        quantity = _require_quantity(quantity)
        line = self.lines[index]
        if quantity < line.min_order_quantity:
            return False
        line.quantity = quantity
        self._notify()
        return True

    def clear(self) -> None:
        self.lines = []
        self._notify()

    def subtotal(self) -> Decimal:
        return sum((line.line_subtotal for line in self.lines), Decimal('0'))

    def item_count(self) -> int:
        """Sum of quantities (bags ordered), not the number of lines."""
        return sum(line.quantity for line in self.lines)

    def is_empty(self) -> bool:
        return not self.lines

    def _check_index(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.lines):
            raise ValidationError('validation.line_not_found')

    def to_dict(self) -> Dict[str, Any]:
        return {'lines': [line.to_dict() for line in self.lines]}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CartLedger':
        data = data or {}
        return cls(lines=[CartLine.from_dict(item) for item in data.get('lines', [])])


def display_name(product: Product, variant: Optional[ProductVariant] = None) -> str:
    if variant is not None:
        return f"{product.name} ({variant.size})"
    return product.name


def get_or_create_client_product(
    session: Session,
    client_id: int,
    product: Product,
    variant: Optional[ProductVariant] = None,
    alert_threshold: int = DEFAULT_ALERT_THRESHOLD,
    critical_threshold: int = DEFAULT_CRITICAL_THRESHOLD,
) -> ClientProduct:
    """
    Find or create the sellable reference for (client, product, variant).

    Idempotent: a concurrent insert that loses the race on the unique
    constraint falls back to the row the winner created. A new reference
    comes with an empty inventory record.
    """
    variant_key = variant.id if variant is not None else 0

    def _lookup():
        return session.query(ClientProduct).filter(
            ClientProduct.client_id == client_id,
            ClientProduct.product_id == product.id,
            ClientProduct.variant_key == variant_key
        ).first()

    existing = _lookup()
    if existing:
        return existing

    client_product = ClientProduct(
        client_id=client_id,
        product_id=product.id,
        variant_id=variant.id if variant is not None else None,
        variant_key=variant_key,
        display_name=display_name(product, variant),
        is_active=True,
    )
    client_product.inventory = Inventory(
        quantity=0,
        alert_threshold=alert_threshold,
        critical_threshold=critical_threshold,
    )
    try:
        session.add(client_product)
        session.commit()
        logger.info(f"[CART] Provisioned client_product {client_product.id} for client {client_id} "
                    f"(product={product.id}, variant={variant_key or None})")
        return client_product
    except IntegrityError:
        session.rollback()
        existing = _lookup()
        if existing is None:
            raise
        return existing


def add_product_to_cart(
    session: Session,
    ledger: CartLedger,
    client_id: int,
    product_id: int,
    quantity: int,
    variant_id: Optional[int] = None,
    max_lines: Optional[int] = None,
    **threshold_defaults
) -> CartLine:
    """
    Resolve product, variant and promotion, provision the sellable
    reference, then add to the ledger.

    With max_lines set, a product that would open a new line in a full
    cart is refused; adding to an existing line is always allowed.
    """
    quantity = _require_quantity(quantity)
    product = pricing_service.get_sellable_product(session, product_id)
    variant = pricing_service.select_variant(product, variant_id)

    minimum = pricing_service.effective_min_order_quantity(product, variant)
    if quantity < minimum:
        raise BelowMinimumQuantityError(quantity, minimum)

    if max_lines is not None and len(ledger.lines) >= max_lines:
        variant_ref = variant.id if variant is not None else None
        if not any(line.product_id == product.id and line.variant_id == variant_ref for line in ledger.lines):
            raise ValidationError('validation.cart_full', limit=max_lines)

    promotion = pricing_service.get_active_promotion(session, product.id)
    client_product = get_or_create_client_product(session, client_id, product, variant, **threshold_defaults)
    return ledger.add(client_product.id, product, variant, quantity, promotion)


def reorder_client_product(session: Session, ledger: CartLedger, client_id: int,
                           client_product_id: int, max_lines: Optional[int] = None,
                           **threshold_defaults) -> CartLine:
    """Add the product behind an existing sellable reference at its minimum quantity."""
    client_product = session.query(ClientProduct).filter(
        ClientProduct.id == client_product_id,
        ClientProduct.client_id == client_id
    ).first()
    if not client_product:
        raise NotFoundError()

    product = pricing_service.get_sellable_product(session, client_product.product_id)
    variant = client_product.variant if client_product.variant_id else pricing_service.default_variant(product)
    quantity = pricing_service.effective_min_order_quantity(product, variant)
    return add_product_to_cart(
        session, ledger, client_id, product.id, quantity,
        variant_id=variant.id if variant is not None else None,
        max_lines=max_lines,
        **threshold_defaults
    )
