"""
Checkout session: a client's cart plus its applied discount.

The session subscribes to its cart so that every mutation recomputes the
applied discount; a discount that stops applying is cleared.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from portal.exceptions import NotApplicableError, ValidationError
from portal.services import discount_service, order_service
from portal.services.cart_service import CartLedger
from portal.services.discount_service import AppliedDiscount

logger = logging.getLogger(__name__)


class CheckoutSession:
    """Cart and applied discount, serialized into the Flask session between requests."""

    def __init__(self, cart: Optional[CartLedger] = None, discount: Optional[AppliedDiscount] = None):
        self.cart = cart if cart is not None else CartLedger()
        self.discount = discount
        self.discount_error: Optional[NotApplicableError] = None
        self.cart.subscribe(self._on_cart_change)

    def _on_cart_change(self, cart: CartLedger) -> None:
        if self.discount is None:
            return
        try:
            self.discount = discount_service.recompute_discount(self.discount, cart)
        except NotApplicableError as e:
            logger.info(f"[DISCOUNT] Code '{self.discount.code}' no longer applies, cleared")
            self.discount = None
            self.discount_error = e

    def apply_code(self, session: Session, code: str) -> AppliedDiscount:
        """
        Validate and attach a code. On failure the previous discount, if
        any, stays in place.
        """
        if self.cart.is_empty():
            raise ValidationError('validation.empty_cart')
        self.discount = discount_service.validate_discount(session, code, self.cart)
        self.discount_error = None
        return self.discount

    def remove_code(self) -> None:
        self.discount = None
        self.discount_error = None

    def compose(self, notes: Optional[str] = None) -> order_service.OrderDraft:
        return order_service.compose_order(self.cart, self.discount, notes)

    def reset(self) -> None:
        self.discount = None
        self.discount_error = None
        self.cart.clear()

    def summary(self) -> Dict[str, Any]:
        """Cart lines and totals as shown to the client."""
        subtotal = order_service.to_money(self.cart.subtotal())
        discount_amount = self.discount.amount if self.discount else Decimal('0.00')
        total_ht = subtotal - discount_amount
        return {
            'lines': [
                dict(line.to_dict(), index=index, line_subtotal=str(order_service.to_money(line.line_subtotal)))
                for index, line in enumerate(self.cart.lines)
            ],
            'item_count': self.cart.item_count(),
            'subtotal': str(subtotal),
            'discount': self.discount.to_dict() if self.discount else None,
            'total_ht': str(total_ht),
            'total_ttc': str(order_service.to_money(total_ht * order_service.TAX_RATE)),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cart': self.cart.to_dict(),
            'discount': self.discount.to_dict() if self.discount else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CheckoutSession':
        data = data or {}
        return cls(
            cart=CartLedger.from_dict(data.get('cart')),
            discount=AppliedDiscount.from_dict(data.get('discount')),
        )
