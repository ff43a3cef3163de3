"""
Discount engine - promotional codes applied to a cart.

validate_discount() looks the code up once. After that the applied
discount is only recomputed arithmetically against the cart, so a code
deactivated mid-session stays honored for that cart.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, FrozenSet, Iterable, Optional

from sqlalchemy.orm import Session

from portal.models import Offer
from portal.exceptions import InvalidCodeError, NoDiscountOfferedError, NotApplicableError, ValidationError
from portal.services.cart_service import CartLedger

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
HUNDRED = Decimal('100')


@dataclass
class AppliedDiscount:
    """Discount attached to one cart. Empty product_ids means global."""

    code: str
    percent: Decimal
    product_ids: FrozenSet[int] = field(default_factory=frozenset)
    amount: Decimal = Decimal('0.00')

    @property
    def is_global(self) -> bool:
        return not self.product_ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'percent': str(self.percent),
            'product_ids': sorted(self.product_ids),
            'amount': str(self.amount),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['AppliedDiscount']:
        if not data:
            return None
        return cls(
            code=data['code'],
            percent=Decimal(str(data['percent'])),
            product_ids=frozenset(int(pid) for pid in data.get('product_ids', [])),
            amount=Decimal(str(data.get('amount', '0'))),
        )


def find_active_offer(session: Session, code: str) -> Optional[Offer]:
    """Active offer with exactly this code."""
    if not code:
        return None
    return session.query(Offer).filter(
        Offer.discount_code == code,
        Offer.is_active == True  # noqa: E712
    ).first()


def compute_discount(code: str, percent, product_ids: Iterable[int], cart: CartLedger) -> AppliedDiscount:
    """
    Compute the discount a code is worth on the current cart.

    Global: percent of the cart subtotal. Scoped: percent of each matching
    line's subtotal; raises NotApplicableError when no line matches.
    """
    percent = percent if isinstance(percent, Decimal) else Decimal(str(percent))
    product_ids = frozenset(int(pid) for pid in product_ids)
    rate = percent / HUNDRED

    if not product_ids:
        amount = cart.subtotal() * rate
    else:
        matching = [line for line in cart.lines if line.product_id in product_ids]
        if not matching:
            raise NotApplicableError(code)
        amount = sum((line.line_subtotal * rate for line in matching), Decimal('0'))

    return AppliedDiscount(
        code=code,
        percent=percent,
        product_ids=product_ids,
        amount=amount.quantize(CENT, rounding=ROUND_HALF_UP),
    )


def validate_discount(session: Session, code: str, cart: CartLedger) -> AppliedDiscount:
    """
    Validate a code against the offers table and price it on the cart.

    Raises InvalidCodeError, NoDiscountOfferedError or NotApplicableError;
    the cart is never modified.
    """
    if code is None:
        code = ''
    if not isinstance(code, str):
        raise ValidationError(detail='code')
    code = code.strip()
    offer = find_active_offer(session, code)
    if offer is None:
        logger.info(f"[DISCOUNT] Rejected unknown or inactive code '{code}'")
        raise InvalidCodeError(code)

    percent = Decimal(str(offer.discount_percent or 0))
    if percent <= 0:
        raise NoDiscountOfferedError(code)
    if percent > HUNDRED:
        # A discount never exceeds the amount it applies to
        logger.warning(f"[DISCOUNT] Offer '{code}' has percentage {percent} above 100, refused")
        raise InvalidCodeError(code)

    applied = compute_discount(offer.discount_code, percent, offer.associated_product_ids, cart)
    logger.info(f"[DISCOUNT] Applied '{code}' ({percent}%) = {applied.amount}")
    return applied


def recompute_discount(applied: AppliedDiscount, cart: CartLedger) -> AppliedDiscount:
    """Re-run the arithmetic of an accepted code against the current cart."""
    return compute_discount(applied.code, applied.percent, applied.product_ids, cart)
