"""
Operator-driven order lifecycle.

confirmed -> production -> delivered_eonite -> available, forward only;
cancelled is reachable from any state except available. Payment status is
an independent label with no transition rules.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from portal.models import Order, OrderStatus, PaymentStatus
from portal.exceptions import InvalidTransitionError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    OrderStatus.CONFIRMED: {OrderStatus.PRODUCTION, OrderStatus.CANCELLED},
    OrderStatus.PRODUCTION: {OrderStatus.DELIVERED_EONITE, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED_EONITE: {OrderStatus.AVAILABLE, OrderStatus.CANCELLED},
    OrderStatus.AVAILABLE: set(),
    OrderStatus.CANCELLED: set(),
}


def _parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError('validation.unknown_status', status=value)


def can_transition(current, target) -> bool:
    return _parse_status(target) in ALLOWED_TRANSITIONS[_parse_status(current)]


def _get_order(session: Session, order_id: int) -> Order:
    order = session.query(Order).filter(Order.id == order_id).with_for_update().first()
    if not order:
        raise NotFoundError()
    return order


def update_order_status(session: Session, order_id: int, new_status: str) -> Order:
    """Move an order along its lifecycle; delivery stamps actual_completion."""
    target = _parse_status(new_status)
    try:
        order = _get_order(session, order_id)
        current = _parse_status(order.status)
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransitionError(current.value, target.value)

        order.status = target.value
        if target == OrderStatus.AVAILABLE:
            order.actual_completion = datetime.now(timezone.utc)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"[ORDER] Order {order.order_number} status {current.value} -> {target.value}")
    return order


def update_production_progress(session: Session, order_id: int, progress) -> Order:
    """Set production progress (0-100); only while the order is in production."""
    try:
        progress = int(progress)
    except (TypeError, ValueError):
        raise ValidationError('validation.progress_range')
    if not 0 <= progress <= 100:
        raise ValidationError('validation.progress_range')

    try:
        order = _get_order(session, order_id)
        if order.status != OrderStatus.PRODUCTION.value:
            raise ValidationError('validation.progress_status')
        order.production_progress = progress
        session.commit()
    except Exception:
        session.rollback()
        raise
    return order


def update_payment_status(session: Session, order_id: int, payment_status: str) -> Order:
    """Set the payment label to any value."""
    try:
        status = PaymentStatus(payment_status)
    except ValueError:
        raise ValidationError('validation.unknown_status', status=payment_status)

    try:
        order = _get_order(session, order_id)
        order.payment_status = status.value
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"[ORDER] Order {order.order_number} payment status -> {status.value}")
    return order
