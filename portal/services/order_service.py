"""
Order composition and submission.

compose_order() is pure: it turns a finalized cart and an optional applied
discount into an OrderDraft with consistent totals. submit_order() asks
the order-number allocator for a number, then persists the header and its
line items as one unit.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from portal.models import ClientProduct, Order, OrderItem, OrderSequence, OrderStatus, PaymentStatus
from portal.exceptions import (
    AllocationError, NotFoundError, PartialSubmissionError, TotalSubmissionError, ValidationError
)
from portal.services.cart_service import CartLedger
from portal.services.discount_service import AppliedDiscount

logger = logging.getLogger(__name__)

# Fixed VAT rate, not configurable per order
TAX_RATE = Decimal('1.20')
TVA_PERCENT = Decimal('20')

CENT = Decimal('0.01')
UNIT_PRICE_PRECISION = Decimal('0.0001')

SEQUENCE_NAME = 'orders'
STRATEGY_TRANSACTION = 'transaction'
STRATEGY_COMPENSATE = 'compensate'


def to_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class OrderLineDraft:
    """Line item snapshot taken at order time."""

    client_product_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class OrderDraft:
    """Everything needed to persist an order, before it has a number."""

    quantity: int
    subtotal: Decimal
    discount_code: Optional[str]
    discount_amount: Decimal
    total_ht: Decimal
    total_ttc: Decimal
    notes: str
    lines: List[OrderLineDraft] = field(default_factory=list)


def compose_order(cart: CartLedger, applied_discount: Optional[AppliedDiscount] = None,
                  notes: Optional[str] = None) -> OrderDraft:
    """Compute totals and line snapshots. Calling it twice on the same inputs gives the same draft."""
    if cart.is_empty():
        raise ValidationError('validation.empty_cart')

    subtotal = to_money(cart.subtotal())
    discount_amount = to_money(applied_discount.amount) if applied_discount else Decimal('0.00')
    total_ht = subtotal - discount_amount
    total_ttc = to_money(total_ht * TAX_RATE)

    if notes is None:
        notes = ''
    if not isinstance(notes, str):
        raise ValidationError(detail='notes')
    notes = notes.strip()
    if len(cart.lines) > 1:
        notes += f"\n[{len(cart.lines)} products in order]"

    lines = [
        OrderLineDraft(
            client_product_id=line.client_product_id,
            quantity=line.quantity,
            unit_price=line.unit_price.quantize(UNIT_PRICE_PRECISION, rounding=ROUND_HALF_UP),
            line_total=to_money(line.line_subtotal),
        )
        for line in cart.lines
    ]

    return OrderDraft(
        quantity=cart.item_count(),
        subtotal=subtotal,
        discount_code=applied_discount.code if applied_discount else None,
        discount_amount=discount_amount,
        total_ht=total_ht,
        total_ttc=total_ttc,
        notes=notes,
        lines=lines,
    )


def format_order_number(value: int, prefix: str = 'CMD', width: int = 6) -> str:
    return f"{prefix}-{str(value).zfill(width)}"


def allocate_order_number(session: Session, prefix: str = 'CMD', width: int = 6) -> str:
    """
    Next order number from the sequence row, locked FOR UPDATE.

    The lock is held until the caller's transaction ends, so concurrent
    submissions are serialized on this row and never share a number.
    """
    try:
        sequence = session.query(OrderSequence).filter(
            OrderSequence.name == SEQUENCE_NAME
        ).with_for_update().first()

        if sequence is None:
            sequence = _create_sequence(session)

        sequence.last_value = (sequence.last_value or 0) + 1
        session.flush()
        return format_order_number(sequence.last_value, prefix, width)
    except SQLAlchemyError as e:
        logger.error(f"[ORDER] Order number allocation failed: {e}")
        raise AllocationError() from e


def _create_sequence(session: Session) -> OrderSequence:
    """First allocation ever: create the counter row (or use the one a racing writer created)."""
    try:
        session.add(OrderSequence(name=SEQUENCE_NAME, last_value=0))
        session.commit()
    except IntegrityError:
        session.rollback()
    return session.query(OrderSequence).filter(
        OrderSequence.name == SEQUENCE_NAME
    ).with_for_update().one()


def submit_order(
    session: Session,
    draft: OrderDraft,
    client_id: int,
    allocator: Optional[Callable[[Session], str]] = None,
    strategy: str = STRATEGY_TRANSACTION,
) -> Order:
    """
    Persist an order draft.

    Raises AllocationError before anything is written when no number can
    be obtained, TotalSubmissionError when nothing was persisted, and
    PartialSubmissionError when the header exists without its items.
    Nothing is retried here.
    """
    if not draft.lines:
        raise ValidationError('validation.empty_cart')

    allocator = allocator or allocate_order_number
    try:
        order_number = allocator(session)
    except AllocationError:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        logger.error(f"[ORDER] Order number allocator unavailable: {e}")
        raise AllocationError() from e

    if strategy == STRATEGY_COMPENSATE:
        return _submit_with_compensation(session, draft, client_id, order_number)
    return _submit_in_transaction(session, draft, client_id, order_number)


def _submit_in_transaction(session: Session, draft: OrderDraft, client_id: int, order_number: str) -> Order:
    """Header and items commit together or not at all."""
    try:
        order = _build_order(draft, client_id, order_number)
        session.add(order)
        session.flush()
        _persist_order_items(session, order, draft)
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"[ORDER] Submission of {order_number} failed, nothing persisted: {e}")
        raise TotalSubmissionError() from e

    logger.info(f"[ORDER] Order {order_number} (id={order.id}) submitted for client {client_id}: "
                f"{len(draft.lines)} lines, total_ttc={draft.total_ttc}")
    return order


def _submit_with_compensation(session: Session, draft: OrderDraft, client_id: int, order_number: str) -> Order:
    """
    Header committed first, then items. When items fail the header is
    deleted; if that delete fails too, the partial order is reported.
    """
    try:
        order = _build_order(draft, client_id, order_number)
        session.add(order)
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"[ORDER] Header for {order_number} not persisted: {e}")
        raise TotalSubmissionError() from e

    order_id = order.id
    try:
        _persist_order_items(session, order, draft)
        session.commit()
    except Exception as items_error:
        session.rollback()
        logger.warning(f"[ORDER] Items for {order_number} failed ({items_error}), deleting header {order_id}")
        try:
            _compensate_header(session, order_id)
        except Exception as compensation_error:
            session.rollback()
            logger.error(
                f"[ORDER] PARTIAL ORDER {order_number} (id={order_id}): header persisted without items. "
                f"Items error: {items_error}. Compensation error: {compensation_error}"
            )
            raise PartialSubmissionError(order_id, order_number) from items_error
        raise TotalSubmissionError() from items_error

    logger.info(f"[ORDER] Order {order_number} (id={order_id}) submitted for client {client_id}")
    return order


def _build_order(draft: OrderDraft, client_id: int, order_number: str) -> Order:
    return Order(
        order_number=order_number,
        client_id=client_id,
        quantity=draft.quantity,
        subtotal=draft.subtotal,
        discount_code=draft.discount_code,
        discount_amount=draft.discount_amount,
        total_ht=draft.total_ht,
        total_ttc=draft.total_ttc,
        tva_rate=TVA_PERCENT,
        status=OrderStatus.CONFIRMED.value,
        production_progress=0,
        payment_status=PaymentStatus.PENDING.value,
        notes=draft.notes or None,
    )


def _persist_order_items(session: Session, order: Order, draft: OrderDraft) -> None:
    """Insert the line snapshots and update per-product order bookkeeping."""
    ordered_at = datetime.now(timezone.utc)
    client_products = {
        cp.id: cp for cp in session.query(ClientProduct).filter(
            ClientProduct.id.in_([line.client_product_id for line in draft.lines])
        ).all()
    }

    for line in draft.lines:
        session.add(OrderItem(
            order_id=order.id,
            client_product_id=line.client_product_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            line_total=line.line_total,
        ))
        client_product = client_products.get(line.client_product_id)
        if client_product is not None:
            client_product.total_ordered = (client_product.total_ordered or 0) + line.quantity
            client_product.last_order_date = ordered_at
    session.flush()


def _compensate_header(session: Session, order_id: int) -> None:
    session.query(OrderItem).filter(OrderItem.order_id == order_id).delete()
    session.query(Order).filter(Order.id == order_id).delete()
    session.commit()


def get_order(session: Session, order_id: int, client_id: Optional[int] = None) -> Order:
    """Fetch an order; when client_id is given, only that client's order."""
    query = session.query(Order).filter(Order.id == order_id)
    if client_id is not None:
        query = query.filter(Order.client_id == client_id)
    order = query.first()
    if not order:
        raise NotFoundError()
    return order


def list_orders(session: Session, client_id: Optional[int] = None, status: Optional[str] = None,
                limit: int = 100) -> List[Order]:
    query = session.query(Order)
    if client_id is not None:
        query = query.filter(Order.client_id == client_id)
    if status:
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()


def order_to_dict(order: Order, include_items: bool = False) -> dict:
    data = {
        'id': order.id,
        'order_number': order.order_number,
        'client_id': order.client_id,
        'quantity': order.quantity,
        'subtotal': str(order.subtotal),
        'discount_code': order.discount_code,
        'discount_amount': str(order.discount_amount),
        'total_ht': str(order.total_ht),
        'total_ttc': str(order.total_ttc),
        'status': order.status,
        'production_progress': order.production_progress,
        'payment_status': order.payment_status,
        'notes': order.notes,
        'created_at': order.created_at.isoformat() if order.created_at else None,
    }
    if include_items:
        data['items'] = [
            {
                'client_product_id': item.client_product_id,
                'name': item.client_product.display_name if item.client_product else None,
                'quantity': item.quantity,
                'unit_price': str(item.unit_price),
                'line_total': str(item.line_total),
            }
            for item in order.items
        ]
    return data
