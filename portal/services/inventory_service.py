"""
Inventory held by the vendor on behalf of each client product.

Operators edit quantity and thresholds; clients declare the stock they
hold themselves on the client product. Edits are last-write-wins.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from portal.models import ClientProduct, Inventory
from portal.exceptions import NotFoundError, ValidationError
from portal.services.stock_service import classify_stock, thresholds_inverted

logger = logging.getLogger(__name__)


def _non_negative_int(value, field_name: str) -> int:
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError('validation.invalid_input', detail=field_name)
    if value < 0:
        raise ValidationError('validation.negative_stock')
    return value


def inventory_to_dict(inventory: Inventory) -> Dict[str, Any]:
    client_product = inventory.client_product
    return {
        'id': inventory.id,
        'client_product_id': inventory.client_product_id,
        'client_id': client_product.client_id if client_product else None,
        'name': client_product.display_name if client_product else None,
        'quantity': inventory.quantity,
        'alert_threshold': inventory.alert_threshold,
        'critical_threshold': inventory.critical_threshold,
        'stock_level': classify_stock(
            inventory.quantity, inventory.alert_threshold, inventory.critical_threshold
        ).value,
        'thresholds_inverted': thresholds_inverted(inventory.alert_threshold, inventory.critical_threshold),
        'client_stock': client_product.client_stock if client_product else None,
        'notes': inventory.notes,
        'last_updated': inventory.last_updated.isoformat() if inventory.last_updated else None,
    }


def list_inventory(session: Session, client_id: Optional[int] = None) -> List[Inventory]:
    """Inventory rows for one client, or for every client when client_id is None."""
    query = session.query(Inventory).join(ClientProduct).options(
        joinedload(Inventory.client_product)
    ).filter(ClientProduct.is_active == True)  # noqa: E712
    if client_id is not None:
        query = query.filter(ClientProduct.client_id == client_id)
    return query.order_by(ClientProduct.display_name, Inventory.id).all()


def get_inventory(session: Session, inventory_id: int) -> Inventory:
    inventory = session.query(Inventory).filter(Inventory.id == inventory_id).first()
    if not inventory:
        raise NotFoundError()
    return inventory


def update_inventory(
    session: Session,
    inventory_id: int,
    quantity=None,
    alert_threshold=None,
    critical_threshold=None,
    notes: Optional[str] = None,
) -> Inventory:
    """
    Operator edit. Only given fields change; an inverted threshold pair
    is accepted and logged.
    """
    updates = {}
    if quantity is not None:
        updates['quantity'] = _non_negative_int(quantity, 'quantity')
    if alert_threshold is not None:
        updates['alert_threshold'] = _non_negative_int(alert_threshold, 'alert_threshold')
    if critical_threshold is not None:
        updates['critical_threshold'] = _non_negative_int(critical_threshold, 'critical_threshold')

    try:
        inventory = get_inventory(session, inventory_id)
        for key, value in updates.items():
            setattr(inventory, key, value)
        if notes is not None:
            inventory.notes = notes
        inventory.last_updated = datetime.now(timezone.utc)
        session.commit()
    except Exception:
        session.rollback()
        raise

    if thresholds_inverted(inventory.alert_threshold, inventory.critical_threshold):
        logger.warning(
            f"[STOCK] Inventory {inventory.id}: critical threshold {inventory.critical_threshold} "
            f"above alert threshold {inventory.alert_threshold}"
        )
    logger.info(f"[STOCK] Inventory {inventory.id} updated: {updates}")
    return inventory


def update_client_stock(session: Session, client_product_id: int, client_stock, client_id: Optional[int] = None) -> ClientProduct:
    """Record the stock a client says it holds; a client may only touch its own products."""
    client_stock = _non_negative_int(client_stock, 'client_stock')

    try:
        query = session.query(ClientProduct).filter(ClientProduct.id == client_product_id)
        if client_id is not None:
            query = query.filter(ClientProduct.client_id == client_id)
        client_product = query.first()
        if not client_product:
            raise NotFoundError()

        client_product.client_stock = client_stock
        client_product.client_stock_updated_at = datetime.now(timezone.utc)
        session.commit()
    except Exception:
        session.rollback()
        raise

    return client_product
