"""
Dashboard service.
Aggregated stock and order figures for the client and operator views.
"""

from typing import Any, Dict, Optional

from sqlalchemy import func, case
from portal.models import ClientProduct, Inventory, Order, OrderStatus
from portal.services.inventory_service import inventory_to_dict, list_inventory
from portal.services.order_service import order_to_dict


def get_client_dashboard(session, client_id: int, recent_limit: int = 5) -> Dict[str, Any]:
    """
    Stock and order summary for one client.

    Returns:
        dict with keys:
            - product_count: int
            - total_stock: int
            - low_stock_count: int (quantity <= alert threshold)
            - critical_stock_count: int (quantity <= critical threshold)
            - open_order_count: int
            - recent_orders: list of order dicts
            - inventory: inventory rows with their stock level
    """
    stock = session.query(
        func.count(Inventory.id).label('product_count'),
        func.coalesce(func.sum(Inventory.quantity), 0).label('total_stock'),
        func.coalesce(func.sum(
            case((Inventory.quantity <= Inventory.alert_threshold, 1), else_=0)
        ), 0).label('low_stock_count'),
        func.coalesce(func.sum(
            case((Inventory.quantity <= Inventory.critical_threshold, 1), else_=0)
        ), 0).label('critical_stock_count'),
    ).select_from(Inventory).join(
        ClientProduct, ClientProduct.id == Inventory.client_product_id
    ).filter(
        ClientProduct.client_id == client_id,
        ClientProduct.is_active == True  # noqa: E712
    ).first()

    open_order_count = session.query(func.count(Order.id)).filter(
        Order.client_id == client_id,
        Order.status.notin_([OrderStatus.AVAILABLE.value, OrderStatus.CANCELLED.value])
    ).scalar() or 0

    recent_orders = session.query(Order).filter(
        Order.client_id == client_id
    ).order_by(Order.created_at.desc(), Order.id.desc()).limit(recent_limit).all()

    return {
        'product_count': int(stock.product_count or 0),
        'total_stock': int(stock.total_stock or 0),
        'low_stock_count': int(stock.low_stock_count or 0),
        'critical_stock_count': int(stock.critical_stock_count or 0),
        'open_order_count': int(open_order_count),
        'recent_orders': [order_to_dict(order) for order in recent_orders],
        'inventory': [inventory_to_dict(row) for row in list_inventory(session, client_id=client_id)],
    }


def get_admin_dashboard(session, low_stock_limit: Optional[int] = 20) -> Dict[str, Any]:
    """Order counts by status and the lowest inventory rows across all clients."""
    counts = dict(
        session.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
    )
    orders_by_status = {status.value: int(counts.get(status.value, 0)) for status in OrderStatus}

    low_stock_query = session.query(Inventory).join(
        ClientProduct, ClientProduct.id == Inventory.client_product_id
    ).filter(
        ClientProduct.is_active == True,  # noqa: E712
        Inventory.quantity <= Inventory.alert_threshold
    ).order_by(Inventory.quantity.asc(), Inventory.id)
    if low_stock_limit:
        low_stock_query = low_stock_query.limit(low_stock_limit)

    return {
        'orders_by_status': orders_by_status,
        'order_count': sum(orders_by_status.values()),
        'low_stock': [inventory_to_dict(row) for row in low_stock_query.all()],
    }
