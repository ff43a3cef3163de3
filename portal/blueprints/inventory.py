"""Inventory blueprint - stock per client product, with level classification."""
from flask import Blueprint, jsonify, request, g
from portal.database import get_session
from portal.middleware import require_login, require_admin, is_admin
from portal.exceptions import ValidationError
from portal.services import inventory_service
from portal.services.cache_service import invalidate_client_dashboard


inventory_bp = Blueprint('inventory', __name__, url_prefix='/inventory')


@inventory_bp.route('', methods=['GET'])
@require_login
def list_inventory():
    """Own inventory for clients; every client's (or ?client_id=) for operators."""
    if is_admin():
        client_id = request.args.get('client_id', type=int)
    else:
        client_id = g.user_id
    rows = inventory_service.list_inventory(get_session(), client_id=client_id)
    return jsonify({'inventory': [inventory_service.inventory_to_dict(row) for row in rows]})


@inventory_bp.route('/<int:inventory_id>', methods=['PUT'])
@require_login
@require_admin
def update(inventory_id):
    """Body: any of quantity, alert_threshold, critical_threshold, notes."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError(detail='body')
    inventory = inventory_service.update_inventory(
        get_session(), inventory_id,
        quantity=data.get('quantity'),
        alert_threshold=data.get('alert_threshold'),
        critical_threshold=data.get('critical_threshold'),
        notes=data.get('notes'),
    )
    invalidate_client_dashboard(inventory.client_product.client_id)
    return jsonify({'status': 'success', 'inventory': inventory_service.inventory_to_dict(inventory)})


@inventory_bp.route('/client-stock/<int:client_product_id>', methods=['PUT'])
@require_login
def update_client_stock(client_product_id):
    """Client-declared stock. Body: {"client_stock": int}"""
    data = request.get_json(silent=True) or {}
    if 'client_stock' not in data:
        raise ValidationError(detail='client_stock')
    client_product = inventory_service.update_client_stock(
        get_session(), client_product_id, data['client_stock'],
        client_id=None if is_admin() else g.user_id,
    )
    return jsonify({
        'status': 'success',
        'client_product_id': client_product.id,
        'client_stock': client_product.client_stock,
        'client_stock_updated_at': client_product.client_stock_updated_at.isoformat(),
    })
