"""
Orders blueprint.
Clients see their own orders; operators see all orders and drive their lifecycle.
"""
from flask import Blueprint, jsonify, request, g, current_app, send_file
from portal.database import get_session
from portal.middleware import require_login, require_admin, is_admin
from portal.exceptions import ValidationError
from portal.i18n import current_language
from portal.services import order_service, order_status_service
from portal.services.cache_service import invalidate_client_dashboard
from portal.services.order_document_service import render_order_pdf


orders_bp = Blueprint('orders', __name__, url_prefix='/orders')


def _scope_client_id():
    """None for operators (all orders), the caller's id otherwise."""
    return None if is_admin() else g.user_id


def _json_field(name):
    data = request.get_json(silent=True) or {}
    if name not in data:
        raise ValidationError(detail=name)
    return data[name]


@orders_bp.route('', methods=['GET'])
@require_login
def list_orders():
    """Order history, newest first. Query: ?status=&limit="""
    limit = request.args.get('limit', 100, type=int)
    orders = order_service.list_orders(
        get_session(),
        client_id=_scope_client_id(),
        status=request.args.get('status') or None,
        limit=max(1, min(limit, 500)),
    )
    return jsonify({'orders': [order_service.order_to_dict(o) for o in orders]})


@orders_bp.route('/<int:order_id>', methods=['GET'])
@require_login
def detail(order_id):
    order = order_service.get_order(get_session(), order_id, client_id=_scope_client_id())
    return jsonify({'order': order_service.order_to_dict(order, include_items=True)})


@orders_bp.route('/<int:order_id>/document', methods=['GET'])
@require_login
def document(order_id):
    """Order confirmation PDF."""
    order = order_service.get_order(get_session(), order_id, client_id=_scope_client_id())
    config = current_app.config
    business_info = {
        'name': config.get('BUSINESS_NAME'),
        'address': config.get('BUSINESS_ADDRESS'),
        'phone': config.get('BUSINESS_PHONE'),
        'email': config.get('BUSINESS_EMAIL'),
    }
    pdf = render_order_pdf(order, business_info, current_language())
    return send_file(
        pdf,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"{order.order_number}.pdf",
    )


@orders_bp.route('/<int:order_id>/status', methods=['POST'])
@require_login
@require_admin
def update_status(order_id):
    """Body: {"status": "production" | "delivered_eonite" | "available" | "cancelled"}"""
    order = order_status_service.update_order_status(get_session(), order_id, _json_field('status'))
    invalidate_client_dashboard(order.client_id)
    return jsonify({'status': 'success', 'order': order_service.order_to_dict(order)})


@orders_bp.route('/<int:order_id>/progress', methods=['POST'])
@require_login
@require_admin
def update_progress(order_id):
    """Body: {"progress": 0-100}"""
    order = order_status_service.update_production_progress(get_session(), order_id, _json_field('progress'))
    return jsonify({'status': 'success', 'order': order_service.order_to_dict(order)})


@orders_bp.route('/<int:order_id>/payment-status', methods=['POST'])
@require_login
@require_admin
def update_payment_status(order_id):
    """Body: {"payment_status": "pending" | "paid" | "refunded"}"""
    order = order_status_service.update_payment_status(
        get_session(), order_id, _json_field('payment_status')
    )
    return jsonify({'status': 'success', 'order': order_service.order_to_dict(order)})
