"""
Cart blueprint - the client's cart, discount code and checkout.

The cart and its applied discount live in the Flask session as a plain
dict, rebuilt into a CheckoutSession on every request.
"""
from functools import partial

from flask import Blueprint, jsonify, request, session, g, current_app
from portal.database import get_session
from portal.middleware import require_login
from portal.exceptions import (
    AllocationError, DiscountError, PartialSubmissionError, TotalSubmissionError, ValidationError
)
from portal.i18n import current_language
from portal.services import cart_service, order_service
from portal.services.cache_service import invalidate_client_dashboard
from portal.services.checkout_service import CheckoutSession
from portal.blueprints.metrics import record_discount_validation, record_order_submission


cart_bp = Blueprint('cart', __name__, url_prefix='/cart')

CHECKOUT_SESSION_KEY = 'checkout'


def _load_checkout() -> CheckoutSession:
    return CheckoutSession.from_dict(session.get(CHECKOUT_SESSION_KEY))


def _save_checkout(checkout: CheckoutSession) -> None:
    session[CHECKOUT_SESSION_KEY] = checkout.to_dict()
    session.modified = True


def _cart_options() -> dict:
    return {
        'max_lines': current_app.config.get('CART_MAX_LINES'),
        'alert_threshold': current_app.config.get('DEFAULT_ALERT_THRESHOLD', 1000),
        'critical_threshold': current_app.config.get('DEFAULT_CRITICAL_THRESHOLD', 500),
    }


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError(detail='body')
    return data


def _cart_response(checkout: CheckoutSession, status_code: int = 200, **extra):
    """Cart summary, with a notice when a mutation dropped the discount."""
    body = checkout.summary()
    if checkout.discount_error is not None:
        body['notice'] = checkout.discount_error.to_dict(current_language())
    body.update(extra)
    return jsonify(body), status_code


@cart_bp.route('', methods=['GET'])
@require_login
def view():
    """Current cart lines and totals."""
    return _cart_response(_load_checkout())


@cart_bp.route('/items', methods=['POST'])
@require_login
def add_item():
    """
    Add a product (optionally a specific variant) to the cart.

    Body: {"product_id": int, "quantity": int, "variant_id": int|null}
    """
    data = _json_body()
    if 'product_id' not in data or 'quantity' not in data:
        raise ValidationError(detail='product_id, quantity')

    checkout = _load_checkout()
    line = cart_service.add_product_to_cart(
        get_session(), checkout.cart, g.user_id,
        data['product_id'], data['quantity'],
        variant_id=data.get('variant_id'),
        **_cart_options()
    )
    _save_checkout(checkout)
    return _cart_response(checkout, 201, added=line.to_dict())


@cart_bp.route('/items/<int:index>', methods=['PATCH'])
@require_login
def update_item(index):
    """Overwrite a line quantity; below the line minimum nothing changes."""
    data = _json_body()
    checkout = _load_checkout()
    updated = checkout.cart.set_quantity(index, data.get('quantity'))
    if updated:
        _save_checkout(checkout)
    return _cart_response(checkout, updated=updated)


@cart_bp.route('/items/<int:index>', methods=['DELETE'])
@require_login
def remove_item(index):
    checkout = _load_checkout()
    checkout.cart.remove(index)
    _save_checkout(checkout)
    return _cart_response(checkout)


@cart_bp.route('/discount', methods=['POST'])
@require_login
def apply_discount():
    """Validate a promotional code against the cart. Body: {"code": str}"""
    data = _json_body()
    checkout = _load_checkout()
    try:
        checkout.apply_code(get_session(), data.get('code', ''))
    except DiscountError as e:
        record_discount_validation(e.code)
        raise
    record_discount_validation('applied')
    _save_checkout(checkout)
    return _cart_response(checkout)


@cart_bp.route('/discount', methods=['DELETE'])
@require_login
def remove_discount():
    checkout = _load_checkout()
    checkout.remove_code()
    _save_checkout(checkout)
    return _cart_response(checkout)


@cart_bp.route('/checkout', methods=['POST'])
@require_login
def checkout():
    """
    Compose and submit the order.

    The cart is cleared only once the order is fully persisted; on any
    failure it is left as it was so the client can retry.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError(detail='body')
    checkout_session = _load_checkout()
    draft = checkout_session.compose(data.get('notes'))

    config = current_app.config
    allocator = partial(
        order_service.allocate_order_number,
        prefix=config.get('ORDER_NUMBER_PREFIX', 'CMD'),
        width=config.get('ORDER_NUMBER_WIDTH', 6),
    )
    try:
        order = order_service.submit_order(
            get_session(), draft, g.user_id,
            allocator=allocator,
            strategy=config.get('ORDER_SUBMIT_STRATEGY', order_service.STRATEGY_TRANSACTION),
        )
    except AllocationError:
        record_order_submission('allocation_error')
        raise
    except PartialSubmissionError:
        record_order_submission('partial_failure')
        raise
    except TotalSubmissionError:
        record_order_submission('total_failure')
        raise

    record_order_submission('success')
    checkout_session.reset()
    _save_checkout(checkout_session)
    invalidate_client_dashboard(g.user_id)
    return jsonify({
        'status': 'success',
        'order_id': order.id,
        'order_number': order.order_number,
        'order': order_service.order_to_dict(order, include_items=True),
    }), 201


@cart_bp.route('/reorder/<int:client_product_id>', methods=['POST'])
@require_login
def reorder(client_product_id):
    """Put a previously ordered product back in the cart at its minimum quantity."""
    checkout = _load_checkout()
    line = cart_service.reorder_client_product(
        get_session(), checkout.cart, g.user_id, client_product_id,
        **_cart_options()
    )
    _save_checkout(checkout)
    return _cart_response(checkout, 201, added=line.to_dict())
