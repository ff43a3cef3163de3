"""
HTTP tests for the cart, checkout, orders, inventory and read-only endpoints.
"""

import pytest
from portal.models import Inventory, Order


def _add_bag(http, bag_id, quantity=6000):
    return http.post('/cart/items', json={'product_id': bag_id, 'quantity': quantity})


class TestAuthentication:
    """Tests for login and role checks."""

    def test_anonymous_request_gets_401(self, client):
        response = client.get('/cart')
        assert response.status_code == 401
        assert response.get_json()['code'] == 'login_required'

    def test_client_cannot_use_operator_routes(self, authenticated_client, session, client_profile, bag):
        response = authenticated_client.put('/inventory/1', json={'quantity': 10})
        assert response.status_code == 403

    def test_unknown_route_is_json_404(self, authenticated_client):
        response = authenticated_client.get('/nowhere')
        assert response.status_code == 404
        assert response.get_json()['code'] == 'not_found'


class TestCartRoutes:
    """Tests for cart mutations over HTTP."""

    def test_add_and_view(self, authenticated_client, bag):
        response = _add_bag(authenticated_client, bag.id)
        assert response.status_code == 201
        body = response.get_json()
        assert body['subtotal'] == '600.00'
        assert body['item_count'] == 6000
        assert body['added']['name'] == 'Sac kraft'

        body = authenticated_client.get('/cart').get_json()
        assert len(body['lines']) == 1
        assert body['total_ttc'] == '720.00'

    def test_below_minimum(self, authenticated_client, bag):
        response = _add_bag(authenticated_client, bag.id, quantity=10)
        assert response.status_code == 400
        body = response.get_json()
        assert body['code'] == 'below_minimum_quantity'
        assert body['minimum'] == 100
        assert authenticated_client.get('/cart').get_json()['lines'] == []

    def test_missing_fields(self, authenticated_client):
        response = authenticated_client.post('/cart/items', json={'quantity': 5})
        assert response.status_code == 400
        assert response.get_json()['code'] == 'validation_error'

    def test_update_quantity_below_minimum_is_ignored(self, authenticated_client, bag):
        _add_bag(authenticated_client, bag.id)
        response = authenticated_client.patch('/cart/items/0', json={'quantity': 5})
        assert response.status_code == 200
        body = response.get_json()
        assert body['updated'] is False
        assert body['lines'][0]['quantity'] == 6000

        body = authenticated_client.patch('/cart/items/0', json={'quantity': 7000}).get_json()
        assert body['updated'] is True
        assert body['lines'][0]['quantity'] == 7000

    def test_remove_line(self, authenticated_client, bag):
        _add_bag(authenticated_client, bag.id)
        assert authenticated_client.delete('/cart/items/0').get_json()['lines'] == []
        assert authenticated_client.delete('/cart/items/0').status_code == 400

    def test_line_limit(self, app, authenticated_client, bag, window_bag, monkeypatch):
        monkeypatch.setitem(app.config, 'CART_MAX_LINES', 1)
        _add_bag(authenticated_client, bag.id)

        response = authenticated_client.post('/cart/items', json={'product_id': window_bag.id, 'quantity': 250})
        assert response.status_code == 400
        assert response.get_json()['code'] == 'validation_error'
        assert len(authenticated_client.get('/cart').get_json()['lines']) == 1

        response = _add_bag(authenticated_client, bag.id, quantity=100)
        assert response.status_code == 201
        assert response.get_json()['lines'][0]['quantity'] == 6100

    def test_apply_global_code(self, authenticated_client, bag, global_offer):
        _add_bag(authenticated_client, bag.id)
        response = authenticated_client.post('/cart/discount', json={'code': 'WELCOME10'})
        assert response.status_code == 200
        body = response.get_json()
        assert body['discount']['amount'] == '60.00'
        assert body['total_ht'] == '540.00'
        assert body['total_ttc'] == '648.00'

    def test_invalid_code_keeps_previous_discount(self, authenticated_client, bag, global_offer):
        _add_bag(authenticated_client, bag.id)
        authenticated_client.post('/cart/discount', json={'code': 'WELCOME10'})

        response = authenticated_client.post('/cart/discount', json={'code': 'NOPE'})
        assert response.status_code == 422
        assert response.get_json()['code'] == 'invalid_code'
        assert authenticated_client.get('/cart').get_json()['discount']['code'] == 'WELCOME10'

    def test_scoped_code_cleared_when_line_removed(self, authenticated_client, bag, window_bag, scoped_offer):
        _add_bag(authenticated_client, bag.id, quantity=1000)
        authenticated_client.post('/cart/items', json={'product_id': window_bag.id, 'quantity': 250})
        body = authenticated_client.post('/cart/discount', json={'code': 'KRAFT20'}).get_json()
        assert body['discount']['amount'] == '20.00'

        body = authenticated_client.delete('/cart/items/0').get_json()
        assert body['discount'] is None
        assert body['notice']['code'] == 'not_applicable'

    def test_scoped_code_not_applicable(self, authenticated_client, window_bag, scoped_offer):
        authenticated_client.post('/cart/items', json={'product_id': window_bag.id, 'quantity': 250})
        response = authenticated_client.post('/cart/discount', json={'code': 'KRAFT20'})
        assert response.status_code == 422
        assert response.get_json()['code'] == 'not_applicable'

    def test_messages_follow_accept_language(self, authenticated_client, bag, global_offer):
        _add_bag(authenticated_client, bag.id)
        response = authenticated_client.post('/cart/discount', json={'code': 'NOPE'},
                                             headers={'Accept-Language': 'fr-FR,fr;q=0.9'})
        assert response.get_json()['message'] == 'Code invalide ou expiré'


class TestCheckout:
    """Tests for checkout and order routes."""

    def test_checkout_creates_order_and_clears_cart(self, authenticated_client, session, bag, global_offer):
        _add_bag(authenticated_client, bag.id)
        authenticated_client.post('/cart/discount', json={'code': 'WELCOME10'})

        response = authenticated_client.post('/cart/checkout', json={'notes': 'Livraison lundi'})
        assert response.status_code == 201
        order = response.get_json()['order']
        assert order['order_number'] == 'CMD-000001'
        assert order['discount_code'] == 'WELCOME10'
        assert order['total_ht'] == '540.00'
        assert order['total_ttc'] == '648.00'
        assert order['items'][0]['quantity'] == 6000

        cart = authenticated_client.get('/cart').get_json()
        assert cart['lines'] == []
        assert cart['discount'] is None

    def test_empty_cart_checkout(self, authenticated_client):
        response = authenticated_client.post('/cart/checkout', json={})
        assert response.status_code == 400
        assert response.get_json()['code'] == 'validation_error'

    def test_non_string_notes_rejected(self, authenticated_client, session, bag):
        _add_bag(authenticated_client, bag.id)
        response = authenticated_client.post('/cart/checkout', json={'notes': 5})
        assert response.status_code == 400
        assert response.get_json()['code'] == 'validation_error'
        assert len(authenticated_client.get('/cart').get_json()['lines']) == 1
        assert session.query(Order).count() == 0

    def test_non_object_body_rejected(self, authenticated_client, bag):
        _add_bag(authenticated_client, bag.id)
        response = authenticated_client.post('/cart/checkout', json=['notes'])
        assert response.status_code == 400

    def test_failed_submission_keeps_cart(self, authenticated_client, session, bag, monkeypatch):
        from portal.services import order_service

        def failing_items(*args, **kwargs):
            raise RuntimeError('order_item insert failed')

        monkeypatch.setattr(order_service, '_persist_order_items', failing_items)
        _add_bag(authenticated_client, bag.id)

        response = authenticated_client.post('/cart/checkout', json={})
        assert response.status_code == 500
        assert response.get_json()['code'] == 'total_submission_error'
        assert len(authenticated_client.get('/cart').get_json()['lines']) == 1
        assert session.query(Order).count() == 0

    def test_order_history_and_isolation(self, app, authenticated_client, other_client_profile, bag):
        _add_bag(authenticated_client, bag.id)
        order_id = authenticated_client.post('/cart/checkout', json={}).get_json()['order']['id']

        orders = authenticated_client.get('/orders').get_json()['orders']
        assert [o['id'] for o in orders] == [order_id]
        assert authenticated_client.get(f'/orders/{order_id}').status_code == 200

        other = app.test_client()
        with other.session_transaction() as sess:
            sess['user_id'] = other_client_profile.id
        assert other.get('/orders').get_json()['orders'] == []
        assert other.get(f'/orders/{order_id}').status_code == 404

    def test_order_document_pdf(self, authenticated_client, bag):
        _add_bag(authenticated_client, bag.id)
        order_id = authenticated_client.post('/cart/checkout', json={}).get_json()['order']['id']

        response = authenticated_client.get(f'/orders/{order_id}/document')
        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert response.data.startswith(b'%PDF')

    def test_reorder(self, authenticated_client, session, bag):
        _add_bag(authenticated_client, bag.id)
        authenticated_client.post('/cart/checkout', json={})
        order = session.query(Order).one()
        client_product_id = order.items[0].client_product_id

        response = authenticated_client.post(f'/cart/reorder/{client_product_id}')
        assert response.status_code == 201
        assert response.get_json()['lines'][0]['quantity'] == 100


class TestOperatorRoutes:
    """Tests for operator order and inventory management."""

    @pytest.fixture
    def order_id(self, authenticated_client, bag):
        _add_bag(authenticated_client, bag.id)
        return authenticated_client.post('/cart/checkout', json={}).get_json()['order']['id']

    def test_status_transitions(self, admin_client, authenticated_client, order_id):
        response = admin_client.post(f'/orders/{order_id}/status', json={'status': 'production'})
        assert response.status_code == 200
        assert response.get_json()['order']['status'] == 'production'

        response = admin_client.post(f'/orders/{order_id}/progress', json={'progress': 40})
        assert response.get_json()['order']['production_progress'] == 40

        response = admin_client.post(f'/orders/{order_id}/status', json={'status': 'confirmed'})
        assert response.status_code == 409
        assert response.get_json()['code'] == 'invalid_transition'

        assert authenticated_client.post(f'/orders/{order_id}/status', json={'status': 'cancelled'}).status_code == 403

    def test_payment_status(self, admin_client, order_id):
        response = admin_client.post(f'/orders/{order_id}/payment-status', json={'payment_status': 'paid'})
        assert response.status_code == 200
        assert response.get_json()['order']['payment_status'] == 'paid'

        response = admin_client.post(f'/orders/{order_id}/payment-status', json={})
        assert response.status_code == 400

    def test_admin_sees_all_orders(self, admin_client, order_id):
        orders = admin_client.get('/orders').get_json()['orders']
        assert [o['id'] for o in orders] == [order_id]

    def test_inventory_edit(self, admin_client, authenticated_client, session, order_id):
        inventory_id = session.query(Inventory).one().id

        rows = authenticated_client.get('/inventory').get_json()['inventory']
        assert rows[0]['stock_level'] == 'critical'

        response = admin_client.put(f'/inventory/{inventory_id}', json={'quantity': 1200})
        assert response.status_code == 200
        assert response.get_json()['inventory']['stock_level'] == 'high'

        response = admin_client.put(f'/inventory/{inventory_id}', json={'quantity': -5})
        assert response.status_code == 400

    def test_client_stock_declaration(self, authenticated_client, session, order_id):
        client_product_id = session.query(Inventory).one().client_product_id
        response = authenticated_client.put(f'/inventory/client-stock/{client_product_id}',
                                            json={'client_stock': 300})
        assert response.status_code == 200
        assert response.get_json()['client_stock'] == 300


class TestReadOnlyEndpoints:
    """Tests for dashboard, catalog and metrics."""

    def test_client_dashboard(self, authenticated_client, bag):
        _add_bag(authenticated_client, bag.id)
        body = authenticated_client.get('/dashboard').get_json()
        assert body['role'] == 'client'
        assert body['dashboard']['product_count'] == 1
        assert body['dashboard']['critical_stock_count'] == 1

    def test_admin_dashboard(self, admin_client):
        body = admin_client.get('/dashboard').get_json()
        assert body['role'] == 'admin'
        assert body['dashboard']['order_count'] == 0

    def test_catalog(self, authenticated_client, bag, window_bag):
        products = authenticated_client.get('/catalog').get_json()['products']
        assert [p['name'] for p in products] == ['Sac kraft', 'Sac fenetre']

    def test_metrics_counts_orders(self, client, authenticated_client, bag):
        _add_bag(authenticated_client, bag.id)
        authenticated_client.post('/cart/checkout', json={})

        response = client.get('/metrics')
        assert response.status_code == 200
        assert b'portal_orders_submitted_total{result="success"}' in response.data
