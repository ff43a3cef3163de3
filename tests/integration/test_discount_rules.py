"""
Integration tests for discount code validation rules and offer creation.
"""

from decimal import Decimal

import pytest
from portal.exceptions import InvalidCodeError, NoDiscountOfferedError, ValidationError
from portal.models import Offer
from portal.services import cart_service, discount_service
from portal.services.cart_service import CartLedger
from portal.services.checkout_service import CheckoutSession


def _offer(session, code, percent, is_active=True):
    offer = Offer(title=code, discount_code=code, discount_percent=Decimal(percent), is_active=is_active)
    session.add(offer)
    session.commit()
    return offer


@pytest.fixture
def cart(session, client_profile, bag):
    """6000 plain bags at 0.10: subtotal 600.00."""
    ledger = CartLedger()
    cart_service.add_product_to_cart(session, ledger, client_profile.id, bag.id, 6000)
    return ledger


class TestValidateDiscount:
    """Tests for offer lookup and percentage checks."""

    def test_inactive_offer_is_an_invalid_code(self, session, cart):
        _offer(session, 'SLEEPY', '10', is_active=False)
        with pytest.raises(InvalidCodeError):
            discount_service.validate_discount(session, 'SLEEPY', cart)

    def test_zero_percent_offer(self, session, cart):
        _offer(session, 'ZERO', '0')
        with pytest.raises(NoDiscountOfferedError):
            discount_service.validate_discount(session, 'ZERO', cart)

    def test_negative_percent_offer(self, session, cart):
        _offer(session, 'MINUS', '-5')
        with pytest.raises(NoDiscountOfferedError):
            discount_service.validate_discount(session, 'MINUS', cart)

    def test_percent_above_hundred_is_refused(self, session, cart):
        _offer(session, 'TOOMUCH', '150')
        with pytest.raises(InvalidCodeError):
            discount_service.validate_discount(session, 'TOOMUCH', cart)

    def test_full_percent_is_allowed(self, session, cart):
        _offer(session, 'FREE', '100')
        applied = discount_service.validate_discount(session, 'FREE', cart)
        assert applied.amount == Decimal('600.00')

    def test_code_is_trimmed(self, session, cart, global_offer):
        applied = discount_service.validate_discount(session, '  WELCOME10 ', cart)
        assert applied.code == 'WELCOME10'

    def test_non_string_code_rejected(self, session, cart):
        with pytest.raises(ValidationError):
            discount_service.validate_discount(session, 123, cart)

    def test_deactivated_code_stays_honored_for_the_cart(self, session, cart, global_offer):
        checkout = CheckoutSession(cart=cart)
        checkout.apply_code(session, 'WELCOME10')

        global_offer.is_active = False
        session.commit()
        checkout.cart.set_quantity(0, 10000)

        assert checkout.discount is not None
        assert checkout.discount.amount == Decimal('100.00')


class TestDiscountRoutes:
    """Tests for discount rules over HTTP."""

    def _add_bag(self, http, bag):
        return http.post('/cart/items', json={'product_id': bag.id, 'quantity': 6000})

    def test_zero_percent_offer(self, authenticated_client, session, bag):
        _offer(session, 'ZERO', '0')
        self._add_bag(authenticated_client, bag)
        response = authenticated_client.post('/cart/discount', json={'code': 'ZERO'})
        assert response.status_code == 422
        assert response.get_json()['code'] == 'no_discount_offered'

    def test_inactive_offer(self, authenticated_client, session, bag):
        _offer(session, 'SLEEPY', '10', is_active=False)
        self._add_bag(authenticated_client, bag)
        response = authenticated_client.post('/cart/discount', json={'code': 'SLEEPY'})
        assert response.status_code == 422
        assert response.get_json()['code'] == 'invalid_code'

    def test_percent_above_hundred_never_gives_negative_totals(self, authenticated_client, session, bag):
        _offer(session, 'TOOMUCH', '150')
        self._add_bag(authenticated_client, bag)
        response = authenticated_client.post('/cart/discount', json={'code': 'TOOMUCH'})
        assert response.status_code == 422
        assert response.get_json()['code'] == 'invalid_code'

        cart = authenticated_client.get('/cart').get_json()
        assert cart['discount'] is None
        assert cart['total_ht'] == '600.00'

    def test_non_string_code(self, authenticated_client, bag):
        self._add_bag(authenticated_client, bag)
        response = authenticated_client.post('/cart/discount', json={'code': 123})
        assert response.status_code == 400
        assert response.get_json()['code'] == 'validation_error'

    def test_deactivated_code_recomputed_after_quantity_change(self, authenticated_client, session, bag, global_offer):
        self._add_bag(authenticated_client, bag)
        authenticated_client.post('/cart/discount', json={'code': 'WELCOME10'})

        global_offer.is_active = False
        session.commit()

        body = authenticated_client.patch('/cart/items/0', json={'quantity': 10000}).get_json()
        assert body['discount']['code'] == 'WELCOME10'
        assert body['discount']['amount'] == '100.00'
        assert body['total_ht'] == '900.00'


class TestCreateOfferCommand:
    """Tests for the create-offer CLI command."""

    def test_creates_global_offer(self, app, session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['create-offer', '--code', 'ETE12', '--percent', '12,5'])
        assert result.exit_code == 0
        offer = session.query(Offer).filter_by(discount_code='ETE12').one()
        assert offer.discount_percent == Decimal('12.5')
        assert offer.is_global

    @pytest.mark.parametrize('percent', ['150', '0', '-10', '100.01'])
    def test_out_of_range_percent_rejected(self, app, session, percent):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['create-offer', '--code', 'BAD', f'--percent={percent}'])
        assert result.exit_code == 1
        assert 'Percentage must be above 0 and at most 100' in result.output
        assert session.query(Offer).filter_by(discount_code='BAD').count() == 0
