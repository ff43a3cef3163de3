"""
Unit tests for localized errors, the cache layer and document formatters.
"""

from decimal import Decimal
from fnmatch import fnmatch

from portal.exceptions import (
    BelowMinimumQuantityError, InvalidCodeError, InvalidTransitionError, PartialSubmissionError
)
from portal.i18n import normalize_language, translate
from portal.services.cache_service import CacheService
from portal.utils.formatters import money_fr, num_fr, unit_price_fr


class TestLocalizedErrors:
    """Tests for error payloads in both languages."""

    def test_normalize_language(self):
        assert normalize_language('en-GB,en;q=0.9') == 'en'
        assert normalize_language('FR') == 'fr'
        assert normalize_language('de') == 'fr'
        assert normalize_language(None, default='en') == 'en'

    def test_unknown_key_returned_as_is(self):
        assert translate('no.such.key', 'en') == 'no.such.key'

    def test_below_minimum_payload(self):
        error = BelowMinimumQuantityError(100, 5000)
        body = error.to_dict('en')
        assert body['code'] == 'below_minimum_quantity'
        assert body['minimum'] == 5000
        assert body['quantity'] == 100
        assert '5000' in body['message']
        assert error.status_code == 400

    def test_same_error_in_both_languages(self):
        error = InvalidCodeError('NOPE')
        assert error.localized('fr') != error.localized('en')
        assert error.to_dict('fr')['discount_code'] == 'NOPE'
        assert error.status_code == 422

    def test_partial_submission_carries_order_reference(self):
        error = PartialSubmissionError(12, 'CMD-000012')
        body = error.to_dict('en')
        assert body['order_id'] == 12
        assert 'CMD-000012' in body['message']

    def test_invalid_transition_status(self):
        error = InvalidTransitionError('available', 'cancelled')
        assert error.status_code == 409
        assert error.to_dict()['target'] == 'cancelled'


class FakeRedis:
    """In-memory stand-in for the redis client calls the cache uses."""

    def __init__(self):
        self.store = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def scan_iter(self, match=None, count=None):
        return iter([k for k in self.store if fnmatch(k, match)])

    def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)
        return len(keys)


class TestCacheService:
    """Tests for the cache-aside helper."""

    def test_memoize_loads_once(self):
        cache = CacheService(client=FakeRedis())
        calls = []

        def loader():
            calls.append(1)
            return {'price': Decimal('0.1000'), 'name': 'Sac'}

        first = cache.memoize('global', 'catalog', 'all', loader, ttl=10)
        second = cache.memoize('global', 'catalog', 'all', loader, ttl=10)

        assert len(calls) == 1
        assert second == first
        assert isinstance(second['price'], Decimal)
        assert 'portal:global:catalog:all' in cache.client.store

    def test_invalidate_module_only_touches_that_scope(self):
        cache = CacheService(client=FakeRedis())
        cache.set('client:1', 'dashboard', 'summary', {'a': 1}, ttl=10)
        cache.set('client:2', 'dashboard', 'summary', {'a': 2}, ttl=10)

        assert cache.invalidate_module('client:1', 'dashboard') == 1
        assert cache.get('client:1', 'dashboard', 'summary') is None
        assert cache.get('client:2', 'dashboard', 'summary') == {'a': 2}

    def test_disabled_cache_always_loads(self):
        cache = CacheService()
        assert cache.is_available() is False
        assert cache.memoize('global', 'catalog', 'all', lambda: [1, 2]) == [1, 2]
        assert cache.get('global', 'catalog', 'all') is None


class TestFormatters:

    def test_numbers_french_style(self):
        assert num_fr(1500) == '1 500'
        assert num_fr(Decimal('1234.5'), 2) == '1 234,50'
        assert num_fr(None) == '-'

    def test_money(self):
        assert money_fr(Decimal('648')) == '648,00 €'
        assert money_fr(Decimal('12345.678')) == '12 345,68 €'

    def test_unit_price_keeps_precision(self):
        assert unit_price_fr(Decimal('0.1000')) == '0,10 €'
        assert unit_price_fr(Decimal('0.0825')) == '0,0825 €'
