import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from portal import create_app
from portal.database import db_session, get_session, create_all, drop_all
from portal.models import (
    Profile, ProfileRole, Product, ProductVariant, Promotion, Offer, OfferProduct
)


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite, cache disabled)."""
    app = create_app('config.TestConfig')
    return app


@pytest.fixture(autouse=True)
def app_context(app):
    """Fresh schema and an application context for every test."""
    with app.app_context():
        db_session.remove()
        create_all()
        yield
        db_session.remove()
        drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session():
    """Database session for testing."""
    session = get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def client_profile(session):
    """A client company."""
    profile = Profile(
        email='achats@boulangerie-martin.fr',
        role=ProfileRole.CLIENT.value,
        company_name='Boulangerie Martin',
        contact_name='Claire Martin'
    )
    session.add(profile)
    session.commit()
    return profile


@pytest.fixture(scope='function')
def other_client_profile(session):
    """Second client, for isolation tests."""
    profile = Profile(
        email='commandes@patisserie-roux.fr',
        role=ProfileRole.CLIENT.value,
        company_name='Patisserie Roux'
    )
    session.add(profile)
    session.commit()
    return profile


@pytest.fixture(scope='function')
def admin_profile(session):
    """A vendor operator."""
    profile = Profile(email='ops@eonite.fr', role=ProfileRole.ADMIN.value, company_name='EONITE')
    session.add(profile)
    session.commit()
    return profile


@pytest.fixture(scope='function')
def bag(session):
    """Plain product without variants: 0.10 per bag, minimum 100."""
    product = Product(
        name='Sac kraft',
        size='26x35',
        category='standard',
        base_price=Decimal('0.1000'),
        min_order_quantity=100,
        is_active=True
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def window_bag(session):
    """Product with two variants; the second one is the default."""
    product = Product(
        name='Sac fenetre',
        category='window',
        base_price=Decimal('0.5000'),
        min_order_quantity=1000,
        is_active=True
    )
    product.variants = [
        ProductVariant(size='S', price=Decimal('0.2000'), min_order_quantity=500, is_default=False),
        ProductVariant(size='M', price=Decimal('0.3000'), min_order_quantity=250, is_default=True),
    ]
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def inactive_product(session):
    product = Product(name='Sac retire', base_price=Decimal('1.0000'), min_order_quantity=1, is_active=False)
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def bag_promotion(session, bag):
    """20% promotion on the plain bag, valid for a week."""
    promotion = Promotion(
        product_id=bag.id,
        title='Printemps',
        discount_percent=Decimal('20'),
        valid_until=datetime.now(timezone.utc) + timedelta(days=7),
        is_active=True
    )
    session.add(promotion)
    session.commit()
    return promotion


@pytest.fixture(scope='function')
def global_offer(session):
    """10% off the whole cart."""
    offer = Offer(title='Bienvenue', discount_code='WELCOME10', discount_percent=Decimal('10'), is_active=True)
    session.add(offer)
    session.commit()
    return offer


@pytest.fixture(scope='function')
def scoped_offer(session, bag):
    """20% off the plain bag only."""
    offer = Offer(title='Kraft', discount_code='KRAFT20', discount_percent=Decimal('20'), is_active=True)
    offer.offer_products = [OfferProduct(product_id=bag.id)]
    session.add(offer)
    session.commit()
    return offer


@pytest.fixture(scope='function')
def authenticated_client(client, client_profile):
    """Test client logged in as the client company."""
    with client.session_transaction() as sess:
        sess['user_id'] = client_profile.id
    return client


@pytest.fixture(scope='function')
def admin_client(app, admin_profile):
    """Separate test client logged in as an operator."""
    admin = app.test_client()
    with admin.session_transaction() as sess:
        sess['user_id'] = admin_profile.id
    return admin
