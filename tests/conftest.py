import pytest
from datetime import date, timedelta
from decimal import Decimal

from praetor import create_app
import praetor.database as database
from praetor.database import Base, create_schema, get_session
from praetor.models import AppUser, Client, Product, SpecialBid, UserRole
from praetor.repositories import CatalogRecord, SpecialPriceRecord


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite, cache off)."""
    app = create_app('config.TestConfig')
    return app


@pytest.fixture(scope='function')
def session(app):
    """Fresh schema and database session for each test."""
    create_schema()
    session = get_session()
    yield session
    session.rollback()
    session.remove()
    Base.metadata.drop_all(bind=database.engine)


@pytest.fixture(scope='function')
def client(app, session):
    """Create test client."""
    return app.test_client()


# ---------------------------------------------------------------------------
# Directory / catalog data
# ---------------------------------------------------------------------------

@pytest.fixture(scope='function')
def manager(session):
    """Manager who performs the operations."""
    user = AppUser(username='alice', full_name='Alice Manager', role=UserRole.MANAGER.value)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def other_manager(session):
    """Second manager, the one who gets notified."""
    user = AppUser(username='bob', full_name='Bob Manager', role=UserRole.MANAGER.value)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def plain_user(session):
    user = AppUser(username='carol', full_name='Carol User', role=UserRole.USER.value)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def acme(session):
    """Client with a code, used in project names."""
    client = Client(name='Acme Corp', client_code='ACME')
    session.add(client)
    session.commit()
    return client


@pytest.fixture(scope='function')
def widget(session):
    """Product with 22% tax."""
    product = Product(
        name='Widget',
        product_code='WDG',
        cost=Decimal('40.00'),
        tax_rate=Decimal('22.00'),
        mol_percentage=Decimal('20.00')
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def consulting(session):
    """Product with 10% tax."""
    product = Product(
        name='Consulting',
        product_code='CNS',
        cost=Decimal('10.00'),
        tax_rate=Decimal('10.00'),
        mol_percentage=Decimal('35.00')
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def widget_bid(session, acme, widget):
    """Special price on Widget for Acme."""
    bid = SpecialBid(
        client_id=acme.id,
        client_name=acme.name,
        product_id=widget.id,
        product_name=widget.name,
        unit_price=Decimal('90.00'),
        mol_percentage=Decimal('15.00')
    )
    session.add(bid)
    session.commit()
    return bid


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

def item_body(product, quantity=2, unit_price=100, discount=0, special_bid=None, **extra):
    """Line item as the API receives it."""
    body = {
        'productId': product.id,
        'productName': product.name,
        'quantity': quantity,
        'unitPrice': unit_price,
        'discount': discount,
    }
    if special_bid is not None:
        body['specialBidId'] = special_bid.id
    body.update(extra)
    return body


def quote_body(client, items, **extra):
    body = {
        'quoteCode': 'Q-2026-001',
        'clientId': client.id,
        'clientName': client.name,
        'items': items,
        'expirationDate': (date.today() + timedelta(days=30)).isoformat(),
        'paymentTerms': '30gg',
        'discount': 0,
    }
    body.update(extra)
    return body


def order_body(client, items, **extra):
    body = {
        'clientId': client.id,
        'clientName': client.name,
        'items': items,
        'paymentTerms': '30gg',
        'discount': 0,
    }
    body.update(extra)
    return body


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------

class RecordingSink:
    """Invalidation sink that remembers every namespace it was told about."""

    def __init__(self):
        self.namespaces = []

    def invalidate(self, namespace):
        self.namespaces.append(namespace)


class FakeCatalog:
    """Dictionary-backed catalog that counts lookups."""

    def __init__(self, products=None, bids=None):
        self.products = {p.id: p for p in (products or [])}
        self.bids = {b.id: b for b in (bids or [])}
        self.catalog_calls = []
        self.special_price_calls = []

    def get_catalog_items(self, ids):
        ids = list(ids)
        self.catalog_calls.append(ids)
        return [self.products[i] for i in ids if i in self.products]

    def get_special_prices(self, ids):
        ids = list(ids)
        self.special_price_calls.append(ids)
        return [self.bids[i] for i in ids if i in self.bids]


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def fake_catalog():
    """Two products (tax 22 and 10) and one special price on product 1."""
    return FakeCatalog(
        products=[
            CatalogRecord(1, Decimal('40.00'), Decimal('22.00'), Decimal('20.00')),
            CatalogRecord(2, Decimal('10.00'), Decimal('10.00'), None),
        ],
        bids=[
            SpecialPriceRecord(7, 1, Decimal('90.00'), Decimal('15.00')),
            SpecialPriceRecord(8, 2, Decimal('9.00'), None),
        ],
    )
