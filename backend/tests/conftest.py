"""
Pytest fixtures for tailorshop backend tests.

Provides an in-memory database, a Flask test client, entity factories and a
fake WhatsApp proxy that records every request instead of sending it.
"""

import json
from datetime import date, timedelta

import httpx
import pytest

from tailorshop import create_app
from tailorshop.extensions import db
from tailorshop.models import Customer, Store, Employee, InventoryItem
from tailorshop.services import read_cache, order_service, measurement_service
from tailorshop.services.notification_service import WhatsAppClient, CLIENT_EXTENSION_KEY


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'WA_DISABLED': False,
        'WA_PROXY_URL': 'http://wa-proxy.test',
        'WA_DEFAULT_COUNTRY_CODE': '91',
        'MEASUREMENT_VERSION_CAP': 3,
        'ORDER_TAX_RATE_BPS': 0,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp('uploads')),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app, wa_proxy):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        read_cache.clear()

        yield db.session

        db.session.rollback()


class FakeProxy:
    """
    Records requests sent to the messaging proxy.

    Queue responses with push(status, body); once the queue is empty every
    request gets a 200.
    """

    def __init__(self):
        self.requests = []
        self.responses = []
        self.templates = {}

    def push(self, status: int, body: dict) -> None:
        self.responses.append((status, body))

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            name = request.url.path.rsplit("/", 1)[-1]
            if name not in self.templates:
                return httpx.Response(404, json={"error": "not found"})
            return httpx.Response(200, json={"data": [{"name": name, "components": [
                {"type": "BODY", "text": self.templates[name]},
            ]}]})

        self.requests.append(json.loads(request.content))
        if self.responses:
            status, body = self.responses.pop(0)
            return httpx.Response(status, json=body)
        return httpx.Response(200, json={"messages": [{"id": "wamid.test"}]})

    @property
    def sent(self):
        return self.requests


@pytest.fixture
def wa_proxy(app):
    """Route all WhatsApp traffic to an in-process fake. Every db_session test gets one."""
    proxy = FakeProxy()
    client = WhatsAppClient(app.config["WA_PROXY_URL"], transport=httpx.MockTransport(proxy.handler))
    app.extensions[CLIENT_EXTENSION_KEY] = client
    yield proxy
    app.extensions.pop(CLIENT_EXTENSION_KEY, None)
    client.close()


@pytest.fixture
def store(db_session):
    s = Store(name="Main Boutique", address="12 MG Road", city="Pune", phone="0201234567", status="ACTIVE")
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture
def customer(db_session):
    c = Customer(name="Asha Rao", phone="9876543210", vip_status="regular")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture
def employee(db_session, store):
    e = Employee(name="Ravi", phone="9000000001", role="tailor", store_id=store.id, status="ACTIVE")
    db_session.add(e)
    db_session.commit()
    return e


@pytest.fixture
def fabric(db_session, store):
    item = InventoryItem(
        name="Silk Blouse Fabric",
        sku="FAB-001",
        category="fabric",
        price_cents=150000,
        quantity=10,
        min_stock_level=2,
        store_id=store.id,
        status="ACTIVE",
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture
def make_order(db_session, customer, store):
    """Factory: make_order(total_cents=..., status=...) with one custom line."""
    def _make(total_cents: int = 100000, status: str = "pending", **extra):
        data = {
            "customer_id": customer.id,
            "store_id": store.id,
            "due_date": (date.today() + timedelta(days=14)).isoformat(),
            "status": status,
            "items": [{"description": "Blouse stitching", "unit_price_cents": total_cents, "quantity": 1}],
        }
        data.update(extra)
        return order_service.create_order(data)

    return _make


@pytest.fixture
def make_measurement(db_session):
    def _make(**values):
        data = {"garment_type": "blouse", "bust": 34.0, "waist_round": 28.0}
        data.update(values)
        return measurement_service.create_measurement(data)

    return _make
