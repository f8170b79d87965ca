"""Shared test fixtures for the parts shop test suite."""

from typing import Callable, List

import pytest

from partshop.db import init_db
from partshop.models import Product
from partshop.notifications import CollectingNotifier
from partshop.storage import MemoryStorage


class FakeTimer:
    """Stand-in for threading.Timer that only fires when told to."""

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        # Runs even when cancelled, like a real timer that already started
        self.callback()


class FakeTimerFactory:
    def __init__(self):
        self.timers: List[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


def make_product(product_id: str, **overrides) -> Product:
    """Build a product with sensible defaults for tests."""
    fields = {
        "id": product_id,
        "name": f"Part {product_id}",
        "price": "10.00",
        "category": "engine",
        "brand": "Bosch",
        "stock_quantity": 5,
        "part_number": f"PN-{product_id}",
    }
    fields.update(overrides)
    return Product(**fields)


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary, initialized database."""
    db_path = str(tmp_path / "shop.db")
    init_db(db_path)
    return db_path


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def notifier():
    return CollectingNotifier()


@pytest.fixture
def fake_timers():
    return FakeTimerFactory()


@pytest.fixture
def sample_products():
    """A small catalog covering every category, sort key and search field."""
    return [
        make_product(
            "p1",
            name="Brake Pads - Front",
            price="89.99",
            category="braking",
            brand="Bosch",
            stock_quantity=25,
            part_number="BP-FRONT-001",
            compatible_vehicles="Toyota Camry 2018-2023, Honda Accord 2016-2022",
        ),
        make_product(
            "p2",
            name="air filter",
            price="34.99",
            category="engine",
            brand="K&N",
            stock_quantity=15,
            part_number="AF-HF-002",
            description="High flow filter",
        ),
        make_product(
            "p3",
            name="Shock Absorber",
            price="129.99",
            category="suspension",
            brand="Monroe",
            stock_quantity=0,
            part_number="SA-REAR-003",
            compatible_vehicles="Nissan Altima 2019-2023",
        ),
        make_product(
            "p4",
            name="Ölfilter",
            price="34.99",
            category="engine",
            brand="Mann",
            stock_quantity=15,
            part_number="OF-004",
        ),
        make_product(
            "p5",
            name="Clutch Kit",
            price="249.99",
            sale_price="199.99",
            category="transmission",
            brand="LUK",
            stock_quantity=12,
            part_number="CK-COMP-006",
            compatible_vehicles="Mazda 6 2014-2020",
        ),
    ]


@pytest.fixture
def app(tmp_path):
    """Flask app on a fresh database seeded with the sample catalog."""
    from partshop.app import create_app

    app = create_app({
        "TESTING": True,
        "DB_PATH": str(tmp_path / "app.db"),
        "SEED_SAMPLE_DATA": True,
        "LOG_TO_FILE": False,
        "LOG_TO_CONSOLE": False,
    })
    yield app
    app.extensions["partshop"].browser.debouncer.cancel()


@pytest.fixture
def client(app):
    """Create Flask test client."""
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def admin_headers(client):
    """Authorization header for a logged-in admin."""
    response = client.post("/api/admin/login", json={"username": "admin", "password": "admin123"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json['token']}"}
