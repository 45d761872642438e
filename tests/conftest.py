"""
Shared fixtures: in-memory stand-ins for the stores and third-party services,
plus a TestClient wired to them through dependency overrides.
"""

import copy
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from swiftbites import main
from swiftbites.auth import get_current_admin
from swiftbites.errors import DuplicateRecordError, PersistenceError


class FakeOrderStore:
    def __init__(self):
        self.rows = {}
        self.next_id = 1
        self.inserts = 0
        self.fail_inserts = False

    def add(self, **fields):
        """Seed a row directly, bypassing the service."""
        row = {
            "id": self.next_id, "item": "Veg Burger X 1", "phone": "9876543210",
            "amount": Decimal("149"), "date": "19/10/2026", "time": "1:00 pm",
            "status": "pending", "token": f"T{self.next_id:05X}", "payment_id": "pay_seed",
            "payment_status": "paid", "priority_level": "normal",
        }
        row.update(fields)
        self.rows[row["id"]] = row
        self.next_id += 1
        return row

    def insert_order(self, order):
        self.inserts += 1
        if self.fail_inserts:
            raise PersistenceError("Database error")
        if any(row["token"] == order["token"] for row in self.rows.values()):
            raise DuplicateRecordError("duplicate key value violates unique constraint")
        row = dict(order, id=self.next_id)
        self.rows[row["id"]] = row
        self.next_id += 1
        return row["id"]

    def list_orders(self):
        return [copy.deepcopy(row) for row in self.rows.values()]

    def get_order(self, order_id):
        row = self.rows.get(order_id)
        return copy.deepcopy(row) if row else None

    def get_by_token(self, token):
        for row in self.rows.values():
            if row["token"] == token:
                return copy.deepcopy(row)
        return None

    def set_status(self, order_id, status, from_statuses=None):
        row = self.rows.get(order_id)
        if not row or (from_statuses and row["status"] not in from_statuses):
            return None
        row["status"] = status
        return copy.deepcopy(row)


class FakeMenuStore:
    def __init__(self, items=()):
        self.rows = {}
        self.next_id = 1
        self.fail_writes = False
        for name, price, image in items:
            self.create_item(name, Decimal(str(price)), image)

    def list_items(self):
        return [dict(self.rows[key]) for key in sorted(self.rows)]

    def get_item(self, item_id):
        row = self.rows.get(item_id)
        return dict(row) if row else None

    def find_by_names(self, names):
        return {row["name"]: dict(row) for row in self.rows.values() if row["name"] in names}

    def create_item(self, name, price, image):
        if self.fail_writes:
            raise PersistenceError("Database error")
        row = {"id": self.next_id, "name": name, "price": price, "image": image}
        self.rows[row["id"]] = row
        self.next_id += 1
        return dict(row)

    def update_item(self, item_id, name, price, image):
        if self.fail_writes:
            raise PersistenceError("Database error")
        if item_id not in self.rows:
            return None
        self.rows[item_id].update(name=name, price=price, image=image)
        return dict(self.rows[item_id])

    def delete_item(self, item_id):
        return self.rows.pop(item_id, None)


class FakeInventoryStore:
    def __init__(self):
        self.rows = {}
        self.next_id = 1

    def list_items(self):
        return sorted((dict(row) for row in self.rows.values()), key=lambda row: row["name"])

    def create_item(self, name, price, quantity):
        row = {"id": self.next_id, "name": name, "price": price, "quantity": quantity}
        self.rows[row["id"]] = row
        self.next_id += 1
        return dict(row)

    def update_item(self, item_id, changes):
        if item_id not in self.rows:
            return None
        self.rows[item_id].update(changes)
        return dict(self.rows[item_id])

    def delete_item(self, item_id):
        row = self.rows.pop(item_id, None)
        return {"id": item_id} if row else None


class FakeGateway:
    def __init__(self, payment_id="pay_test123"):
        self.payment_id = payment_id
        self.error = None
        self.charges = []
        self.verified = True

    def charge(self, amount, currency, contact, source, description=None):
        self.charges.append({"amount": amount, "currency": currency, "contact": contact, "source": source})
        if self.error is not None:
            raise self.error
        return self.payment_id

    def verify(self, payment_id, amount=None):
        return self.verified


class FakeSms:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to, text):
        if self.fail:
            raise RuntimeError("SMS provider down")
        self.sent.append((to, text))
        return "msg-1"


class FakeImages:
    base = "https://swiftbites-images.s3.ap-south-1.amazonaws.com/"

    def __init__(self):
        self.uploaded = []
        self.deleted = []
        self.events = []

    def upload(self, fileobj, filename, content_type=None):
        url = f"{self.base}menu-items/1-{filename}"
        self.uploaded.append(url)
        self.events.append(("upload", url))
        return url

    def delete(self, image_url):
        self.deleted.append(image_url)
        self.events.append(("delete", image_url))
        return True


@pytest.fixture
def order_store():
    return FakeOrderStore()


@pytest.fixture
def menu_store():
    return FakeMenuStore([
        ("Veg Burger", 149, "menu-items/1-Veg Burger.webp"),
        ("Campa", 10, "images/Campa.webp"),
    ])


@pytest.fixture
def inventory_store():
    return FakeInventoryStore()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def sms():
    return FakeSms()


@pytest.fixture
def images():
    return FakeImages()


@pytest.fixture
def app_overrides(order_store, menu_store, inventory_store, gateway, sms, images):
    overrides = {
        main.get_order_store: lambda: order_store,
        main.get_menu_store: lambda: menu_store,
        main.get_inventory_store: lambda: inventory_store,
        main.get_payment_gateway: lambda: gateway,
        main.get_sms_sender: lambda: sms,
        main.get_image_store: lambda: images,
    }
    main.app.dependency_overrides.update(overrides)
    yield overrides
    main.app.dependency_overrides.clear()


@pytest.fixture
def client(app_overrides):
    """Public client: admin routes still require a real token."""
    return TestClient(main.app)


@pytest.fixture
def admin_client(app_overrides):
    main.app.dependency_overrides[get_current_admin] = lambda: {"email": "admin@site.com", "role": "admin"}
    return TestClient(main.app)
