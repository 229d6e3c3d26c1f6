"""
Test utilities: an in-memory stand-in for the DynamoDB wrapper and
factories for creating test documents.
"""
import copy
import json
import random
import string
from collections import defaultdict
from datetime import timedelta
from unittest import mock

from django.test import SimpleTestCase, override_settings
from django.utils import timezone

from aws_config import ORDERS_TABLE, TABLE_KEYS
from commerce import documents

_MISSING = object()


def _compare(op, actual, expected):
    if actual is _MISSING:
        return op == "<>"
    if op == "=":
        return actual == expected
    if op == "<>":
        return actual != expected
    if op == "<":
        return actual < expected
    if op == "<=":
        return actual <= expected
    if op == ">":
        return actual > expected
    if op == ">=":
        return actual >= expected
    raise NotImplementedError(op)


def matches(item, condition):
    """Evaluate a boto3 ``Attr`` condition against a plain dict."""
    expr = condition.get_expression()
    op, values = expr["operator"], expr["values"]
    if op == "AND":
        return all(matches(item, c) for c in values)
    if op == "OR":
        return any(matches(item, c) for c in values)
    if op == "NOT":
        return not matches(item, values[0])

    attr, *operands = values
    actual = item.get(attr.name, _MISSING)
    if op == "attribute_exists":
        return actual is not _MISSING
    if op == "attribute_not_exists":
        return actual is _MISSING
    if op == "contains":
        return actual is not _MISSING and operands[0] in actual
    if op == "begins_with":
        return isinstance(actual, str) and actual.startswith(operands[0])
    if op == "IN":
        return actual is not _MISSING and actual in operands[0]
    if op == "BETWEEN":
        return actual is not _MISSING and operands[0] <= actual <= operands[1]
    return _compare(op, actual, operands[0])


class FakeDynamoDB:
    """Same surface as ``aws_lib.dynamodb_client.DynamoDBClient``."""

    def __init__(self):
        self.tables = defaultdict(dict)

    def _key(self, table, key):
        return key[TABLE_KEYS[table]]

    def put(self, table, item):
        self.tables[table][self._key(table, item)] = copy.deepcopy(item)

    def get(self, table, key):
        return copy.deepcopy(self.tables[table].get(self._key(table, key), {}))

    def scan(self, table, condition=None, limit=None):
        items = [
            copy.deepcopy(i) for i in self.tables[table].values()
            if condition is None or matches(i, condition)
        ]
        return items[:limit] if limit is not None else items

    def update(self, table, key, values):
        item = self.tables[table].setdefault(self._key(table, key), dict(key))
        item.update(copy.deepcopy(values))
        return copy.deepcopy(item)

    def delete(self, table, key):
        self.tables[table].pop(self._key(table, key), None)

    def clear(self, table):
        removed = len(self.tables[table])
        self.tables[table].clear()
        return removed


@override_settings(PASSWORD_HASHERS=["django.contrib.auth.hashers.MD5PasswordHasher"])
class DynamoTestCase(SimpleTestCase):
    """Runs every test against a fresh FakeDynamoDB."""

    def setUp(self):
        super().setUp()
        self.ddb = FakeDynamoDB()
        patcher = mock.patch("commerce.documents.ddb", self.ddb)
        patcher.start()
        self.addCleanup(patcher.stop)

    def post_json(self, url, data=None, method="post"):
        return getattr(self.client, method)(url, data=json.dumps(data or {}), content_type="application/json")

    def login_admin(self, admin=None, password=None):
        if admin is None:
            admin = TestDataFactory.create_admin()
        self.post_json("/admin/login", {
            "email": admin["email"],
            "password": password or TestDataFactory.PASSWORD,
        })
        return admin

    def login_vendor(self, vendor, password=None):
        return self.post_json("/vendor/login", {
            "email": vendor["email"],
            "password": password or TestDataFactory.PASSWORD,
        })

    def login_customer(self, customer, password=None):
        return self.post_json("/login", {
            "email": customer["email"],
            "password": password or TestDataFactory.PASSWORD,
        })


class TestDataFactory:
    """Factory class for creating test documents"""

    PASSWORD = "testpass123"

    @staticmethod
    def random_string(length=8):
        return "".join(random.choices(string.ascii_lowercase + string.digits, k=length))

    @staticmethod
    def create_admin(email=None, password=PASSWORD):
        email = email or f"admin_{TestDataFactory.random_string()}@test.com"
        return documents.create_admin(email, password)

    @staticmethod
    def create_vendor(email=None, password=PASSWORD, status="active", pincodes=("110001",), **fields):
        data = {
            "name": "Test Vendor",
            "email": email or f"vendor_{TestDataFactory.random_string()}@test.com",
            "phone": "9876543210",
            "address": "12 Market Road",
            "status": status,
            "pincodes": list(pincodes),
        }
        data.update(fields)
        return documents.create_vendor(data, password)

    @staticmethod
    def create_product(vendor_id, name="Milk", price=30, mrp=35, category="Dairy",
                       pincodes=("110001",), status="active"):
        return documents.add_product({
            "name": name,
            "description": f"Fresh {name.lower()}",
            "price": price,
            "mrp": mrp,
            "category": category,
            "image": "https://images.example.com/product.jpg",
            "unit": "1 pc",
            "vendor_id": vendor_id,
            "pincodes": list(pincodes),
            "status": status,
            "stock": 10,
        })

    @staticmethod
    def create_customer(email=None, password=PASSWORD):
        email = email or f"customer_{TestDataFactory.random_string()}@test.com"
        return documents.create_customer("Test Customer", email, "9123456780", password)

    @staticmethod
    def create_order(vendor_id, customer_id="customer-1", status="pending", total=100,
                     items=None, age=timedelta(0), order_id=None):
        order_id = order_id or documents.new_id()
        created = (timezone.now() - age).isoformat()
        order = {
            "order_id": order_id,
            "order_number": order_id[:8].upper(),
            "customer_id": customer_id,
            "customer_name": "Test Customer",
            "customer_phone": "9123456780",
            "vendor_id": vendor_id,
            "items": items or [{"product_id": "p1", "name": "Milk", "price": 30, "quantity": 2}],
            "subtotal": total,
            "delivery_fee": 0,
            "total_amount": total,
            "address": {"name": "Test Customer", "pincode": "110001"},
            "pincode": "110001",
            "payment_method": "cod",
            "payment_status": "pending",
            "order_status": status,
            "created_at": created,
            "updated_at": created,
        }
        documents.ddb.put(ORDERS_TABLE, order)
        return order
