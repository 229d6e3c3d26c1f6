"""
Tests for the document collections, the order lifecycle and vendor analytics
"""
import json
from datetime import timedelta
from unittest import mock

from django.conf import settings
from django.core.exceptions import ValidationError as FieldError
from django.test import Client

from aws_config import ORDERS_TABLE
from commerce import analytics, documents, orders
from commerce.exceptions import NotFound, PermissionDenied, ValidationError
from commerce.forms import CheckoutForm, PincodesField, ProductForm, VendorPincodesForm
from commerce.test_utils import DynamoTestCase, FakeDynamoDB, TestDataFactory


class ProductDocumentTests(DynamoTestCase):

    def setUp(self):
        super().setUp()
        self.vendor = TestDataFactory.create_vendor()

    def test_add_product_requires_pincodes(self):
        with self.assertRaises(ValidationError):
            TestDataFactory.create_product(self.vendor["vendor_id"], pincodes=())

    def test_add_product_requires_fields(self):
        with self.assertRaisesMessage(ValidationError, "Missing required field: category"):
            documents.add_product({
                "name": "Bread", "description": "Loaf", "price": 40, "mrp": 45,
                "image": "https://x/y.jpg", "unit": "1", "vendor_id": "v", "pincodes": ["110001"],
            })

    def test_products_filtered_by_pincode_and_status(self):
        vid = self.vendor["vendor_id"]
        TestDataFactory.create_product(vid, name="Milk", pincodes=("110001",))
        TestDataFactory.create_product(vid, name="Curd", pincodes=("110002",))
        TestDataFactory.create_product(vid, name="Paneer", pincodes=("110001",), status="out_of_stock")

        names = [p["name"] for p in documents.products_by_pincode("110001")]
        self.assertEqual(names, ["Milk"])
        self.assertTrue(documents.is_pincode_serviceable("110002"))
        self.assertFalse(documents.is_pincode_serviceable("999999"))
        self.assertFalse(documents.is_pincode_serviceable("12345"))

    def test_categories_by_pincode_are_unique_and_sorted(self):
        vid = self.vendor["vendor_id"]
        TestDataFactory.create_product(vid, name="Milk", category="Dairy")
        TestDataFactory.create_product(vid, name="Curd", category="Dairy")
        TestDataFactory.create_product(vid, name="Apple", category="Fruits")
        self.assertEqual(documents.categories_by_pincode("110001"), ["Dairy", "Fruits"])

    def test_search_matches_name_description_and_category(self):
        vid = self.vendor["vendor_id"]
        TestDataFactory.create_product(vid, name="Toned Milk", category="Dairy")
        TestDataFactory.create_product(vid, name="Apple", category="Fruits")
        self.assertEqual([p["name"] for p in documents.search_products("milk", "110001")], ["Toned Milk"])
        self.assertEqual([p["name"] for p in documents.search_products("FRUIT", "110001")], ["Apple"])
        self.assertEqual(documents.search_products("  ", "110001"), [])

    def test_delete_is_soft(self):
        product = TestDataFactory.create_product(self.vendor["vendor_id"])
        documents.delete_product(product["product_id"])
        self.assertEqual(documents.get_product(product["product_id"])["status"], "deleted")
        self.assertEqual(documents.products_by_vendor(self.vendor["vendor_id"]), [])
        self.assertEqual(len(documents.products_by_vendor(self.vendor["vendor_id"], include_deleted=True)), 1)

    def test_update_rejects_unknown_status(self):
        product = TestDataFactory.create_product(self.vendor["vendor_id"])
        with self.assertRaises(ValidationError):
            documents.update_product(product["product_id"], {"status": "archived"})


class VendorDocumentTests(DynamoTestCase):

    def test_create_vendor_hides_password_and_defaults_to_pending(self):
        vendor = documents.create_vendor({
            "name": "Corner Store", "email": "Shop@Example.com", "phone": "1", "address": "a",
        }, "secret123")
        self.assertNotIn("password_hash", vendor)
        self.assertEqual(vendor["status"], "pending")
        self.assertEqual(vendor["email"], "shop@example.com")
        self.assertTrue(vendor["vendor_id"].startswith("vendor_"))

    def test_duplicate_email_rejected(self):
        TestDataFactory.create_vendor(email="dup@test.com")
        with self.assertRaises(ValidationError):
            TestDataFactory.create_vendor(email="dup@test.com")

    def test_authenticate_vendor(self):
        vendor = TestDataFactory.create_vendor(email="login@test.com")
        self.assertEqual(documents.authenticate_vendor("login@test.com", TestDataFactory.PASSWORD)["vendor_id"],
                         vendor["vendor_id"])
        self.assertEqual(documents.authenticate_vendor("login@test.com", "wrong"), {})
        self.assertIn("last_login", documents.get_vendor(vendor["vendor_id"]))

    def test_update_vendor_ignores_protected_fields(self):
        vendor = TestDataFactory.create_vendor()
        updated = documents.update_vendor(vendor["vendor_id"], {"name": "New", "role": "admin", "password_hash": "x"})
        self.assertEqual(updated["name"], "New")
        self.assertEqual(updated["role"], "vendor")
        self.assertNotEqual(documents.get_vendor(vendor["vendor_id"])["password_hash"], "x")

    def test_import_categories_merges_known_names(self):
        vendor = TestDataFactory.create_vendor()
        documents.add_category("Dairy")
        documents.add_category("Fruits")
        documents.import_categories(vendor["vendor_id"], ["Dairy"])
        updated = documents.import_categories(vendor["vendor_id"], ["Dairy", "Fruits"])
        self.assertEqual(updated["categories"], ["Dairy", "Fruits"])
        with self.assertRaises(ValidationError):
            documents.import_categories(vendor["vendor_id"], ["Toys"])


class CategoryDocumentTests(DynamoTestCase):

    def test_add_category_slugifies_and_rejects_duplicates(self):
        category = documents.add_category("Dairy, Bread & Eggs")
        self.assertEqual(category["slug"], "dairy-bread-eggs")
        with self.assertRaises(ValidationError):
            documents.add_category("dairy bread eggs")

    def test_update_and_delete_missing_category(self):
        with self.assertRaises(NotFound):
            documents.update_category("nope", {"name": "x"})
        with self.assertRaises(NotFound):
            documents.delete_category("nope")


class BannerCardTests(DynamoTestCase):

    def test_defaults_seeded_when_empty(self):
        cards = documents.list_banner_cards()
        self.assertEqual([c["position"] for c in cards], ["top", "middle", "bottom"])
        self.assertEqual(len(self.ddb.scan(documents.BANNER_CARDS_TABLE)), 3)

    def test_save_without_id_replaces_card_at_position(self):
        documents.list_banner_cards()
        card = documents.save_banner_card({
            "title": "Summer Sale", "image_url": "https://x/sale.jpg", "link": "/sale", "position": "middle",
        })
        cards = documents.list_banner_cards()
        self.assertEqual(len(cards), 3)
        middle = [c for c in cards if c["position"] == "middle"]
        self.assertEqual(middle[0]["card_id"], card["card_id"])
        self.assertEqual(middle[0]["title"], "Summer Sale")

    def test_save_with_id_replaces_that_card(self):
        documents.list_banner_cards()
        documents.save_banner_card({
            "card_id": "1", "title": "Fresh", "image_url": "https://x/f.jpg", "link": "/f", "position": "top",
        })
        cards = {c["card_id"]: c for c in documents.list_banner_cards()}
        self.assertEqual(cards["1"]["title"], "Fresh")
        self.assertEqual(len(cards), 3)

    def test_save_requires_all_fields(self):
        with self.assertRaises(ValidationError):
            documents.save_banner_card({"title": "x", "position": "top"})


class GlobalPincodeTests(DynamoTestCase):

    def test_defaults_initialised(self):
        self.assertEqual(documents.get_global_pincodes(), ["110001", "110002", "110003"])

    def test_add_and_remove(self):
        self.assertIn("560001", documents.add_global_pincode("560001"))
        self.assertEqual(documents.add_global_pincode("560001").count("560001"), 1)
        self.assertNotIn("110001", documents.remove_global_pincode("110001"))
        with self.assertRaises(ValidationError):
            documents.add_global_pincode("5600")


class AccountTests(DynamoTestCase):

    def test_admin_role_check(self):
        admin = TestDataFactory.create_admin(email="root@test.com")
        self.assertTrue(documents.is_admin(admin["admin_id"]))
        self.ddb.update(documents.ADMINS_TABLE, {"admin_id": admin["admin_id"]}, {"role": "viewer"})
        self.assertFalse(documents.is_admin(admin["admin_id"]))
        self.assertFalse(documents.is_admin(None))

    def test_customer_signup_and_login(self):
        customer = TestDataFactory.create_customer(email="c@test.com")
        self.assertNotIn("password_hash", customer)
        self.assertEqual(documents.authenticate_customer("C@test.com", TestDataFactory.PASSWORD)["customer_id"],
                         customer["customer_id"])
        with self.assertRaises(ValidationError):
            TestDataFactory.create_customer(email="c@test.com")


class OrderLifecycleTests(DynamoTestCase):

    def setUp(self):
        super().setUp()
        self.vendor_a = TestDataFactory.create_vendor()
        self.vendor_b = TestDataFactory.create_vendor()
        self.milk = TestDataFactory.create_product(self.vendor_a["vendor_id"], name="Milk", price=30)
        self.bread = TestDataFactory.create_product(self.vendor_b["vendor_id"], name="Bread", price=40)

    def _checkout(self, items, notify=None, delivery_fee=40):
        return orders.create_order({
            "customer_id": "customer-1",
            "items": items,
            "address": {"name": "Asha", "phone": "9123456780", "pincode": "110001"},
            "payment_method": "cod",
            "delivery_fee": delivery_fee,
        }, notify=notify)

    def test_checkout_splits_orders_per_vendor(self):
        notify = mock.Mock()
        created = self._checkout([
            {"product_id": self.milk["product_id"], "name": "Milk", "price": 30, "quantity": 2},
            {"product_id": self.bread["product_id"], "name": "Bread", "price": 40, "quantity": 1},
        ], notify=notify)

        self.assertEqual(len(created), 2)
        by_vendor = {o["vendor_id"]: o for o in created}
        self.assertEqual(by_vendor[self.vendor_a["vendor_id"]]["subtotal"], 60)
        self.assertEqual(by_vendor[self.vendor_a["vendor_id"]]["delivery_fee"], 20)
        self.assertEqual(by_vendor[self.vendor_b["vendor_id"]]["total_amount"], 60)
        self.assertEqual(notify.call_count, 2)
        for order in created:
            self.assertEqual(order["order_status"], "pending")
            self.assertEqual(order["payment_status"], "pending")
            self.assertEqual(order["order_number"], order["order_id"][:8].upper())

    def test_delivery_fee_shares_add_up(self):
        vendor_c = TestDataFactory.create_vendor()
        eggs = TestDataFactory.create_product(vendor_c["vendor_id"], name="Eggs", price=60)
        created = self._checkout([
            {"product_id": self.milk["product_id"], "name": "Milk", "price": 30, "quantity": 1},
            {"product_id": self.bread["product_id"], "name": "Bread", "price": 40, "quantity": 1},
            {"product_id": eggs["product_id"], "name": "Eggs", "price": 60, "quantity": 1},
        ])

        self.assertEqual([o["delivery_fee"] for o in created], [13.33, 13.33, 13.34])
        self.assertEqual(round(sum(o["delivery_fee"] for o in created), 2), 40)
        self.assertEqual(orders.split_fee(60, 3), [20.0, 20.0, 20.0])

    def test_notify_failure_does_not_fail_checkout(self):
        notify = mock.Mock(side_effect=RuntimeError("queue down"))
        created = self._checkout(
            [{"product_id": self.milk["product_id"], "name": "Milk", "price": 30, "quantity": 1}],
            notify=notify,
        )
        self.assertEqual(len(created), 1)
        self.assertTrue(self.ddb.get(ORDERS_TABLE, {"order_id": created[0]["order_id"]}))

    def test_unknown_products_kept_together(self):
        created = self._checkout([{"product_id": "ghost", "name": "Ghost", "price": 10, "quantity": 1}])
        self.assertEqual(len(created), 1)
        self.assertIsNone(created[0]["vendor_id"])

    def test_empty_cart_and_bad_payment_method(self):
        with self.assertRaises(ValidationError):
            self._checkout([])
        with self.assertRaises(ValidationError):
            orders.create_order({"items": [{"product_id": "x"}], "payment_method": "barter"})

    def test_status_advances_one_step_at_a_time(self):
        order = TestDataFactory.create_order(self.vendor_a["vendor_id"])
        seen = []
        for _ in range(5):
            seen.append(orders.advance_order(order["order_id"])["order_status"])
        self.assertEqual(seen, ["confirmed", "preparing", "ready", "out_for_delivery", "delivered"])
        with self.assertRaises(ValidationError):
            orders.advance_order(order["order_id"])

    def test_vendor_cannot_touch_other_vendor_order(self):
        order = TestDataFactory.create_order(self.vendor_a["vendor_id"])
        with self.assertRaises(PermissionDenied):
            orders.advance_order(order["order_id"], vendor_id=self.vendor_b["vendor_id"])
        with self.assertRaises(PermissionDenied):
            orders.cancel_order(order["order_id"], vendor_id=self.vendor_b["vendor_id"])

    def test_cancel_only_before_terminal(self):
        order = TestDataFactory.create_order(self.vendor_a["vendor_id"], status="preparing")
        cancelled = orders.cancel_order(order["order_id"], reason="out of stock")
        self.assertEqual(cancelled["order_status"], "cancelled")
        self.assertEqual(cancelled["cancel_reason"], "out of stock")
        delivered = TestDataFactory.create_order(self.vendor_a["vendor_id"], status="delivered")
        with self.assertRaises(ValidationError):
            orders.cancel_order(delivered["order_id"])

    def test_admin_override_and_assignment(self):
        order = TestDataFactory.create_order(self.vendor_a["vendor_id"])
        self.assertEqual(orders.set_order_status(order["order_id"], "ready")["order_status"], "ready")
        with self.assertRaises(ValidationError):
            orders.set_order_status(order["order_id"], "lost")
        assigned = orders.assign_delivery_person(order["order_id"], "rider-7")
        self.assertEqual(assigned["order_status"], "out_for_delivery")
        self.assertEqual(assigned["delivery_person_id"], "rider-7")

    def test_record_payment(self):
        paid = TestDataFactory.create_order(self.vendor_a["vendor_id"])
        failed = TestDataFactory.create_order(self.vendor_a["vendor_id"])
        self.assertEqual(orders.record_payment(paid["order_id"], "paid", {})["order_status"], "confirmed")
        result = orders.record_payment(failed["order_id"], "failed", {"payment_id": "T1"})
        self.assertEqual(result["order_status"], "cancelled")
        self.assertEqual(result["payment_details"], {"payment_id": "T1"})

    def test_new_orders_for_vendor(self):
        vid = self.vendor_a["vendor_id"]
        fresh = TestDataFactory.create_order(vid)
        TestDataFactory.create_order(vid, age=timedelta(hours=30))
        TestDataFactory.create_order(vid, status="delivered")
        TestDataFactory.create_order(self.vendor_b["vendor_id"])
        found = orders.new_orders_for_vendor(vid)
        self.assertEqual([o["order_id"] for o in found], [fresh["order_id"]])

    def test_delivery_fee_options(self):
        self.assertEqual(orders.delivery_fee_for("standard"), 40)
        self.assertEqual(orders.delivery_fee_for("express"), 60)
        with self.assertRaises(ValidationError):
            orders.delivery_fee_for("drone")


class AnalyticsTests(DynamoTestCase):

    def test_vendor_analytics(self):
        vendor = TestDataFactory.create_vendor()
        vid = vendor["vendor_id"]
        TestDataFactory.create_product(vid)
        TestDataFactory.create_order(vid, total=100, items=[
            {"product_id": "p1", "name": "Milk", "price": 30, "quantity": 2},
            {"product_id": "p2", "name": "Bread", "price": 40, "quantity": 1},
        ])
        TestDataFactory.create_order(vid, total=50, status="delivered", items=[
            {"product_id": "p2", "name": "Bread", "price": 40, "quantity": 1},
        ])
        TestDataFactory.create_order(vid, total=999, age=timedelta(days=10))

        result = analytics.vendor_analytics(vid, "week")
        self.assertEqual(result["total_orders"], 2)
        self.assertEqual(result["total_revenue"], 150)
        self.assertEqual(result["average_order_value"], 75)
        self.assertEqual(result["total_products"], 1)
        self.assertEqual(sum(d["total"] for d in result["orders_by_day"]), 2)
        self.assertEqual(result["top_products"][0]["product_id"], "p2")
        self.assertEqual(result["top_products"][0]["total_sold"], 2)
        breakdown = {b["name"]: b["value"] for b in result["order_status_breakdown"]}
        self.assertEqual(breakdown, {"pending": 1, "delivered": 1})

        self.assertEqual(analytics.vendor_analytics(vid, "month")["total_orders"], 3)
        with self.assertRaises(ValidationError):
            analytics.vendor_analytics(vid, "decade")


class FormTests(DynamoTestCase):

    def test_pincodes_field_accepts_list_or_string(self):
        field = PincodesField()
        self.assertEqual(field.clean("110001, 110002,110001"), ["110001", "110002"])
        self.assertEqual(field.clean(["560001"]), ["560001"])
        with self.assertRaises(FieldError):
            field.clean("11000A")

    def test_product_price_above_mrp_rejected(self):
        form = ProductForm({
            "name": "Milk", "description": "d", "price": "50", "mrp": "40", "category": "Dairy",
            "image": "https://x/y.jpg", "unit": "1", "pincodes": "110001",
        })
        self.assertFalse(form.is_valid())
        self.assertIn("Price cannot be higher than MRP", form.errors["__all__"][0])

    def test_vendor_pincodes_must_be_global(self):
        form = VendorPincodesForm({"pincodes": "110001,560001"}, allowed=["110001"])
        self.assertFalse(form.is_valid())

    def test_checkout_defaults_to_standard_delivery(self):
        form = CheckoutForm({
            "name": "Asha", "phone": "9123456780", "address": "1 Road", "pincode": "110001",
            "city": "Delhi", "payment_method": "cod",
        })
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data["delivery_option"], "standard")
        self.assertEqual(form.address_document()["pincode"], "110001")


class FakeDynamoDBTests(DynamoTestCase):

    def test_update_upserts_like_dynamodb(self):
        fake = FakeDynamoDB()
        fake.update(ORDERS_TABLE, {"order_id": "o1"}, {"order_status": "pending"})
        self.assertEqual(fake.get(ORDERS_TABLE, {"order_id": "o1"}), {"order_id": "o1", "order_status": "pending"})


class CsrfTests(DynamoTestCase):

    def setUp(self):
        super().setUp()
        self.browser = Client(enforce_csrf_checks=True)
        self.vendor = TestDataFactory.create_vendor()
        self.credentials = json.dumps({"email": self.vendor["email"], "password": TestDataFactory.PASSWORD})

    def test_post_without_token_rejected(self):
        response = self.browser.post("/vendor/login", self.credentials, content_type="application/json")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["csrf_url"], "/api/csrf")

    def test_login_with_issued_token(self):
        response = self.browser.get("/api/csrf")
        self.assertIn(settings.CSRF_COOKIE_NAME, response.cookies)
        token = response.json()["csrf_token"]

        response = self.browser.post(
            "/vendor/login", self.credentials, content_type="application/json", HTTP_X_CSRFTOKEN=token,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.browser.get("/vendor/dashboard").status_code, 200)
