"""
Tests for the customer storefront: pincode selection, browsing, cart and checkout
"""
from unittest import mock

from django.conf import settings

from commerce import documents, orders
from commerce.exceptions import ExternalServiceError
from commerce.test_utils import DynamoTestCase, TestDataFactory


class StorefrontTestCase(DynamoTestCase):

    def setUp(self):
        super().setUp()
        self.vendor = TestDataFactory.create_vendor(pincodes=("110001", "110002"))
        self.milk = TestDataFactory.create_product(
            self.vendor["vendor_id"], name="Milk", price=30, category="Dairy", pincodes=("110001", "110002"))
        self.apple = TestDataFactory.create_product(
            self.vendor["vendor_id"], name="Apple", price=120, mrp=150, category="Fruits", pincodes=("110002",))

    def choose_pincode(self, pincode="110001"):
        self.client.cookies[settings.PINCODE_COOKIE_NAME] = pincode


class PincodeTests(StorefrontTestCase):

    def test_set_pincode_cookie(self):
        response = self.post_json("/pincode", {"pincode": "110001"})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["serviceable"])
        self.assertEqual(response.cookies[settings.PINCODE_COOKIE_NAME].value, "110001")

        body = self.client.get("/pincode").json()
        self.assertEqual(body["pincode"], "110001")

    def test_unserviceable_pincode_still_stored(self):
        response = self.post_json("/pincode", {"pincode": "999999"})
        self.assertFalse(response.json()["serviceable"])

    def test_invalid_pincode(self):
        response = self.post_json("/pincode", {"pincode": "12ab56"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("pincode", response.json()["fields"])

    def test_browsing_requires_pincode(self):
        response = self.client.get("/categories")
        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()["pincode_required"])


class CatalogueTests(StorefrontTestCase):

    def test_home(self):
        self.choose_pincode("110002")
        body = self.client.get("/").json()
        self.assertEqual(len(body["banner_cards"]), 3)
        self.assertEqual(body["categories"], ["Dairy", "Fruits"])

    def test_home_without_pincode(self):
        body = self.client.get("/").json()
        self.assertEqual(body["categories"], [])

    def test_category_products_filtered_by_pincode(self):
        documents.add_category("Fruits")
        self.choose_pincode("110001")
        self.assertEqual(self.client.get("/category/fruits").json()["products"], [])
        self.choose_pincode("110002")
        products = self.client.get("/category/fruits").json()["products"]
        self.assertEqual([p["name"] for p in products], ["Apple"])

    def test_product_detail(self):
        self.choose_pincode("110002")
        body = self.client.get(f"/product/{self.milk['product_id']}").json()
        self.assertTrue(body["deliverable"])
        self.assertEqual(body["vendor"]["vendor_id"], self.vendor["vendor_id"])
        self.assertEqual(self.client.get("/product/missing").status_code, 404)

    def test_search(self):
        self.choose_pincode("110001")
        body = self.client.get("/search", {"q": "mil"}).json()
        self.assertEqual([p["name"] for p in body["products"]], ["Milk"])


class CartTests(StorefrontTestCase):

    def test_add_update_remove(self):
        self.post_json("/cart/add", {"product_id": self.milk["product_id"], "quantity": 2})
        body = self.post_json("/cart/add", {"product_id": self.apple["product_id"]}).json()
        self.assertEqual(body["item_count"], 3)
        self.assertEqual(body["subtotal"], 180)

        body = self.post_json(f"/cart/{self.milk['product_id']}", {"quantity": 5}).json()
        self.assertEqual(body["subtotal"], 270)

        body = self.post_json(f"/cart/{self.milk['product_id']}", {"quantity": 0}).json()
        self.assertEqual([i["name"] for i in body["items"]], ["Apple"])

        body = self.post_json(f"/cart/{self.apple['product_id']}", method="delete").json()
        self.assertEqual(body["items"], [])

    def test_clear(self):
        self.post_json("/cart/add", {"product_id": self.milk["product_id"]})
        body = self.client.delete("/cart").json()
        self.assertEqual(body["item_count"], 0)

    def test_rejects_bad_input(self):
        self.assertEqual(self.post_json("/cart/add", {}).status_code, 400)
        self.assertEqual(self.post_json("/cart/add", {"product_id": "missing"}).status_code, 404)
        response = self.post_json("/cart/add", {"product_id": self.milk["product_id"], "quantity": "lots"})
        self.assertEqual(response.status_code, 400)


class AccountTests(StorefrontTestCase):

    def test_signup_login_logout(self):
        response = self.post_json("/signup", {
            "name": "Asha", "email": "asha@test.com", "phone": "9123456780", "password": "longpassword",
        })
        self.assertEqual(response.status_code, 201)
        self.assertEqual(self.client.get("/profile").json()["customer"]["email"], "asha@test.com")

        self.post_json("/logout")
        self.assertEqual(self.client.get("/profile").status_code, 401)

        self.assertEqual(self.post_json("/login", {"email": "asha@test.com", "password": "nope"}).status_code, 400)
        self.assertEqual(self.post_json("/login", {"email": "asha@test.com", "password": "longpassword"}).status_code, 200)

    def test_short_password_rejected(self):
        response = self.post_json("/signup", {"name": "A", "email": "a@test.com", "phone": "1", "password": "short"})
        self.assertEqual(response.status_code, 400)


class CheckoutTests(StorefrontTestCase):

    ADDRESS = {
        "name": "Asha",
        "phone": "9123456780",
        "address": "4 Lake View",
        "pincode": "110002",
        "city": "Delhi",
    }

    def setUp(self):
        super().setUp()
        self.customer = TestDataFactory.create_customer()
        self.login_customer(self.customer)
        queue = mock.patch("storefront.views.queue_vendor_notification")
        self.queue = queue.start()
        self.addCleanup(queue.stop)

    def test_requires_login(self):
        self.post_json("/logout")
        self.assertEqual(self.post_json("/checkout", dict(self.ADDRESS, payment_method="cod")).status_code, 401)

    def test_empty_cart(self):
        response = self.post_json("/checkout", dict(self.ADDRESS, payment_method="cod"))
        self.assertEqual(response.json()["error"], "Your cart is empty")

    def test_cod_checkout(self):
        self.post_json("/cart/add", {"product_id": self.milk["product_id"], "quantity": 2})
        response = self.post_json("/checkout", dict(self.ADDRESS, payment_method="cod", delivery_option="express"))

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["total_amount"], 120)
        self.assertNotIn("payment", body)
        self.queue.assert_called_once_with(body["order_ids"][0], self.vendor["vendor_id"])
        self.assertEqual(self.client.get("/cart").json()["items"], [])

        history = self.client.get("/orders").json()["orders"]
        self.assertEqual([o["order_id"] for o in history], body["order_ids"])
        detail = self.client.get(f"/orders/{body['order_ids'][0]}").json()
        self.assertEqual(detail["status_label"], "Pending")

    def test_items_outside_pincode_rejected(self):
        self.post_json("/cart/add", {"product_id": self.apple["product_id"]})
        response = self.post_json("/checkout", dict(self.ADDRESS, pincode="110001", payment_method="cod"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["unavailable"], ["Apple"])

    @mock.patch("storefront.views.initiate_payment")
    def test_online_checkout_initiates_payment(self, initiate):
        initiate.return_value = {"order_id": "ORDER_1", "txn_token": "tok", "amount": 160.0, "paytm_params": {}}
        self.post_json("/cart/add", {"product_id": self.apple["product_id"]})
        body = self.post_json("/checkout", dict(self.ADDRESS, payment_method="online")).json()

        self.assertEqual(body["payment"]["txn_token"], "tok")
        args = initiate.call_args
        self.assertEqual(args.args[0], 160)
        self.assertEqual(args.args[2], body["order_ids"])

    @mock.patch("storefront.views.initiate_payment", side_effect=ExternalServiceError("Payment gateway is unreachable"))
    def test_gateway_failure_keeps_orders(self, initiate):
        self.post_json("/cart/add", {"product_id": self.apple["product_id"]})
        response = self.post_json("/checkout", dict(self.ADDRESS, payment_method="online"))
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["payment_error"], "Payment gateway is unreachable")
        self.assertEqual(orders.get_order(response.json()["order_ids"][0])["payment_status"], "pending")

    def test_cannot_view_other_customer_order(self):
        other = TestDataFactory.create_order(self.vendor["vendor_id"], customer_id="someone-else")
        self.assertEqual(self.client.get(f"/orders/{other['order_id']}").status_code, 404)
