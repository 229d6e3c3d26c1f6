"""
Tests for the vendor console
"""
from commerce import documents, orders
from commerce.test_utils import DynamoTestCase, TestDataFactory

PRODUCT = {
    "name": "Brown Bread",
    "description": "Whole wheat loaf",
    "price": "40",
    "mrp": "45",
    "category": "Bakery",
    "image": "https://images.example.com/bread.jpg",
    "unit": "400 g",
    "pincodes": ["110001"],
}


class VendorConsoleTestCase(DynamoTestCase):

    def setUp(self):
        super().setUp()
        self.vendor = TestDataFactory.create_vendor(pincodes=("110001", "110002"))
        self.login_vendor(self.vendor)


class AccessTests(DynamoTestCase):

    def test_login_required(self):
        response = self.client.get("/vendor/dashboard")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["login_url"], "/vendor/login")

    def test_wrong_password(self):
        vendor = TestDataFactory.create_vendor()
        self.assertEqual(self.login_vendor(vendor, password="nope").status_code, 400)

    def test_blocked_after_login(self):
        vendor = TestDataFactory.create_vendor()
        self.login_vendor(vendor)
        self.assertEqual(self.client.get("/vendor/dashboard").status_code, 200)
        documents.set_vendor_status(vendor["vendor_id"], "blocked")
        response = self.client.get("/vendor/dashboard")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["status"], "blocked")

    def test_logout(self):
        vendor = TestDataFactory.create_vendor()
        self.login_vendor(vendor)
        self.post_json("/vendor/logout")
        self.assertEqual(self.client.get("/vendor/dashboard").status_code, 401)


class DashboardTests(VendorConsoleTestCase):

    def test_summary(self):
        vid = self.vendor["vendor_id"]
        TestDataFactory.create_order(vid, total=100)
        TestDataFactory.create_order(vid, total=50, status="cancelled")
        TestDataFactory.create_order("vendor_other", total=999)
        TestDataFactory.create_product(vid)

        body = self.client.get("/vendor/dashboard").json()
        self.assertEqual(body["total_orders"], 2)
        self.assertEqual(body["today_orders"], 2)
        self.assertEqual(body["pending_orders"], 1)
        self.assertEqual(body["total_revenue"], 100)
        self.assertEqual(body["total_products"], 1)
        self.assertNotIn("password_hash", body["vendor"])

    def test_analytics(self):
        TestDataFactory.create_order(self.vendor["vendor_id"], total=80)
        body = self.client.get("/vendor/analytics", {"period": "month"}).json()
        self.assertEqual(body["total_orders"], 1)
        self.assertEqual(body["period"], "month")
        self.assertEqual(self.client.get("/vendor/analytics", {"period": "ages"}).status_code, 400)


class OrderTests(VendorConsoleTestCase):

    def test_list_filters_by_status(self):
        vid = self.vendor["vendor_id"]
        TestDataFactory.create_order(vid)
        TestDataFactory.create_order(vid, status="ready")
        self.assertEqual(self.client.get("/vendor/orders").json()["count"], 2)
        ready = self.client.get("/vendor/orders", {"status": "ready"}).json()["orders"]
        self.assertEqual([o["order_status"] for o in ready], ["ready"])
        self.assertEqual(self.client.get("/vendor/orders", {"status": "bogus"}).status_code, 400)

    def test_detail_advance_cancel(self):
        order = TestDataFactory.create_order(self.vendor["vendor_id"])
        detail = self.client.get(f"/vendor/orders/{order['order_id']}").json()
        self.assertEqual(detail["next_status"], "confirmed")
        self.assertTrue(detail["can_cancel"])

        body = self.post_json(f"/vendor/orders/{order['order_id']}/advance").json()
        self.assertEqual(body["order"]["order_status"], "confirmed")

        body = self.post_json(f"/vendor/orders/{order['order_id']}/cancel", {"reason": "closed early"}).json()
        self.assertEqual(body["order"]["order_status"], "cancelled")
        self.assertEqual(self.post_json(f"/vendor/orders/{order['order_id']}/advance").status_code, 400)

    def test_other_vendor_orders_hidden(self):
        order = TestDataFactory.create_order("vendor_other")
        self.assertEqual(self.client.get(f"/vendor/orders/{order['order_id']}").status_code, 404)
        self.assertEqual(self.post_json(f"/vendor/orders/{order['order_id']}/advance").status_code, 403)
        self.assertEqual(orders.get_order(order["order_id"])["order_status"], "pending")


class ProductTests(VendorConsoleTestCase):

    def test_create_and_list(self):
        response = self.post_json("/vendor/products", PRODUCT)
        self.assertEqual(response.status_code, 201)
        product = response.json()["product"]
        self.assertEqual(product["vendor_id"], self.vendor["vendor_id"])
        self.assertEqual(product["price"], 40.0)
        self.assertEqual(product["status"], "active")

        listed = self.client.get("/vendor/products").json()["products"]
        self.assertEqual([p["name"] for p in listed], ["Brown Bread"])
        self.assertEqual(documents.get_vendor(self.vendor["vendor_id"])["products_count"], 1)

    def test_pincodes_must_be_in_service_area(self):
        response = self.post_json("/vendor/products", dict(PRODUCT, pincodes=["560001"]))
        self.assertEqual(response.status_code, 400)
        self.assertIn("560001", response.json()["error"])

    def test_invalid_product(self):
        response = self.post_json("/vendor/products", dict(PRODUCT, price="90"))
        self.assertEqual(response.status_code, 400)
        self.assertIn("__all__", response.json()["fields"])

    def test_partial_update_and_delete(self):
        product = self.post_json("/vendor/products", PRODUCT).json()["product"]
        url = f"/vendor/products/{product['product_id']}"

        body = self.post_json(url, {"status": "out_of_stock", "price": "42"}).json()
        self.assertEqual(body["product"]["status"], "out_of_stock")
        self.assertEqual(body["product"]["price"], 42.0)
        self.assertEqual(body["product"]["name"], "Brown Bread")

        self.client.delete(url)
        self.assertEqual(documents.get_product(product["product_id"])["status"], "deleted")

    def test_cannot_touch_other_vendor_product(self):
        other = TestDataFactory.create_product("vendor_other")
        url = f"/vendor/products/{other['product_id']}"
        self.assertEqual(self.client.get(url).status_code, 403)
        self.assertEqual(self.client.delete(url).status_code, 403)
        self.assertEqual(documents.get_product(other["product_id"])["status"], "active")


class CategoryTests(VendorConsoleTestCase):

    def test_add_creates_global_category_once(self):
        body = self.post_json("/vendor/categories", {"name": "Bakery"}).json()
        self.assertEqual(body["vendor_categories"], ["Bakery"])
        self.post_json("/vendor/categories", {"name": "Bakery"})
        self.assertEqual(len(documents.all_categories()), 1)

    def test_import(self):
        documents.add_category("Dairy")
        documents.add_category("Fruits")
        body = self.post_json("/vendor/categories/import", {"categories": ["Dairy", "Fruits"]}).json()
        self.assertEqual(body["vendor_categories"], ["Dairy", "Fruits"])
        self.assertEqual(self.post_json("/vendor/categories/import", {"categories": []}).status_code, 400)

        listing = self.client.get("/vendor/categories").json()
        self.assertEqual([c["name"] for c in listing["categories"]], ["Dairy", "Fruits"])


class SettingsTests(VendorConsoleTestCase):

    def test_profile_update_marks_complete(self):
        body = self.post_json("/vendor/profile", {
            "name": "Fresh Mart", "phone": "9000000000", "address": "9 Hill Road",
        }).json()
        self.assertEqual(body["vendor"]["name"], "Fresh Mart")
        self.assertTrue(body["vendor"]["profile_complete"])

    def test_pincodes_limited_to_global(self):
        body = self.post_json("/vendor/pincodes", {"pincodes": "110003"}).json()
        self.assertEqual(body["pincodes"], ["110003"])
        self.assertEqual(self.post_json("/vendor/pincodes", {"pincodes": ["560001"]}).status_code, 400)
        self.assertEqual(self.client.get("/vendor/pincodes").json()["available"], ["110001", "110002", "110003"])

    def test_toggle_open(self):
        self.assertTrue(self.post_json("/vendor/toggle-open").json()["is_open"])
        self.assertFalse(self.post_json("/vendor/toggle-open").json()["is_open"])
        self.assertTrue(self.post_json("/vendor/toggle-open", {"is_open": True}).json()["is_open"])
