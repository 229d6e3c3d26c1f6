"""
Tests for the admin console
"""
from commerce import documents, orders
from commerce.test_utils import DynamoTestCase, TestDataFactory

VENDOR = {
    "name": "Green Grocer",
    "email": "green@test.com",
    "phone": "9000000001",
    "address": "3 Park Street",
    "pincodes": "110001,110002",
    "password": "vendorpass1",
}


class AdminTestCase(DynamoTestCase):

    def setUp(self):
        super().setUp()
        self.admin = self.login_admin()


class AccessTests(DynamoTestCase):

    def test_login_required(self):
        response = self.client.get("/admin/dashboard")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["login_url"], "/admin/login")
        self.assertEqual(response.json()["redirect"], "/admin/dashboard")

    def test_role_checked_on_every_request(self):
        admin = self.login_admin()
        self.assertEqual(self.client.get("/admin/dashboard").status_code, 200)
        self.ddb.update(documents.ADMINS_TABLE, {"admin_id": admin["admin_id"]}, {"role": "viewer"})
        self.assertEqual(self.client.get("/admin/dashboard").status_code, 403)
        # the stale session was dropped
        self.assertEqual(self.client.get("/admin/dashboard").status_code, 401)

    def test_bad_credentials(self):
        TestDataFactory.create_admin(email="boss@test.com")
        response = self.post_json("/admin/login", {"email": "boss@test.com", "password": "wrong"})
        self.assertEqual(response.status_code, 400)

    def test_vendor_session_is_not_admin(self):
        vendor = TestDataFactory.create_vendor()
        self.login_vendor(vendor)
        self.assertEqual(self.client.get("/admin/vendors").status_code, 401)


class DashboardTests(AdminTestCase):

    def test_counts(self):
        active = TestDataFactory.create_vendor()
        TestDataFactory.create_vendor(status="pending")
        TestDataFactory.create_product(active["vendor_id"])
        TestDataFactory.create_order(active["vendor_id"], total=100)
        TestDataFactory.create_order(active["vendor_id"], total=40, status="cancelled")

        body = self.client.get("/admin/dashboard").json()
        self.assertEqual(body["total_vendors"], 2)
        self.assertEqual(body["active_vendors"], 1)
        self.assertEqual(body["pending_vendors"], 1)
        self.assertEqual(body["total_products"], 1)
        self.assertEqual(body["total_orders"], 2)
        self.assertEqual(body["pending_orders"], 1)
        self.assertEqual(body["total_revenue"], 100)


class VendorTests(AdminTestCase):

    def test_create_list_update_delete(self):
        response = self.post_json("/admin/vendors", VENDOR)
        self.assertEqual(response.status_code, 201)
        vendor = response.json()["vendor"]
        self.assertEqual(vendor["status"], "pending")
        self.assertEqual(vendor["pincodes"], ["110001", "110002"])

        listed = self.client.get("/admin/vendors").json()["vendors"]
        self.assertEqual(len(listed), 1)
        self.assertNotIn("password_hash", listed[0])
        self.assertEqual(self.client.get("/admin/vendors", {"status": "active"}).json()["vendors"], [])

        url = f"/admin/vendors/{vendor['vendor_id']}"
        body = self.post_json(url, {"name": "Green Grocer Co", "password": "newpassword1"}).json()
        self.assertEqual(body["vendor"]["name"], "Green Grocer Co")
        self.assertTrue(documents.authenticate_vendor("green@test.com", "newpassword1"))

        self.assertEqual(self.client.delete(url).status_code, 200)
        self.assertEqual(self.client.get(url).status_code, 404)

    def test_create_requires_password(self):
        data = dict(VENDOR)
        del data["password"]
        response = self.post_json("/admin/vendors", data)
        self.assertEqual(response.status_code, 400)
        self.assertIn("password", response.json()["fields"])

    def test_status_change(self):
        vendor = TestDataFactory.create_vendor(status="pending")
        url = f"/admin/vendors/{vendor['vendor_id']}/status"
        self.assertEqual(self.post_json(url, {"status": "active"}).json()["vendor"]["status"], "active")
        self.assertEqual(self.post_json(url, {"status": "retired"}).status_code, 400)

    def test_detail_includes_products_and_orders(self):
        vendor = TestDataFactory.create_vendor()
        TestDataFactory.create_product(vendor["vendor_id"])
        TestDataFactory.create_order(vendor["vendor_id"])
        body = self.client.get(f"/admin/vendors/{vendor['vendor_id']}").json()
        self.assertEqual(len(body["products"]), 1)
        self.assertEqual(len(body["orders"]), 1)


class ProductTests(AdminTestCase):

    def test_list_update_delete(self):
        vendor = TestDataFactory.create_vendor()
        product = TestDataFactory.create_product(vendor["vendor_id"])
        TestDataFactory.create_product("vendor_other", name="Eggs")

        filtered = self.client.get("/admin/products", {"vendor_id": vendor["vendor_id"]}).json()["products"]
        self.assertEqual([p["name"] for p in filtered], ["Milk"])

        url = f"/admin/products/{product['product_id']}"
        body = self.post_json(url, {"name": "Toned Milk"}).json()
        self.assertEqual(body["product"]["name"], "Toned Milk")

        self.client.delete(url)
        self.assertEqual(len(self.client.get("/admin/products").json()["products"]), 1)
        everything = self.client.get("/admin/products", {"include_deleted": "true"}).json()["products"]
        self.assertEqual(len(everything), 2)


class CategoryTests(AdminTestCase):

    def test_crud(self):
        category = self.post_json("/admin/categories", {"name": "Snacks"}).json()["category"]
        self.assertEqual(category["slug"], "snacks")
        self.assertEqual(self.post_json("/admin/categories", {"name": "Snacks"}).status_code, 400)

        url = f"/admin/categories/{category['category_id']}"
        body = self.post_json(url, {"name": "Snacks & Namkeen"}).json()
        self.assertEqual(body["category"]["slug"], "snacks-namkeen")

        self.client.delete(url)
        self.assertEqual(self.client.get("/admin/categories").json()["categories"], [])


class BannerCardTests(DynamoTestCase):

    def test_public_read(self):
        body = self.client.get("/api/banner-cards").json()
        self.assertEqual([c["card_id"] for c in body["cards"]], ["1", "2", "3"])

    def test_writes_need_admin(self):
        card = {"title": "Sale", "imageUrl": "https://x/sale.jpg", "link": "/sale", "position": "top"}
        self.assertEqual(self.post_json("/api/banner-cards", card).status_code, 401)

        self.login_admin()
        body = self.post_json("/api/banner-cards", card).json()
        self.assertEqual(body["card"]["image_url"], "https://x/sale.jpg")
        cards = self.client.get("/admin/banner-cards").json()["cards"]
        self.assertEqual(len(cards), 3)
        self.assertEqual(cards[0]["title"], "Sale")

        self.assertEqual(self.client.delete(f"/api/banner-cards?id={body['card']['card_id']}").status_code, 200)
        self.assertEqual(len(self.client.get("/api/banner-cards").json()["cards"]), 2)
        self.assertEqual(self.client.delete("/api/banner-cards").status_code, 400)

    def test_invalid_position(self):
        self.login_admin()
        card = {"title": "Sale", "image_url": "https://x/sale.jpg", "link": "/sale", "position": "side"}
        self.assertEqual(self.post_json("/api/banner-cards", card).status_code, 400)


class OrderTests(AdminTestCase):

    def test_list_search_and_detail(self):
        vendor = TestDataFactory.create_vendor()
        customer = TestDataFactory.create_customer()
        order = TestDataFactory.create_order(vendor["vendor_id"], customer_id=customer["customer_id"],
                                             order_id="abc12345-0000")
        TestDataFactory.create_order(vendor["vendor_id"], status="delivered")

        self.assertEqual(self.client.get("/admin/orders").json()["count"], 2)
        self.assertEqual(self.client.get("/admin/orders", {"status": "delivered"}).json()["count"], 1)
        found = self.client.get("/admin/orders", {"search": "ABC123"}).json()["orders"]
        self.assertEqual([o["order_id"] for o in found], [order["order_id"]])

        detail = self.client.get(f"/admin/orders/{order['order_id']}").json()
        self.assertEqual(detail["vendor"]["vendor_id"], vendor["vendor_id"])
        self.assertNotIn("password_hash", detail["customer"])

    def test_status_override_and_assignment(self):
        order = TestDataFactory.create_order("vendor_1", status="delivered")
        url = f"/admin/orders/{order['order_id']}"
        self.assertEqual(self.post_json(f"{url}/status", {"status": "preparing"}).json()["order"]["order_status"],
                         "preparing")
        self.assertEqual(self.post_json(f"{url}/status", {}).status_code, 400)

        body = self.post_json(f"{url}/assign", {"delivery_person_id": "rider-2"}).json()
        self.assertEqual(body["order"]["order_status"], orders.OrderStatus.OUT_FOR_DELIVERY.value)
        self.assertEqual(self.post_json(f"{url}/assign", {}).status_code, 400)


class PincodeTests(AdminTestCase):

    def test_manage_global_pincodes(self):
        self.assertEqual(self.client.get("/api/admin/pincodes").json()["pincodes"], ["110001", "110002", "110003"])
        body = self.post_json("/api/admin/pincodes", {"pincode": "560001"}).json()
        self.assertIn("560001", body["pincodes"])
        body = self.post_json("/admin/pincodes", {"pincode": "110001"}, method="delete").json()
        self.assertNotIn("110001", body["pincodes"])
        self.assertEqual(self.post_json("/api/admin/pincodes", {"pincode": "56"}).status_code, 400)
