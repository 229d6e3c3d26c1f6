"""
Tests for the Paytm checksum, payment initiation and the gateway callback
"""
from unittest import mock

import requests
from django.test import SimpleTestCase, override_settings

from aws_config import PAYMENT_SESSIONS_TABLE
from commerce import orders
from commerce.test_utils import DynamoTestCase, TestDataFactory
from payments import checksum, gateway

MERCHANT_KEY = "test_merchant_key"


class ChecksumTests(SimpleTestCase):

    def test_checksum_is_order_independent(self):
        a = checksum.generate_checksum({"MID": "m1", "ORDERID": "o1", "TXNAMOUNT": "10.00"}, MERCHANT_KEY)
        b = checksum.generate_checksum({"TXNAMOUNT": "10.00", "ORDERID": "o1", "MID": "m1"}, MERCHANT_KEY)
        self.assertEqual(a, b)
        self.assertEqual(len(a), 64)

    def test_checksum_depends_on_key_and_values(self):
        params = {"MID": "m1", "ORDERID": "o1"}
        base = checksum.generate_checksum(params, MERCHANT_KEY)
        self.assertNotEqual(base, checksum.generate_checksum(params, "other"))
        self.assertNotEqual(base, checksum.generate_checksum({"MID": "m1", "ORDERID": "o2"}, MERCHANT_KEY))

    def test_verify(self):
        params = {"MID": "m1", "ORDERID": "o1"}
        good = checksum.generate_checksum(params, MERCHANT_KEY)
        self.assertTrue(checksum.verify_checksum(params, good, MERCHANT_KEY))
        self.assertFalse(checksum.verify_checksum(params, "0" * 64, MERCHANT_KEY))
        self.assertFalse(checksum.verify_checksum(params, None, MERCHANT_KEY))

    def test_validate_gateway_response(self):
        full = {"ORDERID": "o", "TXNID": "t", "TXNAMOUNT": "1.00", "STATUS": "TXN_SUCCESS"}
        self.assertTrue(checksum.validate_gateway_response(full))
        self.assertFalse(checksum.validate_gateway_response(dict(full, TXNID="")))
        self.assertFalse(checksum.validate_gateway_response({}))

    def test_helpers(self):
        self.assertEqual(checksum.format_amount(99), "99.00")
        self.assertEqual(checksum.format_amount("12.5"), "12.50")
        self.assertTrue(checksum.generate_payment_order_id().startswith("ORDER_"))
        self.assertEqual(checksum.payment_status_message("TXN_FAILURE"), "Payment failed")
        self.assertEqual(checksum.payment_status_message("???"), "Unknown payment status")


def _signed_callback(**overrides):
    form = {
        "ORDERID": "ORDER_1",
        "TXNID": "TXN123",
        "TXNAMOUNT": "120.00",
        "STATUS": "TXN_SUCCESS",
        "CURRENCY": "INR",
        "BANKTXNID": "BANK9",
    }
    form.update(overrides)
    form["CHECKSUMHASH"] = checksum.generate_checksum(form, MERCHANT_KEY)
    return form


@override_settings(PAYTM_MERCHANT_KEY=MERCHANT_KEY, PAYTM_MID="MID001")
class CallbackTests(DynamoTestCase):

    def setUp(self):
        super().setUp()
        vendor = TestDataFactory.create_vendor()
        self.order = TestDataFactory.create_order(vendor["vendor_id"], customer_id="cust-1")
        self.ddb.put(PAYMENT_SESSIONS_TABLE, {
            "payment_order_id": "ORDER_1",
            "amount": 120.0,
            "customer_id": "cust-1",
            "order_ids": [self.order["order_id"]],
        })

    def test_success_confirms_orders_and_clears_session(self):
        response = self.client.post("/api/paytm/callback", _signed_callback())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "paid")

        order = orders.get_order(self.order["order_id"])
        self.assertEqual(order["order_status"], "confirmed")
        self.assertEqual(order["payment_status"], "paid")
        self.assertEqual(order["payment_details"]["payment_id"], "TXN123")
        self.assertEqual(order["payment_details"]["payment_amount"], 120.0)
        self.assertEqual(self.ddb.get(PAYMENT_SESSIONS_TABLE, {"payment_order_id": "ORDER_1"}), {})

    def test_failure_cancels_orders(self):
        self.client.post("/api/paytm/callback", _signed_callback(STATUS="TXN_FAILURE"))
        order = orders.get_order(self.order["order_id"])
        self.assertEqual(order["order_status"], "cancelled")
        self.assertEqual(order["payment_status"], "failed")

    def test_bad_checksum_rejected(self):
        form = _signed_callback()
        form["TXNAMOUNT"] = "1.00"
        response = self.client.post("/api/paytm/callback", form)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Checksum verification failed")
        self.assertEqual(orders.get_order(self.order["order_id"])["order_status"], "pending")

    def test_missing_fields_rejected(self):
        response = self.client.post("/api/paytm/callback", {"ORDERID": "ORDER_1"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid payment response")

    def test_unknown_payment_order(self):
        response = self.client.post("/api/paytm/callback", _signed_callback(ORDERID="ORDER_404"))
        self.assertEqual(response.status_code, 404)

    def test_store_failure_still_acknowledged(self):
        with mock.patch("payments.gateway.orders.record_payment", side_effect=orders.NotFound("gone")):
            response = self.client.post("/api/paytm/callback", _signed_callback())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Payment received, processing may be delayed")

    def test_short_payment_does_not_confirm(self):
        response = self.client.post("/api/paytm/callback", _signed_callback(TXNAMOUNT="1.00"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "failed")

        order = orders.get_order(self.order["order_id"])
        self.assertEqual(order["payment_status"], "failed")
        self.assertEqual(order["order_status"], "cancelled")
        self.assertEqual(order["payment_details"]["payment_amount"], 1.0)
        self.assertEqual(order["payment_details"]["expected_amount"], 120.0)

    def test_get_not_allowed(self):
        self.assertEqual(self.client.get("/api/paytm/callback").status_code, 405)


@override_settings(PAYTM_MERCHANT_KEY=MERCHANT_KEY, PAYTM_MID="MID001")
class InitiateTests(DynamoTestCase):

    def setUp(self):
        super().setUp()
        self.customer = TestDataFactory.create_customer()
        vendor = TestDataFactory.create_vendor()
        self.order = TestDataFactory.create_order(vendor["vendor_id"], customer_id=self.customer["customer_id"])

    def _gateway_reply(self, body):
        reply = mock.Mock()
        reply.json.return_value = body
        return reply

    @mock.patch("payments.gateway.requests.post")
    def test_initiate_stores_session(self, post):
        post.return_value = self._gateway_reply({"HEAD": {"responseCode": "OK"}, "BODY": {"txnToken": "tok"}})
        result = gateway.initiate_payment(120, "cust-1", ["o1", "o2"], email="a@b.c", phone="9123456780")

        self.assertEqual(result["txn_token"], "tok")
        self.assertEqual(result["paytm_params"]["TXN_AMOUNT"], "120.00")
        params = dict(result["paytm_params"])
        sent_checksum = params.pop("CHECKSUMHASH")
        self.assertTrue(checksum.verify_checksum(params, sent_checksum, MERCHANT_KEY))

        session = self.ddb.get(PAYMENT_SESSIONS_TABLE, {"payment_order_id": result["order_id"]})
        self.assertEqual(session["order_ids"], ["o1", "o2"])
        self.assertEqual(post.call_args.args[0], gateway.initiate_url())

    @mock.patch("payments.gateway.requests.post")
    def test_gateway_refusal(self, post):
        post.return_value = self._gateway_reply({"HEAD": {"responseCode": "ERR", "responseMessage": "Bad MID"}})
        with self.assertRaisesMessage(gateway.ValidationError, "Bad MID"):
            gateway.initiate_payment(120, "cust-1", ["o1"])
        self.assertEqual(self.ddb.scan(PAYMENT_SESSIONS_TABLE), [])

    @mock.patch("payments.gateway.requests.post", side_effect=requests.exceptions.ConnectionError("down"))
    def test_gateway_unreachable(self, post):
        with self.assertRaises(gateway.ExternalServiceError):
            gateway.initiate_payment(120, "cust-1", ["o1"])

    @mock.patch("payments.gateway.requests.post")
    def test_view_requires_own_orders(self, post):
        post.return_value = self._gateway_reply({"HEAD": {"responseCode": "OK"}, "BODY": {"txnToken": "tok"}})
        self.assertEqual(self.post_json("/api/paytm/initiate", {"amount": 10}).status_code, 401)

        self.login_customer(self.customer)
        response = self.post_json("/api/paytm/initiate", {"amount": 100, "orderIds": [self.order["order_id"]]})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])

        other = TestDataFactory.create_order("vendor-x", customer_id="someone-else")
        response = self.post_json("/api/paytm/initiate", {"amount": 100, "orderIds": [other["order_id"]]})
        self.assertEqual(response.status_code, 403)

    @mock.patch("payments.gateway.requests.post")
    def test_view_charges_the_order_total(self, post):
        post.return_value = self._gateway_reply({"HEAD": {"responseCode": "OK"}, "BODY": {"txnToken": "tok"}})
        self.login_customer(self.customer)

        response = self.post_json("/api/paytm/initiate", {"amount": 1, "orderIds": [self.order["order_id"]]})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["expected"], 100)
        post.assert_not_called()

        body = self.post_json("/api/paytm/initiate", {"orderIds": [self.order["order_id"]]}).json()
        self.assertEqual(body["paytm_params"]["TXN_AMOUNT"], "100.00")
        session = self.ddb.get(PAYMENT_SESSIONS_TABLE, {"payment_order_id": body["order_id"]})
        self.assertEqual(session["amount"], 100.0)

        self.assertEqual(self.post_json("/api/paytm/initiate", {"orderIds": []}).status_code, 400)

    @mock.patch("payments.gateway.requests.post")
    def test_status(self, post):
        post.return_value = self._gateway_reply({
            "HEAD": {"responseCode": "OK"},
            "BODY": {"STATUS": "TXN_SUCCESS", "TXNID": "T1", "TXNAMOUNT": "100.00"},
        })
        self.login_customer(self.customer)
        response = self.post_json("/api/paytm/status", {"orderId": "ORDER_1"})
        body = response.json()
        self.assertEqual(body["payment_status"], "TXN_SUCCESS")
        self.assertEqual(body["message"], "Payment completed successfully")
