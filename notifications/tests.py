"""
Tests for vendor push tokens, order notifications and the SQS worker
"""
import json
from unittest import mock

from botocore.exceptions import ClientError

from aws_config import ORDERS_TABLE, VENDOR_TOKENS_TABLE, VENDORS_TABLE
from commerce.exceptions import ExternalServiceError, NotFound, ValidationError
from commerce.test_utils import DynamoTestCase, TestDataFactory
from notifications import service

APP_ARN = "arn:aws:sns:ap-south-1:000000000000:app/GCM/quickcart-vendor"
ENDPOINT_ARN = "arn:aws:sns:ap-south-1:000000000000:endpoint/GCM/quickcart-vendor/abc"


class NotificationTestCase(DynamoTestCase):

    def setUp(self):
        super().setUp()
        sns_patcher = mock.patch("notifications.service.sns")
        sqs_patcher = mock.patch("notifications.service.sqs")
        arn_patcher = mock.patch("notifications.service.SNS_PLATFORM_APPLICATION_ARN", APP_ARN)
        self.sns = sns_patcher.start()
        self.sqs = sqs_patcher.start()
        arn_patcher.start()
        self.addCleanup(sns_patcher.stop)
        self.addCleanup(sqs_patcher.stop)
        self.addCleanup(arn_patcher.stop)
        self.sns.create_platform_endpoint.return_value = ENDPOINT_ARN
        self.sns.publish_to_endpoint.return_value = "msg-1"
        self.vendor = TestDataFactory.create_vendor()


class TokenTests(NotificationTestCase):

    def test_register_creates_endpoint_and_record(self):
        service.register_token(self.vendor["vendor_id"], "device-token", "web")

        self.sns.create_platform_endpoint.assert_called_once_with(APP_ARN, "device-token", self.vendor["vendor_id"])
        record = self.ddb.get(VENDOR_TOKENS_TABLE, {"token_id": f"{self.vendor['vendor_id']}_web"})
        self.assertEqual(record["endpoint_arn"], ENDPOINT_ARN)
        self.assertTrue(record["active"])
        self.assertTrue(self.ddb.get(VENDORS_TABLE, {"vendor_id": self.vendor["vendor_id"]})["notification_enabled"])

    def test_register_validation(self):
        with self.assertRaises(ValidationError):
            service.register_token(self.vendor["vendor_id"], "", "web")
        with self.assertRaises(ValidationError):
            service.register_token(self.vendor["vendor_id"], "t", "pager")
        with self.assertRaises(NotFound):
            service.register_token("vendor_missing", "t", "web")

    def test_register_sns_failure(self):
        self.sns.create_platform_endpoint.side_effect = ClientError(
            {"Error": {"Code": "InvalidParameter", "Message": "bad token"}}, "CreatePlatformEndpoint")
        with self.assertRaises(ExternalServiceError):
            service.register_token(self.vendor["vendor_id"], "t", "web")

    def test_unregister(self):
        service.register_token(self.vendor["vendor_id"], "device-token", "web")
        service.unregister_token(self.vendor["vendor_id"], "web")

        self.sns.delete_endpoint.assert_called_once_with(ENDPOINT_ARN)
        record = self.ddb.get(VENDOR_TOKENS_TABLE, {"token_id": f"{self.vendor['vendor_id']}_web"})
        self.assertFalse(record["active"])
        self.assertIsNone(service.active_endpoint(self.vendor["vendor_id"]))

    def test_web_token_preferred_over_mobile(self):
        self.sns.create_platform_endpoint.side_effect = ["arn-mobile", "arn-web"]
        service.register_token(self.vendor["vendor_id"], "m", "mobile")
        service.register_token(self.vendor["vendor_id"], "w", "web")
        self.assertEqual(service.active_endpoint(self.vendor["vendor_id"]), "arn-web")


class NotifyVendorTests(NotificationTestCase):

    def test_notify_publishes_and_stamps_order(self):
        order = TestDataFactory.create_order(self.vendor["vendor_id"])
        service.register_token(self.vendor["vendor_id"], "device-token", "web")

        result = service.notify_vendor(order["order_id"], self.vendor["vendor_id"])

        self.assertEqual(result["message_id"], "msg-1")
        endpoint, payloads = self.sns.publish_to_endpoint.call_args.args
        self.assertEqual(endpoint, ENDPOINT_ARN)
        gcm = json.loads(payloads["GCM"])
        self.assertEqual(gcm["data"]["orderId"], order["order_id"])
        self.assertEqual(gcm["data"]["url"], f"/vendor/orders/{order['order_id']}")
        self.assertIn(order["order_number"], payloads["default"])

        stored = self.ddb.get(ORDERS_TABLE, {"order_id": order["order_id"]})
        self.assertEqual(stored["notification_message_id"], "msg-1")

    def test_no_token(self):
        order = TestDataFactory.create_order(self.vendor["vendor_id"])
        with self.assertRaisesMessage(NotFound, "Vendor push token not found"):
            service.notify_vendor(order["order_id"], self.vendor["vendor_id"])

    def test_unknown_order(self):
        with self.assertRaisesMessage(NotFound, "Order not found"):
            service.notify_vendor("missing", self.vendor["vendor_id"])

    def test_notification_content(self):
        order = TestDataFactory.create_order(self.vendor["vendor_id"], total=250)
        note = service.build_order_notification(order, self.vendor["vendor_id"])
        self.assertEqual(note["body"], f"Test Customer placed order #{order['order_number']} (1 items, ₹250)")
        self.assertEqual(note["data"]["type"], "new_order")
        self.assertEqual(note["data"]["totalAmount"], "250")

    @mock.patch("notifications.service.get_sqs_url", return_value="https://sqs/queue")
    def test_queue(self, get_sqs_url):
        service.queue_vendor_notification("o1", "v1")
        url, body = self.sqs.send_message.call_args.args
        self.assertEqual(url, "https://sqs/queue")
        self.assertEqual(json.loads(body), {"order_id": "o1", "vendor_id": "v1"})


class CheckNewOrdersTests(NotificationTestCase):

    def test_new_orders_summary(self):
        order = TestDataFactory.create_order(self.vendor["vendor_id"])
        result = service.check_new_orders(self.vendor["vendor_id"])
        self.assertTrue(result["has_new_orders"])
        self.assertEqual(result["total_count"], 1)
        self.assertEqual(result["orders"][0]["id"], order["order_id"])

    def test_vendor_without_service_area(self):
        vendor = TestDataFactory.create_vendor(pincodes=())
        result = service.check_new_orders(vendor["vendor_id"])
        self.assertFalse(result["has_new_orders"])
        self.assertEqual(result["message"], "No service areas configured")


class NotificationViewTests(NotificationTestCase):

    def test_register_token_scoped_to_session(self):
        self.assertEqual(self.post_json("/api/vendor/messaging/register-token", {"token": "t"}).status_code, 401)
        self.login_vendor(self.vendor)
        response = self.post_json("/api/vendor/messaging/register-token", {"token": "t", "platform": "web"})
        self.assertEqual(response.status_code, 200)
        response = self.post_json("/api/vendor/messaging/register-token", {"token": "t", "vendorId": "vendor_x"})
        self.assertEqual(response.status_code, 403)
        response = self.post_json("/api/vendor/messaging/register-token", {"platform": "web"}, method="delete")
        self.assertEqual(response.status_code, 200)

    def test_inactive_vendor_cannot_log_in(self):
        pending = TestDataFactory.create_vendor(status="pending")
        response = self.login_vendor(pending)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["status"], "pending")

    def test_check_new(self):
        TestDataFactory.create_order(self.vendor["vendor_id"])
        self.login_vendor(self.vendor)
        body = self.post_json("/api/vendor/orders/check-new", {}).json()
        self.assertTrue(body["has_new_orders"])

    def test_check_new_bad_timestamp(self):
        self.login_vendor(self.vendor)
        response = self.post_json("/api/vendor/orders/check-new", {"timestamp": "abc"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid timestamp")

    def test_verify(self):
        response = self.post_json("/api/vendor/auth/verify", {"vendorId": self.vendor["vendor_id"]})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["authenticated"])
        self.assertNotIn("vendor", response.json())

        self.login_vendor(self.vendor)
        body = self.post_json("/api/vendor/auth/verify", {}).json()
        self.assertTrue(body["authenticated"])
        self.assertEqual(body["vendor"]["id"], self.vendor["vendor_id"])

        blocked = TestDataFactory.create_vendor(status="blocked")
        response = self.post_json("/api/vendor/auth/verify", {"vendorId": blocked["vendor_id"]})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.post_json("/api/vendor/auth/verify", {"vendorId": "nope"}).status_code, 404)

    def test_notify_vendor_endpoint(self):
        order = TestDataFactory.create_order(self.vendor["vendor_id"])
        service.register_token(self.vendor["vendor_id"], "t", "web")
        self.login_admin()
        response = self.post_json("/api/orders/notify-vendor", {
            "orderId": order["order_id"], "vendorId": self.vendor["vendor_id"],
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message_id"], "msg-1")
        self.assertEqual(self.post_json("/api/orders/notify-vendor", {}).status_code, 400)


class LambdaHandlerTests(NotificationTestCase):

    def test_records_processed(self):
        import lambda_function

        order = TestDataFactory.create_order(self.vendor["vendor_id"])
        service.register_token(self.vendor["vendor_id"], "t", "web")
        event = {"Records": [
            {"messageId": "1", "body": json.dumps({"order_id": order["order_id"], "vendor_id": self.vendor["vendor_id"]})},
            {"messageId": "2", "body": json.dumps({"order_id": "missing", "vendor_id": self.vendor["vendor_id"]})},
            {"messageId": "3", "body": "not json"},
            {"messageId": "4", "body": json.dumps({"order_id": "x"})},
        ]}
        with mock.patch("notifications.service.get_sns_topic_arn", return_value="arn:topic"):
            result = lambda_function.lambda_handler(event, None)

        self.assertEqual(result["statusCode"], 200)
        self.assertEqual(json.loads(result["body"]), {"sent": 1, "failed": 3})
        self.sns.publish.assert_called_once()
        self.assertEqual(self.sns.publish.call_args.args[0], "arn:topic")

    def test_aws_error_does_not_abort_batch(self):
        import lambda_function

        denied = ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "Publish")
        event = {"Records": [
            {"messageId": str(n), "body": json.dumps({"order_id": f"o{n}", "vendor_id": "v1"})}
            for n in (1, 2, 3)
        ]}
        self.sns.publish.side_effect = denied
        with mock.patch("lambda_function.notify_vendor", side_effect=[None, denied, None]) as notify, \
                mock.patch("notifications.service.get_sns_topic_arn", return_value="arn:topic"):
            result = lambda_function.lambda_handler(event, None)

        self.assertEqual(notify.call_count, 3)
        self.assertEqual(json.loads(result["body"]), {"sent": 2, "failed": 1})
        self.assertEqual(result["batchItemFailures"], [{"itemIdentifier": "2"}])
        self.sns.publish.assert_called_once()
