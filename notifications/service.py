"""
Vendor push notifications.

Each vendor device token is registered as an SNS platform endpoint and
recorded in VendorTokens under ``<vendor_id>_<platform>``. New orders are
queued on SQS; ``lambda_function`` drains the queue and calls
``notify_vendor``.
"""
import json
import logging

from botocore.exceptions import BotoCoreError, ClientError

from aws_config import (
    ORDERS_TABLE,
    SNS_PLATFORM_APPLICATION_ARN,
    VENDOR_TOKENS_TABLE,
    VENDORS_TABLE,
    get_sns_topic_arn,
    get_sqs_url,
)
from aws_lib.sns_client import SNSClient
from aws_lib.sqs_client import SQSClient
from commerce import documents, orders
from commerce.exceptions import ExternalServiceError, NotFound, ValidationError

logger = logging.getLogger(__name__)

sns = SNSClient()
sqs = SQSClient()

PLATFORMS = ("web", "mobile")
ICON = "/icons/vendor-icon-192x192.gif"
TITLE = "New Order Received! \U0001F389"


def token_id(vendor_id, platform):
    return f"{vendor_id}_{platform}"


def register_token(vendor_id, token, platform="web"):
    if not token:
        raise ValidationError("Push token is required")
    if not vendor_id:
        raise ValidationError("Vendor ID is required")
    if platform not in PLATFORMS:
        raise ValidationError(f"Unknown platform: {platform}")
    documents.require_vendor(vendor_id)

    endpoint_arn = ""
    if SNS_PLATFORM_APPLICATION_ARN:
        try:
            endpoint_arn = sns.create_platform_endpoint(SNS_PLATFORM_APPLICATION_ARN, token, vendor_id)
        except (BotoCoreError, ClientError) as e:
            logger.error("Could not create SNS endpoint for vendor %s: %s", vendor_id, e)
            raise ExternalServiceError("Could not register push token")

    now = documents.now_iso()
    documents.ddb.put(VENDOR_TOKENS_TABLE, {
        "token_id": token_id(vendor_id, platform),
        "token": token,
        "vendor_id": vendor_id,
        "platform": platform,
        "endpoint_arn": endpoint_arn,
        "active": True,
        "created_at": now,
        "updated_at": now,
        "last_used": now,
    })
    documents.ddb.update(VENDORS_TABLE, {"vendor_id": vendor_id}, {
        "push_token_platform": platform,
        "push_token_updated_at": now,
        "notification_enabled": True,
    })
    logger.info("Push token registered for vendor %s (%s)", vendor_id, platform)
    return {"vendor_id": vendor_id, "platform": platform, "registered_at": now}


def unregister_token(vendor_id, platform="web"):
    if not vendor_id:
        raise ValidationError("Vendor ID is required")
    record = documents.ddb.get(VENDOR_TOKENS_TABLE, {"token_id": token_id(vendor_id, platform)})
    if record.get("endpoint_arn"):
        try:
            sns.delete_endpoint(record["endpoint_arn"])
        except (BotoCoreError, ClientError) as e:
            logger.warning("Could not delete SNS endpoint %s: %s", record["endpoint_arn"], e)

    now = documents.now_iso()
    if record:
        documents.ddb.update(VENDOR_TOKENS_TABLE, {"token_id": record["token_id"]}, {
            "active": False,
            "endpoint_arn": "",
            "unregistered_at": now,
        })
    documents.ddb.update(VENDORS_TABLE, {"vendor_id": vendor_id}, {
        "push_token_platform": None,
        "push_token_updated_at": now,
        "notification_enabled": False,
    })
    logger.info("Push token unregistered for vendor %s (%s)", vendor_id, platform)
    return {"vendor_id": vendor_id, "platform": platform}


def active_endpoint(vendor_id):
    """Endpoint of the vendor's web token, else of its mobile token."""
    for platform in PLATFORMS:
        record = documents.ddb.get(VENDOR_TOKENS_TABLE, {"token_id": token_id(vendor_id, platform)})
        if record.get("active") and record.get("endpoint_arn"):
            return record["endpoint_arn"]
    return None


def build_order_notification(order, vendor_id):
    order_id = order["order_id"]
    number = order.get("order_number") or orders.order_number(order_id)
    customer = order.get("customer_name") or "Unknown Customer"
    total = order.get("total_amount", 0)
    item_count = len(order.get("items", []))
    body = f"{customer} placed order #{number} ({item_count} items, ₹{total})"
    url = f"/vendor/orders/{order_id}"

    data = {
        "orderId": order_id,
        "vendorId": vendor_id,
        "orderNumber": number,
        "customerName": customer,
        "totalAmount": str(total),
        "itemCount": str(item_count),
        "url": url,
        "type": "new_order",
        "timestamp": documents.now_iso(),
        "click_action": url,
    }
    return {
        "title": TITLE,
        "body": body,
        "data": data,
        "webpush": {
            "headers": {"TTL": "3600"},
            "notification": {
                "title": TITLE,
                "body": body,
                "icon": ICON,
                "badge": ICON,
                "tag": "vendor-order",
                "requireInteraction": True,
                "actions": [
                    {"action": "view", "title": "View Order", "icon": ICON},
                    {"action": "dismiss", "title": "Dismiss"},
                ],
            },
            "data": {"url": url, "orderId": order_id},
        },
        "android": {
            "priority": "high",
            "notification": {
                "title": TITLE,
                "body": f"{customer} placed order #{number}",
                "icon": "vendor_icon",
                "color": "#f59e0b",
                "sound": "default",
                "tag": "vendor-order",
            },
        },
        "apns": {
            "headers": {"apns-priority": "10"},
            "payload": {
                "aps": {
                    "alert": {"title": TITLE, "body": body},
                    "badge": 1,
                    "sound": "default",
                    "category": "NEW_ORDER",
                    "mutable-content": 1,
                },
            },
        },
    }


def _sns_payloads(notification):
    """Per-protocol SNS message structure for a platform endpoint."""
    gcm = {
        "notification": {"title": notification["title"], "body": notification["body"]},
        "data": notification["data"],
        "android": notification["android"],
        "webpush": notification["webpush"],
    }
    apns = dict(notification["apns"]["payload"], data=notification["data"])
    return {
        "default": notification["body"],
        "GCM": json.dumps(gcm),
        "APNS": json.dumps(apns),
    }


def notify_vendor(order_id, vendor_id):
    if not order_id or not vendor_id:
        raise ValidationError("Order ID and Vendor ID are required")

    order = orders.get_order(order_id)
    if not order:
        raise NotFound("Order not found")

    endpoint_arn = active_endpoint(vendor_id)
    if not endpoint_arn:
        logger.info("No push token found for vendor %s", vendor_id)
        raise NotFound("Vendor push token not found")

    notification = build_order_notification(order, vendor_id)
    try:
        message_id = sns.publish_to_endpoint(endpoint_arn, _sns_payloads(notification))
    except (BotoCoreError, ClientError) as e:
        logger.error("Push notification for order %s failed: %s", order_id, e)
        raise ExternalServiceError("Failed to send notification", details=str(e))

    sent_at = documents.now_iso()
    documents.ddb.update(ORDERS_TABLE, {"order_id": order_id}, {
        "notification_sent_at": sent_at,
        "notification_message_id": message_id,
    })
    logger.info("Notification sent for order %s: %s", order_id, message_id)
    return {
        "message_id": message_id,
        "order_id": order_id,
        "vendor_id": vendor_id,
        "sent_at": sent_at,
    }


def queue_vendor_notification(order_id, vendor_id):
    """Hand the notification to the SQS worker; used at checkout."""
    message_id = sqs.send_message(get_sqs_url(), json.dumps({"order_id": order_id, "vendor_id": vendor_id}))
    logger.info("Queued vendor notification for order %s (%s)", order_id, message_id)


def check_new_orders(vendor_id, since_ms=None):
    vendor = documents.require_vendor(vendor_id)
    if not vendor.get("pincodes"):
        return {"has_new_orders": False, "orders": [], "message": "No service areas configured"}

    found = orders.new_orders_for_vendor(vendor_id, since_ms=since_ms)
    summaries = [
        {
            "id": o["order_id"],
            "order_number": o.get("order_number") or orders.order_number(o["order_id"]),
            "customer_name": o.get("customer_name") or "Unknown Customer",
            "customer_phone": o.get("customer_phone", ""),
            "items": o.get("items", []),
            "total_amount": o.get("total_amount", 0),
            "address": o.get("address", {}),
            "status": o.get("order_status", "pending"),
            "created_at": o.get("created_at"),
            "pincode": o.get("pincode", ""),
        }
        for o in found
    ]
    logger.debug("Found %s new orders for vendor %s", len(summaries), vendor_id)
    return {
        "has_new_orders": bool(summaries),
        "orders": summaries,
        "total_count": len(summaries),
        "vendor_id": vendor_id,
        "checked_at": documents.now_iso(),
    }


def alert_missed_notification(order_id, vendor_id, reason):
    """Tell the operations topic that a vendor was not pushed a new order."""
    message = f"Order {order_id} for vendor {vendor_id} was not pushed to the vendor: {reason}"
    sns.publish(get_sns_topic_arn(), message, subject="Vendor notification missed")
    logger.warning(message)
