"""
SQS worker: one message per vendor order placed at checkout.

Each record body is ``{"order_id": ..., "vendor_id": ...}``; the vendor's
device is notified through its SNS platform endpoint.
"""
import json
import logging
import os

import django
from botocore.exceptions import BotoCoreError, ClientError

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "quickcart.settings")
django.setup()

from commerce.exceptions import CommerceError  # noqa: E402
from notifications.service import alert_missed_notification, notify_vendor  # noqa: E402

logger = logging.getLogger(__name__)


def _alert(order_id, vendor_id, reason):
    try:
        alert_missed_notification(order_id, vendor_id, reason)
    except (BotoCoreError, ClientError):
        logger.exception("Could not publish missed notification alert for order %s", order_id)


def lambda_handler(event, context):
    """
    Records that fail on an AWS error are reported in ``batchItemFailures``
    so SQS redelivers only those; the rest of the batch is still processed.
    """
    records = event.get("Records", [])
    logger.info("Received %s notification records", len(records))

    sent = failed = 0
    retry = []
    for record in records:
        order_id = vendor_id = None
        try:
            body = json.loads(record["body"])
            order_id = body.get("order_id")
            vendor_id = body.get("vendor_id")
            if not order_id or not vendor_id:
                logger.warning("Missing order_id or vendor_id in message: %s", body)
                failed += 1
                continue

            notify_vendor(order_id, vendor_id)
            sent += 1
        except (KeyError, ValueError) as e:
            logger.error("Malformed record %s: %s", record.get("messageId"), e)
            failed += 1
        except CommerceError as e:
            logger.error("Notification for record %s not sent: %s", record.get("messageId"), e.message)
            _alert(order_id, vendor_id, e.message)
            failed += 1
        except (BotoCoreError, ClientError) as e:
            logger.error("AWS error on record %s: %s", record.get("messageId"), e)
            _alert(order_id, vendor_id, str(e))
            retry.append({"itemIdentifier": record.get("messageId")})
            failed += 1

    return {
        "statusCode": 200,
        "body": json.dumps({"sent": sent, "failed": failed}),
        "batchItemFailures": retry,
    }
