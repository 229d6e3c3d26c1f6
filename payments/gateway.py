"""
Paytm gateway calls.

A checkout paid online creates a PaymentSessions document keyed by the
gateway order id; the callback finds the app orders through it.
"""
import logging

import requests
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

from aws_config import PAYMENT_SESSIONS_TABLE
from commerce import documents, orders
from commerce.exceptions import CommerceError, ExternalServiceError, NotFound, ValidationError

from .checksum import (
    format_amount,
    generate_checksum,
    generate_payment_order_id,
    validate_gateway_response,
    verify_checksum,
)

logger = logging.getLogger(__name__)


def initiate_url():
    return f"{settings.PAYTM_BASE_URL}/theia/api/v1/initiateTransaction"


def status_url():
    return f"{settings.PAYTM_BASE_URL}/order/status"


def _post(url, payload):
    try:
        resp = requests.post(url, json=payload, timeout=settings.PAYTM_TIMEOUT)
        return resp.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.error("Paytm request to %s failed: %s", url, e)
        raise ExternalServiceError("Payment gateway is unreachable")


def _head_ok(response):
    return (response.get("HEAD") or {}).get("responseCode") == "OK"


def _head_message(response, default):
    return (response.get("HEAD") or {}).get("responseMessage") or default


def initiate_payment(amount, customer_id, order_ids, email="", phone=""):
    if not amount or not customer_id:
        raise ValidationError("Amount and customer ID are required")

    payment_order_id = generate_payment_order_id()
    params = {
        "MID": settings.PAYTM_MID,
        "WEBSITE": settings.PAYTM_WEBSITE,
        "INDUSTRY_TYPE_ID": "Retail",
        "CHANNEL_ID": settings.PAYTM_CHANNEL_ID,
        "ORDER_ID": payment_order_id,
        "CUST_ID": customer_id,
        "MOBILE_NO": phone or "",
        "EMAIL": email or "",
        "TXN_AMOUNT": format_amount(amount),
        "CALLBACK_URL": settings.PAYTM_CALLBACK_URL,
    }
    signed = dict(params, CHECKSUMHASH=generate_checksum(params, settings.PAYTM_MERCHANT_KEY))

    response = _post(initiate_url(), signed)
    if not _head_ok(response):
        raise ValidationError(_head_message(response, "Failed to initiate payment"))

    documents.ddb.put(PAYMENT_SESSIONS_TABLE, {
        "payment_order_id": payment_order_id,
        "amount": float(amount),
        "customer_id": customer_id,
        "order_ids": list(order_ids),
        "created_at": documents.now_iso(),
    })
    logger.info("Payment %s initiated for orders %s", payment_order_id, ", ".join(order_ids))

    return {
        "order_id": payment_order_id,
        "txn_token": (response.get("BODY") or {}).get("txnToken"),
        "amount": float(amount),
        "paytm_params": signed,
    }


def handle_callback(form):
    """
    Process the gateway's form POST. Invalid or unsigned responses are
    rejected; once the checksum holds, store failures are logged and a
    success is still reported so the gateway does not retry.
    """
    response = {k: v for k, v in form.items()}
    logger.info("Paytm callback received for %s", response.get("ORDERID"))

    if not validate_gateway_response(response):
        logger.error("Invalid Paytm response: %s", response)
        raise ValidationError("Invalid payment response")

    received = response.pop("CHECKSUMHASH", None)
    if not verify_checksum(response, received, settings.PAYTM_MERCHANT_KEY):
        logger.error("Checksum verification failed for %s", response["ORDERID"])
        raise ValidationError("Checksum verification failed")

    payment_order_id = response["ORDERID"]
    session = documents.ddb.get(PAYMENT_SESSIONS_TABLE, {"payment_order_id": payment_order_id})
    if not session:
        logger.error("Payment session not found: %s", payment_order_id)
        raise NotFound("Order not found")

    try:
        paid_amount = round(float(response["TXNAMOUNT"]), 2)
    except ValueError:
        raise ValidationError("Invalid payment response")
    expected_amount = round(float(session.get("amount", 0)), 2)

    payment_status = (
        orders.PaymentStatus.PAID.value if response["STATUS"] == "TXN_SUCCESS"
        else orders.PaymentStatus.FAILED.value
    )
    # a short payment never confirms the orders
    if payment_status == orders.PaymentStatus.PAID.value and paid_amount != expected_amount:
        logger.error(
            "Amount mismatch for %s: paid %s, expected %s",
            payment_order_id, paid_amount, expected_amount,
        )
        payment_status = orders.PaymentStatus.FAILED.value
    details = {
        "payment_id": response["TXNID"],
        "payment_method": "paytm",
        "payment_status": payment_status,
        "payment_amount": paid_amount,
        "expected_amount": expected_amount,
        "payment_currency": response.get("CURRENCY") or "INR",
        "bank_transaction_id": response.get("BANKTXNID", ""),
        "gateway_status": response["STATUS"],
        "completed_at": documents.now_iso(),
    }

    try:
        for order_id in session.get("order_ids", []):
            orders.record_payment(order_id, payment_status, details)
        documents.ddb.delete(PAYMENT_SESSIONS_TABLE, {"payment_order_id": payment_order_id})
    except (BotoCoreError, ClientError, CommerceError):
        logger.exception("Error updating order payment status for %s", payment_order_id)
        return {
            "message": "Payment received, processing may be delayed",
            "order_id": payment_order_id,
        }

    logger.info("Payment %s for order %s", payment_status, payment_order_id)
    return {
        "message": "Payment processed successfully",
        "order_id": payment_order_id,
        "status": payment_status,
    }


def transaction_status(payment_order_id):
    if not payment_order_id:
        raise ValidationError("Order ID is required")

    params = {"MID": settings.PAYTM_MID, "ORDERID": payment_order_id}
    signed = dict(params, CHECKSUMHASH=generate_checksum(params, settings.PAYTM_MERCHANT_KEY))

    response = _post(status_url(), signed)
    if not _head_ok(response):
        raise ValidationError(_head_message(response, "Failed to get payment status"))

    body = response.get("BODY") or {}
    return {
        "payment_status": body.get("STATUS"),
        "transaction_id": body.get("TXNID"),
        "amount": body.get("TXNAMOUNT"),
        "bank_transaction_id": body.get("BANKTXNID"),
        "currency": body.get("CURRENCY"),
        "response": body,
    }
