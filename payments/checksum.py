import hashlib
import hmac
import random
import time

REQUIRED_RESPONSE_FIELDS = ("ORDERID", "TXNID", "TXNAMOUNT", "STATUS")

STATUS_MESSAGES = {
    "TXN_SUCCESS": "Payment completed successfully",
    "TXN_FAILURE": "Payment failed",
    "PENDING": "Payment is pending",
    "CANCEL": "Payment cancelled by user",
    "INVALID": "Invalid payment details",
}


def generate_checksum(params, merchant_key):
    """SHA-256 over the sorted ``key=value`` pairs followed by ``&KEY=<merchant key>``."""
    params_str = "&".join(f"{k}={params[k]}" for k in sorted(params))
    checksum_str = f"{params_str}&KEY={merchant_key}"
    return hashlib.sha256(checksum_str.encode("utf-8")).hexdigest()


def verify_checksum(params, received_checksum, merchant_key):
    if not received_checksum:
        return False
    expected = generate_checksum(params, merchant_key)
    return hmac.compare_digest(expected, str(received_checksum))


def generate_payment_order_id():
    return f"ORDER_{int(time.time() * 1000)}_{random.randint(0, 999999)}"


def validate_gateway_response(response):
    if not response:
        return False
    return all(response.get(field) not in (None, "") for field in REQUIRED_RESPONSE_FIELDS)


def format_amount(amount):
    return f"{float(amount):.2f}"


def payment_status_message(status):
    return STATUS_MESSAGES.get(status, "Unknown payment status")
