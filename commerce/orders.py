"""
Order lifecycle.

Orders move one step at a time through ``STATUS_FLOW``; ``cancelled`` can
be reached from any non-terminal status. A checkout produces one order
document per vendor whose products are in the cart.
"""
import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone as dt_timezone
from enum import Enum

from boto3.dynamodb.conditions import Attr
from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from aws_config import ORDERS_TABLE

from . import documents
from .exceptions import NotFound, PermissionDenied, ValidationError

logger = logging.getLogger(__name__)


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    COD = "cod"
    ONLINE = "online"


STATUS_FLOW = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]
TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
OPEN_STATUSES = (OrderStatus.PENDING.value, OrderStatus.CONFIRMED.value)

STATUS_LABELS = {
    "pending": "Pending",
    "confirmed": "Confirmed",
    "preparing": "Preparing",
    "ready": "Ready",
    "out_for_delivery": "Out for Delivery",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
}


def parse_status(value):
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid order status: {value}")


def next_status(status):
    """The status after ``status`` in the flow, or None when terminal."""
    status = parse_status(status)
    if status in TERMINAL_STATUSES:
        return None
    return STATUS_FLOW[STATUS_FLOW.index(status) + 1]


def can_cancel(status):
    return parse_status(status) not in TERMINAL_STATUSES


def order_number(order_id):
    return order_id[:8].upper()


def delivery_fee_for(option):
    try:
        return settings.DELIVERY_FEES[option]
    except KeyError:
        raise ValidationError(f"Unknown delivery option: {option}")


def items_subtotal(items):
    return round(sum(float(i["price"]) * int(i["quantity"]) for i in items), 2)


def get_order(order_id):
    return documents.ddb.get(ORDERS_TABLE, {"order_id": order_id})


def require_order(order_id):
    order = get_order(order_id)
    if not order:
        raise NotFound("Order not found")
    return order


def _group_items_by_vendor(items):
    groups = OrderedDict()
    for item in items:
        product = documents.get_product(item["product_id"])
        if not product or not product.get("vendor_id"):
            logger.error("Product not found or missing vendor_id: %s", item["product_id"])
            continue
        groups.setdefault(product["vendor_id"], []).append(item)
    return groups


def split_fee(fee, parts):
    """Even split rounded to paise; the last share takes the remainder."""
    share = round(fee / parts, 2)
    return [share] * (parts - 1) + [round(fee - share * (parts - 1), 2)]


def _new_order(data, items, vendor_id, delivery_fee):
    order_id = documents.new_id()
    subtotal = items_subtotal(items)
    now = documents.now_iso()
    order = {
        "order_id": order_id,
        "order_number": order_number(order_id),
        "customer_id": data["customer_id"],
        "customer_name": data["address"]["name"],
        "customer_phone": data["address"].get("phone", ""),
        "vendor_id": vendor_id,
        "items": items,
        "subtotal": subtotal,
        "delivery_fee": round(delivery_fee, 2),
        "total_amount": round(subtotal + delivery_fee, 2),
        "address": data["address"],
        "pincode": data["address"].get("pincode", ""),
        "payment_method": data["payment_method"],
        "payment_status": PaymentStatus.PENDING.value,
        "order_status": OrderStatus.PENDING.value,
        "created_at": now,
        "updated_at": now,
    }
    documents.ddb.put(ORDERS_TABLE, order)
    return order


def create_order(data, notify=None):
    """
    Persist a checkout.

    ``data`` carries customer_id, items (product_id, name, price,
    quantity), address, payment_method and delivery_fee. Items are grouped
    by the vendor owning each product and one order is written per vendor,
    the delivery fee split evenly between them. ``notify(order_id,
    vendor_id)`` is called for each vendor order; its failures are logged
    and never fail the checkout.
    """
    items = data.get("items") or []
    if not items:
        raise ValidationError("Order must contain at least one item")
    try:
        PaymentMethod(data.get("payment_method"))
    except ValueError:
        raise ValidationError(f"Invalid payment method: {data.get('payment_method')}")

    delivery_fee = float(data.get("delivery_fee", 0))
    groups = _group_items_by_vendor(items)

    if not groups:
        # No vendor could be resolved: keep the cart together as one order
        orders = [_new_order(data, items, data.get("vendor_id"), delivery_fee)]
    else:
        shares = split_fee(delivery_fee, len(groups))
        orders = [
            _new_order(data, vendor_items, vendor_id, share)
            for (vendor_id, vendor_items), share in zip(groups.items(), shares)
        ]

    for order in orders:
        logger.info("Order %s created for vendor %s", order["order_id"], order["vendor_id"])
        if notify and order["vendor_id"]:
            try:
                notify(order["order_id"], order["vendor_id"])
            except Exception:
                logger.exception("Error sending vendor notification for order %s", order["order_id"])
    return orders


def _set_status(order_id, status, extra=None):
    changes = {"order_status": status.value, "updated_at": documents.now_iso()}
    if extra:
        changes.update(extra)
    return documents.ddb.update(ORDERS_TABLE, {"order_id": order_id}, changes)


def advance_order(order_id, vendor_id=None):
    """Move an order to its next status. ``vendor_id`` scopes the update."""
    order = require_order(order_id)
    if vendor_id and order.get("vendor_id") != vendor_id:
        raise PermissionDenied("Order belongs to another vendor")
    following = next_status(order["order_status"])
    if following is None:
        raise ValidationError(f"Order is already {order['order_status']}")
    logger.info("Order %s: %s -> %s", order_id, order["order_status"], following.value)
    return _set_status(order_id, following)


def cancel_order(order_id, reason="", vendor_id=None):
    order = require_order(order_id)
    if vendor_id and order.get("vendor_id") != vendor_id:
        raise PermissionDenied("Order belongs to another vendor")
    if not can_cancel(order["order_status"]):
        raise ValidationError(f"Cannot cancel an order that is {order['order_status']}")
    return _set_status(order_id, OrderStatus.CANCELLED, {
        "cancel_reason": reason,
        "cancelled_at": documents.now_iso(),
    })


def set_order_status(order_id, status):
    """Admin override: any valid status."""
    require_order(order_id)
    return _set_status(order_id, parse_status(status))


def assign_delivery_person(order_id, delivery_person_id):
    require_order(order_id)
    return _set_status(order_id, OrderStatus.OUT_FOR_DELIVERY, {
        "delivery_person_id": delivery_person_id,
    })


def record_payment(order_id, payment_status, details):
    """Store a gateway result; a paid order is confirmed, anything else cancelled."""
    status = OrderStatus.CONFIRMED if payment_status == PaymentStatus.PAID.value else OrderStatus.CANCELLED
    return _set_status(order_id, status, {
        "payment_status": payment_status,
        "payment_details": details,
    })


def _newest_first(orders):
    return sorted(orders, key=lambda o: o.get("created_at", ""), reverse=True)


def orders_by_customer(customer_id):
    return _newest_first(documents.ddb.scan(ORDERS_TABLE, Attr("customer_id").eq(customer_id)))


def orders_by_vendor(vendor_id, status=None, since=None):
    condition = Attr("vendor_id").eq(vendor_id)
    if status:
        condition = condition & Attr("order_status").eq(parse_status(status).value)
    if since is not None:
        condition = condition & Attr("created_at").gte(since.isoformat())
    return _newest_first(documents.ddb.scan(ORDERS_TABLE, condition))


def all_orders(status=None, search=None):
    if status:
        orders = documents.ddb.scan(ORDERS_TABLE, Attr("order_status").eq(parse_status(status).value))
    else:
        orders = documents.ddb.scan(ORDERS_TABLE)
    if search:
        search = search.lower()
        orders = [o for o in orders if search in o.get("order_id", "").lower()]
    return _newest_first(orders)


def new_orders_for_vendor(vendor_id, since_ms=None, limit=50):
    """Pending/confirmed orders created after ``since_ms`` (default: last 24h)."""
    if since_ms:
        try:
            since = datetime.fromtimestamp(int(since_ms) / 1000, tz=dt_timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError):
            raise ValidationError("Invalid timestamp")
    else:
        since = timezone.now() - timedelta(hours=24)
    condition = (
        Attr("vendor_id").eq(vendor_id)
        & Attr("order_status").is_in(list(OPEN_STATUSES))
        & Attr("created_at").gte(since.isoformat())
    )
    return _newest_first(documents.ddb.scan(ORDERS_TABLE, condition))[:limit]


def created_at(order):
    value = order.get("created_at")
    return parse_datetime(value) if value else None
