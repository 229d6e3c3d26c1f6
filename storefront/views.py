import logging

from django.conf import settings

from commerce import auth, documents, orders
from commerce.exceptions import CommerceError, NotFound, ValidationError
from commerce.forms import CheckoutForm, LoginForm, PincodeForm, SignupForm
from commerce.http import api_view, ok, request_data, validated
from notifications.service import queue_vendor_notification
from payments.gateway import initiate_payment

from . import cart

logger = logging.getLogger(__name__)


def current_pincode(request):
    pincode = request.COOKIES.get(settings.PINCODE_COOKIE_NAME, "")
    return pincode if documents.is_valid_pincode(pincode) else None


def require_pincode(request):
    pincode = current_pincode(request)
    if not pincode:
        raise ValidationError("Please select your delivery pincode", pincode_required=True)
    return pincode


# -----------------------------
# Pincode
# -----------------------------
@api_view(["GET", "POST"])
def pincode(request):
    if request.method == "GET":
        value = current_pincode(request)
        return ok({"pincode": value, "serviceable": bool(value) and documents.is_pincode_serviceable(value)})

    data = validated(PincodeForm(request_data(request)))
    serviceable = documents.is_pincode_serviceable(data["pincode"])
    response = ok({"pincode": data["pincode"], "serviceable": serviceable})
    response.set_cookie(
        settings.PINCODE_COOKIE_NAME,
        data["pincode"],
        max_age=60 * 60 * 24 * 30,
        samesite="Lax",
    )
    return response


# -----------------------------
# Catalogue
# -----------------------------
@api_view(["GET"])
def home(request):
    value = current_pincode(request)
    return ok({
        "pincode": value,
        "banner_cards": documents.list_banner_cards(),
        "categories": documents.categories_by_pincode(value) if value else [],
    })


@api_view(["GET"])
def categories(request):
    value = require_pincode(request)
    available = set(documents.categories_by_pincode(value))
    return ok({
        "categories": [c for c in documents.all_categories() if c["name"] in available],
        "names": sorted(available),
    })


@api_view(["GET"])
def category_products(request, slug):
    value = require_pincode(request)
    category = documents.get_category_by_slug(slug)
    name = category.get("name") if category else slug
    return ok({
        "category": category or {"name": slug, "slug": slug},
        "products": documents.products_by_category(name, value),
    })


@api_view(["GET"])
def product_detail(request, product_id):
    product = documents.require_product(product_id)
    if product.get("status") == "deleted":
        raise NotFound("Product not found")
    value = current_pincode(request)
    vendor = documents.get_vendor(product.get("vendor_id", "")) if product.get("vendor_id") else {}
    return ok({
        "product": product,
        "deliverable": bool(value) and value in product.get("pincodes", []),
        "vendor": {
            "vendor_id": vendor.get("vendor_id"),
            "name": vendor.get("name"),
            "is_open": vendor.get("is_open", False),
            "delivery_message": vendor.get("delivery_message", ""),
        } if vendor else None,
    })


@api_view(["GET"])
def search(request):
    value = require_pincode(request)
    term = request.GET.get("q", "")
    return ok({"query": term, "products": documents.search_products(term, value)})


# -----------------------------
# Cart
# -----------------------------
@api_view(["GET", "DELETE"])
def cart_detail(request):
    if request.method == "DELETE":
        cart.clear(request)
    return ok(cart.summary(request))


@api_view(["POST"])
def cart_add(request):
    data = request_data(request)
    if not data.get("product_id"):
        raise ValidationError("product_id is required")
    try:
        cart.add(request, data["product_id"], data.get("quantity", 1))
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be a number")
    return ok(cart.summary(request))


@api_view(["POST", "DELETE"])
def cart_item(request, product_id):
    if request.method == "DELETE":
        cart.remove(request, product_id)
        return ok(cart.summary(request))
    data = request_data(request)
    try:
        cart.set_quantity(request, product_id, data.get("quantity", 0))
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be a number")
    return ok(cart.summary(request))


# -----------------------------
# Customer accounts
# -----------------------------
@api_view(["POST"])
def signup(request):
    data = validated(SignupForm(request_data(request)))
    customer = documents.create_customer(data["name"], data["email"], data["phone"], data["password"])
    auth.login(request, auth.CUSTOMER_SESSION_KEY, customer["customer_id"])
    logger.info("Customer %s signed up", customer["customer_id"])
    return ok({"customer": customer}, status=201)


@api_view(["POST"])
def login(request):
    data = validated(LoginForm(request_data(request)))
    customer = documents.authenticate_customer(data["email"], data["password"])
    if not customer:
        raise ValidationError("Invalid email or password")
    auth.login(request, auth.CUSTOMER_SESSION_KEY, customer["customer_id"])
    return ok({"customer": customer})


@api_view(["POST"])
def logout(request):
    auth.logout(request, auth.CUSTOMER_SESSION_KEY)
    return ok()


@api_view(["GET", "POST"])
@auth.customer_required
def profile(request):
    if request.method == "GET":
        return ok({"customer": request.customer})
    customer = documents.update_customer(request.customer["customer_id"], request_data(request))
    return ok({"customer": customer})


# -----------------------------
# Checkout and orders
# -----------------------------
def _checkout_items(entries, pincode_value):
    unavailable = [
        e["name"] for e in entries
        if e["status"] != "active" or pincode_value not in e["pincodes"]
    ]
    if unavailable:
        raise ValidationError(
            "Some items are not available for delivery to this pincode",
            unavailable=unavailable,
        )
    return [
        {
            "product_id": e["product_id"],
            "name": e["name"],
            "price": e["price"],
            "quantity": e["quantity"],
            "image": e["image"],
        }
        for e in entries
    ]


@api_view(["POST"])
@auth.customer_required
def checkout(request):
    form = CheckoutForm(request_data(request))
    data = validated(form)
    entries = cart.lines(request)
    if not entries:
        raise ValidationError("Your cart is empty")

    customer = request.customer
    created = orders.create_order(
        {
            "customer_id": customer["customer_id"],
            "items": _checkout_items(entries, data["pincode"]),
            "address": form.address_document(),
            "payment_method": data["payment_method"],
            "delivery_fee": orders.delivery_fee_for(data["delivery_option"]),
        },
        notify=queue_vendor_notification,
    )
    cart.clear(request)

    order_ids = [o["order_id"] for o in created]
    total = round(sum(float(o["total_amount"]) for o in created), 2)
    payload = {"order_ids": order_ids, "orders": created, "total_amount": total}

    if data["payment_method"] == orders.PaymentMethod.ONLINE.value:
        try:
            payload["payment"] = initiate_payment(
                total,
                customer["customer_id"],
                order_ids,
                email=customer.get("email", ""),
                phone=data["phone"],
            )
        except CommerceError as e:
            # orders stay pending; the client may retry via /api/paytm/initiate
            logger.error("Payment initiation failed for orders %s: %s", order_ids, e.message)
            payload["payment_error"] = e.message
    return ok(payload, status=201)


@api_view(["GET"])
@auth.customer_required
def order_list(request):
    return ok({"orders": orders.orders_by_customer(request.customer["customer_id"])})


@api_view(["GET"])
@auth.customer_required
def order_detail(request, order_id):
    order = orders.require_order(order_id)
    if order.get("customer_id") != request.customer["customer_id"]:
        raise NotFound("Order not found")
    return ok({
        "order": order,
        "status_label": orders.STATUS_LABELS.get(order.get("order_status"), order.get("order_status")),
    })
