import logging

from django.utils import timezone
from django.utils.text import slugify

from commerce import analytics, auth, documents, orders
from commerce.exceptions import NotFound, PermissionDenied, ValidationError
from commerce.forms import LoginForm, ProductForm, VendorPincodesForm, VendorProfileForm
from commerce.http import api_view, ok, request_data, validated

logger = logging.getLogger(__name__)


def _vendor_id(request):
    return request.vendor["vendor_id"]


def _check_service_area(vendor, pincodes):
    outside = [p for p in pincodes if p not in vendor.get("pincodes", [])]
    if outside:
        raise ValidationError(f"Pincodes outside your service area: {', '.join(outside)}")


def _own_product(request, product_id):
    product = documents.require_product(product_id)
    if product.get("vendor_id") != _vendor_id(request):
        raise PermissionDenied("Product belongs to another vendor")
    return product


def _own_order(request, order_id):
    order = orders.require_order(order_id)
    if order.get("vendor_id") != _vendor_id(request):
        raise NotFound("Order not found")
    return order


# -----------------------------
# Session
# -----------------------------
@api_view(["POST"])
def login(request):
    data = validated(LoginForm(request_data(request)))
    vendor = documents.authenticate_vendor(data["email"], data["password"])
    if not vendor:
        raise ValidationError("Invalid email or password")
    if vendor.get("status") != "active":
        logger.info("Vendor %s refused: status %s", vendor["vendor_id"], vendor.get("status"))
        raise PermissionDenied("Vendor account is not active", status=vendor.get("status", "unknown"))
    auth.login(request, auth.VENDOR_SESSION_KEY, vendor["vendor_id"])
    return ok({"vendor": documents.public_vendor(vendor)})


@api_view(["POST"])
def logout(request):
    auth.logout(request, auth.VENDOR_SESSION_KEY)
    return ok()


@api_view(["GET"])
@auth.vendor_required
def dashboard(request):
    vendor = request.vendor
    vendor_orders = orders.orders_by_vendor(vendor["vendor_id"])
    today = timezone.now().date()

    by_status = {s.value: 0 for s in orders.OrderStatus}
    today_orders = 0
    revenue = 0.0
    for order in vendor_orders:
        status = order.get("order_status", "pending")
        by_status[status] = by_status.get(status, 0) + 1
        if status != orders.OrderStatus.CANCELLED.value:
            revenue += float(order.get("total_amount", 0))
        created = orders.created_at(order)
        if created and created.date() == today:
            today_orders += 1

    return ok({
        "vendor": documents.public_vendor(vendor),
        "total_orders": len(vendor_orders),
        "today_orders": today_orders,
        "pending_orders": by_status[orders.OrderStatus.PENDING.value],
        "orders_by_status": by_status,
        "total_revenue": round(revenue, 2),
        "total_products": len(documents.products_by_vendor(vendor["vendor_id"])),
        "recent_orders": vendor_orders[:5],
    })


# -----------------------------
# Orders
# -----------------------------
@api_view(["GET"])
@auth.vendor_required
def order_list(request):
    found = orders.orders_by_vendor(_vendor_id(request), status=request.GET.get("status") or None)
    return ok({"orders": found, "count": len(found)})


@api_view(["GET"])
@auth.vendor_required
def order_detail(request, order_id):
    order = _own_order(request, order_id)
    following = orders.next_status(order["order_status"])
    return ok({
        "order": order,
        "next_status": following.value if following else None,
        "can_cancel": orders.can_cancel(order["order_status"]),
    })


@api_view(["POST"])
@auth.vendor_required
def order_advance(request, order_id):
    order = orders.advance_order(order_id, vendor_id=_vendor_id(request))
    return ok({"order": order})


@api_view(["POST"])
@auth.vendor_required
def order_cancel(request, order_id):
    reason = request_data(request).get("reason", "")
    order = orders.cancel_order(order_id, reason=reason, vendor_id=_vendor_id(request))
    return ok({"order": order})


# -----------------------------
# Products
# -----------------------------
@api_view(["GET", "POST"])
@auth.vendor_required
def product_list(request):
    if request.method == "GET":
        return ok({"products": documents.products_by_vendor(_vendor_id(request))})

    form = ProductForm(request_data(request))
    validated(form)
    data = form.document()
    _check_service_area(request.vendor, data["pincodes"])
    data["vendor_id"] = _vendor_id(request)
    product = documents.add_product(data)
    documents.update_vendor(_vendor_id(request), {
        "products_count": len(documents.products_by_vendor(_vendor_id(request))),
    })
    return ok({"product": product}, status=201)


@api_view(["GET", "POST", "DELETE"])
@auth.vendor_required
def product_detail(request, product_id):
    product = _own_product(request, product_id)
    if request.method == "GET":
        return ok({"product": product})

    if request.method == "DELETE":
        documents.delete_product(product_id)
        logger.info("Vendor %s deleted product %s", _vendor_id(request), product_id)
        return ok({"product_id": product_id})

    # partial edits are validated against the stored product
    form = ProductForm({**product, **request_data(request)})
    validated(form)
    data = form.document()
    _check_service_area(request.vendor, data["pincodes"])
    return ok({"product": documents.update_product(product_id, data)})


# -----------------------------
# Categories
# -----------------------------
@api_view(["GET", "POST"])
@auth.vendor_required
def category_list(request):
    if request.method == "GET":
        return ok({
            "categories": documents.all_categories(),
            "vendor_categories": request.vendor.get("categories", []),
        })

    data = request_data(request)
    name = (data.get("name") or "").strip()
    existing = documents.get_category_by_slug(slugify(name)) if name else {}
    category = existing or documents.add_category(name, data.get("description", ""), data.get("image", ""))
    vendor = documents.import_categories(_vendor_id(request), [category["name"]])
    return ok({"category": category, "vendor_categories": vendor.get("categories", [])}, status=201)


@api_view(["POST"])
@auth.vendor_required
def category_import(request):
    names = request_data(request).get("categories") or []
    if isinstance(names, str):
        names = [n.strip() for n in names.split(",") if n.strip()]
    if not names:
        raise ValidationError("Select at least one category")
    vendor = documents.import_categories(_vendor_id(request), names)
    return ok({"vendor_categories": vendor.get("categories", [])})


# -----------------------------
# Profile and settings
# -----------------------------
@api_view(["GET", "POST"])
@auth.vendor_required
def profile(request):
    if request.method == "GET":
        return ok({"vendor": documents.public_vendor(request.vendor)})
    data = validated(VendorProfileForm(request_data(request)))
    data["profile_complete"] = True
    return ok({"vendor": documents.update_vendor(_vendor_id(request), data)})


@api_view(["GET", "POST"])
@auth.vendor_required
def pincodes(request):
    allowed = documents.get_global_pincodes()
    if request.method == "GET":
        return ok({"pincodes": request.vendor.get("pincodes", []), "available": allowed})
    data = validated(VendorPincodesForm(request_data(request), allowed=allowed))
    vendor = documents.update_vendor(_vendor_id(request), {"pincodes": data["pincodes"]})
    return ok({"pincodes": vendor.get("pincodes", []), "available": allowed})


@api_view(["POST"])
@auth.vendor_required
def toggle_open(request):
    data = request_data(request)
    if "is_open" in data:
        is_open = str(data["is_open"]).lower() in ("true", "1", "on")
    else:
        is_open = not request.vendor.get("is_open", False)
    vendor = documents.set_vendor_open(_vendor_id(request), is_open)
    return ok({"is_open": vendor.get("is_open", False)})


@api_view(["GET"])
@auth.vendor_required
def analytics_view(request):
    period = request.GET.get("period", "week")
    return ok(analytics.vendor_analytics(_vendor_id(request), period))
