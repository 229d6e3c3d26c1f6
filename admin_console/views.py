"""
Admin console endpoints.

Every view except login is wrapped in ``admin_required``: the session must
name an admin whose document still carries the ``admin`` role.
"""
import logging

from commerce import auth, documents, orders
from commerce.exceptions import ValidationError
from commerce.forms import BannerCardForm, CategoryForm, LoginForm, ProductForm, VendorForm
from commerce.http import api_view, ok, request_data, validated

logger = logging.getLogger(__name__)


# -----------------------------
# Session
# -----------------------------
@api_view(["POST"])
def login(request):
    data = validated(LoginForm(request_data(request)))
    admin = documents.authenticate_admin(data["email"], data["password"])
    if not admin or admin.get("role") != "admin":
        raise ValidationError("Invalid email or password")
    auth.login(request, auth.ADMIN_SESSION_KEY, admin["admin_id"])
    logger.info("Admin %s logged in", admin["admin_id"])
    return ok({"admin": admin})


@api_view(["POST"])
def logout(request):
    auth.logout(request, auth.ADMIN_SESSION_KEY)
    return ok()


@api_view(["GET"])
@auth.admin_required
def dashboard(request):
    vendors = documents.all_vendors()
    all_orders = orders.all_orders()
    revenue = sum(
        float(o.get("total_amount", 0)) for o in all_orders
        if o.get("order_status") != orders.OrderStatus.CANCELLED.value
    )
    return ok({
        "total_vendors": len(vendors),
        "active_vendors": sum(1 for v in vendors if v.get("status") == "active"),
        "pending_vendors": sum(1 for v in vendors if v.get("status") == "pending"),
        "total_products": len(documents.all_products()),
        "total_categories": len(documents.all_categories()),
        "total_orders": len(all_orders),
        "pending_orders": sum(1 for o in all_orders if o.get("order_status") == orders.OrderStatus.PENDING.value),
        "total_revenue": round(revenue, 2),
        "recent_orders": all_orders[:10],
    })


# -----------------------------
# Vendors
# -----------------------------
@api_view(["GET", "POST"])
@auth.admin_required
def vendor_list(request):
    if request.method == "GET":
        vendors = documents.all_vendors(status=request.GET.get("status") or None)
        return ok({"vendors": [documents.public_vendor(v) for v in vendors]})

    data = validated(VendorForm(request_data(request), creating=True))
    password = data.pop("password")
    if not data.get("status"):
        data.pop("status", None)
    vendor = documents.create_vendor(data, password)
    return ok({"vendor": vendor}, status=201)


@api_view(["GET", "POST", "DELETE"])
@auth.admin_required
def vendor_detail(request, vendor_id):
    vendor = documents.require_vendor(vendor_id)
    if request.method == "GET":
        return ok({
            "vendor": documents.public_vendor(vendor),
            "products": documents.products_by_vendor(vendor_id),
            "orders": orders.orders_by_vendor(vendor_id)[:20],
        })

    if request.method == "DELETE":
        documents.delete_vendor(vendor_id)
        logger.info("Admin %s deleted vendor %s", request.admin_id, vendor_id)
        return ok({"vendor_id": vendor_id})

    form = VendorForm({**documents.public_vendor(vendor), **request_data(request)})
    data = validated(form)
    password = data.pop("password", None)
    if not data.get("status"):
        data.pop("status", None)
    updated = documents.update_vendor(vendor_id, data)
    if password:
        documents.set_vendor_password(vendor_id, password)
    return ok({"vendor": updated})


@api_view(["POST"])
@auth.admin_required
def vendor_status(request, vendor_id):
    status = request_data(request).get("status")
    if status not in documents.VENDOR_STATUSES:
        raise ValidationError(f"Invalid vendor status: {status}")
    vendor = documents.set_vendor_status(vendor_id, status)
    logger.info("Vendor %s set to %s by %s", vendor_id, status, request.admin_id)
    return ok({"vendor": vendor})


# -----------------------------
# Products
# -----------------------------
@api_view(["GET"])
@auth.admin_required
def product_list(request):
    include_deleted = request.GET.get("include_deleted") == "true"
    products = documents.all_products(include_deleted=include_deleted)
    vendor_id = request.GET.get("vendor_id")
    if vendor_id:
        products = [p for p in products if p.get("vendor_id") == vendor_id]
    return ok({"products": products})


@api_view(["GET", "POST", "DELETE"])
@auth.admin_required
def product_detail(request, product_id):
    product = documents.require_product(product_id)
    if request.method == "GET":
        return ok({"product": product})
    if request.method == "DELETE":
        documents.delete_product(product_id)
        return ok({"product_id": product_id})

    form = ProductForm({**product, **request_data(request)})
    validated(form)
    return ok({"product": documents.update_product(product_id, form.document())})


# -----------------------------
# Categories
# -----------------------------
@api_view(["GET", "POST"])
@auth.admin_required
def category_list(request):
    if request.method == "GET":
        return ok({"categories": documents.all_categories()})
    data = validated(CategoryForm(request_data(request)))
    category = documents.add_category(data["name"], data.get("description", ""), data.get("image", ""))
    return ok({"category": category}, status=201)


@api_view(["POST", "DELETE"])
@auth.admin_required
def category_detail(request, category_id):
    if request.method == "DELETE":
        documents.delete_category(category_id)
        return ok({"category_id": category_id})
    data = validated(CategoryForm(request_data(request)))
    return ok({"category": documents.update_category(category_id, data)})


# -----------------------------
# Banner cards
# -----------------------------
@api_view(["GET", "POST", "DELETE"])
def banner_cards(request):
    """
    GET is public (the storefront home reads it). Writes need an admin;
    DELETE takes ``?id=``.
    """
    if request.method == "GET":
        return ok({"cards": documents.list_banner_cards()})
    return _write_banner_cards(request)


@auth.admin_required
def _write_banner_cards(request):
    if request.method == "DELETE":
        card_id = request.GET.get("id") or request_data(request).get("card_id")
        if not card_id:
            raise ValidationError("Card ID is required")
        documents.delete_banner_card(card_id)
        return ok({"message": "Card deleted successfully"})

    body = request_data(request)
    if "imageUrl" in body and "image_url" not in body:
        body = dict(body, image_url=body["imageUrl"])
    if "id" in body and "card_id" not in body:
        body = dict(body, card_id=body["id"])
    data = validated(BannerCardForm(body))
    card = documents.save_banner_card({k: v for k, v in data.items() if v})
    return ok({"card": card, "message": "Card saved successfully"})


# -----------------------------
# Orders
# -----------------------------
@api_view(["GET"])
@auth.admin_required
def order_list(request):
    found = orders.all_orders(
        status=request.GET.get("status") or None,
        search=request.GET.get("search") or None,
    )
    return ok({"orders": found, "count": len(found)})


@api_view(["GET"])
@auth.admin_required
def order_detail(request, order_id):
    order = orders.require_order(order_id)
    vendor = documents.get_vendor(order["vendor_id"]) if order.get("vendor_id") else {}
    customer = documents.get_customer(order["customer_id"]) if order.get("customer_id") else {}
    return ok({
        "order": order,
        "vendor": documents.public_vendor(vendor) if vendor else None,
        "customer": documents.public_customer(customer) if customer else None,
    })


@api_view(["POST"])
@auth.admin_required
def order_status(request, order_id):
    status = request_data(request).get("status")
    if not status:
        raise ValidationError("Status is required")
    order = orders.set_order_status(order_id, status)
    logger.info("Order %s set to %s by admin %s", order_id, status, request.admin_id)
    return ok({"order": order})


@api_view(["POST"])
@auth.admin_required
def order_assign(request, order_id):
    person = request_data(request).get("delivery_person_id")
    if not person:
        raise ValidationError("Delivery person is required")
    return ok({"order": orders.assign_delivery_person(order_id, person)})


# -----------------------------
# Global pincodes
# -----------------------------
@api_view(["GET", "POST", "DELETE"])
@auth.admin_required
def pincodes(request):
    if request.method == "GET":
        return ok({"pincodes": documents.get_global_pincodes()})
    pincode = str(request_data(request).get("pincode") or request.GET.get("pincode") or "").strip()
    if request.method == "DELETE":
        return ok({"pincodes": documents.remove_global_pincode(pincode)})
    return ok({"pincodes": documents.add_global_pincode(pincode)})
