"""
Collection access for the storefront documents.

Each collection is one DynamoDB table (see ``aws_config``). Functions here
are thin: they shape documents, stamp timestamps and apply the few rules
the console forms rely on. Callers get plain dicts back.
"""
import logging
import re
import time
import uuid

from boto3.dynamodb.conditions import Attr
from django.conf import settings
from django.contrib.auth.hashers import check_password, make_password
from django.utils import timezone
from django.utils.text import slugify

from aws_config import (
    ADMINS_TABLE,
    BANNER_CARDS_TABLE,
    CATEGORIES_TABLE,
    CUSTOMERS_TABLE,
    PRODUCTS_TABLE,
    SETTINGS_TABLE,
    VENDORS_TABLE,
)
from aws_lib.dynamodb_client import DynamoDBClient

from .exceptions import NotFound, ValidationError

logger = logging.getLogger(__name__)

ddb = DynamoDBClient()

PINCODE_RE = re.compile(r"^\d{6}$")
GLOBAL_SETTINGS_ID = "global_settings"

PRODUCT_STATUSES = ("active", "out_of_stock", "deleted")
VENDOR_STATUSES = ("active", "pending", "blocked")
BANNER_POSITIONS = ("top", "middle", "bottom")

PRODUCT_REQUIRED_FIELDS = (
    "name", "description", "price", "mrp", "category", "image", "unit", "vendor_id", "pincodes",
)

DEFAULT_BANNER_CARDS = [
    {
        "card_id": "1",
        "title": "Pizza & Burgers",
        "image_url": "https://img.freepik.com/premium-photo/flat-lay-arrangement-with-burgers-pizza_926199-1948802.jpg?w=1060s",
        "link": "/category/fruits-vegetables",
        "position": "top",
    },
    {
        "card_id": "2",
        "title": "Dairy Products",
        "image_url": "https://images.unsplash.com/photo-1628088062854-d1870b4553da",
        "link": "/category/dairy-bread-eggs",
        "position": "middle",
    },
    {
        "card_id": "3",
        "title": "Grocery & Staples",
        "image_url": "https://images.unsplash.com/photo-1579113800032-c38bd7635818",
        "link": "/category/grocery",
        "position": "bottom",
    },
]


def now_iso():
    return timezone.now().isoformat()


def new_id():
    return str(uuid.uuid4())


def is_valid_pincode(pincode):
    return bool(pincode) and bool(PINCODE_RE.match(str(pincode)))


def _public(doc, *hidden):
    return {k: v for k, v in doc.items() if k not in hidden}


# -----------------------------
# Products
# -----------------------------
def products_by_pincode(pincode):
    return ddb.scan(
        PRODUCTS_TABLE,
        Attr("pincodes").contains(pincode) & Attr("status").eq("active")
    )


def is_pincode_serviceable(pincode):
    """True when at least one active product is delivered to the pincode."""
    if not is_valid_pincode(pincode):
        return False
    return bool(ddb.scan(
        PRODUCTS_TABLE,
        Attr("pincodes").contains(pincode) & Attr("status").eq("active"),
        limit=1
    ))


def categories_by_pincode(pincode):
    names = {p["category"] for p in products_by_pincode(pincode) if p.get("category")}
    return sorted(names)


def products_by_category(category, pincode):
    return ddb.scan(
        PRODUCTS_TABLE,
        Attr("category").eq(category) & Attr("pincodes").contains(pincode) & Attr("status").eq("active")
    )


def products_by_vendor(vendor_id, include_deleted=False):
    condition = Attr("vendor_id").eq(vendor_id)
    if not include_deleted:
        condition = condition & Attr("status").ne("deleted")
    return ddb.scan(PRODUCTS_TABLE, condition)


def all_products(include_deleted=False):
    if include_deleted:
        return ddb.scan(PRODUCTS_TABLE)
    return ddb.scan(PRODUCTS_TABLE, Attr("status").ne("deleted"))


def search_products(term, pincode):
    term = (term or "").strip().lower()
    if not term:
        return []
    return [
        p for p in products_by_pincode(pincode)
        if term in p.get("name", "").lower()
        or term in p.get("description", "").lower()
        or term in p.get("category", "").lower()
    ]


def get_product(product_id):
    return ddb.get(PRODUCTS_TABLE, {"product_id": product_id})


def require_product(product_id):
    product = get_product(product_id)
    if not product:
        raise NotFound("Product not found")
    return product


def add_product(data):
    for field in PRODUCT_REQUIRED_FIELDS:
        if not data.get(field):
            raise ValidationError(f"Missing required field: {field}")

    pincodes = data["pincodes"]
    if not isinstance(pincodes, (list, tuple)) or not pincodes:
        raise ValidationError("Product must have at least one pincode for delivery area")

    product = dict(data)
    product.setdefault("status", "active")
    product.setdefault("stock", 0)
    product["pincodes"] = list(pincodes)
    product["product_id"] = new_id()
    product["created_at"] = product["updated_at"] = now_iso()
    ddb.put(PRODUCTS_TABLE, product)
    logger.info("Product added successfully with ID: %s", product["product_id"])
    return product


def update_product(product_id, changes):
    require_product(product_id)
    changes = {k: v for k, v in changes.items() if k not in ("product_id", "created_at")}
    if "status" in changes and changes["status"] not in PRODUCT_STATUSES:
        raise ValidationError(f"Invalid product status: {changes['status']}")
    changes["updated_at"] = now_iso()
    return ddb.update(PRODUCTS_TABLE, {"product_id": product_id}, changes)


def delete_product(product_id):
    # soft delete; orders keep pointing at the document
    return update_product(product_id, {"status": "deleted"})


# -----------------------------
# Vendors
# -----------------------------
def public_vendor(vendor):
    return _public(vendor, "password_hash")


def vendors_by_pincode(pincode):
    return ddb.scan(
        VENDORS_TABLE,
        Attr("pincodes").contains(pincode) & Attr("status").eq("active")
    )


def get_vendor(vendor_id):
    return ddb.get(VENDORS_TABLE, {"vendor_id": vendor_id})


def require_vendor(vendor_id):
    vendor = get_vendor(vendor_id)
    if not vendor:
        raise NotFound("Vendor not found")
    return vendor


def get_vendor_by_email(email):
    found = ddb.scan(VENDORS_TABLE, Attr("email").eq(email.strip().lower()), limit=1)
    return found[0] if found else {}


def all_vendors(status=None):
    vendors = ddb.scan(VENDORS_TABLE, Attr("status").eq(status)) if status else ddb.scan(VENDORS_TABLE)
    return sorted(vendors, key=lambda v: v.get("joined_date", ""), reverse=True)


def create_vendor(data, password):
    if not password:
        raise ValidationError("Password is required for vendor creation")
    email = data["email"].strip().lower()
    if get_vendor_by_email(email):
        raise ValidationError("A vendor with this email already exists")

    vendor = dict(data)
    vendor["email"] = email
    vendor["vendor_id"] = f"vendor_{uuid.uuid4().hex}"
    vendor["password_hash"] = make_password(password)
    vendor.setdefault("status", "pending")
    vendor.setdefault("pincodes", [])
    vendor.setdefault("is_open", False)
    vendor["role"] = "vendor"
    vendor["profile_complete"] = False
    vendor["products_count"] = 0
    vendor["categories"] = list(vendor.get("categories", []))
    vendor["joined_date"] = vendor["created_at"] = vendor["updated_at"] = now_iso()
    ddb.put(VENDORS_TABLE, vendor)
    logger.info("Vendor %s created", vendor["vendor_id"])
    return public_vendor(vendor)


def update_vendor(vendor_id, changes):
    require_vendor(vendor_id)
    changes = {
        k: v for k, v in changes.items()
        if k not in ("vendor_id", "password_hash", "created_at", "joined_date", "role")
    }
    if "status" in changes and changes["status"] not in VENDOR_STATUSES:
        raise ValidationError(f"Invalid vendor status: {changes['status']}")
    if "email" in changes:
        changes["email"] = changes["email"].strip().lower()
    changes["updated_at"] = now_iso()
    return public_vendor(ddb.update(VENDORS_TABLE, {"vendor_id": vendor_id}, changes))


def set_vendor_status(vendor_id, status):
    return update_vendor(vendor_id, {"status": status})


def set_vendor_open(vendor_id, is_open):
    return update_vendor(vendor_id, {"is_open": bool(is_open)})


def set_vendor_password(vendor_id, password):
    require_vendor(vendor_id)
    ddb.update(VENDORS_TABLE, {"vendor_id": vendor_id}, {
        "password_hash": make_password(password),
        "updated_at": now_iso(),
    })


def authenticate_vendor(email, password):
    vendor = get_vendor_by_email(email)
    if not vendor or not check_password(password, vendor.get("password_hash", "")):
        return {}
    ddb.update(VENDORS_TABLE, {"vendor_id": vendor["vendor_id"]}, {"last_login": now_iso()})
    return vendor


def delete_vendor(vendor_id):
    require_vendor(vendor_id)
    ddb.delete(VENDORS_TABLE, {"vendor_id": vendor_id})


# -----------------------------
# Categories
# -----------------------------
def all_categories():
    return sorted(ddb.scan(CATEGORIES_TABLE), key=lambda c: c.get("name", "").lower())


def get_category(category_id):
    return ddb.get(CATEGORIES_TABLE, {"category_id": category_id})


def get_category_by_slug(slug):
    found = ddb.scan(CATEGORIES_TABLE, Attr("slug").eq(slug), limit=1)
    return found[0] if found else {}


def add_category(name, description="", image=""):
    name = name.strip()
    if not name:
        raise ValidationError("Category name is required")
    slug = slugify(name)
    if get_category_by_slug(slug):
        raise ValidationError(f"Category '{name}' already exists")
    category = {
        "category_id": new_id(),
        "name": name,
        "slug": slug,
        "description": description,
        "image": image,
        "created_at": now_iso(),
        "updated_at": now_iso(),
    }
    ddb.put(CATEGORIES_TABLE, category)
    return category


def update_category(category_id, changes):
    if not get_category(category_id):
        raise NotFound("Category not found")
    changes = {k: v for k, v in changes.items() if k not in ("category_id", "created_at")}
    if changes.get("name"):
        changes["slug"] = slugify(changes["name"])
    changes["updated_at"] = now_iso()
    return ddb.update(CATEGORIES_TABLE, {"category_id": category_id}, changes)


def delete_category(category_id):
    if not get_category(category_id):
        raise NotFound("Category not found")
    ddb.delete(CATEGORIES_TABLE, {"category_id": category_id})


def import_categories(vendor_id, names):
    """Adopt global categories into a vendor's own category list."""
    vendor = require_vendor(vendor_id)
    known = {c["name"] for c in all_categories()}
    unknown = [n for n in names if n not in known]
    if unknown:
        raise ValidationError("Unknown categories: " + ", ".join(unknown))
    merged = list(vendor.get("categories", []))
    for name in names:
        if name not in merged:
            merged.append(name)
    return update_vendor(vendor_id, {"categories": merged})


# -----------------------------
# Banner cards
# -----------------------------
def list_banner_cards():
    cards = ddb.scan(BANNER_CARDS_TABLE)
    if not cards:
        for card in DEFAULT_BANNER_CARDS:
            ddb.put(BANNER_CARDS_TABLE, card)
        cards = [dict(c) for c in DEFAULT_BANNER_CARDS]
    order = {p: i for i, p in enumerate(BANNER_POSITIONS)}
    return sorted(cards, key=lambda c: order.get(c.get("position"), len(order)))


def save_banner_card(card):
    """
    Create or replace a banner card.

    With an id the card of that id is replaced; otherwise whatever card
    occupies the same position is replaced; otherwise the card is added.
    """
    for field in ("title", "image_url", "link", "position"):
        if not card.get(field):
            raise ValidationError(
                "Missing required fields: title, image_url, link, and position are required"
            )

    cards = list_banner_cards()
    card = dict(card)
    by_id = next((c for c in cards if card.get("card_id") and c["card_id"] == card["card_id"]), None)
    at_position = next((c for c in cards if c.get("position") == card["position"]), None)

    if not card.get("card_id"):
        card["card_id"] = str(int(time.time() * 1000))

    if by_id is None and at_position is not None and at_position["card_id"] != card["card_id"]:
        ddb.delete(BANNER_CARDS_TABLE, {"card_id": at_position["card_id"]})

    card["updated_at"] = now_iso()
    ddb.put(BANNER_CARDS_TABLE, card)
    return card


def delete_banner_card(card_id):
    ddb.delete(BANNER_CARDS_TABLE, {"card_id": card_id})


# -----------------------------
# Global pincodes
# -----------------------------
def get_global_pincodes():
    doc = ddb.get(SETTINGS_TABLE, {"setting_id": GLOBAL_SETTINGS_ID})
    if doc.get("pincodes"):
        return list(doc["pincodes"])
    defaults = list(settings.DEFAULT_GLOBAL_PINCODES)
    ddb.put(SETTINGS_TABLE, {
        "setting_id": GLOBAL_SETTINGS_ID,
        "pincodes": defaults,
        "updated_at": now_iso(),
    })
    return defaults


def _save_global_pincodes(pincodes):
    ddb.put(SETTINGS_TABLE, {
        "setting_id": GLOBAL_SETTINGS_ID,
        "pincodes": pincodes,
        "updated_at": now_iso(),
    })
    return pincodes


def add_global_pincode(pincode):
    if not is_valid_pincode(pincode):
        raise ValidationError("Invalid pincode format. Must be a 6-digit number")
    pincodes = get_global_pincodes()
    if pincode not in pincodes:
        pincodes.append(pincode)
    return _save_global_pincodes(pincodes)


def remove_global_pincode(pincode):
    if not is_valid_pincode(pincode):
        raise ValidationError("Invalid pincode format. Must be a 6-digit number")
    return _save_global_pincodes([p for p in get_global_pincodes() if p != pincode])


# -----------------------------
# Admins
# -----------------------------
def get_admin(admin_id):
    return ddb.get(ADMINS_TABLE, {"admin_id": admin_id})


def is_admin(admin_id):
    return bool(admin_id) and get_admin(admin_id).get("role") == "admin"


def create_admin(email, password):
    email = email.strip().lower()
    if ddb.scan(ADMINS_TABLE, Attr("email").eq(email), limit=1):
        raise ValidationError("An admin with this email already exists")
    admin = {
        "admin_id": new_id(),
        "email": email,
        "password_hash": make_password(password),
        "role": "admin",
        "created_at": now_iso(),
    }
    ddb.put(ADMINS_TABLE, admin)
    return _public(admin, "password_hash")


def authenticate_admin(email, password):
    found = ddb.scan(ADMINS_TABLE, Attr("email").eq(email.strip().lower()), limit=1)
    if not found or not check_password(password, found[0].get("password_hash", "")):
        return {}
    return _public(found[0], "password_hash")


# -----------------------------
# Customers
# -----------------------------
def public_customer(customer):
    return _public(customer, "password_hash")


def get_customer(customer_id):
    return ddb.get(CUSTOMERS_TABLE, {"customer_id": customer_id})


def create_customer(name, email, phone, password):
    email = email.strip().lower()
    if ddb.scan(CUSTOMERS_TABLE, Attr("email").eq(email), limit=1):
        raise ValidationError("An account with this email already exists")
    customer = {
        "customer_id": new_id(),
        "name": name,
        "email": email,
        "phone": phone,
        "password_hash": make_password(password),
        "addresses": [],
        "created_at": now_iso(),
    }
    ddb.put(CUSTOMERS_TABLE, customer)
    return public_customer(customer)


def authenticate_customer(email, password):
    found = ddb.scan(CUSTOMERS_TABLE, Attr("email").eq(email.strip().lower()), limit=1)
    if not found or not check_password(password, found[0].get("password_hash", "")):
        return {}
    return public_customer(found[0])


def update_customer(customer_id, changes):
    if not get_customer(customer_id):
        raise NotFound("Customer not found")
    changes = {k: v for k, v in changes.items() if k in ("name", "phone", "addresses")}
    changes["updated_at"] = now_iso()
    return public_customer(ddb.update(CUSTOMERS_TABLE, {"customer_id": customer_id}, changes))
