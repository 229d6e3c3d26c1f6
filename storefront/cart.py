"""
Session cart: ``{product_id: quantity}`` under ``CART_SESSION_KEY``.

Prices are always read from the Products table, never from the session.
"""
from commerce import documents
from commerce.exceptions import ValidationError

CART_SESSION_KEY = "cart"


def _items(request):
    return dict(request.session.get(CART_SESSION_KEY, {}))


def _save(request, items):
    request.session[CART_SESSION_KEY] = items


def add(request, product_id, quantity=1):
    quantity = int(quantity)
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    product = documents.require_product(product_id)
    if product.get("status") != "active":
        raise ValidationError(f"{product.get('name', 'Product')} is not available")
    items = _items(request)
    items[product_id] = items.get(product_id, 0) + quantity
    _save(request, items)


def set_quantity(request, product_id, quantity):
    quantity = int(quantity)
    items = _items(request)
    if quantity <= 0:
        items.pop(product_id, None)
    else:
        documents.require_product(product_id)
        items[product_id] = quantity
    _save(request, items)


def remove(request, product_id):
    items = _items(request)
    items.pop(product_id, None)
    _save(request, items)


def clear(request):
    request.session.pop(CART_SESSION_KEY, None)


def lines(request):
    """Cart entries joined with their products; vanished products are dropped."""
    result = []
    for product_id, quantity in _items(request).items():
        product = documents.get_product(product_id)
        if not product or product.get("status") == "deleted":
            continue
        price = float(product.get("price", 0))
        result.append({
            "product_id": product_id,
            "name": product.get("name", ""),
            "image": product.get("image", ""),
            "unit": product.get("unit", ""),
            "price": price,
            "mrp": float(product.get("mrp", price)),
            "quantity": quantity,
            "line_total": round(price * quantity, 2),
            "status": product.get("status"),
            "pincodes": product.get("pincodes", []),
        })
    return result


def summary(request):
    entries = lines(request)
    return {
        "items": entries,
        "item_count": sum(e["quantity"] for e in entries),
        "subtotal": round(sum(e["line_total"] for e in entries), 2),
    }
