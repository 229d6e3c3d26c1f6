from collections import Counter, defaultdict
from datetime import timedelta

from django.utils import timezone

from . import documents, orders as order_docs
from .exceptions import ValidationError

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
PERIODS = {
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}


def vendor_analytics(vendor_id, period="week"):
    if period not in PERIODS:
        raise ValidationError(f"Unknown period: {period}")

    since = timezone.now() - PERIODS[period]
    orders = order_docs.orders_by_vendor(vendor_id, since=since)
    product_count = len(documents.products_by_vendor(vendor_id))

    total_revenue = sum(float(o.get("total_amount", 0)) for o in orders)
    orders_by_day = [0] * 7
    sales_by_day = [0.0] * 7
    statuses = Counter()
    products = defaultdict(lambda: {"name": "", "total_sold": 0, "revenue": 0.0})

    for order in orders:
        created = order_docs.created_at(order)
        if created is not None:
            # isoweekday(): Mon=1..Sun=7, DAY_NAMES starts on Sunday
            day = created.isoweekday() % 7
            orders_by_day[day] += 1
            sales_by_day[day] += float(order.get("total_amount", 0))
        statuses[order.get("order_status", "unknown")] += 1

        for item in order.get("items", []):
            quantity = int(item.get("quantity") or 1)
            entry = products[item.get("product_id")]
            entry["name"] = item.get("name", "")
            entry["total_sold"] += quantity
            entry["revenue"] += float(item.get("price", 0)) * quantity

    top_products = sorted(
        ({"product_id": pid, **data} for pid, data in products.items()),
        key=lambda p: p["revenue"],
        reverse=True
    )[:5]

    return {
        "period": period,
        "total_orders": len(orders),
        "total_revenue": round(total_revenue, 2),
        "total_products": product_count,
        "average_order_value": round(total_revenue / len(orders), 2) if orders else 0,
        "orders_by_day": [{"name": DAY_NAMES[i], "total": orders_by_day[i]} for i in range(7)],
        "sales_by_day": [{"name": DAY_NAMES[i], "total": round(sales_by_day[i], 2)} for i in range(7)],
        "order_status_breakdown": [{"name": k, "value": v} for k, v in statuses.items()],
        "top_products": top_products,
    }
