from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from commerce.auth import customer_required
from commerce.exceptions import PermissionDenied, ValidationError
from commerce.http import api_view, json_body, ok
from commerce.orders import require_order

from . import gateway
from .checksum import payment_status_message


@api_view(["POST"])
@customer_required
def initiate(request):
    body = json_body(request)
    order_ids = body.get("orderIds") or []
    if not order_ids:
        raise ValidationError("Order IDs are required")
    total = 0
    for order_id in order_ids:
        order = require_order(order_id)
        if order.get("customer_id") != request.customer["customer_id"]:
            raise PermissionDenied("Order belongs to another customer")
        total += float(order.get("total_amount", 0))
    total = round(total, 2)

    claimed = body.get("amount")
    if claimed not in (None, ""):
        try:
            claimed = round(float(claimed), 2)
        except (TypeError, ValueError):
            raise ValidationError("Amount must be a number")
        if claimed != total:
            raise ValidationError("Amount does not match the order total", expected=total)

    result = gateway.initiate_payment(
        total,
        request.customer["customer_id"],
        order_ids,
        email=body.get("userEmail") or request.customer.get("email", ""),
        phone=body.get("userPhone") or request.customer.get("phone", ""),
    )
    return ok(result)


@csrf_exempt
def callback(request):
    if request.method != "POST":
        return JsonResponse({"success": False, "error": "Method not allowed"}, status=405)
    return _callback(request)


@api_view(["POST"])
def _callback(request):
    return ok(gateway.handle_callback(request.POST))


@api_view(["POST"])
@customer_required
def status(request):
    body = json_body(request)
    result = gateway.transaction_status(body.get("orderId"))
    result["message"] = payment_status_message(result["payment_status"])
    return ok(result)
