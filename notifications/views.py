from commerce import documents
from commerce.auth import VENDOR_SESSION_KEY, console_required, load_active_vendor, vendor_required
from commerce.exceptions import PermissionDenied, ValidationError
from commerce.http import api_view, json_body, ok

from . import service


def _own_vendor_id(request, body):
    vendor_id = body.get("vendorId") or request.vendor["vendor_id"]
    if vendor_id != request.vendor["vendor_id"]:
        raise PermissionDenied("Cannot act for another vendor")
    return vendor_id


@api_view(["POST"])
@console_required
def notify_vendor(request):
    body = json_body(request)
    if not body.get("orderId") or not body.get("vendorId"):
        raise ValidationError("Order ID and Vendor ID are required")
    if request.vendor is not None:
        _own_vendor_id(request, body)
    return ok(service.notify_vendor(body["orderId"], body["vendorId"]), message="Notification sent successfully")


@api_view(["POST", "DELETE"])
@vendor_required
def register_token(request):
    body = json_body(request)
    vendor_id = _own_vendor_id(request, body)
    platform = body.get("platform") or "web"
    if request.method == "DELETE":
        result = service.unregister_token(vendor_id, platform)
        return ok(result, message="Push token unregistered successfully")
    result = service.register_token(vendor_id, body.get("token"), platform)
    return ok(result, message="Push token registered successfully")


@api_view(["POST"])
@vendor_required
def check_new_orders(request):
    body = json_body(request)
    vendor_id = _own_vendor_id(request, body)
    return ok(service.check_new_orders(vendor_id, since_ms=body.get("timestamp")))


@api_view(["POST"])
def verify_vendor(request):
    """Whether a vendor account may use the console right now."""
    body = json_body(request)
    session_vendor = request.session.get(VENDOR_SESSION_KEY)
    vendor_id = body.get("vendorId") or session_vendor
    if not vendor_id:
        raise ValidationError("Vendor ID is required", authenticated=False)

    vendor = load_active_vendor(vendor_id)
    authenticated = session_vendor == vendor_id
    payload = {"authenticated": authenticated, "verified_at": documents.now_iso()}
    if authenticated:
        payload["vendor"] = {
            "id": vendor["vendor_id"],
            "name": vendor.get("name", "Unknown Vendor"),
            "email": vendor.get("email", ""),
            "phone": vendor.get("phone", ""),
            "status": vendor.get("status", "unknown"),
            "is_open": vendor.get("is_open", False),
            "pincodes": vendor.get("pincodes", []),
            "profile_complete": vendor.get("profile_complete", False),
        }
    return ok(payload)
