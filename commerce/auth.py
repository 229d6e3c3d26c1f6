"""
Session-backed access checks for the three audiences.

The admin check runs on every request: a session alone is not enough, the
admin document must still carry the ``admin`` role.
"""
import logging
from functools import wraps

from . import documents
from .exceptions import AuthenticationRequired, PermissionDenied

logger = logging.getLogger(__name__)

ADMIN_SESSION_KEY = "admin_session"
VENDOR_SESSION_KEY = "vendor_id"
CUSTOMER_SESSION_KEY = "customer_id"

ADMIN_LOGIN_URL = "/admin/login"
VENDOR_LOGIN_URL = "/vendor/login"


def login(request, key, value):
    request.session.cycle_key()
    request.session[key] = value


def logout(request, key):
    request.session.pop(key, None)


def admin_required(view):
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        admin_id = request.session.get(ADMIN_SESSION_KEY)
        if not admin_id:
            raise AuthenticationRequired("Admin login required", login_url=ADMIN_LOGIN_URL, redirect=request.path)
        if not documents.is_admin(admin_id):
            logger.warning("Session %s no longer maps to an admin", admin_id)
            logout(request, ADMIN_SESSION_KEY)
            raise PermissionDenied("Not an admin")
        request.admin_id = admin_id
        return view(request, *args, **kwargs)
    return wrapper


def load_active_vendor(vendor_id):
    vendor = documents.require_vendor(vendor_id)
    if vendor.get("status") != "active":
        raise PermissionDenied("Vendor account is not active", status=vendor.get("status", "unknown"))
    return vendor


def vendor_required(view):
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        vendor_id = request.session.get(VENDOR_SESSION_KEY)
        if not vendor_id:
            raise AuthenticationRequired("Vendor login required", login_url=VENDOR_LOGIN_URL)
        request.vendor = load_active_vendor(vendor_id)
        return view(request, *args, **kwargs)
    return wrapper


def customer_required(view):
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        customer_id = request.session.get(CUSTOMER_SESSION_KEY)
        customer = documents.get_customer(customer_id) if customer_id else {}
        if not customer:
            raise AuthenticationRequired("Please sign in to continue")
        request.customer = documents.public_customer(customer)
        return view(request, *args, **kwargs)
    return wrapper


def console_required(view):
    """Admins or active vendors. Sets ``request.vendor`` for vendors."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        request.vendor = None
        admin_id = request.session.get(ADMIN_SESSION_KEY)
        if admin_id and documents.is_admin(admin_id):
            request.admin_id = admin_id
            return view(request, *args, **kwargs)
        vendor_id = request.session.get(VENDOR_SESSION_KEY)
        if not vendor_id:
            raise AuthenticationRequired("Admin or vendor login required")
        request.vendor = load_active_vendor(vendor_id)
        return view(request, *args, **kwargs)
    return wrapper
