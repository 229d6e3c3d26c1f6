import json
import logging
from functools import wraps

from django.http import JsonResponse
from django.middleware.csrf import get_token
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_http_methods

from .exceptions import CommerceError, ValidationError

logger = logging.getLogger(__name__)


def api_view(methods):
    """
    JSON endpoint decorator.

    Restricts the HTTP methods and turns domain errors into
    ``{"success": false, "error": ...}`` bodies with the error's status.
    Anything unexpected is logged and reported as a 500.
    """
    def decorator(view):
        @require_http_methods(methods)
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            try:
                return view(request, *args, **kwargs)
            except CommerceError as e:
                body = {"success": False, "error": e.message}
                body.update(e.extra)
                return JsonResponse(body, status=e.status)
            except Exception:
                logger.exception("Unhandled error in %s", view.__name__)
                return JsonResponse({"success": False, "error": "Internal server error"}, status=500)
        return wrapper
    return decorator


def ok(payload=None, status=200, **extra):
    body = {"success": True}
    if payload:
        body.update(payload)
    body.update(extra)
    return JsonResponse(body, status=status)


def json_body(request):
    """Decode a JSON request body into a dict."""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def request_data(request):
    """Form-encoded POST data or, failing that, a JSON body."""
    if request.content_type in ("application/x-www-form-urlencoded", "multipart/form-data"):
        return request.POST
    return json_body(request)


def validated(form):
    """Return cleaned_data or raise with the form's field errors."""
    if not form.is_valid():
        errors = {field: [str(e) for e in errs] for field, errs in form.errors.items()}
        raise ValidationError("Invalid input", fields=errors)
    return form.cleaned_data


@ensure_csrf_cookie
@api_view(["GET"])
def csrf_token(request):
    """
    Issue the CSRF cookie. Browser clients call this once and send the
    token back in the ``X-CSRFToken`` header on every POST and DELETE.
    """
    return ok({"csrf_token": get_token(request), "header": "X-CSRFToken"})


def csrf_failure(request, reason=""):
    logger.warning("CSRF check failed for %s: %s", request.path, reason)
    return JsonResponse({
        "success": False,
        "error": "CSRF verification failed",
        "reason": reason,
        "csrf_url": "/api/csrf",
    }, status=403)
