import logging

from django.conf import settings

from commerce.auth import console_required
from commerce.exceptions import PermissionDenied, ValidationError
from commerce.http import api_view, json_body, ok

from . import service

logger = logging.getLogger(__name__)


def _vendor_scope(request, vendor_id):
    """Vendors upload under their own id; admins may name any vendor."""
    if request.vendor is not None:
        if vendor_id and vendor_id != request.vendor["vendor_id"]:
            raise PermissionDenied("Cannot upload for another vendor")
        return request.vendor["vendor_id"]
    if not vendor_id:
        raise ValidationError("vendorId is required")
    return vendor_id


@api_view(["POST"])
@console_required
def upload(request):
    """
    Multipart ``file`` + ``vendorId`` uploads a file; a JSON body with
    ``imageUrl`` + ``vendorId`` re-hosts a remote image.
    """
    if request.content_type == "multipart/form-data":
        image = request.FILES.get("file")
        if not image:
            raise ValidationError("File and vendorId are required")
        vendor_id = _vendor_scope(request, request.POST.get("vendorId"))
        result = service.upload_product_image(image, vendor_id)
    else:
        body = json_body(request)
        if not body.get("imageUrl"):
            raise ValidationError("Image URL and vendorId are required")
        vendor_id = _vendor_scope(request, body.get("vendorId"))
        result = service.upload_image_from_url(body["imageUrl"], vendor_id)

    # failures still answer 200 so form clients read the body
    return ok(result.as_dict())


@api_view(["POST"])
@console_required
def upload_from_url(request):
    body = json_body(request)
    if not body.get("imageUrl"):
        raise ValidationError("Image URL is required")
    vendor_id = _vendor_scope(request, body.get("vendorId"))
    result = service.upload_image_from_url(body["imageUrl"], vendor_id)
    return ok(result.as_dict())


@api_view(["POST"])
@console_required
def upload_multiple(request):
    files = request.FILES.getlist("files")
    if not files:
        raise ValidationError("At least one file is required")
    vendor_id = _vendor_scope(request, request.POST.get("vendorId"))
    result = service.upload_multiple_product_images(files, vendor_id)
    return ok(result)


@api_view(["POST"])
@console_required
def delete(request):
    body = json_body(request)
    identifier = body.get("identifier") or body.get("path") or body.get("public_id")
    if not identifier:
        raise ValidationError("An image path or public_id is required")
    if request.vendor is not None:
        vendor_id = request.vendor["vendor_id"]
        own = (f"products/{vendor_id}/", f"{settings.CLOUDINARY_FOLDER}/{vendor_id}/")
        if not identifier.startswith(own):
            raise PermissionDenied("Cannot delete another vendor's image")
    result = service.delete_product_image(identifier)
    return ok(result.as_dict())


@api_view(["GET"])
@console_required
def check(request):
    return ok(service.check_upload_config())
