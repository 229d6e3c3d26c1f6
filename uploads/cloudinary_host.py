"""
Secondary image host: Cloudinary, through the official SDK.

Uploads are unsigned (upload preset); destroy calls are signed by the SDK
with the API secret. Credentials come from Django settings on every call.
"""
import logging
import time

from cloudinary import uploader
from cloudinary.exceptions import Error as CloudinaryError
from django.conf import settings

from commerce.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


def is_configured_for_upload():
    return bool(settings.CLOUDINARY_CLOUD_NAME and settings.CLOUDINARY_UPLOAD_PRESET)


def is_configured_for_delete():
    return bool(
        settings.CLOUDINARY_CLOUD_NAME
        and settings.CLOUDINARY_API_KEY
        and settings.CLOUDINARY_API_SECRET
    )


def _credentials():
    return {
        "cloud_name": settings.CLOUDINARY_CLOUD_NAME,
        "api_key": settings.CLOUDINARY_API_KEY,
        "api_secret": settings.CLOUDINARY_API_SECRET,
        "timeout": settings.UPLOAD_FETCH_TIMEOUT,
    }


def _options(vendor_id, public_id, original_name):
    return dict(
        _credentials(),
        folder=f"{settings.CLOUDINARY_FOLDER}/{vendor_id}",
        public_id=public_id,
        context={"vendorId": vendor_id, "originalName": original_name},
    )


def _upload(source, options):
    """Unsigned upload, retried a fixed number of times."""
    if not is_configured_for_upload():
        raise ExternalServiceError("Cloudinary upload is not configured")

    attempts = settings.UPLOAD_MAX_RETRIES
    last_error = None
    for attempt in range(1, attempts + 1):
        if hasattr(source, "seek"):
            # the file object is re-read on every attempt
            source.seek(0)
        try:
            result = uploader.unsigned_upload(source, settings.CLOUDINARY_UPLOAD_PRESET, **options)
            logger.info("Cloudinary upload successful: %s", result.get("secure_url"))
            return {"url": result["secure_url"], "public_id": result["public_id"]}
        except CloudinaryError as e:
            last_error = str(e)
        logger.warning("Cloudinary upload failed (attempt %s/%s): %s", attempt, attempts, last_error)
        if attempt < attempts:
            time.sleep(settings.UPLOAD_RETRY_DELAY)

    raise ExternalServiceError(last_error or "Cloudinary upload failed")


def upload_file(fileobj, filename, vendor_id, public_id):
    return _upload(fileobj, _options(vendor_id, public_id, filename))


def upload_url(image_url, vendor_id, public_id):
    return _upload(image_url, _options(vendor_id, public_id, image_url))


def destroy(public_id):
    if not is_configured_for_delete():
        raise ExternalServiceError("Cloudinary delete is not configured")
    try:
        result = uploader.destroy(public_id, invalidate=True, **_credentials()).get("result")
    except CloudinaryError as e:
        raise ExternalServiceError(f"Cloudinary delete failed: {e}")
    if result not in ("ok", "not found"):
        raise ExternalServiceError(f"Cloudinary delete failed: {result}")
    return result
