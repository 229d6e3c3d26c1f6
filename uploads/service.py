"""
Image upload fallback chain used by the console product forms.

Files: S3 first, Cloudinary second. URLs: S3 (after fetching the
image), Cloudinary by URL, then the source URL itself.
"""
import logging
import mimetypes
import re
import time
from dataclasses import asdict, dataclass
from urllib.parse import urlparse

import requests
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

from aws_config import S3_IMAGE_BUCKET
from aws_lib.s3_client import S3Client
from commerce.exceptions import ExternalServiceError

from . import cloudinary_host

logger = logging.getLogger(__name__)

s3 = S3Client()

PRIMARY = "s3"
SECONDARY = "cloudinary"
DIRECT = "direct"

# Browser-like agent; some image hosts reject bare clients
FETCH_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                  "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
}


@dataclass
class UploadResult:
    success: bool
    provider: str
    url: str = None
    path: str = None
    public_id: str = None
    error: str = None
    warning: str = None

    def as_dict(self):
        return {k: v for k, v in asdict(self).items() if v is not None}


def _timestamp():
    return int(time.time() * 1000)


def safe_filename(name):
    return re.sub(r"[^a-zA-Z0-9.-]", "_", name or "image")


def _extension_from_url(url):
    path = urlparse(url).path
    if "." in path.rsplit("/", 1)[-1]:
        return path.rsplit(".", 1)[-1].lower()
    return "jpg"


def url_is_accessible(url):
    try:
        resp = requests.head(
            url,
            headers=FETCH_HEADERS,
            timeout=settings.UPLOAD_URL_CHECK_TIMEOUT,
            allow_redirects=True
        )
        return resp.ok
    except requests.exceptions.RequestException as e:
        logger.warning("URL validation error for %s: %s", url, e)
        return False


def upload_product_image(upload, vendor_id):
    """Upload a Django UploadedFile; returns an UploadResult."""
    filename = f"{_timestamp()}_{safe_filename(upload.name)}"
    content_type = getattr(upload, "content_type", None) or "application/octet-stream"

    key = f"products/{vendor_id}/{filename}"
    try:
        upload.seek(0)
        url = s3.upload_fileobj(S3_IMAGE_BUCKET, key, upload, content_type)
        logger.info("Uploaded %s to S3", key)
        return UploadResult(success=True, provider=PRIMARY, url=url, path=key, public_id=key)
    except (BotoCoreError, ClientError) as e:
        logger.error("S3 upload failed, trying Cloudinary: %s", e)

    if cloudinary_host.is_configured_for_upload():
        try:
            result = cloudinary_host.upload_file(upload, upload.name, vendor_id, filename)
            return UploadResult(success=True, provider=SECONDARY, **result)
        except ExternalServiceError as e:
            logger.error("Cloudinary upload failed: %s", e.message)

    return UploadResult(
        success=False,
        provider=PRIMARY,
        error="Failed to upload image with any available service"
    )


def upload_multiple_product_images(uploads, vendor_id):
    results = [upload_product_image(u, vendor_id) for u in uploads]
    succeeded = sum(1 for r in results if r.success)
    return {
        "success": succeeded > 0,
        "total_files": len(results),
        "successful_uploads": succeeded,
        "failed_uploads": len(results) - succeeded,
        "results": [r.as_dict() for r in results],
    }


def upload_image_from_url(image_url, vendor_id):
    """
    Re-host an image given by URL. Never fails: when every host refuses
    the original URL is handed back with provider ``direct``.
    """
    if not url_is_accessible(image_url):
        logger.info("URL is not accessible, returning direct URL: %s", image_url)
        return UploadResult(
            success=True,
            provider=DIRECT,
            url=image_url,
            warning="URL may not be accessible for upload services"
        )

    ext = _extension_from_url(image_url)
    key = f"products/{vendor_id}/{_timestamp()}_from_url.{ext}"
    try:
        resp = requests.get(image_url, headers=FETCH_HEADERS, timeout=settings.UPLOAD_FETCH_TIMEOUT)
        resp.raise_for_status()
        content_type = resp.headers.get("content-type") or mimetypes.guess_type(key)[0] or "image/jpeg"
        url = s3.put_bytes(S3_IMAGE_BUCKET, key, resp.content, content_type)
        logger.info("Uploaded %s to S3 from %s", key, image_url)
        return UploadResult(success=True, provider=PRIMARY, url=url, path=key, public_id=key)
    except (requests.exceptions.RequestException, BotoCoreError, ClientError) as e:
        logger.error("S3 URL upload failed, trying Cloudinary: %s", e)

    if cloudinary_host.is_configured_for_upload():
        try:
            result = cloudinary_host.upload_url(image_url, vendor_id, f"{_timestamp()}_from_url")
            return UploadResult(success=True, provider=SECONDARY, **result)
        except ExternalServiceError as e:
            logger.error("Cloudinary URL upload failed: %s", e.message)

    logger.info("All upload services failed, using direct URL")
    return UploadResult(
        success=True,
        provider=DIRECT,
        url=image_url,
        warning="Using original URL as fallback due to upload failures"
    )


def delete_product_image(identifier):
    """S3 keys start with ``products/``; anything else is a Cloudinary public_id."""
    if identifier.startswith("products/"):
        try:
            s3.delete(S3_IMAGE_BUCKET, identifier)
            return UploadResult(success=True, provider=PRIMARY, path=identifier)
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 delete failed for %s: %s", identifier, e)
            return UploadResult(success=False, provider=PRIMARY, error=str(e))

    try:
        cloudinary_host.destroy(identifier)
        return UploadResult(success=True, provider=SECONDARY, public_id=identifier)
    except ExternalServiceError as e:
        logger.error("Cloudinary delete failed for %s: %s", identifier, e.message)
        return UploadResult(success=False, provider=SECONDARY, error=e.message)


def check_upload_config():
    s3_configured = bool(S3_IMAGE_BUCKET)
    cloudinary_configured = cloudinary_host.is_configured_for_upload()
    primary = PRIMARY
    if not s3_configured and cloudinary_configured:
        primary = SECONDARY
    return {
        "s3": {"configured": s3_configured, "bucket": S3_IMAGE_BUCKET},
        "cloudinary": {
            "configured": cloudinary_configured,
            "delete_configured": cloudinary_host.is_configured_for_delete(),
        },
        "primary_service": primary,
        "any_service_configured": s3_configured or cloudinary_configured,
    }
