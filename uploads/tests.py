"""
Tests for the image upload chain: S3 first, Cloudinary second, direct URL last
"""
import io
from unittest import mock

import requests
from botocore.exceptions import ClientError
from cloudinary.exceptions import GeneralError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, override_settings

from commerce.exceptions import ExternalServiceError
from commerce.test_utils import DynamoTestCase, TestDataFactory
from uploads import cloudinary_host, service

S3_DOWN = ClientError({"Error": {"Code": "ServiceUnavailable", "Message": "down"}}, "PutObject")

CLOUDINARY = {
    "CLOUDINARY_CLOUD_NAME": "demo",
    "CLOUDINARY_UPLOAD_PRESET": "preset",
    "CLOUDINARY_API_KEY": "key",
    "CLOUDINARY_API_SECRET": "secret",
    "CLOUDINARY_FOLDER": "quick-commerce/products",
    "UPLOAD_RETRY_DELAY": 0,
}


def _image(name="photo 1.jpg"):
    return SimpleUploadedFile(name, b"\x89PNG fake", content_type="image/png")


def _http_reply(status=200, json_body=None, content=b"", headers=None):
    reply = mock.Mock()
    reply.ok = status < 400
    reply.status_code = status
    reply.text = ""
    reply.content = content
    reply.headers = headers or {}
    reply.json.return_value = json_body or {}
    if status >= 400:
        reply.raise_for_status.side_effect = requests.exceptions.HTTPError(str(status))
    return reply


class FileUploadTests(SimpleTestCase):

    def setUp(self):
        patcher = mock.patch("uploads.service.s3")
        self.s3 = patcher.start()
        self.addCleanup(patcher.stop)

    def test_primary_host(self):
        self.s3.upload_fileobj.return_value = "https://bucket/products/v1/x.jpg"
        result = service.upload_product_image(_image(), "v1")

        self.assertTrue(result.success)
        self.assertEqual(result.provider, "s3")
        key = self.s3.upload_fileobj.call_args.args[1]
        self.assertTrue(key.startswith("products/v1/"))
        self.assertTrue(key.endswith("_photo_1.jpg"))

    @override_settings(**CLOUDINARY)
    @mock.patch("uploads.cloudinary_host.uploader.unsigned_upload")
    def test_falls_back_to_cloudinary(self, upload):
        self.s3.upload_fileobj.side_effect = S3_DOWN
        upload.return_value = {"secure_url": "https://res/x.jpg", "public_id": "qc/v1/x"}

        result = service.upload_product_image(_image(), "v1")

        self.assertTrue(result.success)
        self.assertEqual(result.provider, "cloudinary")
        self.assertEqual(result.public_id, "qc/v1/x")
        self.assertEqual(upload.call_args.args[1], "preset")
        self.assertEqual(upload.call_args.kwargs["folder"], "quick-commerce/products/v1")
        self.assertEqual(upload.call_args.kwargs["cloud_name"], "demo")

    @override_settings(**CLOUDINARY)
    @mock.patch("uploads.cloudinary_host.uploader.unsigned_upload", side_effect=GeneralError("Server error"))
    def test_every_host_fails(self, upload):
        self.s3.upload_fileobj.side_effect = S3_DOWN

        result = service.upload_product_image(_image(), "v1")

        self.assertFalse(result.success)
        self.assertEqual(result.error, "Failed to upload image with any available service")
        self.assertEqual(upload.call_count, 3)

    @override_settings(CLOUDINARY_CLOUD_NAME="")
    def test_cloudinary_skipped_when_unconfigured(self):
        self.s3.upload_fileobj.side_effect = S3_DOWN
        self.assertFalse(service.upload_product_image(_image(), "v1").success)

    def test_multiple(self):
        self.s3.upload_fileobj.side_effect = ["https://bucket/a", S3_DOWN]
        with override_settings(CLOUDINARY_CLOUD_NAME=""):
            result = service.upload_multiple_product_images([_image("a.jpg"), _image("b.jpg")], "v1")
        self.assertTrue(result["success"])
        self.assertEqual(result["successful_uploads"], 1)
        self.assertEqual(result["failed_uploads"], 1)


class UrlUploadTests(SimpleTestCase):

    def setUp(self):
        patcher = mock.patch("uploads.service.s3")
        self.s3 = patcher.start()
        self.addCleanup(patcher.stop)

    @mock.patch("uploads.service.requests.head", side_effect=requests.exceptions.Timeout("slow"))
    def test_inaccessible_url_returned_directly(self, head):
        result = service.upload_image_from_url("https://img.example.com/a.png", "v1")
        self.assertTrue(result.success)
        self.assertEqual(result.provider, "direct")
        self.assertEqual(result.url, "https://img.example.com/a.png")
        self.assertIsNotNone(result.warning)
        self.s3.put_bytes.assert_not_called()

    @mock.patch("uploads.service.requests.get")
    @mock.patch("uploads.service.requests.head")
    def test_rehosted_on_s3(self, head, get):
        head.return_value = _http_reply()
        get.return_value = _http_reply(content=b"img", headers={"content-type": "image/png"})
        self.s3.put_bytes.return_value = "https://bucket/products/v1/x.png"

        result = service.upload_image_from_url("https://img.example.com/a.png?w=200", "v1")

        self.assertEqual(result.provider, "s3")
        key = self.s3.put_bytes.call_args.args[1]
        self.assertTrue(key.endswith("_from_url.png"))

    @override_settings(**CLOUDINARY)
    @mock.patch("uploads.cloudinary_host.uploader.unsigned_upload")
    @mock.patch("uploads.service.requests.get")
    @mock.patch("uploads.service.requests.head")
    def test_cloudinary_by_url(self, head, get, upload):
        head.return_value = _http_reply()
        get.return_value = _http_reply(status=403)
        upload.return_value = {"secure_url": "https://res/y.jpg", "public_id": "qc/v1/y"}

        result = service.upload_image_from_url("https://img.example.com/b.jpg", "v1")

        self.assertEqual(result.provider, "cloudinary")
        self.assertEqual(upload.call_args.args[0], "https://img.example.com/b.jpg")

    @override_settings(**CLOUDINARY)
    @mock.patch("uploads.cloudinary_host.uploader.unsigned_upload", side_effect=GeneralError("timed out"))
    @mock.patch("uploads.service.requests.get")
    @mock.patch("uploads.service.requests.head")
    def test_direct_when_every_host_fails(self, head, get, upload):
        head.return_value = _http_reply()
        get.return_value = _http_reply(content=b"img")
        self.s3.put_bytes.side_effect = S3_DOWN

        result = service.upload_image_from_url("https://img.example.com/c.jpg", "v1")

        self.assertTrue(result.success)
        self.assertEqual(result.provider, "direct")
        self.assertEqual(result.warning, "Using original URL as fallback due to upload failures")


class DeleteAndConfigTests(SimpleTestCase):

    @mock.patch("uploads.service.s3")
    def test_s3_key_deleted_from_bucket(self, s3):
        result = service.delete_product_image("products/v1/a.jpg")
        self.assertTrue(result.success)
        s3.delete.assert_called_once_with(service.S3_IMAGE_BUCKET, "products/v1/a.jpg")

    @override_settings(**CLOUDINARY)
    @mock.patch("uploads.cloudinary_host.uploader.destroy", return_value={"result": "ok"})
    def test_cloudinary_destroy_uses_credentials(self, destroy):
        result = service.delete_product_image("qc/v1/x")
        self.assertTrue(result.success)
        self.assertEqual(destroy.call_args.args, ("qc/v1/x",))
        self.assertEqual(destroy.call_args.kwargs["api_secret"], "secret")

    @override_settings(**CLOUDINARY)
    @mock.patch("uploads.cloudinary_host.uploader.destroy", side_effect=GeneralError("Invalid Signature"))
    def test_cloudinary_destroy_error(self, destroy):
        with self.assertRaises(ExternalServiceError):
            cloudinary_host.destroy("qc/v1/x")

    @override_settings(CLOUDINARY_API_SECRET="")
    def test_destroy_unconfigured(self):
        with self.assertRaises(ExternalServiceError):
            cloudinary_host.destroy("qc/v1/x")

    def test_safe_filename(self):
        self.assertEqual(service.safe_filename("my photo (1).jpg"), "my_photo__1_.jpg")

    @override_settings(CLOUDINARY_CLOUD_NAME="")
    def test_config_report(self):
        report = service.check_upload_config()
        self.assertEqual(report["primary_service"], "s3")
        self.assertFalse(report["cloudinary"]["configured"])


class UploadViewTests(DynamoTestCase):

    def setUp(self):
        super().setUp()
        patcher = mock.patch("uploads.service.s3")
        self.s3 = patcher.start()
        self.addCleanup(patcher.stop)
        self.s3.upload_fileobj.return_value = "https://bucket/products/x.jpg"
        self.vendor = TestDataFactory.create_vendor()

    def test_requires_console_login(self):
        response = self.client.post("/api/upload", {"file": _image(), "vendorId": "v1"})
        self.assertEqual(response.status_code, 401)

    def test_vendor_uploads_under_own_id(self):
        self.login_vendor(self.vendor)
        response = self.client.post("/api/upload", {"file": _image()})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["provider"], "s3")
        key = self.s3.upload_fileobj.call_args.args[1]
        self.assertTrue(key.startswith(f"products/{self.vendor['vendor_id']}/"))

        response = self.client.post("/api/upload", {"file": _image(), "vendorId": "vendor_other"})
        self.assertEqual(response.status_code, 403)

    def test_missing_file(self):
        self.login_vendor(self.vendor)
        response = self.client.post("/api/upload", {"vendorId": self.vendor["vendor_id"]})
        self.assertEqual(response.status_code, 400)

    def test_admin_must_name_vendor(self):
        self.login_admin()
        self.assertEqual(self.post_json("/api/upload-from-url", {"imageUrl": "https://x/y.jpg"}).status_code, 400)

    @override_settings(CLOUDINARY_FOLDER="quick-commerce/products")
    @mock.patch("uploads.service.cloudinary_host.destroy")
    def test_vendor_cannot_delete_other_vendor_image(self, destroy):
        self.login_vendor(self.vendor)
        response = self.post_json("/api/upload/delete", {"path": "products/vendor_other/a.jpg"})
        self.assertEqual(response.status_code, 403)

        response = self.post_json("/api/upload/delete", {"identifier": "quick-commerce/products/vendor_other/123_x"})
        self.assertEqual(response.status_code, 403)
        destroy.assert_not_called()

    @override_settings(CLOUDINARY_FOLDER="quick-commerce/products")
    @mock.patch("uploads.service.cloudinary_host.destroy", return_value={"result": "ok"})
    def test_vendor_deletes_own_cloudinary_image(self, destroy):
        self.login_vendor(self.vendor)
        public_id = f"quick-commerce/products/{self.vendor['vendor_id']}/123_x"
        response = self.post_json("/api/upload/delete", {"identifier": public_id})
        self.assertEqual(response.status_code, 200)
        destroy.assert_called_once_with(public_id)

    def test_check(self):
        self.login_vendor(self.vendor)
        body = self.client.get("/api/upload/check").json()
        self.assertTrue(body["success"])
        self.assertIn("primary_service", body)


class FileRewindTests(SimpleTestCase):

    @override_settings(**CLOUDINARY)
    @mock.patch("uploads.cloudinary_host.uploader.unsigned_upload")
    def test_retry_rereads_file(self, upload):
        fileobj = io.BytesIO(b"data")
        reads = []

        def respond(source, preset, **options):
            reads.append(source.read())
            if len(reads) < 2:
                raise GeneralError("Server error")
            return {"secure_url": "https://res/z.jpg", "public_id": "z"}

        upload.side_effect = respond
        result = cloudinary_host.upload_file(fileobj, "z.jpg", "v1", "z")
        self.assertEqual(result["public_id"], "z")
        self.assertEqual(reads, [b"data", b"data"])
