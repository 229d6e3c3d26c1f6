"""
Django settings for the quickcart storefront.

Every external service is configured from the environment; AWS resource
names live in ``aws_config.py``.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-secret-change-me")
DEBUG = os.getenv("DJANGO_DEBUG", "false").lower() == "true"
ALLOWED_HOSTS = [h.strip() for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

INSTALLED_APPS = [
    "commerce",
    "storefront",
    "vendor_console",
    "admin_console",
    "uploads",
    "payments",
    "notifications",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
]

ROOT_URLCONF = "quickcart.urls"
WSGI_APPLICATION = "quickcart.wsgi.application"

# All data lives in DynamoDB; there is no SQL database.
DATABASES = {}

# JSON clients fetch the token from /api/csrf and echo it in X-CSRFToken
CSRF_FAILURE_VIEW = "commerce.http.csrf_failure"

SESSION_ENGINE = "django.contrib.sessions.backends.signed_cookies"
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_AGE = int(os.getenv("SESSION_COOKIE_AGE", str(60 * 60 * 24 * 7)))

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.PBKDF2PasswordHasher",
]

USE_TZ = True
TIME_ZONE = "UTC"

# -----------------------------
# Storefront
# -----------------------------
APP_URL = os.getenv("APP_URL", "http://localhost:8000").rstrip("/")
PINCODE_COOKIE_NAME = "user_pincode"
DEFAULT_GLOBAL_PINCODES = ["110001", "110002", "110003"]
DELIVERY_FEES = {"standard": 40, "express": 60}

# -----------------------------
# Paytm payment gateway
# -----------------------------
PAYTM_MID = os.getenv("PAYTM_MID", "")
PAYTM_MERCHANT_KEY = os.getenv("PAYTM_MERCHANT_KEY", "")
PAYTM_WEBSITE = os.getenv("PAYTM_WEBSITE", "WEBSTAGING")
PAYTM_PRODUCTION = os.getenv("PAYTM_ENVIRONMENT", "staging").lower() == "production"
PAYTM_BASE_URL = "https://securegw.paytm.in" if PAYTM_PRODUCTION else "https://securegw-stage.paytm.in"
PAYTM_CHANNEL_ID = "WEB" if PAYTM_PRODUCTION else "WEBSTAGING"
PAYTM_CALLBACK_URL = os.getenv("PAYTM_CALLBACK_URL", f"{APP_URL}/api/paytm/callback")
PAYTM_TIMEOUT = float(os.getenv("PAYTM_TIMEOUT", "15"))

# -----------------------------
# Image uploads
# -----------------------------
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME", "")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY", "")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET", "")
CLOUDINARY_UPLOAD_PRESET = os.getenv("CLOUDINARY_UPLOAD_PRESET", "ml_default")
CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "quick-commerce/products")

UPLOAD_MAX_RETRIES = int(os.getenv("UPLOAD_MAX_RETRIES", "3"))
UPLOAD_RETRY_DELAY = float(os.getenv("UPLOAD_RETRY_DELAY", "1.0"))
UPLOAD_URL_CHECK_TIMEOUT = float(os.getenv("UPLOAD_URL_CHECK_TIMEOUT", "5"))
UPLOAD_FETCH_TIMEOUT = float(os.getenv("UPLOAD_FETCH_TIMEOUT", "15"))

# -----------------------------
# Logging
# -----------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "botocore": {"level": "WARNING"},
        "boto3": {"level": "WARNING"},
        "urllib3": {"level": "WARNING"},
    },
}
