#!/usr/bin/env python
"""
Test runner for the storefront apps
Usage: python runtests.py [app ...]
"""
import os
import sys

import django
from django.conf import settings
from django.test.utils import get_runner

APPS = [
    "commerce",
    "uploads",
    "payments",
    "notifications",
    "storefront",
    "vendor_console",
    "admin_console",
]

if __name__ == "__main__":
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "quickcart.settings")
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner()
    failures = test_runner.run_tests(sys.argv[1:] or APPS)
    sys.exit(bool(failures))
