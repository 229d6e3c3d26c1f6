from django.apps import AppConfig


class VendorConsoleConfig(AppConfig):
    name = "vendor_console"
    verbose_name = "Vendor console"
