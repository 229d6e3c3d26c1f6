from django.urls import path

from . import views

urlpatterns = [
    path("orders/notify-vendor", views.notify_vendor, name="notify_vendor"),
    path("vendor/messaging/register-token", views.register_token, name="register_token"),
    path("vendor/orders/check-new", views.check_new_orders, name="check_new_orders"),
    path("vendor/auth/verify", views.verify_vendor, name="verify_vendor"),
]
