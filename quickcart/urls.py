from django.urls import include, path

from admin_console import views as admin_views
from commerce.http import csrf_token

urlpatterns = [
    # Service endpoints
    path("api/csrf", csrf_token, name="csrf_token"),
    path("api/", include("uploads.urls")),
    path("api/paytm/", include("payments.urls")),
    path("api/", include("notifications.urls")),
    path("api/banner-cards", admin_views.banner_cards, name="banner_cards"),
    path("api/admin/pincodes", admin_views.pincodes, name="global_pincodes"),

    # Consoles
    path("admin/", include("admin_console.urls")),
    path("vendor/", include("vendor_console.urls")),

    # Storefront
    path("", include("storefront.urls")),
]
