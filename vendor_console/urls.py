from django.urls import path

from . import views

urlpatterns = [
    path("login", views.login, name="vendor_login"),
    path("logout", views.logout, name="vendor_logout"),
    path("dashboard", views.dashboard, name="vendor_dashboard"),

    # Orders
    path("orders", views.order_list, name="vendor_orders"),
    path("orders/<str:order_id>", views.order_detail, name="vendor_order_detail"),
    path("orders/<str:order_id>/advance", views.order_advance, name="vendor_order_advance"),
    path("orders/<str:order_id>/cancel", views.order_cancel, name="vendor_order_cancel"),

    # Products
    path("products", views.product_list, name="vendor_products"),
    path("products/<str:product_id>", views.product_detail, name="vendor_product_detail"),

    # Categories
    path("categories", views.category_list, name="vendor_categories"),
    path("categories/import", views.category_import, name="vendor_category_import"),

    # Settings
    path("profile", views.profile, name="vendor_profile"),
    path("pincodes", views.pincodes, name="vendor_pincodes"),
    path("toggle-open", views.toggle_open, name="vendor_toggle_open"),
    path("analytics", views.analytics_view, name="vendor_analytics"),
]
