from django.urls import path

from . import views

urlpatterns = [
    path("login", views.login, name="admin_login"),
    path("logout", views.logout, name="admin_logout"),
    path("dashboard", views.dashboard, name="admin_dashboard"),

    # Vendors
    path("vendors", views.vendor_list, name="admin_vendors"),
    path("vendors/<str:vendor_id>", views.vendor_detail, name="admin_vendor_detail"),
    path("vendors/<str:vendor_id>/status", views.vendor_status, name="admin_vendor_status"),

    # Catalogue
    path("products", views.product_list, name="admin_products"),
    path("products/<str:product_id>", views.product_detail, name="admin_product_detail"),
    path("categories", views.category_list, name="admin_categories"),
    path("categories/<str:category_id>", views.category_detail, name="admin_category_detail"),
    path("banner-cards", views.banner_cards, name="admin_banner_cards"),

    # Orders
    path("orders", views.order_list, name="admin_orders"),
    path("orders/<str:order_id>", views.order_detail, name="admin_order_detail"),
    path("orders/<str:order_id>/status", views.order_status, name="admin_order_status"),
    path("orders/<str:order_id>/assign", views.order_assign, name="admin_order_assign"),

    path("pincodes", views.pincodes, name="admin_pincodes"),
]
