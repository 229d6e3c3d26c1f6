from django.urls import path

from . import views

urlpatterns = [
    path("", views.home, name="home"),
    path("pincode", views.pincode, name="pincode"),
    path("categories", views.categories, name="categories"),
    path("category/<slug:slug>", views.category_products, name="category_products"),
    path("product/<str:product_id>", views.product_detail, name="product_detail"),
    path("search", views.search, name="search"),

    # Cart
    path("cart", views.cart_detail, name="cart"),
    path("cart/add", views.cart_add, name="cart_add"),
    path("cart/<str:product_id>", views.cart_item, name="cart_item"),

    # Account
    path("signup", views.signup, name="signup"),
    path("login", views.login, name="login"),
    path("logout", views.logout, name="logout"),
    path("profile", views.profile, name="profile"),

    # Orders
    path("checkout", views.checkout, name="checkout"),
    path("orders", views.order_list, name="orders"),
    path("orders/<str:order_id>", views.order_detail, name="order_detail"),
]
