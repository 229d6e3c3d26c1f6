from django.urls import path

from . import views

urlpatterns = [
    path("initiate", views.initiate, name="paytm_initiate"),
    path("callback", views.callback, name="paytm_callback"),
    path("status", views.status, name="paytm_status"),
]
