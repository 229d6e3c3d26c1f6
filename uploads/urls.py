from django.urls import path

from . import views

urlpatterns = [
    path("upload", views.upload, name="upload"),
    path("upload/multiple", views.upload_multiple, name="upload_multiple"),
    path("upload/delete", views.delete, name="upload_delete"),
    path("upload/check", views.check, name="upload_check"),
    path("upload-from-url", views.upload_from_url, name="upload_from_url"),
]
