from django.urls import path

from . import views

app_name = "staff"

urlpatterns = [
    path("", views.staff_list, name="list"),
    path("reset/", views.staff_reset, name="reset"),
    path("<str:pk>/edit/", views.staff_edit, name="edit"),
    path("<str:pk>/delete/", views.staff_delete, name="delete"),
]
