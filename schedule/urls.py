from django.urls import path

from . import views

app_name = "schedule"

urlpatterns = [
    path("", views.course_grid, name="course_grid"),
    path("<str:course_id>/", views.course_detail, name="course_detail"),
]
