# config/urls.py
from django.contrib import admin
from django.contrib.auth import views as auth_views
from django.urls import path, include
from django.views.generic import RedirectView


urlpatterns = [
    path("admin/", admin.site.urls),

    path("login/", auth_views.LoginView.as_view(template_name="login.html"), name="login"),
    path("logout/", auth_views.LogoutView.as_view(), name="logout"),

    path("", RedirectView.as_view(pattern_name="staff:list", permanent=False), name="home"),

    # Staff management
    path("staff/", include(("staff.urls", "staff"), namespace="staff")),

    # Class schedules
    path("schedule/", include(("schedule.urls", "schedule"), namespace="schedule")),
]
