"""URL configuration for the homestay booking engine.

The `urlpatterns` list routes URLs to views. It includes the Django admin
and the application‑level routes of each app.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore

# API versioning. v1 is our initial version; future versions can be added here.

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/bookings/', include('apps.bookings.urls')),
]
