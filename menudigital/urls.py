# /menudigital/menudigital/urls.py
"""
CHANGE LOG
----------
2026-01-20
- ADD: /api/ → tableorders (orders, payments webhook, table status).
- ADD: /health/ liveness probe placed before include() so it resolves first.
"""

from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include


def health_view(request):
    """Liveness probe for load balancers and uptime checks."""
    return JsonResponse({"ok": True})


urlpatterns = [
    path("health/", health_view, name="health"),
    path("admin/", admin.site.urls),
    path("api/", include("tableorders.urls", namespace="tableorders")),
]
