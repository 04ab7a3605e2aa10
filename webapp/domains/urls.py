from . import views
from django.urls import path

# Paths match acme-dns so existing clients work unchanged
urlpatterns = [
    path(
        "register",
        views.acmedns_api_register,
        name="acmedns_api_register",
    ),
    path(
        "update",
        views.acmedns_api_update,
        name="acmedns_api_update",
    ),
    path(
        "health",
        views.acmedns_api_health,
        name="acmedns_api_health",
    ),
    # Management API
    path(
        "domains",
        views.list_domains,
        name="list_domains",
    ),
    path(
        "update-name",
        views.update_domain_name,
        name="update_domain_name",
    ),
    path(
        "dns-check",
        views.dns_check,
        name="dns_check",
    ),
]
