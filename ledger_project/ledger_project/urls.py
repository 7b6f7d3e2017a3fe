from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    # JSON endpoints for the ledger, bills and invoices
    path("api/", include("ledger_core.urls")),
]
