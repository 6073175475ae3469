"""
URL configuration for the wholesale project.

Every app mounts its endpoints under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Wholesale Admin Panel"
admin.site.site_title = "Wholesale Admin Portal"
admin.site.index_title = "Welcome to the Wholesale Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('wholesale.core.urls')),
    path('api/v1/', include('wholesale.catalog.urls')),
    path('api/v1/', include('wholesale.pricing.urls')),
    path('api/v1/', include('wholesale.parties.urls')),
    path('api/v1/', include('wholesale.inventory.urls')),
    path('api/v1/', include('wholesale.orders.urls')),
    path('api/v1/', include('wholesale.purchasing.urls')),
    path('api/v1/', include('wholesale.reports.urls')),
]
