"""
API URL routing for overlay_backend.
All API endpoints are prefixed with /api/v1/
"""
from django.urls import path, include

from .views import health_check

urlpatterns = [
    # Health check (no auth) - GET /api/v1/health/
    path('health/', health_check),
    # Dashboard authentication
    path('auth/', include('accounts.urls')),
    # Website management, snapshot, setup, sync and usage
    path('websites/', include('websites.urls')),
    # Subscription management and Stripe sessions
    path('billing/', include('billing.urls')),
    # CMS plugin/app endpoints (access key auth)
    path('plugin/', include('integrations.urls')),
]
