"""
URL routing for CMS plugin/app integrations.
Note: These URLs are included at /api/v1/plugin/.
"""
from django.urls import path

from . import sync

urlpatterns = [
    # "Test Connection" from the plugin/app
    path('verify/', sync.verify_access_key, name='plugin-verify'),
    # Full collection push, one kind at a time
    path('content/sync/', sync.sync_content, name='plugin-content-sync'),
    # Usage counters
    path('usage/', sync.report_usage, name='plugin-usage'),
]
