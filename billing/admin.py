"""
Admin configuration for billing models.
"""
from django.contrib import admin
from .models import BillingEvent


@admin.register(BillingEvent)
class BillingEventAdmin(admin.ModelAdmin):
    list_display = ['event_type', 'website', 'status', 'plan_before', 'plan_after', 'created_at']
    list_filter = ['status', 'event_type']
    search_fields = ['website__domain', 'stripe_event_id']
    readonly_fields = ['created_at']
