"""
Serializers for billing requests and models.
"""
from rest_framework import serializers
from .models import BillingEvent


class UpgradeRequestSerializer(serializers.Serializer):
    """Optional overrides for the checkout return URLs."""
    successUrl = serializers.URLField(required=False, max_length=2000)
    cancelUrl = serializers.URLField(required=False, max_length=2000)


class PortalSessionRequestSerializer(serializers.Serializer):
    websiteId = serializers.IntegerField()


class CheckoutSessionRequestSerializer(serializers.Serializer):
    websiteId = serializers.IntegerField()
    plan = serializers.CharField(max_length=50)
    successUrl = serializers.CharField(max_length=2000)
    cancelUrl = serializers.CharField(max_length=2000)


class BillingEventSerializer(serializers.ModelSerializer):
    """Billing event serializer."""
    class Meta:
        model = BillingEvent
        fields = [
            'id', 'stripe_event_id', 'event_type', 'status',
            'plan_before', 'plan_after', 'error_message', 'created_at'
        ]
