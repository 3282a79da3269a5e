"""
Billing models.
Records Stripe webhook events that changed a website's plan.
"""
from django.db import models


class BillingEvent(models.Model):
    """
    A processed Stripe webhook event.
    The event id is unique so redelivered webhooks are applied once.
    """
    STATUS_CHOICES = [
        ('processed', 'Processed'),
        ('ignored', 'Ignored'),
        ('failed', 'Failed'),
    ]

    website = models.ForeignKey(
        'websites.Website',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='billing_events'
    )
    stripe_event_id = models.CharField(max_length=255, unique=True)
    event_type = models.CharField(max_length=100)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='processed')
    plan_before = models.CharField(max_length=50, blank=True)
    plan_after = models.CharField(max_length=50, blank=True)
    error_message = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'billing_events'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.event_type} ({self.stripe_event_id}) - {self.status}"
