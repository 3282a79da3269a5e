"""
Website and ContentItem models.
"""
import secrets

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class Website(models.Model):
    """
    A WordPress site or Shopify store connected to the overlay.
    One user can have multiple websites.
    """
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]

    ACCESS_KEY_PREFIX = 'ak'

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='websites'
    )
    name = models.CharField(max_length=255)
    domain = models.CharField(max_length=255, help_text="Bare domain, e.g. shop.example.com")
    integration_type = models.CharField(
        max_length=50,
        default='wordpress',
        help_text="wordpress, shopify or any other CMS name"
    )
    # Free text so tiers beyond Free/Pro can appear without a migration
    plan = models.CharField(max_length=50, default='Free')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')

    # Usage
    monthly_queries = models.PositiveIntegerField(default=0)
    query_limit = models.IntegerField(
        default=5000,
        help_text="Monthly query ceiling (advisory, not enforced)"
    )

    # Integration state
    last_sync = models.DateTimeField(null=True, blank=True, help_text="Null until the first sync lands")
    sync_requested_at = models.DateTimeField(null=True, blank=True, help_text="When a sync was last dispatched from the dashboard")
    access_key = models.CharField(
        max_length=128,
        unique=True,
        null=True,
        blank=True,
        help_text="Key the CMS plugin/app uses to push data"
    )

    # Current period stats
    ai_redirects = models.PositiveIntegerField(default=0)
    total_redirects = models.PositiveIntegerField(default=0)

    # Lifetime counters
    total_ai_redirects = models.PositiveIntegerField(default=0)
    total_voice_chats = models.PositiveIntegerField(default=0)
    total_text_chats = models.PositiveIntegerField(default=0)

    # Billing
    stripe_customer_id = models.CharField(max_length=255, blank=True, null=True)
    stripe_subscription_id = models.CharField(max_length=255, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'websites'
        ordering = ['-created_at']
        unique_together = [['user', 'domain']]

    def __str__(self):
        return f"{self.name} ({self.domain})"

    @classmethod
    def generate_access_key(cls):
        return f"{cls.ACCESS_KEY_PREFIX}_{secrets.token_urlsafe(32)}"

    def issue_access_key(self):
        """Issue (or rotate) the access key handed to the CMS plugin/app."""
        self.access_key = self.generate_access_key()
        self.save(update_fields=['access_key', 'updated_at'])
        return self.access_key

    def mark_sync_requested(self):
        self.sync_requested_at = timezone.now()
        self.save(update_fields=['sync_requested_at', 'updated_at'])

    def apply_plan(self, plan, query_limit=None):
        """Switch plan and, optionally, the quota ceiling that goes with it."""
        self.plan = plan
        update_fields = ['plan', 'updated_at']
        if query_limit is not None:
            self.query_limit = query_limit
            update_fields.append('query_limit')
        self.save(update_fields=update_fields)


class ContentItem(models.Model):
    """
    A product, post or page pulled from the CMS.
    Rows for one kind are replaced as a whole on each sync.
    """
    KIND_CHOICES = [
        ('product', 'Product'),
        ('post', 'Post'),
        ('page', 'Page'),
    ]

    website = models.ForeignKey(
        Website,
        on_delete=models.CASCADE,
        related_name='content_items'
    )
    external_id = models.CharField(max_length=255, help_text="CMS identifier, unique per website")
    kind = models.CharField(max_length=20, choices=KIND_CHOICES)
    title = models.CharField(max_length=500)
    url = models.CharField(max_length=1000, help_text="Path relative to the website domain")
    summary = models.TextField(blank=True)
    last_updated = models.DateTimeField(null=True, blank=True)
    ai_redirects = models.PositiveIntegerField(default=0)

    # Kind-specific
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    author = models.CharField(max_length=255, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'content_items'
        ordering = ['kind', '-last_updated', 'id']
        unique_together = [['website', 'external_id']]
        indexes = [
            models.Index(fields=['website', 'kind'], name='content_items_website_kind_idx'),
        ]

    def __str__(self):
        return f"{self.get_kind_display()}: {self.title}"

    def save(self, *args, **kwargs):
        if self.pk:
            original_kind = ContentItem.objects.filter(pk=self.pk).values_list('kind', flat=True).first()
            if original_kind is not None and original_kind != self.kind:
                raise ValidationError("Content item kind cannot change once created")
        super().save(*args, **kwargs)
