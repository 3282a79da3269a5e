"""
Serializers for Website and ContentItem models.
"""
from urllib.parse import urlparse

from rest_framework import serializers

from .models import Website, ContentItem


def normalize_domain(value):
    """Reduce a URL or domain to a bare lowercase host (plus path-less port)."""
    value = (value or '').strip()
    if '://' not in value:
        value = 'https://' + value
    netloc = urlparse(value).netloc.lower()
    if netloc.startswith('www.'):
        netloc = netloc[4:]
    return netloc.rstrip('/')


class WebsiteSerializer(serializers.ModelSerializer):
    """Serializer for Website model."""
    needs_setup = serializers.SerializerMethodField()
    content_count = serializers.SerializerMethodField()

    class Meta:
        model = Website
        fields = (
            'id', 'name', 'domain', 'integration_type', 'plan', 'status',
            'monthly_queries', 'query_limit', 'last_sync', 'sync_requested_at',
            'access_key', 'needs_setup', 'content_count',
            'created_at', 'updated_at',
        )
        read_only_fields = (
            'id', 'plan', 'monthly_queries', 'query_limit', 'last_sync',
            'sync_requested_at', 'access_key', 'needs_setup', 'content_count',
            'created_at', 'updated_at',
        )

    def get_needs_setup(self, obj):
        return obj.last_sync is None

    def get_content_count(self, obj):
        return obj.content_items.count()

    def validate_integration_type(self, value):
        return value.strip().lower()

    def validate_domain(self, value):
        domain = normalize_domain(value)
        if not domain:
            raise serializers.ValidationError("Enter a valid domain")

        request = self.context.get('request')
        if request is not None:
            qs = Website.objects.filter(user=request.user, domain=domain)
            if self.instance is not None:
                qs = qs.exclude(pk=self.instance.pk)
            if qs.exists():
                raise serializers.ValidationError("You already connected this domain")
        return domain


class ContentItemSerializer(serializers.ModelSerializer):
    """Read serializer for content listings."""
    id = serializers.CharField(source='external_id', read_only=True)
    type = serializers.CharField(source='kind', read_only=True)

    class Meta:
        model = ContentItem
        fields = (
            'id', 'type', 'title', 'url', 'summary', 'last_updated',
            'ai_redirects', 'price', 'author',
        )
