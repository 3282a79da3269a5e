"""
Serializers for CMS plugin/app integration endpoints.
"""
from rest_framework import serializers


class ContentItemPushSerializer(serializers.Serializer):
    """One content item as pushed by the plugin/app."""
    id = serializers.CharField(max_length=255)
    title = serializers.CharField(max_length=500, allow_blank=True)
    url = serializers.CharField(max_length=1000)
    lastUpdated = serializers.DateTimeField(required=False, allow_null=True)
    aiRedirects = serializers.IntegerField(min_value=0, required=False, default=0)
    summary = serializers.CharField(required=False, allow_blank=True, default='')
    price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    author = serializers.CharField(max_length=255, required=False, allow_null=True, allow_blank=True)


class ContentSyncSerializer(serializers.Serializer):
    """A full collection of one content kind."""
    kind = serializers.ChoiceField(choices=['product', 'post', 'page'])
    items = ContentItemPushSerializer(many=True)

    def validate_items(self, value):
        ids = [item['id'] for item in value]
        if len(ids) != len(set(ids)):
            raise serializers.ValidationError("Item ids must be unique")
        return value


class UsageReportSerializer(serializers.Serializer):
    """Counter increments reported by the plugin/app. All values are non-negative."""
    queries = serializers.IntegerField(min_value=0, required=False, default=0)
    ai_redirects = serializers.IntegerField(min_value=0, required=False, default=0)
    total_redirects = serializers.IntegerField(min_value=0, required=False, default=0)
    voice_chats = serializers.IntegerField(min_value=0, required=False, default=0)
    text_chats = serializers.IntegerField(min_value=0, required=False, default=0)
    item_redirects = serializers.DictField(
        child=serializers.IntegerField(min_value=0),
        required=False,
        default=dict,
        help_text="Per-item AI redirect increments keyed by content item id"
    )

    def validate(self, attrs):
        if attrs['ai_redirects'] > attrs['total_redirects']:
            raise serializers.ValidationError("ai_redirects cannot exceed total_redirects")
        return attrs
