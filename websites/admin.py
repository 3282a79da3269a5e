from django.contrib import admin
from .models import Website, ContentItem


@admin.register(Website)
class WebsiteAdmin(admin.ModelAdmin):
    list_display = ('name', 'domain', 'integration_type', 'plan', 'user', 'status', 'last_sync', 'created_at')
    list_filter = ('integration_type', 'plan', 'status', 'created_at')
    search_fields = ('name', 'domain', 'user__email')
    readonly_fields = ('created_at', 'updated_at', 'last_sync', 'sync_requested_at', 'access_key')


@admin.register(ContentItem)
class ContentItemAdmin(admin.ModelAdmin):
    list_display = ('title', 'kind', 'website', 'ai_redirects', 'last_updated')
    list_filter = ('kind',)
    search_fields = ('title', 'url', 'website__domain')
    readonly_fields = ('created_at',)
