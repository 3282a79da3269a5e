"""
CMS plugin/app sync views.
Handles access key verification, full content sync, and usage reporting.
"""
import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.response import Response

from websites.models import Website, ContentItem
from .authentication import AccessKeyAuthentication
from .permissions import IsAccessKeyAuthenticated
from .serializers import ContentSyncSerializer, UsageReportSerializer

logger = logging.getLogger(__name__)


@api_view(['POST'])
@authentication_classes([AccessKeyAuthentication])
@permission_classes([IsAccessKeyAuthenticated])
def verify_access_key(request):
    """
    Verify access key endpoint for the plugin/app "Test Connection" button.

    POST /api/v1/plugin/verify/
    Headers: Authorization: Bearer <access_key>

    Returns: { "authenticated": true, "website_id": ..., "name": "...", "domain": "...", "plan": "..." }
    """
    website = request.auth['website']

    return Response({
        'authenticated': True,
        'website_id': website.id,
        'name': website.name,
        'domain': website.domain,
        'integration': website.integration_type,
        'plan': website.plan,
    }, status=status.HTTP_200_OK)


def replace_collection(website, kind, items, synced_at=None):
    """
    Replace every content item of one kind with items, and stamp last_sync.

    Items of other kinds are untouched. Runs in a single transaction so readers
    never see a half-replaced collection, holding the website row lock so two
    pushes for the same website do not interleave.
    """
    synced_at = synced_at or timezone.now()
    rows = [
        ContentItem(
            website=website,
            external_id=item['id'],
            kind=kind,
            title=item.get('title', ''),
            url=item['url'],
            summary=item.get('summary', ''),
            last_updated=item.get('lastUpdated'),
            ai_redirects=item.get('aiRedirects', 0),
            price=item.get('price') if kind == 'product' else None,
            author=(item.get('author') or None) if kind == 'post' else None,
        )
        for item in items
    ]

    with transaction.atomic():
        # Concurrent pushes for one website replace collections one at a time
        Website.objects.select_for_update().get(pk=website.pk)
        # Ids are unique per website: a kind change in the CMS arrives as a new row
        ContentItem.objects.filter(website=website, external_id__in=[r.external_id for r in rows]).exclude(kind=kind).delete()
        deleted, _ = ContentItem.objects.filter(website=website, kind=kind).delete()
        ContentItem.objects.bulk_create(rows)
        Website.objects.filter(pk=website.pk).update(last_sync=synced_at, updated_at=synced_at)

    website.last_sync = synced_at
    return deleted, len(rows)


@api_view(['POST'])
@authentication_classes([AccessKeyAuthentication])
@permission_classes([IsAccessKeyAuthenticated])
def sync_content(request):
    """
    Replace one content collection from the plugin/app.

    POST /api/v1/plugin/content/sync/
    Headers: Authorization: Bearer <access_key>
    Body: { "kind": "product", "items": [{ "id": "12", "title": "...", "url": "/p/12", ... }] }

    Returns: { "kind": "product", "replaced": 3, "created": 5, "last_sync": "..." }
    """
    website = request.auth['website']
    serializer = ContentSyncSerializer(data=request.data)

    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    kind = serializer.validated_data['kind']
    replaced, created = replace_collection(website, kind, serializer.validated_data['items'])

    logger.info(
        "Synced %s %s item(s) for website %s (replaced %s)",
        created, kind, website.id, replaced,
    )

    return Response({
        'kind': kind,
        'replaced': replaced,
        'created': created,
        'last_sync': website.last_sync,
    }, status=status.HTTP_200_OK)


@api_view(['POST'])
@authentication_classes([AccessKeyAuthentication])
@permission_classes([IsAccessKeyAuthenticated])
def report_usage(request):
    """
    Add usage counters reported by the plugin/app.

    POST /api/v1/plugin/usage/
    Headers: Authorization: Bearer <access_key>
    Body: { "queries": 10, "ai_redirects": 2, "total_redirects": 5,
            "voice_chats": 1, "text_chats": 0, "item_redirects": { "12": 2 } }
    """
    website = request.auth['website']
    serializer = UsageReportSerializer(data=request.data)

    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    with transaction.atomic():
        Website.objects.filter(pk=website.pk).update(
            monthly_queries=F('monthly_queries') + data['queries'],
            ai_redirects=F('ai_redirects') + data['ai_redirects'],
            total_redirects=F('total_redirects') + data['total_redirects'],
            total_ai_redirects=F('total_ai_redirects') + data['ai_redirects'],
            total_voice_chats=F('total_voice_chats') + data['voice_chats'],
            total_text_chats=F('total_text_chats') + data['text_chats'],
        )
        unknown_items = []
        for external_id, increment in data['item_redirects'].items():
            updated = ContentItem.objects.filter(website=website, external_id=external_id).update(
                ai_redirects=F('ai_redirects') + increment
            )
            if not updated:
                unknown_items.append(external_id)

    if unknown_items:
        logger.warning("Usage for unknown content items on website %s: %s", website.id, unknown_items)

    website.refresh_from_db()
    return Response({
        'monthly_queries': website.monthly_queries,
        'query_limit': website.query_limit,
        'ai_redirects': website.ai_redirects,
        'total_redirects': website.total_redirects,
        'unknown_items': unknown_items,
    }, status=status.HTTP_200_OK)
