"""
Views for Website management and the dashboard's integration state.
"""
import logging

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import Website
from .onboarding import setup_state
from .permissions import IsWebsiteOwner
from .serializers import WebsiteSerializer, ContentItemSerializer
from .snapshots import build_snapshot
from .sync_gate import Dispatched, request_sync
from .usage import usage_summary

logger = logging.getLogger(__name__)

SYNC_STATUS_CODES = {
    'dispatched': status.HTTP_200_OK,
    'needs_setup': status.HTTP_200_OK,
    'busy': status.HTTP_200_OK,
    'failed': status.HTTP_422_UNPROCESSABLE_ENTITY,
}


class WebsiteViewSet(viewsets.ModelViewSet):
    """
    ViewSet for managing websites.

    list: GET /api/v1/websites/ - List all websites for current user
    create: POST /api/v1/websites/ - Connect a new website (issues its access key)
    retrieve: GET /api/v1/websites/{id}/ - Get website details
    update: PUT /api/v1/websites/{id}/ - Update website
    destroy: DELETE /api/v1/websites/{id}/ - Delete website
    snapshot: GET /api/v1/websites/{id}/snapshot/ - Full integration/usage/content snapshot
    setup: GET /api/v1/websites/{id}/setup/ - Setup state and onboarding instructions
    sync: POST /api/v1/websites/{id}/sync/ - Request a content sync
    usage: GET /api/v1/websites/{id}/usage/ - Quota and redirect ratios
    content: GET /api/v1/websites/{id}/content/?type=product|post|page - Content listing
    rotate_key: POST /api/v1/websites/{id}/rotate-key/ - Issue a new access key
    """
    serializer_class = WebsiteSerializer
    permission_classes = [IsAuthenticated, IsWebsiteOwner]

    def get_queryset(self):
        """Return only websites owned by the current user."""
        return Website.objects.filter(user=self.request.user)

    def perform_create(self, serializer):
        """Set the user and hand out the first access key."""
        website = serializer.save(user=self.request.user)
        website.issue_access_key()
        logger.info("Website %s (%s) connected for user %s", website.id, website.domain, self.request.user.id)

    @action(detail=True, methods=['get'])
    def snapshot(self, request, pk=None):
        """
        GET /api/v1/websites/{id}/snapshot/

        Returns the camelCase snapshot the dashboard renders from.
        """
        website = self.get_object()
        return Response(build_snapshot(website).to_dict())

    @action(detail=True, methods=['get'])
    def setup(self, request, pk=None):
        """
        GET /api/v1/websites/{id}/setup/

        Returns: { "needs_setup": true, "access_key": "...", "steps": [...], "target_url": "..." }
        """
        website = self.get_object()
        return Response(setup_state(build_snapshot(website)))

    @action(detail=True, methods=['post'])
    def sync(self, request, pk=None):
        """
        POST /api/v1/websites/{id}/sync/

        Returns the sync outcome. A dispatched sync carries the external URL
        the dashboard should open in a new tab.
        """
        website = self.get_object()
        outcome = request_sync(build_snapshot(website))
        if isinstance(outcome, Dispatched):
            website.mark_sync_requested()
        return Response(outcome.to_dict(), status=SYNC_STATUS_CODES[outcome.status])

    @action(detail=True, methods=['get'])
    def usage(self, request, pk=None):
        """
        GET /api/v1/websites/{id}/usage/

        utilization is null when the stored quota is invalid.
        """
        website = self.get_object()
        return Response(usage_summary(build_snapshot(website)))

    @action(detail=True, methods=['get'])
    def content(self, request, pk=None):
        """
        GET /api/v1/websites/{id}/content/?type=product
        """
        website = self.get_object()
        items = website.content_items.all()
        kind = request.query_params.get('type')
        if kind:
            items = items.filter(kind=kind.lower())
        page = self.paginate_queryset(items)
        if page is not None:
            return self.get_paginated_response(ContentItemSerializer(page, many=True).data)
        return Response(ContentItemSerializer(items, many=True).data)

    @action(detail=True, methods=['post'], url_path='rotate-key')
    def rotate_key(self, request, pk=None):
        """
        POST /api/v1/websites/{id}/rotate-key/

        The previous key stops working immediately.
        """
        website = self.get_object()
        access_key = website.issue_access_key()
        logger.info("Access key rotated for website %s", website.id)
        return Response({
            'message': 'Access key rotated successfully',
            'access_key': access_key,
        }, status=status.HTTP_200_OK)
