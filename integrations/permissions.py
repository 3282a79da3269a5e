"""
Custom permissions for CMS plugin/app integrations.
"""
import logging
from rest_framework import permissions

logger = logging.getLogger(__name__)


class IsAccessKeyAuthenticated(permissions.BasePermission):
    """
    Permission to allow access key authenticated requests.
    """
    def has_permission(self, request, view):
        if isinstance(request.auth, dict):
            return request.auth.get('auth_type') == 'access_key'
        logger.debug("Request not authenticated with an access key")
        return False
