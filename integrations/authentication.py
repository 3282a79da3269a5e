"""
Authentication for requests from the CMS plugin/app (WordPress plugin, Shopify app).
"""
import logging

from rest_framework import authentication, exceptions

logger = logging.getLogger(__name__)


class AccessKeyAuthentication(authentication.BaseAuthentication):
    """
    Authenticate plugin/app requests using a website's access key.

    The key can be provided in:
    - Authorization header: "Bearer ak_xxx"
    - X-Access-Key header: "ak_xxx"
    """
    keyword = 'Bearer'

    def authenticate(self, request):
        access_key = self._extract_access_key(request)

        if not access_key:
            return None

        from websites.models import Website

        try:
            website = Website.objects.select_related('user').get(access_key=access_key)
        except Website.DoesNotExist:
            logger.warning("Access key not found: %s...", access_key[:8])
            raise exceptions.AuthenticationFailed('Invalid access key')

        if website.status != 'active':
            raise exceptions.AuthenticationFailed('Website is inactive')

        return (website.user, {
            'website': website,
            'auth_type': 'access_key',
        })

    def authenticate_header(self, request):
        return self.keyword

    def _extract_access_key(self, request):
        """Extract access key from request headers."""
        access_key = None

        # Check Authorization header first
        auth_header = request.META.get('HTTP_AUTHORIZATION', '')
        if auth_header.startswith('Bearer '):
            access_key = auth_header.split('Bearer ', 1)[1].strip()

        # Fall back to X-Access-Key header
        if not access_key:
            access_key = request.META.get('HTTP_X_ACCESS_KEY', '').strip()

        return access_key or None
