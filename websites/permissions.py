"""
Custom permissions for websites app.
"""
from rest_framework import permissions


class IsWebsiteOwner(permissions.BasePermission):
    """
    Permission to check if user owns the website.
    """
    def has_object_permission(self, request, view, obj):
        return obj.user == request.user
