"""
URL routing for websites app.
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import WebsiteViewSet

router = SimpleRouter()
router.register(r'', WebsiteViewSet, basename='website')

urlpatterns = [
    path('', include(router.urls)),
]
