"""
Authentication views for dashboard users.
Handles login, register, logout, and the current user's profile.
"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from .serializers import LoginSerializer, RegisterSerializer, UserSerializer

logger = logging.getLogger(__name__)


def _token_response(user, message, response_status=status.HTTP_200_OK):
    """Access + refresh token pair for user, so the dashboard can start a session."""
    refresh = RefreshToken.for_user(user)
    return Response({
        'message': message,
        'token': str(refresh.access_token),
        'refresh_token': str(refresh),
        'user': UserSerializer(user).data,
    }, status=response_status)


@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """
    POST /api/v1/auth/login/
    Body: { "email": "owner@example.com", "password": "..." }

    Returns: { "token": "...", "refresh_token": "...", "user": {...} }
    """
    serializer = LoginSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    user = serializer.validated_data['user']
    logger.info("User %s logged in", user.id)
    return _token_response(user, 'Login successful')


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """
    POST /api/v1/auth/register/
    Body: { "email": "...", "password": "...", "name": "..." (optional) }
    """
    serializer = RegisterSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    user = serializer.save()
    logger.info("Registered user %s", user.id)
    return _token_response(user, 'Registration successful', status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """
    Blacklist the refresh token, if one is sent.

    POST /api/v1/auth/logout/
    Body: { "refresh_token": "..." }
    """
    refresh_token = request.data.get('refresh_token')
    if refresh_token:
        try:
            RefreshToken(refresh_token).blacklist()
        except TokenError as e:
            logger.warning("Logout failed for user %s: %s", request.user.id, e)
            return Response({'error': 'Logout failed'}, status=status.HTTP_400_BAD_REQUEST)
    return Response({'message': 'Logged out successfully'}, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    """GET /api/v1/auth/me/"""
    return Response({'user': UserSerializer(request.user).data})
