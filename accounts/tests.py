"""
Tests for dashboard user authentication.
"""
import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken
from rest_framework_simplejwt.tokens import RefreshToken


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def user_model():
    return get_user_model()


@pytest.fixture
def create_user(user_model):
    def _create_user(email="owner@example.com", password="testpass123"):
        return user_model.objects.create_user(
            email=email,
            username=email,
            password=password
        )
    return _create_user


@pytest.fixture
def authenticated_client(api_client, create_user):
    user = create_user()
    refresh = RefreshToken.for_user(user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {str(refresh.access_token)}')
    return api_client, user


@pytest.mark.django_db
class TestLogin:

    def test_login_returns_token_pair(self, api_client, create_user):
        user = create_user()
        response = api_client.post('/api/v1/auth/login/', {
            'email': user.email,
            'password': 'testpass123'
        }, format='json')
        assert response.status_code == 200
        assert response.data['token']
        assert response.data['refresh_token']
        assert response.data['user']['email'] == user.email

    def test_login_invalid_credentials(self, api_client, create_user):
        create_user()
        response = api_client.post('/api/v1/auth/login/', {
            'email': 'owner@example.com',
            'password': 'wrongpassword'
        }, format='json')
        assert response.status_code == 400

    def test_login_missing_password(self, api_client):
        response = api_client.post('/api/v1/auth/login/', {'email': 'owner@example.com'}, format='json')
        assert response.status_code == 400

    def test_inactive_user_cannot_login(self, api_client, create_user):
        user = create_user()
        user.is_active = False
        user.save()
        response = api_client.post('/api/v1/auth/login/', {
            'email': user.email,
            'password': 'testpass123'
        }, format='json')
        assert response.status_code == 400


@pytest.mark.django_db
class TestRegister:

    def test_register_splits_name(self, api_client, user_model):
        response = api_client.post('/api/v1/auth/register/', {
            'email': 'newowner@example.com',
            'password': 'securepass123',
            'name': 'Dana Lee Smith'
        }, format='json')
        assert response.status_code == 201
        assert response.data['token']

        user = user_model.objects.get(email='newowner@example.com')
        assert user.first_name == 'Dana'
        assert user.last_name == 'Lee Smith'
        assert user.check_password('securepass123')

    def test_register_duplicate_email(self, api_client, create_user):
        user = create_user(email='taken@example.com')
        response = api_client.post('/api/v1/auth/register/', {
            'email': user.email,
            'password': 'securepass123'
        }, format='json')
        assert response.status_code == 400
        assert 'email' in response.data

    def test_register_short_password(self, api_client, user_model):
        response = api_client.post('/api/v1/auth/register/', {
            'email': 'short@example.com',
            'password': 'short'
        }, format='json')
        assert response.status_code == 400
        assert not user_model.objects.filter(email='short@example.com').exists()


@pytest.mark.django_db
class TestSession:

    def test_me_authenticated(self, authenticated_client):
        client, user = authenticated_client
        response = client.get('/api/v1/auth/me/')
        assert response.status_code == 200
        assert response.data['user']['email'] == user.email

    def test_me_unauthenticated(self, api_client):
        response = api_client.get('/api/v1/auth/me/')
        assert response.status_code == 401

    def test_logout_blacklists_refresh_token(self, authenticated_client):
        client, user = authenticated_client
        refresh = RefreshToken.for_user(user)
        response = client.post('/api/v1/auth/logout/', {'refresh_token': str(refresh)}, format='json')
        assert response.status_code == 200
        assert BlacklistedToken.objects.filter(token__jti=refresh['jti']).exists()

    def test_logout_with_bad_token(self, authenticated_client):
        client, _ = authenticated_client
        response = client.post('/api/v1/auth/logout/', {'refresh_token': 'not-a-token'}, format='json')
        assert response.status_code == 400
