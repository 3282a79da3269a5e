"""
Tests for website management and the dashboard's integration endpoints.
"""
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from websites.models import ContentItem, Website
from websites.snapshots import build_snapshot


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def create_user():
    def _create_user(email="owner@example.com", password="testpass123"):
        return get_user_model().objects.create_user(
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


@pytest.fixture
def create_website():
    def _create_website(user, **kwargs):
        defaults = {
            'name': 'Example Store',
            'domain': 'example.com',
            'integration_type': 'wordpress',
            'access_key': Website.generate_access_key(),
        }
        defaults.update(kwargs)
        return Website.objects.create(user=user, **defaults)
    return _create_website


@pytest.fixture(autouse=True)
def integration_urls(settings):
    settings.WORDPRESS_PLUGIN_URL = 'https://wordpress.org/plugins/overlay-test'
    settings.SHOPIFY_APP_URL = 'https://apps.shopify.com/overlay-test'


@pytest.mark.django_db
class TestWebsiteCrud:

    def test_create_issues_access_key(self, authenticated_client):
        client, user = authenticated_client
        response = client.post('/api/v1/websites/', {
            'name': 'My Shop',
            'domain': 'https://www.MyShop.com/',
            'integration_type': 'Shopify',
        }, format='json')

        assert response.status_code == 201
        assert response.data['domain'] == 'myshop.com'
        assert response.data['integration_type'] == 'shopify'
        assert response.data['plan'] == 'Free'
        assert response.data['needs_setup'] is True

        website = Website.objects.get(id=response.data['id'])
        assert website.user == user
        assert website.access_key.startswith('ak_')

    def test_duplicate_domain_rejected(self, authenticated_client, create_website):
        client, user = authenticated_client
        create_website(user, domain='example.com')
        response = client.post('/api/v1/websites/', {
            'name': 'Again',
            'domain': 'www.example.com',
        }, format='json')
        assert response.status_code == 400
        assert 'domain' in response.data

    def test_plan_is_read_only(self, authenticated_client, create_website):
        client, user = authenticated_client
        website = create_website(user)
        response = client.patch(f'/api/v1/websites/{website.id}/', {'plan': 'Pro', 'name': 'Renamed'}, format='json')
        assert response.status_code == 200
        website.refresh_from_db()
        assert website.plan == 'Free'
        assert website.name == 'Renamed'

    def test_list_only_own_websites(self, authenticated_client, create_user, create_website):
        client, user = authenticated_client
        create_website(user)
        create_website(create_user(email='other@example.com'), domain='other.com')

        response = client.get('/api/v1/websites/')
        assert response.status_code == 200
        assert [w['domain'] for w in response.data['results']] == ['example.com']

    def test_other_users_website_is_not_found(self, authenticated_client, create_user, create_website):
        client, _ = authenticated_client
        website = create_website(create_user(email='other@example.com'))
        assert client.get(f'/api/v1/websites/{website.id}/snapshot/').status_code == 404
        assert client.post(f'/api/v1/websites/{website.id}/sync/').status_code == 404

    def test_unauthenticated(self, api_client):
        assert api_client.get('/api/v1/websites/').status_code == 401


@pytest.mark.django_db
class TestSnapshotEndpoint:

    def test_snapshot_shape(self, authenticated_client, create_website):
        client, user = authenticated_client
        website = create_website(user, monthly_queries=2500, ai_redirects=5, total_redirects=20,
                                 total_text_chats=3, stripe_customer_id='cus_1')
        ContentItem.objects.create(website=website, external_id='p1', kind='product',
                                   title='Mug', url='/mug', price=Decimal('9.99'), ai_redirects=2)
        ContentItem.objects.create(website=website, external_id='b1', kind='post',
                                   title='Hello', url='/hello', author='Sam')

        response = client.get(f'/api/v1/websites/{website.id}/snapshot/')
        assert response.status_code == 200
        data = response.data
        assert data['id'] == str(website.id)
        assert data['type'] == 'wordpress'
        assert data['lastSync'] is None
        assert data['stats'] == {'aiRedirects': 5, 'totalRedirects': 20, 'redirectRate': 0.25}
        assert data['globalStats']['totalTextChats'] == 3
        assert data['content']['products'][0]['price'] == '9.99'
        assert data['content']['blogPosts'][0]['author'] == 'Sam'
        assert data['content']['pages'] == []
        assert data['stripeId'] == 'cus_1'

    def test_build_snapshot_groups_content(self, create_user, create_website):
        website = create_website(create_user())
        ContentItem.objects.create(website=website, external_id='g1', kind='page', title='About', url='/about')
        snapshot = build_snapshot(website)
        assert [p.id for p in snapshot.content.pages] == ['g1']
        assert snapshot.content.products == ()


@pytest.mark.django_db
class TestSetupEndpoint:

    def test_needs_setup_until_first_sync(self, authenticated_client, create_website):
        client, user = authenticated_client
        website = create_website(user, integration_type='shopify')

        response = client.get(f'/api/v1/websites/{website.id}/setup/')
        assert response.status_code == 200
        assert response.data['needs_setup'] is True
        assert response.data['access_key'] == website.access_key
        assert response.data['target_url'] == 'https://apps.shopify.com/overlay-test'
        assert response.data['action_label'] == 'Install App'

        website.last_sync = datetime(2026, 1, 1, tzinfo=dt_timezone.utc)
        website.save()
        response = client.get(f'/api/v1/websites/{website.id}/setup/')
        assert response.data['needs_setup'] is False


@pytest.mark.django_db
class TestSyncEndpoint:

    def test_sync_dispatches_and_stamps_request(self, authenticated_client, create_website):
        client, user = authenticated_client
        website = create_website(user)

        response = client.post(f'/api/v1/websites/{website.id}/sync/')
        assert response.status_code == 200
        assert response.data['status'] == 'dispatched'
        assert response.data['effect'] == {
            'type': 'navigate',
            'url': 'https://wordpress.org/plugins/overlay-test',
            'new_context': True,
        }

        website.refresh_from_db()
        assert website.sync_requested_at is not None
        assert website.last_sync is None

    def test_sync_without_key_needs_setup(self, authenticated_client, create_website):
        client, user = authenticated_client
        website = create_website(user, access_key=None)

        response = client.post(f'/api/v1/websites/{website.id}/sync/')
        assert response.status_code == 200
        assert response.data == {'status': 'needs_setup', 'effect': None}
        website.refresh_from_db()
        assert website.sync_requested_at is None

    def test_sync_unsupported_kind(self, authenticated_client, create_website):
        client, user = authenticated_client
        website = create_website(user, integration_type='wix')

        response = client.post(f'/api/v1/websites/{website.id}/sync/')
        assert response.status_code == 422
        assert response.data['reason'] == 'unsupported integration kind'

    def test_sync_busy(self, authenticated_client, create_website):
        from websites import sync_gate

        client, user = authenticated_client
        website = create_website(user)
        sync_gate.default_guard.try_acquire(sync_gate.SYNC_ACTION, website.id)
        try:
            response = client.post(f'/api/v1/websites/{website.id}/sync/')
        finally:
            sync_gate.default_guard.release(sync_gate.SYNC_ACTION, website.id)

        assert response.status_code == 200
        assert response.data['status'] == 'busy'
        assert response.data['effect'] is None
        website.refresh_from_db()
        assert website.sync_requested_at is None


@pytest.mark.django_db
class TestUsageEndpoint:

    def test_usage_ratios(self, authenticated_client, create_website):
        client, user = authenticated_client
        website = create_website(user, monthly_queries=2500, query_limit=5000, ai_redirects=5, total_redirects=20)

        response = client.get(f'/api/v1/websites/{website.id}/usage/')
        assert response.status_code == 200
        assert response.data['utilization'] == 0.5
        assert response.data['redirect_rate'] == 0.25
        assert response.data['over_quota'] is False

    def test_invalid_quota_reports_unknown(self, authenticated_client, create_website):
        client, user = authenticated_client
        website = create_website(user, query_limit=0)

        response = client.get(f'/api/v1/websites/{website.id}/usage/')
        assert response.status_code == 200
        assert response.data['utilization'] is None
        assert response.data['redirect_rate'] == 0


@pytest.mark.django_db
class TestContentEndpoint:

    def test_filter_by_type(self, authenticated_client, create_website):
        client, user = authenticated_client
        website = create_website(user)
        ContentItem.objects.create(website=website, external_id='p1', kind='product', title='Mug', url='/mug')
        ContentItem.objects.create(website=website, external_id='g1', kind='page', title='About', url='/about')

        response = client.get(f'/api/v1/websites/{website.id}/content/?type=PRODUCT')
        assert response.status_code == 200
        assert [item['id'] for item in response.data['results']] == ['p1']
        assert response.data['results'][0]['type'] == 'product'

    def test_kind_cannot_change(self, create_user, create_website):
        website = create_website(create_user())
        item = ContentItem.objects.create(website=website, external_id='p1', kind='product', title='Mug', url='/mug')
        item.kind = 'page'
        with pytest.raises(ValidationError):
            item.save()


@pytest.mark.django_db
class TestRotateKey:

    def test_rotate_replaces_key(self, authenticated_client, create_website):
        client, user = authenticated_client
        website = create_website(user)
        old_key = website.access_key

        response = client.post(f'/api/v1/websites/{website.id}/rotate-key/')
        assert response.status_code == 200
        assert response.data['access_key'] != old_key

        website.refresh_from_db()
        assert website.access_key == response.data['access_key']
