"""
Tests for integrations app - CMS plugin/app endpoints.
"""
from unittest.mock import patch

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from integrations.sync import replace_collection
from websites.models import ContentItem, Website


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
def create_website(create_user):
    def _create_website(user=None, **kwargs):
        if user is None:
            user = create_user()
        defaults = {
            'name': 'Example Store',
            'domain': 'example.com',
            'integration_type': 'shopify',
            'access_key': Website.generate_access_key(),
        }
        defaults.update(kwargs)
        return Website.objects.create(user=user, **defaults)
    return _create_website


@pytest.fixture
def plugin_client(api_client, create_website):
    website = create_website()
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {website.access_key}')
    return api_client, website


def add_item(website, external_id, kind, **kwargs):
    return ContentItem.objects.create(
        website=website, external_id=external_id, kind=kind,
        title=kwargs.pop('title', external_id), url=kwargs.pop('url', f'/{external_id}'), **kwargs
    )


@pytest.mark.django_db
class TestAccessKeyVerification:

    def test_verify_success(self, plugin_client):
        client, website = plugin_client
        response = client.post('/api/v1/plugin/verify/')
        assert response.status_code == 200
        assert response.data['authenticated'] is True
        assert response.data['website_id'] == website.id
        assert response.data['integration'] == 'shopify'

    def test_verify_with_header(self, api_client, create_website):
        website = create_website()
        response = api_client.post('/api/v1/plugin/verify/', HTTP_X_ACCESS_KEY=website.access_key)
        assert response.status_code == 200

    def test_verify_invalid_key(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer ak_not_a_real_key')
        response = api_client.post('/api/v1/plugin/verify/')
        assert response.status_code == 401

    def test_verify_missing_key(self, api_client):
        assert api_client.post('/api/v1/plugin/verify/').status_code == 401

    def test_rotated_key_stops_working(self, plugin_client):
        client, website = plugin_client
        website.issue_access_key()
        assert client.post('/api/v1/plugin/verify/').status_code == 401

    def test_inactive_website(self, plugin_client):
        client, website = plugin_client
        Website.objects.filter(pk=website.pk).update(status='inactive')
        assert client.post('/api/v1/plugin/verify/').status_code == 401


@pytest.mark.django_db
class TestContentSync:

    def test_sync_replaces_one_kind(self, plugin_client):
        client, website = plugin_client
        add_item(website, 'old-product', 'product')
        add_item(website, 'about', 'page')

        response = client.post('/api/v1/plugin/content/sync/', {
            'kind': 'product',
            'items': [
                {'id': 'p1', 'title': 'Mug', 'url': '/products/mug', 'price': '12.50', 'aiRedirects': 3},
                {'id': 'p2', 'title': 'Cap', 'url': '/products/cap', 'lastUpdated': '2026-02-01T00:00:00Z'},
            ],
        }, format='json')

        assert response.status_code == 200
        assert response.data['replaced'] == 1
        assert response.data['created'] == 2

        products = website.content_items.filter(kind='product')
        assert sorted(products.values_list('external_id', flat=True)) == ['p1', 'p2']
        assert str(products.get(external_id='p1').price) == '12.50'
        assert website.content_items.filter(kind='page', external_id='about').exists()

        website.refresh_from_db()
        assert website.last_sync is not None

    def test_empty_collection_clears_kind(self, plugin_client):
        client, website = plugin_client
        add_item(website, 'b1', 'post')

        response = client.post('/api/v1/plugin/content/sync/', {'kind': 'post', 'items': []}, format='json')
        assert response.status_code == 200
        assert not website.content_items.filter(kind='post').exists()

    def test_item_moving_to_another_kind(self, plugin_client):
        client, website = plugin_client
        add_item(website, '42', 'page')

        response = client.post('/api/v1/plugin/content/sync/', {
            'kind': 'post',
            'items': [{'id': '42', 'title': 'Now a post', 'url': '/42', 'author': 'Sam'}],
        }, format='json')

        assert response.status_code == 200
        item = website.content_items.get(external_id='42')
        assert item.kind == 'post'
        assert item.author == 'Sam'

    def test_kind_specific_fields_dropped_for_other_kinds(self, plugin_client):
        client, website = plugin_client
        client.post('/api/v1/plugin/content/sync/', {
            'kind': 'page',
            'items': [{'id': 'g1', 'title': 'About', 'url': '/about', 'price': '5.00', 'author': 'Sam'}],
        }, format='json')

        page = website.content_items.get(external_id='g1')
        assert page.price is None
        assert page.author is None

    def test_negative_redirects_rejected(self, plugin_client):
        client, website = plugin_client
        response = client.post('/api/v1/plugin/content/sync/', {
            'kind': 'page',
            'items': [{'id': 'g1', 'title': 'About', 'url': '/about', 'aiRedirects': -1}],
        }, format='json')
        assert response.status_code == 400
        website.refresh_from_db()
        assert website.last_sync is None

    def test_duplicate_ids_rejected(self, plugin_client):
        client, _ = plugin_client
        response = client.post('/api/v1/plugin/content/sync/', {
            'kind': 'page',
            'items': [{'id': 'g1', 'title': 'A', 'url': '/a'}, {'id': 'g1', 'title': 'B', 'url': '/b'}],
        }, format='json')
        assert response.status_code == 400

    def test_unknown_kind_rejected(self, plugin_client):
        client, _ = plugin_client
        response = client.post('/api/v1/plugin/content/sync/', {'kind': 'video', 'items': []}, format='json')
        assert response.status_code == 400

    def test_first_sync_clears_needs_setup(self, plugin_client):
        from websites.onboarding import needs_setup
        from websites.snapshots import build_snapshot

        client, website = plugin_client
        assert needs_setup(build_snapshot(website)) is True

        client.post('/api/v1/plugin/content/sync/', {'kind': 'page', 'items': []}, format='json')
        website.refresh_from_db()
        assert needs_setup(build_snapshot(website)) is False

    def test_replace_locks_website_row(self, create_website):
        website = create_website()
        with patch.object(Website.objects, 'select_for_update', wraps=Website.objects.select_for_update) as lock:
            replace_collection(website, 'page', [{'id': 'g1', 'url': '/g1'}])

        lock.assert_called_once_with()
        assert website.content_items.filter(kind='page').count() == 1

    def test_repeated_push_of_same_ids(self, plugin_client):
        client, website = plugin_client
        payload = {
            'kind': 'product',
            'items': [{'id': 'p1', 'title': 'Mug', 'url': '/mug'}, {'id': 'p2', 'title': 'Cap', 'url': '/cap'}],
        }

        first = client.post('/api/v1/plugin/content/sync/', payload, format='json')
        second = client.post('/api/v1/plugin/content/sync/', payload, format='json')

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.data['replaced'] == 2
        assert website.content_items.filter(kind='product').count() == 2


@pytest.mark.django_db
class TestUsageReport:

    def test_counters_increment(self, plugin_client):
        client, website = plugin_client
        add_item(website, 'p1', 'product', ai_redirects=1)

        response = client.post('/api/v1/plugin/usage/', {
            'queries': 10,
            'ai_redirects': 2,
            'total_redirects': 5,
            'text_chats': 1,
            'item_redirects': {'p1': 2, 'missing': 1},
        }, format='json')

        assert response.status_code == 200
        assert response.data['monthly_queries'] == 10
        assert response.data['unknown_items'] == ['missing']

        website.refresh_from_db()
        assert website.ai_redirects == 2
        assert website.total_redirects == 5
        assert website.total_ai_redirects == 2
        assert website.total_text_chats == 1
        assert website.content_items.get(external_id='p1').ai_redirects == 3

    def test_reports_accumulate(self, plugin_client):
        client, website = plugin_client
        for _ in range(2):
            client.post('/api/v1/plugin/usage/', {'queries': 4}, format='json')
        website.refresh_from_db()
        assert website.monthly_queries == 8

    def test_ai_redirects_cannot_exceed_total(self, plugin_client):
        client, _ = plugin_client
        response = client.post('/api/v1/plugin/usage/', {'ai_redirects': 3, 'total_redirects': 1}, format='json')
        assert response.status_code == 400

    def test_negative_counter_rejected(self, plugin_client):
        client, _ = plugin_client
        response = client.post('/api/v1/plugin/usage/', {'queries': -5}, format='json')
        assert response.status_code == 400
