"""
Tests for subscription management, Stripe sessions and webhooks.
"""
import json
from unittest.mock import MagicMock, patch

import pytest
import stripe
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from billing.models import BillingEvent
from billing.sessions import SessionResult, StripeSessions
from websites.models import Website


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
            'access_key': Website.generate_access_key(),
        }
        defaults.update(kwargs)
        return Website.objects.create(user=user, **defaults)
    return _create_website


@pytest.fixture
def sessions():
    fake = MagicMock()
    fake.create_portal_session.return_value = SessionResult(success=True, url='https://billing.stripe.com/p/1')
    fake.create_checkout_session.return_value = SessionResult(
        success=True, url='https://checkout.stripe.com/c/1', session_id='cs_1'
    )
    with patch('billing.views.get_sessions', return_value=fake):
        yield fake


@pytest.fixture
def billing_settings(settings):
    settings.FRONTEND_URL = 'https://app.example.com'
    settings.STRIPE_PRICE_PRO = 'price_pro'
    settings.STRIPE_SECRET_KEY = 'sk_test_x'
    settings.STRIPE_WEBHOOK_SECRET = 'whsec_x'
    settings.FREE_QUERY_LIMIT = 5000
    settings.PRO_QUERY_LIMIT = 50000
    return settings


def post_webhook(client, event):
    with patch('stripe.Webhook.construct_event', return_value=event):
        return client.post(
            '/api/v1/billing/webhook/',
            data=json.dumps(event),
            content_type='application/json',
            HTTP_STRIPE_SIGNATURE='t=1,v1=sig',
        )


@pytest.mark.django_db
class TestManageSubscription:

    def test_free_website_gets_upgrade_offer(self, authenticated_client, create_website, sessions):
        client, user = authenticated_client
        website = create_website(user)

        response = client.post(f'/api/v1/billing/websites/{website.id}/manage/')
        assert response.status_code == 200
        assert response.data['status'] == 'show_upgrade_offer'
        assert response.data['plan'] == 'Pro'
        sessions.create_portal_session.assert_not_called()

    def test_pro_website_opens_portal(self, authenticated_client, create_website, sessions):
        client, user = authenticated_client
        website = create_website(user, plan='Pro', stripe_customer_id='cus_1')

        response = client.post(f'/api/v1/billing/websites/{website.id}/manage/')
        assert response.status_code == 200
        assert response.data['status'] == 'open_portal'
        assert response.data['redirect_url'] == 'https://billing.stripe.com/p/1'
        sessions.create_portal_session.assert_called_once_with(str(website.id))

    def test_portal_failure(self, authenticated_client, create_website, sessions):
        client, user = authenticated_client
        website = create_website(user, plan='Pro')
        sessions.create_portal_session.return_value = SessionResult(success=False, error='No active subscription')

        response = client.post(f'/api/v1/billing/websites/{website.id}/manage/')
        assert response.status_code == 400
        assert response.data['reason'] == 'No active subscription'

    def test_pending_billing_session_is_a_quiet_no_op(self, authenticated_client, create_website, sessions):
        from billing import gatekeeper

        client, user = authenticated_client
        website = create_website(user, plan='Pro')
        gatekeeper.default_guard.try_acquire(gatekeeper.BILLING_ACTION, website.id)
        try:
            response = client.post(f'/api/v1/billing/websites/{website.id}/manage/')
        finally:
            gatekeeper.default_guard.release(gatekeeper.BILLING_ACTION, website.id)

        assert response.status_code == 200
        assert response.data == {'status': 'busy', 'effect': None}
        sessions.create_portal_session.assert_not_called()

    def test_other_users_website(self, authenticated_client, create_user, create_website, sessions):
        client, _ = authenticated_client
        website = create_website(create_user(email='other@example.com'), plan='Pro')
        response = client.post(f'/api/v1/billing/websites/{website.id}/manage/')
        assert response.status_code == 404


@pytest.mark.django_db
class TestUpgrade:

    def test_upgrade_opens_checkout(self, authenticated_client, create_website, sessions, billing_settings):
        client, user = authenticated_client
        website = create_website(user)

        response = client.post(f'/api/v1/billing/websites/{website.id}/upgrade/', {}, format='json')
        assert response.status_code == 200
        assert response.data['status'] == 'open_checkout'
        assert response.data['redirect_url'] == 'https://checkout.stripe.com/c/1'

        args = sessions.create_checkout_session.call_args[0]
        assert args[0] == str(website.id)
        assert args[1] == 'Pro'
        assert args[3] == f'https://app.example.com/app/websites/website?id={website.id}&canceled=true'

    def test_upgrade_rejects_bad_url(self, authenticated_client, create_website, sessions):
        client, user = authenticated_client
        website = create_website(user)
        response = client.post(f'/api/v1/billing/websites/{website.id}/upgrade/', {'successUrl': 'nope'}, format='json')
        assert response.status_code == 400
        sessions.create_checkout_session.assert_not_called()

    def test_pro_website_already_subscribed(self, authenticated_client, create_website, sessions):
        client, user = authenticated_client
        website = create_website(user, plan='Pro')

        response = client.post(f'/api/v1/billing/websites/{website.id}/upgrade/', {}, format='json')
        assert response.status_code == 409
        assert response.data['status'] == 'already_subscribed'
        sessions.create_checkout_session.assert_not_called()


@pytest.mark.django_db
class TestSessionEndpoints:

    def test_portal_endpoint(self, authenticated_client, create_website, sessions):
        client, user = authenticated_client
        website = create_website(user)
        response = client.post('/api/v1/billing/portal/', {'websiteId': website.id}, format='json')
        assert response.status_code == 200
        assert response.data == {'url': 'https://billing.stripe.com/p/1'}

    def test_checkout_endpoint_error(self, authenticated_client, create_website, sessions):
        client, user = authenticated_client
        website = create_website(user)
        sessions.create_checkout_session.return_value = SessionResult(success=False, error='Invalid plan: Gold')

        response = client.post('/api/v1/billing/checkout/', {
            'websiteId': website.id,
            'plan': 'Gold',
            'successUrl': 'https://app.example.com/ok',
            'cancelUrl': 'https://app.example.com/cancel',
        }, format='json')
        assert response.status_code == 400
        assert response.data == {'error': 'Invalid plan: Gold'}


@pytest.mark.django_db
class TestStripeSessions:

    def test_portal_requires_customer(self, create_user, create_website, billing_settings):
        website = create_website(create_user())
        result = StripeSessions().create_portal_session(website.id)
        assert result.success is False
        assert result.error == 'No active subscription'

    def test_portal_unknown_website(self, billing_settings):
        result = StripeSessions().create_portal_session(999999)
        assert result.error == 'Website not found'

    def test_portal_session_created(self, create_user, create_website, billing_settings):
        website = create_website(create_user(), stripe_customer_id='cus_1')
        session = MagicMock(url='https://billing.stripe.com/p/2', id='bps_1')
        with patch('stripe.billing_portal.Session.create', return_value=session) as create:
            result = StripeSessions().create_portal_session(website.id)

        assert result == SessionResult(success=True, url='https://billing.stripe.com/p/2', session_id='bps_1')
        assert create.call_args.kwargs['customer'] == 'cus_1'

    def test_checkout_creates_customer_first(self, create_user, create_website, billing_settings):
        website = create_website(create_user())
        customer = MagicMock(id='cus_new')
        session = MagicMock(url='https://checkout.stripe.com/c/2', id='cs_2')
        with patch('stripe.Customer.create', return_value=customer), \
                patch('stripe.checkout.Session.create', return_value=session) as create:
            result = StripeSessions().create_checkout_session(website.id, 'Pro', 'https://a/ok', 'https://a/no')

        assert result.success is True
        assert result.session_id == 'cs_2'
        kwargs = create.call_args.kwargs
        assert kwargs['customer'] == 'cus_new'
        assert kwargs['line_items'] == [{'price': 'price_pro', 'quantity': 1}]
        assert kwargs['metadata'] == {'website_id': website.id, 'plan': 'Pro'}
        website.refresh_from_db()
        assert website.stripe_customer_id == 'cus_new'

    def test_checkout_invalid_plan(self, billing_settings):
        result = StripeSessions().create_checkout_session(1, 'Gold', 'https://a/ok', 'https://a/no')
        assert result.error == 'Invalid plan: Gold'

    def test_stripe_error_becomes_failed_result(self, create_user, create_website, billing_settings):
        website = create_website(create_user(), stripe_customer_id='cus_1')
        with patch('stripe.billing_portal.Session.create', side_effect=stripe.StripeError('boom')):
            result = StripeSessions().create_portal_session(website.id)
        assert result.success is False
        assert 'boom' in result.error


@pytest.mark.django_db
class TestStripeWebhook:

    def checkout_event(self, website, event_id='evt_1'):
        return {
            'id': event_id,
            'type': 'checkout.session.completed',
            'data': {'object': {
                'customer': 'cus_9',
                'subscription': 'sub_9',
                'metadata': {'website_id': str(website.id), 'plan': 'Pro'},
            }},
        }

    def test_checkout_completed_upgrades_to_pro(self, authenticated_client, create_website, sessions, billing_settings):
        client, user = authenticated_client
        website = create_website(user)

        response = post_webhook(APIClient(), self.checkout_event(website))
        assert response.status_code == 200

        website.refresh_from_db()
        assert website.plan == 'Pro'
        assert website.query_limit == 50000
        assert website.stripe_customer_id == 'cus_9'
        assert website.stripe_subscription_id == 'sub_9'

        event = BillingEvent.objects.get(stripe_event_id='evt_1')
        assert (event.plan_before, event.plan_after, event.status) == ('Free', 'Pro', 'processed')

        # The upgrade offer can no longer be acted on
        response = client.post(f'/api/v1/billing/websites/{website.id}/upgrade/', {}, format='json')
        assert response.status_code == 409
        assert response.data['status'] == 'already_subscribed'

    def test_redelivered_event_applied_once(self, create_user, create_website, billing_settings):
        website = create_website(create_user())
        event = self.checkout_event(website)
        post_webhook(APIClient(), event)

        website.apply_plan('Free', 5000)
        post_webhook(APIClient(), event)

        website.refresh_from_db()
        assert website.plan == 'Free'
        assert BillingEvent.objects.filter(stripe_event_id='evt_1').count() == 1

    def test_subscription_deleted_downgrades(self, create_user, create_website, billing_settings):
        website = create_website(create_user(), plan='Pro', query_limit=50000,
                                 stripe_customer_id='cus_9', stripe_subscription_id='sub_9')
        response = post_webhook(APIClient(), {
            'id': 'evt_2',
            'type': 'customer.subscription.deleted',
            'data': {'object': {'customer': 'cus_9'}},
        })
        assert response.status_code == 200

        website.refresh_from_db()
        assert website.plan == 'Free'
        assert website.query_limit == 5000
        assert website.stripe_subscription_id is None

    def test_unknown_website_is_ignored(self, billing_settings):
        response = post_webhook(APIClient(), {
            'id': 'evt_3',
            'type': 'checkout.session.completed',
            'data': {'object': {'customer': 'cus_missing', 'metadata': {'website_id': '999999'}}},
        })
        assert response.status_code == 200
        assert BillingEvent.objects.get(stripe_event_id='evt_3').status == 'ignored'

    def test_invalid_signature(self, billing_settings):
        error = stripe.SignatureVerificationError('bad signature', 'sig')
        with patch('stripe.Webhook.construct_event', side_effect=error):
            response = APIClient().post(
                '/api/v1/billing/webhook/', data='{}', content_type='application/json',
                HTTP_STRIPE_SIGNATURE='bad',
            )
        assert response.status_code == 400
        assert not BillingEvent.objects.exists()

    def test_unhandled_event_type(self, billing_settings):
        response = post_webhook(APIClient(), {'id': 'evt_4', 'type': 'customer.created', 'data': {'object': {}}})
        assert response.status_code == 200
        assert not BillingEvent.objects.exists()

    def test_billing_events_listing(self, authenticated_client, create_website, billing_settings):
        client, user = authenticated_client
        website = create_website(user)
        post_webhook(APIClient(), self.checkout_event(website))

        response = client.get(f'/api/v1/billing/websites/{website.id}/events/')
        assert response.status_code == 200
        assert response.data['events'][0]['event_type'] == 'checkout.session.completed'
