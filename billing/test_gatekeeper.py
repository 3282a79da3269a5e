"""
Tests for the subscription gatekeeper.
"""
import threading

import pytest

from billing import gatekeeper
from billing.gatekeeper import (
    AlreadySubscribed, OpenCheckout, OpenPortal, ShowUpgradeOffer,
    request_manage, request_upgrade,
)
from billing.sessions import BillingSessions, SessionResult
from websites.inflight import InFlightGuard
from websites.outcomes import Busy, Failed, NavigateTo
from websites.snapshot import Plan, WebsiteSnapshot


class FakeSessions(BillingSessions):
    """Records calls and answers with a canned SessionResult."""

    def __init__(self, result=None):
        self.result = result or SessionResult(success=True, url='https://billing.example.com/s/1')
        self.portal_calls = []
        self.checkout_calls = []

    def create_portal_session(self, website_id):
        self.portal_calls.append(website_id)
        return self.result

    def create_checkout_session(self, website_id, plan, success_url, cancel_url):
        self.checkout_calls.append((website_id, plan, success_url, cancel_url))
        return self.result


class TestBillingSessionsContract:

    def test_contract_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            BillingSessions()

    def test_partial_implementation_rejected(self):
        class PortalOnly(BillingSessions):
            def create_portal_session(self, website_id):
                return SessionResult(success=True, url='https://billing.example.com/p')

        with pytest.raises(TypeError):
            PortalOnly()

    def test_full_implementation_accepted(self):
        assert isinstance(FakeSessions(), BillingSessions)


@pytest.fixture
def snapshot_for():
    def _snapshot_for(plan, website_id='42'):
        return WebsiteSnapshot(
            id=website_id, domain='example.com', type='wordpress',
            plan=Plan(plan), name='Example', query_limit=5000,
        )
    return _snapshot_for


class TestRequestManage:

    def test_pro_opens_portal(self, snapshot_for):
        sessions = FakeSessions()
        outcome = request_manage(snapshot_for('Pro'), sessions, guard=InFlightGuard())

        assert outcome == OpenPortal('https://billing.example.com/s/1')
        assert outcome.effect == NavigateTo('https://billing.example.com/s/1')
        assert sessions.portal_calls == ['42']

    @pytest.mark.parametrize('plan', ['Free', 'free', 'Business', ''])
    def test_non_pro_gets_offer_without_call(self, snapshot_for, plan):
        sessions = FakeSessions()
        outcome = request_manage(snapshot_for(plan), sessions, guard=InFlightGuard())

        assert isinstance(outcome, ShowUpgradeOffer)
        assert outcome.plan == 'Pro'
        assert sessions.portal_calls == []
        assert sessions.checkout_calls == []

    def test_pro_in_any_case_never_gets_offer(self, snapshot_for):
        for plan in ('Pro', 'PRO', 'pro'):
            outcome = request_manage(snapshot_for(plan), FakeSessions(), guard=InFlightGuard())
            assert not isinstance(outcome, ShowUpgradeOffer)

    def test_failure_carries_message(self, snapshot_for):
        sessions = FakeSessions(SessionResult(success=False, error='No active subscription'))
        outcome = request_manage(snapshot_for('Pro'), sessions, guard=InFlightGuard())

        assert outcome == Failed('No active subscription')
        assert outcome.effect is None

    def test_failure_without_message(self, snapshot_for):
        sessions = FakeSessions(SessionResult(success=False))
        outcome = request_manage(snapshot_for('Pro'), sessions, guard=InFlightGuard())
        assert outcome == Failed('Failed to create portal session')

    def test_success_without_url_is_failure(self, snapshot_for):
        sessions = FakeSessions(SessionResult(success=True, url=None))
        outcome = request_manage(snapshot_for('Pro'), sessions, guard=InFlightGuard())
        assert outcome == Failed(gatekeeper.MISSING_URL_REASON)

    def test_busy_while_billing_session_pending(self, snapshot_for):
        guard = InFlightGuard()
        guard.try_acquire(gatekeeper.BILLING_ACTION, '42')
        sessions = FakeSessions()

        assert isinstance(request_manage(snapshot_for('Pro'), sessions, guard=guard), Busy)
        assert sessions.portal_calls == []

    def test_free_website_busy_during_pending_checkout(self, snapshot_for):
        guard = InFlightGuard()
        guard.try_acquire(gatekeeper.BILLING_ACTION, '42')

        outcome = request_manage(snapshot_for('Free'), FakeSessions(), guard=guard)
        assert isinstance(outcome, Busy)

        guard.release(gatekeeper.BILLING_ACTION, '42')
        assert isinstance(request_manage(snapshot_for('Free'), FakeSessions(), guard=guard), ShowUpgradeOffer)
        assert not guard.is_pending(gatekeeper.BILLING_ACTION, '42')

    def test_concurrent_manage_makes_one_call(self, snapshot_for):
        guard = InFlightGuard()
        entered = threading.Event()
        release = threading.Event()

        class SlowSessions(FakeSessions):
            def create_portal_session(self, website_id):
                entered.set()
                release.wait(timeout=5)
                return super().create_portal_session(website_id)

        sessions = SlowSessions()
        results = []
        worker = threading.Thread(
            target=lambda: results.append(request_manage(snapshot_for('Pro'), sessions, guard=guard))
        )
        worker.start()
        assert entered.wait(timeout=5)

        second = request_manage(snapshot_for('Pro'), sessions, guard=guard)
        release.set()
        worker.join(timeout=5)

        assert isinstance(second, Busy)
        assert isinstance(results[0], OpenPortal)
        assert sessions.portal_calls == ['42']


class TestRequestUpgrade:

    def test_free_opens_checkout_with_default_urls(self, snapshot_for, settings):
        settings.FRONTEND_URL = 'https://app.example.com'
        sessions = FakeSessions()

        outcome = request_upgrade(snapshot_for('Free'), sessions, guard=InFlightGuard())

        assert isinstance(outcome, OpenCheckout)
        website_id, plan, success_url, cancel_url = sessions.checkout_calls[0]
        assert website_id == '42'
        assert plan == 'Pro'
        assert success_url == (
            'https://app.example.com/app/websites/new/complete'
            '?session_id={CHECKOUT_SESSION_ID}&id=42'
        )
        assert cancel_url == 'https://app.example.com/app/websites/website?id=42&canceled=true'

    def test_explicit_urls_are_passed_through(self, snapshot_for):
        sessions = FakeSessions()
        request_upgrade(
            snapshot_for('Free'), sessions,
            success_url='https://a.example.com/ok', cancel_url='https://a.example.com/no',
            guard=InFlightGuard(),
        )
        assert sessions.checkout_calls[0][2:] == ('https://a.example.com/ok', 'https://a.example.com/no')

    def test_pro_is_already_subscribed(self, snapshot_for):
        sessions = FakeSessions()
        outcome = request_upgrade(snapshot_for('pro'), sessions, guard=InFlightGuard())

        assert isinstance(outcome, AlreadySubscribed)
        assert sessions.checkout_calls == []

    def test_checkout_failure(self, snapshot_for):
        sessions = FakeSessions(SessionResult(success=False, error='Card declined'))
        outcome = request_upgrade(snapshot_for('Free'), sessions, guard=InFlightGuard())
        assert outcome == Failed('Card declined')

    def test_manage_and_upgrade_share_the_slot(self, snapshot_for):
        guard = InFlightGuard()
        guard.try_acquire(gatekeeper.BILLING_ACTION, '42')
        sessions = FakeSessions()

        assert isinstance(request_upgrade(snapshot_for('Free'), sessions, guard=guard), Busy)
        assert sessions.checkout_calls == []

    def test_outcome_serialization(self, snapshot_for):
        outcome = request_upgrade(snapshot_for('Free'), FakeSessions(), guard=InFlightGuard())
        assert outcome.to_dict() == {
            'status': 'open_checkout',
            'redirect_url': 'https://billing.example.com/s/1',
            'effect': {'type': 'navigate', 'url': 'https://billing.example.com/s/1', 'new_context': False},
        }
