"""
Tests for the website integration core: snapshot values, setup, usage and sync gating.
"""
import threading
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest

from websites import sync_gate
from websites.exceptions import InvalidQuota, UnsupportedIntegration
from websites.inflight import InFlightGuard
from websites.onboarding import install_target, instructions_for, needs_setup, setup_state
from websites.outcomes import Busy, Failed, NavigateTo
from websites.snapshot import (
    ContentCollections, ContentItem, PeriodStats, Page, Plan, Post, Product,
    WebsiteSnapshot,
)
from websites.sync_gate import Dispatched, NeedsSetup, request_sync
from websites.usage import collection_redirects, redirect_rate, usage_summary, utilization

WORDPRESS_URL = 'https://wordpress.org/plugins/overlay-test'
SHOPIFY_URL = 'https://apps.shopify.com/overlay-test'


@pytest.fixture(autouse=True)
def integration_urls(settings):
    settings.WORDPRESS_PLUGIN_URL = WORDPRESS_URL
    settings.SHOPIFY_APP_URL = SHOPIFY_URL


@pytest.fixture
def make_snapshot():
    def _make_snapshot(**overrides):
        values = {
            'id': '1',
            'domain': 'example.com',
            'type': 'WordPress',
            'plan': Plan.FREE,
            'name': 'Example',
            'monthly_queries': 2500,
            'query_limit': 5000,
            'last_sync': datetime(2026, 1, 5, tzinfo=dt_timezone.utc),
            'access_key': 'ak_test',
        }
        values.update(overrides)
        return WebsiteSnapshot(**values)
    return _make_snapshot


SNAPSHOT_PAYLOAD = {
    'id': 'site-9',
    'domain': 'shop.example.com',
    'type': 'Shopify',
    'plan': 'Pro',
    'name': 'Example Shop',
    'status': 'active',
    'monthlyQueries': 7200,
    'queryLimit': 50000,
    'lastSync': '2026-03-01T10:00:00Z',
    'accessKey': 'ak_abc',
    'globalStats': {'totalAiRedirects': 40, 'totalVoiceChats': 3, 'totalTextChats': 11},
    'stats': {'aiRedirects': 5, 'totalRedirects': 20, 'redirectRate': 0.25},
    'content': {
        'products': [
            {'id': 'p1', 'title': 'Mug', 'url': '/products/mug', 'type': 'product',
             'lastUpdated': '2026-02-01T00:00:00Z', 'aiRedirects': 4, 'price': '12.50',
             'description': 'A mug'},
        ],
        'blogPosts': [
            {'id': 'b1', 'title': 'Hello', 'url': '/blog/hello', 'type': 'post',
             'lastUpdated': '2026-02-02T00:00:00Z', 'aiRedirects': 1, 'author': 'Sam'},
        ],
        'pages': [
            {'id': 'g1', 'title': 'About', 'url': '/about', 'type': 'page',
             'lastUpdated': '2026-02-03T00:00:00Z', 'aiRedirects': 0, 'color': 'ignored'},
        ],
    },
    'stripeId': 'cus_123',
}


class TestSnapshotModel:

    def test_from_dict_parses_wire_shape(self):
        snapshot = WebsiteSnapshot.from_dict(SNAPSHOT_PAYLOAD)

        assert snapshot.id == 'site-9'
        assert snapshot.plan.is_pro
        assert snapshot.integration == 'shopify'
        assert snapshot.last_sync.year == 2026
        assert snapshot.billing_account == 'cus_123'
        assert snapshot.global_stats.total_text_chats == 11
        assert snapshot.stats.redirect_rate == 0.25

    def test_content_variants_carry_their_own_fields(self):
        snapshot = WebsiteSnapshot.from_dict(SNAPSHOT_PAYLOAD)
        product = snapshot.content.products[0]
        post = snapshot.content.blog_posts[0]
        page = snapshot.content.pages[0]

        assert isinstance(product, Product)
        assert product.price == Decimal('12.50')
        assert product.summary == 'A mug'
        assert isinstance(post, Post)
        assert post.author == 'Sam'
        assert isinstance(page, Page)
        assert not hasattr(page, 'color')

    def test_collection_decides_kind(self):
        payload = dict(SNAPSHOT_PAYLOAD)
        payload['content'] = {'pages': [{'id': 'x', 'title': 'X', 'url': '/x', 'type': 'product'}]}

        snapshot = WebsiteSnapshot.from_dict(payload)
        assert isinstance(snapshot.content.pages[0], Page)

    def test_null_last_sync_and_access_key(self):
        payload = dict(SNAPSHOT_PAYLOAD, lastSync=None, accessKey=None)
        snapshot = WebsiteSnapshot.from_dict(payload)
        assert snapshot.last_sync is None
        assert snapshot.access_key is None

    def test_round_trip_keeps_wire_keys(self):
        data = WebsiteSnapshot.from_dict(SNAPSHOT_PAYLOAD).to_dict()
        assert data['monthlyQueries'] == 7200
        assert data['stripeId'] == 'cus_123'
        assert data['content']['blogPosts'][0]['author'] == 'Sam'
        assert data['stats']['redirectRate'] == 0.25

    def test_negative_redirects_rejected(self):
        with pytest.raises(ValueError):
            Page(id='1', title='t', url='/t', ai_redirects=-1)
        with pytest.raises(ValueError):
            ContentItem.from_dict({'id': '1', 'type': 'page', 'url': '/', 'aiRedirects': -3})

    def test_unknown_content_type_rejected(self):
        with pytest.raises(ValueError):
            ContentItem.from_dict({'id': '1', 'type': 'video', 'url': '/v'})

    def test_kind_is_fixed_by_variant(self, make_snapshot):
        product = Product(id='1', title='t', url='/t', price=Decimal('1'))
        assert product.kind == 'product'
        with pytest.raises(AttributeError):
            product.title = 'changed'

    def test_plan_is_open_ended(self):
        assert Plan('Pro').is_pro
        assert Plan('pro').is_pro
        assert not Plan('Free').is_pro
        assert not Plan('Business').is_pro
        assert Plan('Business') == 'Business'


class TestSetupEvaluator:

    @pytest.mark.parametrize('access_key', [None, 'ak_x'])
    @pytest.mark.parametrize('plan', [Plan.FREE, Plan.PRO, Plan('Team')])
    def test_needs_setup_only_depends_on_last_sync(self, make_snapshot, access_key, plan):
        assert needs_setup(make_snapshot(last_sync=None, access_key=access_key, plan=plan)) is True
        assert needs_setup(make_snapshot(access_key=access_key, plan=plan)) is False

    def test_needs_setup_ignores_content(self, make_snapshot):
        content = ContentCollections(pages=(Page(id='1', title='t', url='/t'),))
        assert needs_setup(make_snapshot(last_sync=None, content=content)) is True

    def test_instructions_per_kind(self):
        wordpress = instructions_for('WORDPRESS')
        shopify = instructions_for('shopify')

        assert wordpress.target_url == WORDPRESS_URL
        assert shopify.target_url == SHOPIFY_URL
        assert len(wordpress.steps) == 4
        assert wordpress.steps[2] == 'Enter your access key'

    def test_unknown_kind_shows_shopify_instructions(self):
        assert instructions_for('wix').target_url == SHOPIFY_URL

    def test_install_target_never_falls_back(self):
        assert install_target('Shopify') == SHOPIFY_URL
        with pytest.raises(UnsupportedIntegration):
            install_target('wix')
        with pytest.raises(UnsupportedIntegration):
            install_target(None)

    def test_setup_state(self, make_snapshot):
        state = setup_state(make_snapshot(last_sync=None, access_key='ak_1'))
        assert state['needs_setup'] is True
        assert state['access_key'] == 'ak_1'
        assert state['target_url'] == WORDPRESS_URL


class TestUsageAggregator:

    def test_utilization(self, make_snapshot):
        assert utilization(make_snapshot(monthly_queries=2500, query_limit=5000)) == 0.5

    def test_utilization_can_exceed_quota(self, make_snapshot):
        assert utilization(make_snapshot(monthly_queries=6000, query_limit=5000)) == 1.2

    @pytest.mark.parametrize('limit', [0, -10])
    def test_utilization_invalid_quota(self, make_snapshot, limit):
        with pytest.raises(InvalidQuota):
            utilization(make_snapshot(query_limit=limit))

    def test_redirect_rate(self):
        assert redirect_rate(PeriodStats(ai_redirects=0, total_redirects=0)) == 0
        assert redirect_rate(PeriodStats(ai_redirects=5, total_redirects=20)) == 0.25

    def test_idempotent(self, make_snapshot):
        snapshot = make_snapshot()
        assert utilization(snapshot) == utilization(snapshot)
        assert usage_summary(snapshot) == usage_summary(snapshot)

    def test_collection_redirects(self):
        items = (Page(id='1', title='a', url='/a', ai_redirects=3), Page(id='2', title='b', url='/b', ai_redirects=4))
        assert collection_redirects(items) == 7
        assert collection_redirects(()) == 0

    def test_summary_reports_unknown_utilization(self, make_snapshot, caplog):
        summary = usage_summary(make_snapshot(query_limit=0))
        assert summary['utilization'] is None
        assert summary['over_quota'] is False
        assert 'invalid quota' in caplog.text


class TestSyncGatekeeper:

    def test_no_access_key_needs_setup(self, make_snapshot):
        outcome = request_sync(make_snapshot(access_key=None), guard=InFlightGuard())
        assert isinstance(outcome, NeedsSetup)
        assert outcome.effect is None

    def test_wordpress_dispatches_plugin_url(self, make_snapshot):
        outcome = request_sync(make_snapshot(type='WordPress'), guard=InFlightGuard())
        assert outcome == Dispatched(WORDPRESS_URL)
        assert outcome.effect == NavigateTo(WORDPRESS_URL, new_context=True)

    def test_shopify_dispatches_app_url(self, make_snapshot):
        outcome = request_sync(make_snapshot(type='SHOPIFY'), guard=InFlightGuard())
        assert outcome == Dispatched(SHOPIFY_URL)

    def test_unknown_kind_fails(self, make_snapshot):
        outcome = request_sync(make_snapshot(type='squarespace'), guard=InFlightGuard())
        assert outcome == Failed('unsupported integration kind')
        assert outcome.effect is None

    def test_busy_while_pending(self, make_snapshot):
        guard = InFlightGuard()
        guard.try_acquire(sync_gate.SYNC_ACTION, '1')

        assert isinstance(request_sync(make_snapshot(id='1'), guard=guard), Busy)
        assert isinstance(request_sync(make_snapshot(id='2'), guard=guard), Dispatched)

        guard.release(sync_gate.SYNC_ACTION, '1')
        assert isinstance(request_sync(make_snapshot(id='1'), guard=guard), Dispatched)

    def test_concurrent_requests_for_one_website(self, make_snapshot, monkeypatch):
        guard = InFlightGuard()
        entered = threading.Event()
        release = threading.Event()
        original = sync_gate.resolve_sync

        def slow_resolve(snapshot):
            entered.set()
            release.wait(timeout=5)
            return original(snapshot)

        monkeypatch.setattr(sync_gate, 'resolve_sync', slow_resolve)
        results = []
        worker = threading.Thread(target=lambda: results.append(request_sync(make_snapshot(), guard=guard)))
        worker.start()
        assert entered.wait(timeout=5)

        second = request_sync(make_snapshot(), guard=guard)
        release.set()
        worker.join(timeout=5)

        assert isinstance(second, Busy)
        assert isinstance(results[0], Dispatched)
        assert not guard.is_pending(sync_gate.SYNC_ACTION, '1')

    def test_setup_and_sync_hold_together(self, make_snapshot):
        snapshot = WebsiteSnapshot.from_dict({
            'id': '7', 'domain': 'shop.example.com', 'type': 'shopify', 'plan': 'Free',
            'name': 'Shop', 'monthlyQueries': 0, 'queryLimit': 5000,
            'lastSync': None, 'accessKey': 'abc',
        })
        assert needs_setup(snapshot) is True
        assert request_sync(snapshot, guard=InFlightGuard()) == Dispatched(SHOPIFY_URL)

    def test_outcome_serialization(self, make_snapshot):
        data = request_sync(make_snapshot(), guard=InFlightGuard()).to_dict()
        assert data == {
            'status': 'dispatched',
            'target_url': WORDPRESS_URL,
            'effect': {'type': 'navigate', 'url': WORDPRESS_URL, 'new_context': True},
        }


class TestInFlightGuard:

    def test_slot_released_when_body_raises(self):
        guard = InFlightGuard()
        with pytest.raises(RuntimeError):
            with guard.claim('sync', 1) as acquired:
                assert acquired
                raise RuntimeError('boom')
        assert not guard.is_pending('sync', 1)

    def test_actions_are_independent(self):
        guard = InFlightGuard()
        with guard.claim('sync', 1) as first:
            with guard.claim('billing', 1) as second:
                assert first and second


class TestSnapshotShapeChecks:

    @pytest.mark.parametrize('payload', [[], None, 'snapshot'])
    def test_snapshot_must_be_object(self, payload):
        with pytest.raises(ValueError):
            WebsiteSnapshot.from_dict(payload)

    def test_nested_sections_must_be_objects(self):
        with pytest.raises(ValueError):
            WebsiteSnapshot.from_dict({'id': 1, 'globalStats': 'x'})
        with pytest.raises(ValueError):
            WebsiteSnapshot.from_dict({'id': 1, 'content': ['pages']})

    def test_content_entries_must_be_objects(self):
        with pytest.raises(ValueError):
            WebsiteSnapshot.from_dict({'id': 1, 'content': {'pages': ['oops']}})
        with pytest.raises(ValueError):
            ContentItem.from_dict('oops')

    def test_empty_sections_read_as_defaults(self):
        snapshot = WebsiteSnapshot.from_dict({'id': 1, 'globalStats': None, 'content': {'pages': None}})
        assert snapshot.content.pages == ()
        assert snapshot.global_stats.total_ai_redirects == 0
