"""
Point-in-time value objects for a connected website.

A WebsiteSnapshot is read once per display/decision cycle and replaced
wholesale on re-fetch. Nothing in here talks to the database or the network:
snapshots are built either from the JSON wire shape (WebsiteSnapshot.from_dict)
or from ORM rows (websites.snapshots.build_snapshot).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import ClassVar, Dict, Optional, Tuple, Type

from django.utils.dateparse import parse_datetime

from . import usage


class Plan(str):
    """
    Subscription plan name.

    Kept open: tiers other than Free and Pro are carried through as-is and
    treated as "not Pro" by the gatekeepers.
    """
    FREE: ClassVar['Plan']
    PRO: ClassVar['Plan']

    @property
    def is_pro(self):
        return self.strip().lower() == 'pro'


Plan.FREE = Plan('Free')
Plan.PRO = Plan('Pro')


WORDPRESS = 'wordpress'
SHOPIFY = 'shopify'
KNOWN_INTEGRATIONS = (WORDPRESS, SHOPIFY)


def normalize_integration(kind):
    """Return 'wordpress' / 'shopify' for a case-insensitive match, else None."""
    if not kind:
        return None
    kind = str(kind).strip().lower()
    return kind if kind in KNOWN_INTEGRATIONS else None


def _parse_timestamp(value):
    if value is None or isinstance(value, datetime):
        return value
    parsed = parse_datetime(str(value))
    if parsed is None:
        raise ValueError(f"Invalid timestamp: {value!r}")
    return parsed


def _mapping(name, value):
    """value as a dict; None and empty values read as {}."""
    if not value:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be an object, got {type(value).__name__}")
    return value


def _content_items(name, value, kind):
    """Parse one wire collection; the collection, not the item, decides the kind."""
    if not value:
        return ()
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list, got {type(value).__name__}")
    items = []
    for item in value:
        if not isinstance(item, dict):
            raise ValueError(f"{name} entries must be objects, got {type(item).__name__}")
        items.append(ContentItem.from_dict({**item, 'type': kind}))
    return tuple(items)


def _non_negative(name, value):
    value = int(value or 0)
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


@dataclass(frozen=True)
class ContentItem:
    """A single product, post or page pulled from the CMS."""
    kind: ClassVar[str] = ''

    id: str
    title: str
    url: str
    last_updated: Optional[datetime] = None
    ai_redirects: int = 0
    summary: str = ''

    def __post_init__(self):
        if self.ai_redirects < 0:
            raise ValueError(f"ai_redirects must be >= 0, got {self.ai_redirects}")

    @staticmethod
    def from_dict(data):
        """Build the matching variant from a wire dict keyed on 'type'."""
        if not isinstance(data, dict):
            raise ValueError(f"Content item must be an object, got {type(data).__name__}")
        kind = (data.get('type') or data.get('kind') or '').lower()
        try:
            variant = CONTENT_VARIANTS[kind]
        except KeyError:
            raise ValueError(f"Unknown content type: {kind!r}")
        common = {
            'id': str(data['id']),
            'title': data.get('title') or '',
            'url': data.get('url') or '',
            'last_updated': _parse_timestamp(data.get('lastUpdated')),
            'ai_redirects': _non_negative('aiRedirects', data.get('aiRedirects')),
            'summary': data.get('summary') or data.get('content') or data.get('description') or '',
        }
        return variant(**common, **variant.extra_fields(data))

    @classmethod
    def extra_fields(cls, data):
        return {}

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'url': self.url,
            'type': self.kind,
            'lastUpdated': self.last_updated.isoformat() if self.last_updated else None,
            'aiRedirects': self.ai_redirects,
            'summary': self.summary,
        }


@dataclass(frozen=True)
class Product(ContentItem):
    kind: ClassVar[str] = 'product'

    price: Optional[Decimal] = None

    @classmethod
    def extra_fields(cls, data):
        price = data.get('price')
        if price in (None, ''):
            return {'price': None}
        try:
            return {'price': Decimal(str(price))}
        except InvalidOperation:
            raise ValueError(f"Invalid price: {price!r}")

    def to_dict(self):
        data = super().to_dict()
        data['price'] = str(self.price) if self.price is not None else None
        return data


@dataclass(frozen=True)
class Post(ContentItem):
    kind: ClassVar[str] = 'post'

    author: Optional[str] = None

    @classmethod
    def extra_fields(cls, data):
        return {'author': data.get('author') or None}

    def to_dict(self):
        data = super().to_dict()
        data['author'] = self.author
        return data


@dataclass(frozen=True)
class Page(ContentItem):
    kind: ClassVar[str] = 'page'


CONTENT_VARIANTS: Dict[str, Type[ContentItem]] = {
    Product.kind: Product,
    Post.kind: Post,
    Page.kind: Page,
}


@dataclass(frozen=True)
class GlobalStats:
    """Lifetime counters for a website."""
    total_ai_redirects: int = 0
    total_voice_chats: int = 0
    total_text_chats: int = 0

    def to_dict(self):
        return {
            'totalAiRedirects': self.total_ai_redirects,
            'totalVoiceChats': self.total_voice_chats,
            'totalTextChats': self.total_text_chats,
        }


@dataclass(frozen=True)
class PeriodStats:
    """Redirect counters for the current period."""
    ai_redirects: int = 0
    total_redirects: int = 0

    @property
    def redirect_rate(self):
        return usage.redirect_rate(self)

    def to_dict(self):
        return {
            'aiRedirects': self.ai_redirects,
            'totalRedirects': self.total_redirects,
            'redirectRate': self.redirect_rate,
        }


@dataclass(frozen=True)
class ContentCollections:
    products: Tuple[Product, ...] = ()
    blog_posts: Tuple[Post, ...] = ()
    pages: Tuple[Page, ...] = ()

    def all_items(self):
        return self.products + self.blog_posts + self.pages

    def to_dict(self):
        return {
            'products': [item.to_dict() for item in self.products],
            'blogPosts': [item.to_dict() for item in self.blog_posts],
            'pages': [item.to_dict() for item in self.pages],
        }


@dataclass(frozen=True)
class WebsiteSnapshot:
    """Aggregate read of a connected website's integration, usage and content state."""
    id: str
    domain: str
    type: str
    plan: Plan
    name: str
    status: str = 'active'
    monthly_queries: int = 0
    query_limit: int = 0
    last_sync: Optional[datetime] = None
    access_key: Optional[str] = None
    global_stats: GlobalStats = field(default_factory=GlobalStats)
    stats: PeriodStats = field(default_factory=PeriodStats)
    content: ContentCollections = field(default_factory=ContentCollections)
    billing_account: Optional[str] = None

    @property
    def integration(self):
        """Normalized integration kind, or None when unrecognized."""
        return normalize_integration(self.type)

    @classmethod
    def from_dict(cls, data):
        """Parse the camelCase JSON returned by the snapshot endpoint."""
        if not isinstance(data, dict):
            raise ValueError(f"Snapshot must be an object, got {type(data).__name__}")
        global_stats = _mapping('globalStats', data.get('globalStats'))
        stats = _mapping('stats', data.get('stats'))
        content = _mapping('content', data.get('content'))
        return cls(
            id=str(data['id']),
            domain=data.get('domain') or '',
            type=data.get('type') or '',
            plan=Plan(data.get('plan') or Plan.FREE),
            name=data.get('name') or '',
            status=data.get('status') or 'active',
            monthly_queries=_non_negative('monthlyQueries', data.get('monthlyQueries')),
            query_limit=int(data.get('queryLimit') or 0),
            last_sync=_parse_timestamp(data.get('lastSync')),
            access_key=data.get('accessKey') or None,
            global_stats=GlobalStats(
                total_ai_redirects=_non_negative('totalAiRedirects', global_stats.get('totalAiRedirects')),
                total_voice_chats=_non_negative('totalVoiceChats', global_stats.get('totalVoiceChats')),
                total_text_chats=_non_negative('totalTextChats', global_stats.get('totalTextChats')),
            ),
            stats=PeriodStats(
                ai_redirects=_non_negative('aiRedirects', stats.get('aiRedirects')),
                total_redirects=_non_negative('totalRedirects', stats.get('totalRedirects')),
            ),
            content=ContentCollections(
                products=_content_items('products', content.get('products'), 'product'),
                blog_posts=_content_items('blogPosts', content.get('blogPosts'), 'post'),
                pages=_content_items('pages', content.get('pages'), 'page'),
            ),
            billing_account=data.get('stripeId') or None,
        )

    def to_dict(self):
        data = {
            'id': self.id,
            'domain': self.domain,
            'type': self.type,
            'plan': str(self.plan),
            'name': self.name,
            'status': self.status,
            'monthlyQueries': self.monthly_queries,
            'queryLimit': self.query_limit,
            'lastSync': self.last_sync.isoformat() if self.last_sync else None,
            'accessKey': self.access_key,
            'globalStats': self.global_stats.to_dict(),
            'stats': self.stats.to_dict(),
            'content': self.content.to_dict(),
        }
        if self.billing_account:
            data['stripeId'] = self.billing_account
        return data
