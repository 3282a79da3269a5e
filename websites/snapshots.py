"""
Build WebsiteSnapshot values from the database.
"""
from .snapshot import (
    ContentCollections, GlobalStats, Page, PeriodStats, Plan, Post, Product,
    WebsiteSnapshot,
)


def _common(row):
    return {
        'id': row.external_id,
        'title': row.title,
        'url': row.url,
        'last_updated': row.last_updated,
        'ai_redirects': row.ai_redirects,
        'summary': row.summary,
    }


def build_content(website):
    products, posts, pages = [], [], []
    for row in website.content_items.all():
        if row.kind == 'product':
            products.append(Product(**_common(row), price=row.price))
        elif row.kind == 'post':
            posts.append(Post(**_common(row), author=row.author))
        else:
            pages.append(Page(**_common(row)))
    return ContentCollections(products=tuple(products), blog_posts=tuple(posts), pages=tuple(pages))


def build_snapshot(website):
    """Freeze the current state of a Website row into a WebsiteSnapshot."""
    return WebsiteSnapshot(
        id=str(website.id),
        domain=website.domain,
        type=website.integration_type,
        plan=Plan(website.plan),
        name=website.name,
        status=website.status,
        monthly_queries=website.monthly_queries,
        query_limit=website.query_limit,
        last_sync=website.last_sync,
        access_key=website.access_key,
        global_stats=GlobalStats(
            total_ai_redirects=website.total_ai_redirects,
            total_voice_chats=website.total_voice_chats,
            total_text_chats=website.total_text_chats,
        ),
        stats=PeriodStats(
            ai_redirects=website.ai_redirects,
            total_redirects=website.total_redirects,
        ),
        content=build_content(website),
        billing_account=website.stripe_customer_id,
    )
