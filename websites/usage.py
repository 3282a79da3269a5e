"""
Usage aggregation: quota utilization and AI-redirect statistics.

All functions are pure and keep no state between calls.
"""
import logging

from .exceptions import InvalidQuota

logger = logging.getLogger(__name__)


def utilization(snapshot):
    """
    Fraction of the monthly query quota consumed.

    May exceed 1.0 since the quota is advisory. Raises InvalidQuota when the
    ceiling is zero or negative instead of producing inf/nan.
    """
    if snapshot.query_limit <= 0:
        raise InvalidQuota(snapshot.query_limit)
    return snapshot.monthly_queries / snapshot.query_limit


def redirect_rate(stats):
    """Share of redirects attributed to AI, 0 when there were no redirects at all."""
    if stats.total_redirects <= 0:
        return 0.0
    return stats.ai_redirects / stats.total_redirects


def collection_redirects(items):
    """Sum of per-item AI redirect counters."""
    return sum(item.ai_redirects for item in items)


def usage_summary(snapshot):
    """
    Display-ready usage numbers for a snapshot.

    An invalid quota is a data-integrity fault: it is logged and reported as
    an unknown utilization (None) rather than failing the whole summary.
    """
    try:
        ratio = utilization(snapshot)
    except InvalidQuota as e:
        logger.error("Website %s has an invalid quota: %s", snapshot.id, e)
        ratio = None

    content = snapshot.content
    return {
        'website_id': snapshot.id,
        'monthly_queries': snapshot.monthly_queries,
        'query_limit': snapshot.query_limit,
        'utilization': ratio,
        'over_quota': ratio is not None and ratio > 1,
        'redirect_rate': redirect_rate(snapshot.stats),
        'ai_redirects': snapshot.stats.ai_redirects,
        'total_redirects': snapshot.stats.total_redirects,
        'content_redirects': {
            'products': collection_redirects(content.products),
            'blog_posts': collection_redirects(content.blog_posts),
            'pages': collection_redirects(content.pages),
        },
        'global_stats': {
            'total_ai_redirects': snapshot.global_stats.total_ai_redirects,
            'total_voice_chats': snapshot.global_stats.total_voice_chats,
            'total_text_chats': snapshot.global_stats.total_text_chats,
        },
    }
