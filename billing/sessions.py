"""
Billing session collaborators.

The subscription gatekeeper only needs two calls: open a customer portal
session and open a checkout session. Both answer with a SessionResult so the
gatekeeper never has to know about Stripe exceptions.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import stripe
from django.conf import settings

logger = logging.getLogger(__name__)

CHECKOUT_SESSION_PLACEHOLDER = '{CHECKOUT_SESSION_ID}'


@dataclass
class SessionResult:
    """Outcome of a session-creation call."""
    success: bool
    url: Optional[str] = None
    error: Optional[str] = None
    session_id: Optional[str] = None


class BillingSessions(ABC):
    """Collaborator contract used by the subscription gatekeeper."""

    @abstractmethod
    def create_portal_session(self, website_id) -> SessionResult:
        ...

    @abstractmethod
    def create_checkout_session(self, website_id, plan, success_url, cancel_url) -> SessionResult:
        ...


def price_for_plan(plan):
    """Stripe price id for a purchasable plan, or None."""
    prices = {
        'pro': settings.STRIPE_PRICE_PRO,
    }
    return prices.get(str(plan).strip().lower()) or None


def default_success_url(website_id):
    return (
        f"{settings.FRONTEND_URL}/app/websites/new/complete"
        f"?session_id={CHECKOUT_SESSION_PLACEHOLDER}&id={website_id}"
    )


def default_cancel_url(website_id):
    return f"{settings.FRONTEND_URL}/app/websites/website?id={website_id}&canceled=true"


class StripeSessions(BillingSessions):
    """Creates Stripe portal and checkout sessions for a website's billing account."""

    def __init__(self, api_key=None):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY

    def _get_website(self, website_id):
        from websites.models import Website
        try:
            return Website.objects.select_related('user').get(pk=website_id)
        except (Website.DoesNotExist, ValueError):
            return None

    def create_portal_session(self, website_id):
        website = self._get_website(website_id)
        if website is None:
            return SessionResult(success=False, error='Website not found')

        if not website.stripe_customer_id:
            return SessionResult(success=False, error='No active subscription')

        try:
            session = stripe.billing_portal.Session.create(
                api_key=self.api_key,
                customer=website.stripe_customer_id,
                return_url=f"{settings.FRONTEND_URL}/app/websites/website?id={website.id}",
            )
        except stripe.StripeError as e:
            logger.error("Portal session for website %s failed: %s", website_id, e)
            return SessionResult(success=False, error=str(e))

        return SessionResult(success=True, url=session.url, session_id=session.id)

    def create_checkout_session(self, website_id, plan, success_url, cancel_url):
        price_id = price_for_plan(plan)
        if not price_id:
            return SessionResult(success=False, error=f'Invalid plan: {plan}')

        website = self._get_website(website_id)
        if website is None:
            return SessionResult(success=False, error='Website not found')

        try:
            # Get or create the Stripe customer for this website
            if not website.stripe_customer_id:
                customer = stripe.Customer.create(
                    api_key=self.api_key,
                    email=website.user.email,
                    metadata={'website_id': website.id, 'domain': website.domain},
                )
                website.stripe_customer_id = customer.id
                website.save(update_fields=['stripe_customer_id', 'updated_at'])

            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                customer=website.stripe_customer_id,
                payment_method_types=['card'],
                line_items=[{
                    'price': price_id,
                    'quantity': 1,
                }],
                mode='subscription',
                success_url=success_url,
                cancel_url=cancel_url,
                metadata={
                    'website_id': website.id,
                    'plan': str(plan),
                },
            )
        except stripe.StripeError as e:
            logger.error("Checkout session for website %s failed: %s", website_id, e)
            return SessionResult(success=False, error=str(e))

        return SessionResult(success=True, url=session.url, session_id=session.id)
