"""
Subscription management and Stripe billing views.
Handles manage/upgrade decisions, raw session creation, and webhooks.
"""
import json
import logging

import stripe
from django.conf import settings
from django.db import IntegrityError
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from websites.models import Website
from websites.snapshot import Plan
from websites.snapshots import build_snapshot

from .gatekeeper import request_manage, request_upgrade
from .models import BillingEvent
from .serializers import (
    BillingEventSerializer, CheckoutSessionRequestSerializer,
    PortalSessionRequestSerializer, UpgradeRequestSerializer,
)
from .sessions import StripeSessions

logger = logging.getLogger(__name__)

OUTCOME_STATUS_CODES = {
    'open_portal': status.HTTP_200_OK,
    'show_upgrade_offer': status.HTTP_200_OK,
    'open_checkout': status.HTTP_200_OK,
    'already_subscribed': status.HTTP_409_CONFLICT,
    'busy': status.HTTP_200_OK,
    'failed': status.HTTP_400_BAD_REQUEST,
}


def get_sessions():
    """Billing session collaborator used by the views."""
    return StripeSessions()


def _outcome_response(outcome):
    return Response(outcome.to_dict(), status=OUTCOME_STATUS_CODES[outcome.status])


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def manage_subscription(request, website_id):
    """
    Decide what "Manage Subscription" does for a website.

    POST /api/v1/billing/websites/{id}/manage/

    Pro: { "status": "open_portal", "redirect_url": "..." }
    Otherwise: { "status": "show_upgrade_offer", "plan": "Pro" }
    """
    website = get_object_or_404(Website, id=website_id, user=request.user)
    return _outcome_response(request_manage(build_snapshot(website), get_sessions()))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def upgrade(request, website_id):
    """
    Start a Pro checkout for a website.

    POST /api/v1/billing/websites/{id}/upgrade/
    Body (optional): { "successUrl": "...", "cancelUrl": "..." }
    """
    website = get_object_or_404(Website, id=website_id, user=request.user)
    serializer = UpgradeRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    outcome = request_upgrade(
        build_snapshot(website),
        get_sessions(),
        success_url=serializer.validated_data.get('successUrl'),
        cancel_url=serializer.validated_data.get('cancelUrl'),
    )
    return _outcome_response(outcome)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_portal_session(request):
    """
    Create a Stripe Customer Portal session for a website.

    POST /api/v1/billing/portal/
    Body: { "websiteId": 1 }
    Returns: { "url": "..." } or { "error": "..." }
    """
    serializer = PortalSessionRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    website = get_object_or_404(Website, id=serializer.validated_data['websiteId'], user=request.user)
    result = get_sessions().create_portal_session(website.id)
    if not result.success:
        return Response({'error': result.error}, status=status.HTTP_400_BAD_REQUEST)
    return Response({'url': result.url})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_checkout_session(request):
    """
    Create a Stripe Checkout session for a website subscription.

    POST /api/v1/billing/checkout/
    Body: { "websiteId": 1, "plan": "Pro", "successUrl": "...", "cancelUrl": "..." }
    Returns: { "url": "..." } or { "error": "..." }
    """
    serializer = CheckoutSessionRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    website = get_object_or_404(Website, id=data['websiteId'], user=request.user)
    result = get_sessions().create_checkout_session(
        website.id, data['plan'], data['successUrl'], data['cancelUrl'],
    )
    if not result.success:
        return Response({'error': result.error}, status=status.HTTP_400_BAD_REQUEST)
    return Response({'url': result.url, 'session_id': result.session_id})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def billing_events(request, website_id):
    """
    Plan changes recorded for a website.

    GET /api/v1/billing/websites/{id}/events/
    """
    website = get_object_or_404(Website, id=website_id, user=request.user)
    events = website.billing_events.all()[:50]
    return Response({'events': BillingEventSerializer(events, many=True).data})


@csrf_exempt
@require_http_methods(['POST'])
def stripe_webhook(request):
    """
    Handle Stripe webhook events.

    POST /api/v1/billing/webhook/
    """
    payload = request.body
    sig_header = request.META.get('HTTP_STRIPE_SIGNATURE')

    try:
        stripe.Webhook.construct_event(
            payload, sig_header, settings.STRIPE_WEBHOOK_SECRET
        )
    except ValueError:
        return HttpResponse('Invalid payload', status=400)
    except stripe.SignatureVerificationError:
        return HttpResponse('Invalid signature', status=400)

    event = json.loads(payload)
    handler = WEBHOOK_HANDLERS.get(event.get('type'))
    if handler is None:
        return HttpResponse(status=200)

    if BillingEvent.objects.filter(stripe_event_id=event.get('id')).exists():
        logger.info("Stripe event %s already processed", event.get('id'))
        return HttpResponse(status=200)

    handler(event)
    return HttpResponse(status=200)


def _record(event, website, plan_before='', plan_after='', event_status='processed', error=None):
    try:
        BillingEvent.objects.create(
            website=website,
            stripe_event_id=event.get('id'),
            event_type=event.get('type'),
            status=event_status,
            plan_before=plan_before,
            plan_after=plan_after,
            error_message=error,
        )
    except IntegrityError:
        logger.info("Stripe event %s recorded concurrently", event.get('id'))


def _website_for_customer(customer_id):
    if not customer_id:
        return None
    return Website.objects.filter(stripe_customer_id=customer_id).first()


def handle_checkout_completed(event):
    """Checkout finished: the website moves to Pro with the Pro quota."""
    session = event['data']['object']
    metadata = session.get('metadata') or {}
    website_id = metadata.get('website_id')

    website = Website.objects.filter(id=website_id).first() if website_id else None
    if website is None:
        website = _website_for_customer(session.get('customer'))
    if website is None:
        logger.warning("Checkout completed for unknown website %s", website_id)
        _record(event, None, event_status='ignored', error='Website not found')
        return

    plan_before = website.plan
    website.stripe_customer_id = session.get('customer') or website.stripe_customer_id
    website.stripe_subscription_id = session.get('subscription') or website.stripe_subscription_id
    website.save(update_fields=['stripe_customer_id', 'stripe_subscription_id', 'updated_at'])
    website.apply_plan(Plan.PRO, settings.PRO_QUERY_LIMIT)

    logger.info("Website %s upgraded from %s to %s", website.id, plan_before, Plan.PRO)
    _record(event, website, plan_before, Plan.PRO)


def handle_subscription_deleted(event):
    """Subscription ended: back to Free with the Free quota."""
    subscription = event['data']['object']
    website = _website_for_customer(subscription.get('customer'))
    if website is None:
        _record(event, None, event_status='ignored', error='Website not found')
        return

    plan_before = website.plan
    website.stripe_subscription_id = None
    website.save(update_fields=['stripe_subscription_id', 'updated_at'])
    website.apply_plan(Plan.FREE, settings.FREE_QUERY_LIMIT)

    logger.info("Website %s downgraded from %s to %s", website.id, plan_before, Plan.FREE)
    _record(event, website, plan_before, Plan.FREE)


def handle_payment_failed(event):
    """Payment failed: keep the plan, leave a trace for support."""
    invoice = event['data']['object']
    website = _website_for_customer(invoice.get('customer'))
    logger.warning(
        "Payment failed for customer %s (website %s)",
        invoice.get('customer'), website.id if website else None,
    )
    plan = website.plan if website else ''
    _record(event, website, plan, plan)


WEBHOOK_HANDLERS = {
    'checkout.session.completed': handle_checkout_completed,
    'customer.subscription.deleted': handle_subscription_deleted,
    'invoice.payment_failed': handle_payment_failed,
}
