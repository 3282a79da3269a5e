"""
Subscription gatekeeper.

Pro websites manage their plan through the billing portal; everybody else
is offered the upgrade, and buying it is a separate request. Only one
billing session may be pending per website at a time, whether it is a
portal or a checkout session.
"""
import logging
from dataclasses import dataclass
from typing import ClassVar

from websites.inflight import InFlightGuard
from websites.outcomes import Busy, Failed, NavigateTo, Outcome
from websites.snapshot import Plan

from .sessions import default_cancel_url, default_success_url

logger = logging.getLogger(__name__)

BILLING_ACTION = 'billing'
MISSING_URL_REASON = 'missing redirect url'

default_guard = InFlightGuard()


@dataclass(frozen=True)
class OpenPortal(Outcome):
    status: ClassVar[str] = 'open_portal'

    redirect_url: str = ''

    @property
    def effect(self):
        return NavigateTo(self.redirect_url)

    def to_dict(self):
        data = super().to_dict()
        data['redirect_url'] = self.redirect_url
        return data


@dataclass(frozen=True)
class ShowUpgradeOffer(Outcome):
    status: ClassVar[str] = 'show_upgrade_offer'

    plan: str = str(Plan.PRO)

    def to_dict(self):
        data = super().to_dict()
        data['plan'] = self.plan
        return data


@dataclass(frozen=True)
class OpenCheckout(Outcome):
    status: ClassVar[str] = 'open_checkout'

    redirect_url: str = ''

    @property
    def effect(self):
        return NavigateTo(self.redirect_url)

    def to_dict(self):
        data = super().to_dict()
        data['redirect_url'] = self.redirect_url
        return data


@dataclass(frozen=True)
class AlreadySubscribed(Outcome):
    """Upgrade refused: the website is already on Pro."""
    status: ClassVar[str] = 'already_subscribed'


def _failed(website_id, reason, action):
    logger.error("%s session for website %s failed: %s", action.capitalize(), website_id, reason)
    return Failed(reason)


def request_manage(snapshot, sessions, guard=None):
    """
    Resolve a "manage subscription" request.

    Pro: ask the collaborator for a portal session and return OpenPortal, or
    Failed carrying the collaborator's message. Anything else: ShowUpgradeOffer,
    without calling out. Busy while another billing session for the website
    is pending, whatever the plan.
    """
    guard = guard or default_guard
    with guard.claim(BILLING_ACTION, snapshot.id) as acquired:
        if not acquired:
            return Busy()
        if not Plan(snapshot.plan).is_pro:
            return ShowUpgradeOffer()
        result = sessions.create_portal_session(snapshot.id)

    if not result.success:
        return _failed(snapshot.id, result.error or 'Failed to create portal session', 'portal')
    if not result.url:
        return _failed(snapshot.id, MISSING_URL_REASON, 'portal')
    return OpenPortal(result.url)


def request_upgrade(snapshot, sessions, success_url=None, cancel_url=None, guard=None):
    """
    Start a Pro checkout for snapshot.

    Refused with AlreadySubscribed when the website is on Pro already, so a
    stale upgrade offer can never be acted on after a plan change.
    """
    if Plan(snapshot.plan).is_pro:
        logger.info("Upgrade refused for website %s: already on %s", snapshot.id, snapshot.plan)
        return AlreadySubscribed()

    guard = guard or default_guard
    with guard.claim(BILLING_ACTION, snapshot.id) as acquired:
        if not acquired:
            return Busy()
        result = sessions.create_checkout_session(
            snapshot.id,
            str(Plan.PRO),
            success_url or default_success_url(snapshot.id),
            cancel_url or default_cancel_url(snapshot.id),
        )

    if not result.success:
        return _failed(snapshot.id, result.error or 'Failed to create checkout session', 'checkout')
    if not result.url:
        return _failed(snapshot.id, MISSING_URL_REASON, 'checkout')
    return OpenCheckout(result.url)
