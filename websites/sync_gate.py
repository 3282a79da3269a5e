"""
Sync gatekeeper.

Decides whether a "sync content" request may proceed. Syncing is performed
by the CMS plugin/app, so a permitted request resolves to the external
install target the caller should open; completion only shows up later as a
new last_sync on a re-fetched snapshot.
"""
import logging
from dataclasses import dataclass
from typing import ClassVar

from .exceptions import UnsupportedIntegration
from .inflight import InFlightGuard
from .onboarding import install_target
from .outcomes import Busy, Failed, NavigateTo, Outcome

logger = logging.getLogger(__name__)

SYNC_ACTION = 'sync'
UNSUPPORTED_REASON = 'unsupported integration kind'

default_guard = InFlightGuard()


@dataclass(frozen=True)
class NeedsSetup(Outcome):
    """No access key yet: show the setup instructions, take no network action."""
    status: ClassVar[str] = 'needs_setup'


@dataclass(frozen=True)
class Dispatched(Outcome):
    status: ClassVar[str] = 'dispatched'

    target_url: str = ''

    @property
    def effect(self):
        return NavigateTo(self.target_url, new_context=True)

    def to_dict(self):
        data = super().to_dict()
        data['target_url'] = self.target_url
        return data


def resolve_sync(snapshot):
    """The decision itself, without in-flight bookkeeping."""
    if snapshot.access_key is None:
        return NeedsSetup()

    try:
        target_url = install_target(snapshot.type)
    except UnsupportedIntegration as e:
        logger.warning("Sync rejected for website %s: %s", snapshot.id, e)
        return Failed(UNSUPPORTED_REASON)

    logger.info("Sync dispatched for website %s to %s", snapshot.id, target_url)
    return Dispatched(target_url)


def request_sync(snapshot, guard=None):
    """
    Resolve a sync request for snapshot.

    Returns NeedsSetup, Dispatched(target_url), Failed(reason) or Busy when
    another sync for the same website is still being resolved.
    """
    guard = guard or default_guard
    with guard.claim(SYNC_ACTION, snapshot.id) as acquired:
        if not acquired:
            return Busy()
        return resolve_sync(snapshot)
