"""
Setup evaluation and onboarding instructions for connected websites.
"""
from dataclasses import dataclass
from typing import Tuple

from django.conf import settings

from .exceptions import UnsupportedIntegration
from .snapshot import WORDPRESS, SHOPIFY, normalize_integration


@dataclass(frozen=True)
class SetupInstructions:
    """Ordered onboarding steps plus the single place to install the integration."""
    integration: str
    label: str
    steps: Tuple[str, ...]
    target_url: str
    action_label: str

    def to_dict(self):
        return {
            'integration': self.integration,
            'label': self.label,
            'steps': list(self.steps),
            'target_url': self.target_url,
            'action_label': self.action_label,
        }


def get_setup_instructions():
    """Instructions per integration kind. Target URLs come from settings."""
    return {
        WORDPRESS: SetupInstructions(
            integration=WORDPRESS,
            label='WordPress',
            steps=(
                'Download and install our WordPress plugin',
                'Go to plugin settings',
                'Enter your access key',
                "Click 'Connect and Sync'",
            ),
            target_url=settings.WORDPRESS_PLUGIN_URL,
            action_label='Download Plugin',
        ),
        SHOPIFY: SetupInstructions(
            integration=SHOPIFY,
            label='Shopify',
            steps=(
                'Install our Shopify app from the Shopify App Store',
                'Go to app settings',
                'Enter your access key',
                "Click 'Connect and Sync'",
            ),
            target_url=settings.SHOPIFY_APP_URL,
            action_label='Install App',
        ),
    }


def needs_setup(snapshot):
    """A website needs setup until its first sync lands, whatever its key or plan."""
    return snapshot.last_sync is None


def instructions_for(kind):
    """
    Instructions to display for an integration kind.

    Unknown kinds are shown the Shopify instructions. This is display only;
    sync dispatch never falls back.
    """
    instructions = get_setup_instructions()
    return instructions.get(normalize_integration(kind), instructions[SHOPIFY])


def setup_state(snapshot):
    """Everything the setup prompt needs for one snapshot."""
    return {
        'needs_setup': needs_setup(snapshot),
        'access_key': snapshot.access_key,
        **instructions_for(snapshot.type).to_dict(),
    }


def install_target(kind):
    """
    Install/app URL for a recognised integration kind.

    Raises UnsupportedIntegration for anything else; unlike instructions_for
    there is no fallback.
    """
    instructions = get_setup_instructions().get(normalize_integration(kind))
    if instructions is None:
        raise UnsupportedIntegration(kind)
    return instructions.target_url
