"""
Outcome values returned by the gatekeepers.

Outcomes never perform side effects themselves. When the caller is expected
to do something (open a tab, redirect the browser) the outcome carries a
NavigateTo effect describing it.
"""
from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class NavigateTo:
    """Send the user to url; new_context means a new tab/window, fire-and-forget."""
    url: str
    new_context: bool = False

    def to_dict(self):
        return {'type': 'navigate', 'url': self.url, 'new_context': self.new_context}


@dataclass(frozen=True)
class Outcome:
    status: ClassVar[str] = ''

    @property
    def effect(self):
        return None

    def to_dict(self):
        effect = self.effect
        return {
            'status': self.status,
            'effect': effect.to_dict() if effect else None,
        }


@dataclass(frozen=True)
class Busy(Outcome):
    """The same action is already pending for this website."""
    status: ClassVar[str] = 'busy'


@dataclass(frozen=True)
class Failed(Outcome):
    status: ClassVar[str] = 'failed'

    reason: str = ''

    def to_dict(self):
        data = super().to_dict()
        data['reason'] = self.reason
        return data
