"""
eventquest.engine.eligibility — Platform → Linked Identity Gate
================================================================

Pure lookup: which linked identity (if any) must a user hold before a
completion on a task of a given platform is accepted.  Consulted by the
ledger at completion time and by the API when it reports which
connection a task needs.

YouTube tasks are gated on the Google identity; Instagram, Facebook,
websites and custom platforms need nothing linked.
"""

from __future__ import annotations

from eventquest.database.models import Platform, Provider

__all__ = ["REQUIRED_PROVIDER", "required_provider", "is_gated"]

REQUIRED_PROVIDER: dict[Platform, Provider | None] = {
    Platform.TWITTER: Provider.TWITTER,
    Platform.TELEGRAM: Provider.TELEGRAM,
    Platform.DISCORD: Provider.DISCORD,
    Platform.YOUTUBE: Provider.GOOGLE,
    Platform.INSTAGRAM: None,
    Platform.FACEBOOK: None,
    Platform.WEBSITE: None,
    Platform.OTHER: None,
}


def required_provider(platform: str | Platform) -> Provider | None:
    """Return the provider a user must have linked for *platform*.

    Unknown platform strings are treated as ungated, like ``other``.
    """
    try:
        return REQUIRED_PROVIDER[Platform(platform)]
    except ValueError:
        return None


def is_gated(platform: str | Platform) -> bool:
    return required_provider(platform) is not None
