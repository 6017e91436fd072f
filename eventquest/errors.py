"""
eventquest.errors — Service Error Taxonomy
===========================================

Every failure a service can report is one of these types.  Services raise;
the HTTP layer (:mod:`eventquest.api.errors`) owns status codes and
user-facing text.  Nothing here is fatal to the process.
"""

from __future__ import annotations


class EventQuestError(Exception):
    """Base class for all typed service errors."""

    def __init__(self, message: str = "") -> None:
        self.message = message or (type(self).__doc__ or "").strip()
        super().__init__(self.message)


class ValidationError(EventQuestError):
    """Malformed or missing input."""


class NotFoundError(EventQuestError):
    """A referenced entity does not exist."""


class AuthorizationError(EventQuestError):
    """The caller does not own the resource."""


class InactiveEventError(EventQuestError):
    """The event is missing or paused."""


class AlreadyJoinedError(EventQuestError):
    """The user is already a participant of this event."""


class AlreadyCompletedError(EventQuestError):
    """The task has already been completed by this user."""


class ConsistencyError(AlreadyCompletedError):
    """The ledger's (user, task) uniqueness index rejected a write."""


class MissingConnectionError(EventQuestError):
    """The task's platform needs a linked account the user does not have."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Link your {provider} account to complete this task")
        self.provider = provider


class SignatureMismatchError(EventQuestError):
    """A signature or hash did not verify."""


class ExpiredAuthError(EventQuestError):
    """An authorization payload or state is too old."""


class ExternalServiceError(EventQuestError):
    """An external provider call failed or timed out."""
