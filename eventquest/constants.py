"""
eventquest.constants — Shared Constants
========================================

Single source of truth for which task types each platform offers and for
the identity-linking time windows.  Import from here instead of duplicating
in services and routes.
"""

from __future__ import annotations

from eventquest.database.models import Platform, TaskType

# ---------------------------------------------------------------------------
# Identity-linking windows (seconds)
# ---------------------------------------------------------------------------
OAUTH_STATE_TTL_SECONDS = 5 * 60
TWITTER_REQUEST_TOKEN_TTL_SECONDS = 30 * 60
TELEGRAM_AUTH_MAX_AGE_SECONDS = 24 * 60 * 60

# Wallet login tokens
SESSION_TOKEN_TTL_DAYS = 7

# ---------------------------------------------------------------------------
# Task types offered per platform.  ``custom`` is accepted everywhere.
# ---------------------------------------------------------------------------
PLATFORM_TASK_TYPES: dict[Platform, frozenset[TaskType]] = {
    Platform.TWITTER: frozenset({
        TaskType.FOLLOW, TaskType.LIKE, TaskType.REPOST,
        TaskType.COMMENT, TaskType.CREATE_POST,
    }),
    Platform.DISCORD: frozenset({TaskType.JOIN_SERVER, TaskType.SEND_MESSAGE}),
    Platform.TELEGRAM: frozenset({
        TaskType.JOIN_CHANNEL, TaskType.JOIN_GROUP, TaskType.START_BOT,
    }),
    Platform.YOUTUBE: frozenset({
        TaskType.SUBSCRIBE, TaskType.LIKE_VIDEO, TaskType.COMMENT_VIDEO,
    }),
    Platform.INSTAGRAM: frozenset({
        TaskType.FOLLOW, TaskType.LIKE_POST, TaskType.COMMENT_POST,
    }),
    Platform.FACEBOOK: frozenset({
        TaskType.FOLLOW_PAGE, TaskType.LIKE_POST, TaskType.COMMENT_POST,
    }),
    Platform.WEBSITE: frozenset({TaskType.VISIT}),
    Platform.OTHER: frozenset(TaskType),
}


def task_type_allowed(platform: Platform, task_type: TaskType) -> bool:
    """Return True if *task_type* can be offered on *platform*."""
    if task_type == TaskType.CUSTOM:
        return True
    return task_type in PLATFORM_TASK_TYPES.get(platform, frozenset())
