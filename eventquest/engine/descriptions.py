"""
eventquest.engine.descriptions — Default Task Descriptions
===========================================================

When an organizer creates a task without a description, one is built from
``(task_type, platform, link_url)``:

1. Try to pull an account name out of the link's path (first non-empty
   segment; YouTube ``@handle`` segments lose the ``@``).
2. Look up a phrasing for ``(platform, task_type)``; each entry has a
   variant with the account name and one without.
3. Fall back to ``"Complete the {task_type} task"``, or
   ``"Complete the {task_type} task on {custom_platform}"`` for ``other``.

The result is deterministic for a given input.
"""

from __future__ import annotations

from urllib.parse import urlsplit

from eventquest.database.models import Platform, TaskType

__all__ = ["extract_username", "default_description"]

# Platforms whose URLs carry an account name in the first path segment
_USERNAME_PLATFORMS = frozenset({
    Platform.TWITTER,
    Platform.INSTAGRAM,
    Platform.FACEBOOK,
    Platform.TELEGRAM,
    Platform.YOUTUBE,
})

# First segments that are routes, not account names
_RESERVED_SEGMENTS = frozenset({
    "i", "intent", "home", "share", "search", "hashtag",
    "watch", "shorts", "playlist", "results", "embed",
    "p", "reel", "reels", "stories", "explore",
    "pages", "groups", "events", "profile.php",
    "joinchat", "s",
})

# (platform, task_type) → (with account name, without account name)
_PHRASES: dict[tuple[Platform, TaskType], tuple[str | None, str]] = {
    (Platform.TWITTER, TaskType.FOLLOW): (
        "Follow @{name} on Twitter", "Follow the account on Twitter"),
    (Platform.TWITTER, TaskType.LIKE): (
        "Like @{name}'s post on Twitter", "Like the post on Twitter"),
    (Platform.TWITTER, TaskType.REPOST): (
        "Repost @{name}'s post on Twitter", "Repost the post on Twitter"),
    (Platform.TWITTER, TaskType.COMMENT): (
        "Comment on @{name}'s post on Twitter", "Comment on the post on Twitter"),
    (Platform.TWITTER, TaskType.CREATE_POST): (
        "Create a post mentioning @{name} on Twitter", "Create a post on Twitter"),
    (Platform.DISCORD, TaskType.JOIN_SERVER): (None, "Join the Discord server"),
    (Platform.DISCORD, TaskType.SEND_MESSAGE): (
        None, "Send a message in the Discord server"),
    (Platform.TELEGRAM, TaskType.JOIN_CHANNEL): (
        "Join the @{name} Telegram channel", "Join the Telegram channel"),
    (Platform.TELEGRAM, TaskType.JOIN_GROUP): (
        "Join the @{name} Telegram group", "Join the Telegram group"),
    (Platform.TELEGRAM, TaskType.START_BOT): (
        "Start the @{name} Telegram bot", "Start the Telegram bot"),
    (Platform.YOUTUBE, TaskType.SUBSCRIBE): (
        "Subscribe to {name} on YouTube", "Subscribe to the channel on YouTube"),
    (Platform.YOUTUBE, TaskType.LIKE_VIDEO): (
        "Like the video by {name} on YouTube", "Like the video on YouTube"),
    (Platform.YOUTUBE, TaskType.COMMENT_VIDEO): (
        "Comment on the video by {name} on YouTube", "Comment on the video on YouTube"),
    (Platform.INSTAGRAM, TaskType.FOLLOW): (
        "Follow @{name} on Instagram", "Follow the account on Instagram"),
    (Platform.INSTAGRAM, TaskType.LIKE_POST): (
        "Like @{name}'s post on Instagram", "Like the post on Instagram"),
    (Platform.INSTAGRAM, TaskType.COMMENT_POST): (
        "Comment on @{name}'s post on Instagram", "Comment on the post on Instagram"),
    (Platform.FACEBOOK, TaskType.FOLLOW_PAGE): (
        "Follow the {name} page on Facebook", "Follow the page on Facebook"),
    (Platform.FACEBOOK, TaskType.LIKE_POST): (
        "Like the {name} post on Facebook", "Like the post on Facebook"),
    (Platform.FACEBOOK, TaskType.COMMENT_POST): (
        "Comment on the {name} post on Facebook", "Comment on the post on Facebook"),
    (Platform.WEBSITE, TaskType.VISIT): (
        "Visit {name}", "Visit the website"),
}


def extract_username(platform: str, link_url: str) -> str | None:
    """Pull an account name out of *link_url* for *platform*, or ``None``.

    >>> extract_username("twitter", "https://x.com/eventquest/status/1")
    'eventquest'
    >>> extract_username("youtube", "https://youtube.com/@SomeChannel")
    'SomeChannel'
    """
    try:
        plat = Platform(platform)
    except ValueError:
        return None
    if plat not in _USERNAME_PLATFORMS or not link_url:
        return None

    url = link_url if "://" in link_url else f"https://{link_url}"
    segments = [seg for seg in urlsplit(url).path.split("/") if seg]
    if not segments:
        return None

    name = segments[0]
    if plat == Platform.YOUTUBE:
        name = name.lstrip("@")
        if name in ("c", "user", "channel") and len(segments) > 1:
            name = segments[1]
    if not name or name.lower() in _RESERVED_SEGMENTS:
        return None
    return name


def _website_host(link_url: str) -> str | None:
    url = link_url if "://" in link_url else f"https://{link_url}"
    host = urlsplit(url).hostname
    return host or None


def default_description(
    task_type: str,
    platform: str,
    link_url: str,
    custom_platform: str | None = None,
) -> str:
    """Build the description shown for a task created without one."""
    try:
        key = (Platform(platform), TaskType(task_type))
    except ValueError:
        key = None

    if key is not None and key in _PHRASES:
        with_name, without_name = _PHRASES[key]
        if key[0] == Platform.WEBSITE:
            name = _website_host(link_url)
        else:
            name = extract_username(platform, link_url)
        if with_name and name:
            return with_name.format(name=name)
        return without_name

    label = str(task_type)
    if platform == Platform.OTHER and custom_platform:
        return f"Complete the {label} task on {custom_platform}"
    return f"Complete the {label} task"
