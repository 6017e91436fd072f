"""
tests/test_engine_rules.py — Pure engine modules
=================================================
Eligibility table, default task descriptions, verification records and
partial-update structs.  No database involved.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from eventquest.constants import task_type_allowed
from eventquest.database.models import Platform, Provider, TaskType
from eventquest.engine.descriptions import default_description, extract_username
from eventquest.engine.eligibility import is_gated, required_provider
from eventquest.engine.patches import EventPatch, TaskPatch
from eventquest.engine.verification import (
    CallerProof,
    SelfVerification,
    verification_from_json,
)


# ===========================================================================
# Eligibility
# ===========================================================================
class TestRequiredProvider:
    @pytest.mark.parametrize(
        ("platform", "expected"),
        [
            ("twitter", Provider.TWITTER),
            ("telegram", Provider.TELEGRAM),
            ("discord", Provider.DISCORD),
            ("youtube", Provider.GOOGLE),
            ("instagram", None),
            ("facebook", None),
            ("website", None),
            ("other", None),
        ],
    )
    def test_table(self, platform, expected):
        assert required_provider(platform) == expected

    def test_accepts_enum(self):
        assert required_provider(Platform.YOUTUBE) == Provider.GOOGLE

    def test_unknown_platform_is_ungated(self):
        assert required_provider("myspace") is None
        assert not is_gated("myspace")

    def test_is_gated(self):
        assert is_gated("twitter")
        assert not is_gated("website")


class TestTaskTypeScope:
    def test_offered_combination(self):
        assert task_type_allowed(Platform.TWITTER, TaskType.FOLLOW)

    def test_foreign_combination(self):
        assert not task_type_allowed(Platform.DISCORD, TaskType.LIKE_VIDEO)

    def test_custom_allowed_everywhere(self):
        for platform in Platform:
            assert task_type_allowed(platform, TaskType.CUSTOM)


# ===========================================================================
# Descriptions
# ===========================================================================
class TestExtractUsername:
    def test_twitter_status_url(self):
        assert extract_username("twitter", "https://x.com/eventquest/status/123") == "eventquest"

    def test_youtube_handle(self):
        assert extract_username("youtube", "https://www.youtube.com/@SomeChannel") == "SomeChannel"

    def test_youtube_channel_path(self):
        assert extract_username("youtube", "https://youtube.com/c/Builders") == "Builders"

    def test_reserved_segment(self):
        assert extract_username("twitter", "https://twitter.com/intent/follow?x=1") is None
        assert extract_username("youtube", "https://youtube.com/watch?v=abc") is None

    def test_scheme_optional(self):
        assert extract_username("instagram", "instagram.com/brand") == "brand"

    def test_platform_without_usernames(self):
        assert extract_username("discord", "https://discord.gg/abc") is None

    def test_empty_path(self):
        assert extract_username("telegram", "https://t.me/") is None


class TestDefaultDescription:
    def test_twitter_follow_with_name(self):
        text = default_description("follow", "twitter", "https://twitter.com/brand")
        assert text == "Follow @brand on Twitter"

    def test_twitter_like_without_name(self):
        text = default_description("like", "twitter", "https://twitter.com/i/web/status/1")
        assert text == "Like the post on Twitter"

    def test_discord_never_uses_name(self):
        text = default_description("join_server", "discord", "https://discord.gg/xyz")
        assert text == "Join the Discord server"

    def test_website_uses_host(self):
        text = default_description("visit", "website", "https://example.com/landing")
        assert text == "Visit example.com"

    def test_custom_on_other_platform(self):
        text = default_description("custom", "other", "https://x.test", "Lens")
        assert text == "Complete the custom task on Lens"

    def test_fallback_without_custom_platform(self):
        assert default_description("custom", "twitter", "https://x.com/a") == (
            "Complete the custom task"
        )

    def test_deterministic(self):
        args = ("subscribe", "youtube", "https://youtube.com/@chan")
        assert default_description(*args) == default_description(*args)


# ===========================================================================
# Verification records
# ===========================================================================
class TestVerificationRecords:
    def test_self_verification_json(self):
        rec = SelfVerification(platform="twitter", task_type="follow", connected_account="me")
        assert rec.to_json() == {
            "method": "self_verification",
            "platform": "twitter",
            "task_type": "follow",
            "connected_account": "me",
        }

    def test_caller_proof_roundtrip(self):
        rec = CallerProof(proof={"tx": "0xabc"})
        assert verification_from_json(rec.to_json()) == rec

    def test_self_verification_roundtrip_without_account(self):
        rec = SelfVerification(platform="website", task_type="visit")
        assert verification_from_json(rec.to_json()) == rec

    def test_pending_row_has_no_record(self):
        assert verification_from_json(None) is None
        assert verification_from_json({}) is None

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown verification method"):
            verification_from_json({"method": "oracle"})


# ===========================================================================
# Patches
# ===========================================================================
class TestPatches:
    def test_only_present_fields(self):
        patch = EventPatch(title="New", is_active=False)
        assert patch.changes() == {"title": "New", "is_active": False}

    def test_empty(self):
        assert EventPatch().is_empty()
        assert TaskPatch().changes() == {}

    def test_falsy_values_are_present(self):
        patch = TaskPatch(is_required=False, description="")
        assert patch.changes() == {"is_required": False, "description": ""}

    def test_dates_kept(self):
        when = datetime(2026, 5, 1, tzinfo=UTC)
        assert EventPatch(end_date=when).changes() == {"end_date": when}
