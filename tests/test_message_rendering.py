"""Tests for Discord message rendering and length limits."""

import pytest

from speakerrole.models.records import ChannelRef, GrantFailure, GrantOutcome, RoleRecord
from speakerrole.utils.discord import (
    DISCORD_MAX_MESSAGE_LENGTH,
    MAX_DISPLAYED_MENTIONS,
    build_audit_embed,
    fit_message,
    format_mention_list,
    render_confirmation,
    render_outcome,
    summarize_outcome,
)

CHANNEL = ChannelRef(channel_id=500, name="general")
THREAD = ChannelRef(channel_id=501, name="event", is_thread=True)
ROLE = RoleRecord(role_id=20, name="Speaker", position=3)
SNOWFLAKES = list(range(10**18, 10**18 + 300))


class TestMentionList:
    """Test suite for the mention list truncation."""

    def test_short_list_not_truncated(self):
        assert format_mention_list([1, 2], max_length=100) == "<@1>, <@2>"

    def test_empty_list(self):
        assert format_mention_list([], max_length=100) == ""

    def test_display_cap_adds_marker(self):
        """Beyond the display cap the rest are counted in a marker."""
        rendered = format_mention_list(SNOWFLAKES[:40], max_length=2000)
        assert rendered.count("<@") == MAX_DISPLAYED_MENTIONS
        assert rendered.endswith(f"+{40 - MAX_DISPLAYED_MENTIONS} more")

    def test_length_limit_drops_trailing_entries(self):
        rendered = format_mention_list(SNOWFLAKES[:10], max_length=100)
        assert len(rendered) <= 100
        shown = rendered.count("<@")
        assert rendered.endswith(f"+{10 - shown} more")
        assert rendered.startswith(f"<@{SNOWFLAKES[0]}>")

    @pytest.mark.parametrize("max_length", [5, 30, 77, 150, 600])
    def test_never_drops_silently(self, max_length):
        """Shown plus hidden always accounts for every user."""
        rendered = format_mention_list(SNOWFLAKES[:50], max_length=max_length)
        shown = rendered.count("<@")
        hidden = int(rendered.rsplit("+", 1)[1].split()[0]) if "more" in rendered else 0
        assert shown + hidden == 50

    def test_marker_only_when_nothing_fits(self):
        assert format_mention_list(SNOWFLAKES[:3], max_length=8) == "+3 more"


class TestConfirmation:
    def test_fits_discord_limit(self):
        content = render_confirmation(CHANNEL, ROLE, SNOWFLAKES)
        assert len(content) <= DISCORD_MAX_MESSAGE_LENGTH
        assert "Recipients: **300**" in content
        assert "+270 more" in content

    def test_tight_budget_still_fits(self):
        """Even with a huge role name the prompt stays under the limit."""
        role = ROLE.model_copy(update={"name": "x" * 1500})
        content = render_confirmation(CHANNEL, role, SNOWFLAKES)
        assert len(content) <= DISCORD_MAX_MESSAGE_LENGTH
        assert "more" in content

    def test_thread_has_no_warning(self):
        assert "whole channel" not in render_confirmation(THREAD, ROLE, [1])
        assert "whole channel" in render_confirmation(CHANNEL, ROLE, [1])


class TestOutcome:
    def test_success_only(self):
        content = render_outcome(CHANNEL, ROLE, GrantOutcome(granted=3, skipped=1))
        assert "✅ Granted: 3" in content
        assert "⏭️ Skipped: 1" in content
        assert "Failed" not in content

    def test_failures_listed_and_capped(self):
        failures = [GrantFailure(user_id=index, reason="Missing Permissions") for index in range(8)]
        outcome = GrantOutcome(granted=1, failed=8, failures=failures)
        content = render_outcome(CHANNEL, ROLE, outcome)
        assert "❌ Failed: 8" in content
        assert "<@0>: Missing Permissions" in content
        assert "…and 3 more" in content

    def test_summary_line(self):
        assert summarize_outcome(GrantOutcome(granted=6, skipped=2, failed=1)) == (
            "✅ 6 granted / ⏭️ 2 skipped / ❌ 1 failed"
        )

    def test_audit_embed_colour_reflects_failures(self):
        ok = build_audit_embed(7, CHANNEL, ROLE, GrantOutcome(granted=1))
        bad = build_audit_embed(7, CHANNEL, ROLE, GrantOutcome(failed=1))
        assert ok.colour != bad.colour
        assert [field.name for field in ok.fields] == ["Run by", "Target", "Role", "Result"]


class TestFitMessage:
    def test_long_content_trimmed(self):
        content = fit_message("a" * 2500)
        assert len(content) == DISCORD_MAX_MESSAGE_LENGTH
        assert content.endswith("...")

    def test_short_content_unchanged(self):
        assert fit_message("hello") == "hello"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
