"""Discord-specific message rendering and limits."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Sequence

import discord

from ..models.records import ChannelRef, GrantOutcome, RoleRecord

# Discord's maximum message length
DISCORD_MAX_MESSAGE_LENGTH = 2000
# How many mentions the confirmation prompt lists before collapsing into "+N more"
MAX_DISPLAYED_MENTIONS = 30
MAX_DISPLAYED_FAILURES = 5

WHOLE_CHANNEL_WARNING = "⚠️ **This targets everyone who spoke in the whole channel.**"


def format_mention_list(
    user_ids: Sequence[int],
    max_length: int,
    max_display: int = MAX_DISPLAYED_MENTIONS,
) -> str:
    """Render ``<@id>`` mentions that fit in ``max_length`` characters.

    Trailing entries are dropped one at a time and replaced with a ``+N more``
    marker until the rendered text fits. Hidden users are always counted in the
    marker, never silently discarded.

    Examples:
        >>> format_mention_list([1, 2, 3], max_length=100, max_display=2)
        '<@1>, <@2>, +1 more'
    """

    shown = list(user_ids[:max_display])
    while True:
        mentions = [f"<@{user_id}>" for user_id in shown]
        hidden = len(user_ids) - len(shown)
        if hidden:
            mentions.append(f"+{hidden} more")
        rendered = ", ".join(mentions)
        if len(rendered) <= max_length or not shown:
            return rendered
        shown.pop()


def fit_message(content: str, max_length: int = DISCORD_MAX_MESSAGE_LENGTH) -> str:
    if len(content) <= max_length:
        return content
    return content[: max_length - 3] + "..."


def render_scan_summary(
    channel: ChannelRef, message_count: int, speaker_count: int, member_count: int
) -> str:
    lines = [
        "✅ Finished reading the message history!",
        "",
        channel.label,
        f"Messages fetched: {message_count}",
        f"Unique speakers: {speaker_count}",
        f"Speakers still in the server: {member_count}",
    ]
    if not channel.is_thread:
        lines.extend(["", WHOLE_CHANNEL_WARNING])
    lines.extend(["", "Pick the role to grant from the menu below 👇"])
    return "\n".join(lines)


def render_confirmation(
    channel: ChannelRef, role: RoleRecord, user_ids: Sequence[int]
) -> str:
    header = "\n".join(
        [
            "**Confirm**",
            "",
            channel.label,
            f"Role: **{role.name}**",
            f"Recipients: **{len(user_ids)}**",
            "",
        ]
    )
    footer_lines = ["", "", "Grant this role to everyone listed above?"]
    if not channel.is_thread:
        footer_lines.extend(
            ["", "⚠️ **This targets the whole channel, so the impact may be large.**"]
        )
    footer = "\n".join(footer_lines)

    budget = DISCORD_MAX_MESSAGE_LENGTH - len(header) - len(footer)
    return header + format_mention_list(user_ids, max_length=budget) + footer


def render_outcome(channel: ChannelRef, role: RoleRecord, outcome: GrantOutcome) -> str:
    lines = [
        "✅ Role grant finished!",
        "",
        f"**{channel.label}**",
        f"**Role granted:** {role.name}",
        "",
        f"✅ Granted: {outcome.granted}",
        f"⏭️ Skipped: {outcome.skipped} (already had it)",
    ]
    if outcome.failed:
        lines.append(f"❌ Failed: {outcome.failed}")
        for failure in outcome.failures[:MAX_DISPLAYED_FAILURES]:
            lines.append(f"• <@{failure.user_id}>: {failure.reason}")
        if len(outcome.failures) > MAX_DISPLAYED_FAILURES:
            lines.append(f"…and {len(outcome.failures) - MAX_DISPLAYED_FAILURES} more")
    return fit_message("\n".join(lines))


def summarize_outcome(outcome: GrantOutcome) -> str:
    """One-line tally used in the audit log."""

    parts: List[str] = [f"✅ {outcome.granted} granted", f"⏭️ {outcome.skipped} skipped"]
    if outcome.failed:
        parts.append(f"❌ {outcome.failed} failed")
    return " / ".join(parts)


def build_audit_embed(
    invoker_id: int, channel: ChannelRef, role: RoleRecord, outcome: GrantOutcome
) -> discord.Embed:
    embed = discord.Embed(
        title="Role grant log",
        colour=discord.Colour.red() if outcome.failed else discord.Colour.green(),
        timestamp=datetime.now(timezone.utc),
    )
    embed.add_field(name="Run by", value=f"<@{invoker_id}>", inline=True)
    embed.add_field(name="Target", value=channel.label, inline=True)
    embed.add_field(name="Role", value=role.name, inline=True)
    embed.add_field(name="Result", value=summarize_outcome(outcome), inline=False)
    return embed
