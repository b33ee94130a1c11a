"""Shared fixtures: an in-memory stand-in for the Discord platform."""

from __future__ import annotations

from typing import Dict, List, Optional

import discord
import pytest

from speakerrole.errors import NotFoundError, PlatformError
from speakerrole.models.config import BotSettings
from speakerrole.models.records import (
    ChannelRef,
    MemberRecord,
    MessageRecord,
    RoleRecord,
    WorkflowContext,
)

GUILD_ID = 1
OWNER_ID = 42
AGENT_ID = 999
INVOKER_ID = 7
CHANNEL_ID = 500
THREAD_ID = 501

EVERYONE = RoleRecord(role_id=GUILD_ID, name="@everyone", position=0, is_default=True)
REGULAR = RoleRecord(role_id=10, name="Regular", position=1)
SPEAKER = RoleRecord(role_id=20, name="Speaker", position=3)
MODERATOR = RoleRecord(
    role_id=30,
    name="Moderator",
    position=5,
    permissions=discord.Permissions(manage_roles=True).value,
)
BOT_ROLE = RoleRecord(role_id=40, name="Speaker Bot", position=8, managed=True)
ADMIN = RoleRecord(
    role_id=50,
    name="Admin",
    position=10,
    permissions=discord.Permissions(administrator=True).value,
)
ALL_ROLES = [EVERYONE, REGULAR, SPEAKER, MODERATOR, BOT_ROLE, ADMIN]


def build_history(
    human_authors: List[int], human_messages: int, bot_messages: int = 0, bot_id: int = 888
) -> List[MessageRecord]:
    """Newest-first history with humans cycling through ``human_authors``."""

    entries = [
        (human_authors[index % len(human_authors)], False) for index in range(human_messages)
    ]
    step = max(1, human_messages // bot_messages) if bot_messages else 0
    for index in range(bot_messages):
        entries.insert(min(index * (step + 1), len(entries)), (bot_id, True))

    total = len(entries)
    return [
        MessageRecord(message_id=10_000 + total - index, author_id=author_id, author_is_bot=is_bot)
        for index, (author_id, is_bot) in enumerate(entries)
    ]


class FakeGateway:
    """Records every call and serves canned data."""

    def __init__(
        self,
        *,
        channels: Optional[Dict[int, ChannelRef]] = None,
        messages: Optional[Dict[int, List[MessageRecord]]] = None,
        members: Optional[Dict[int, MemberRecord]] = None,
        roles: Optional[List[RoleRecord]] = None,
    ):
        self.agent_id = AGENT_ID
        self.channels = channels or {}
        self.messages = messages or {}
        self.members = members or {}
        self.roles = list(roles if roles is not None else ALL_ROLES)

        self.message_error: Optional[Exception] = None
        self.member_errors: Dict[int, Exception] = {}
        self.grant_errors: Dict[int, Exception] = {}
        self.embed_error: Optional[Exception] = None

        self.history_calls: List[tuple] = []
        self.member_calls: List[int] = []
        self.grants: List[tuple] = []
        self.embeds: List[tuple] = []

    async def fetch_channel(self, channel_id: int) -> ChannelRef:
        if channel_id not in self.channels:
            raise NotFoundError(f"Unknown channel {channel_id}", code=10003)
        return self.channels[channel_id]

    async def fetch_messages(
        self, channel_id: int, limit: int, before: Optional[int] = None
    ) -> List[MessageRecord]:
        self.history_calls.append((channel_id, limit, before))
        if self.message_error is not None:
            raise self.message_error
        history = self.messages.get(channel_id, [])
        start = 0
        if before is not None:
            start = next(
                index + 1 for index, record in enumerate(history) if record.message_id == before
            )
        return history[start : start + limit]

    async def fetch_member(self, guild_id: int, user_id: int) -> MemberRecord:
        self.member_calls.append(user_id)
        if user_id in self.member_errors:
            raise self.member_errors[user_id]
        if user_id not in self.members:
            raise NotFoundError(f"Unknown member {user_id}", code=10007)
        return self.members[user_id]

    async def fetch_roles(self, guild_id: int) -> List[RoleRecord]:
        return list(self.roles)

    async def add_role(
        self, guild_id: int, user_id: int, role_id: int, reason: Optional[str] = None
    ) -> None:
        if user_id in self.grant_errors:
            raise self.grant_errors[user_id]
        self.grants.append((user_id, role_id, reason))

    async def send_embed(self, channel_id: int, embed: discord.Embed) -> None:
        if self.embed_error is not None:
            raise self.embed_error
        self.embeds.append((channel_id, embed))


class RecordingResponder:
    def __init__(self, fail: bool = False):
        self.replies = []
        self._fail = fail

    async def edit_original(self, reply) -> None:
        if self._fail:
            raise PlatformError("Unknown Webhook")
        self.replies.append(reply)


SPEAKER_IDS = list(range(101, 113))


@pytest.fixture
def gateway() -> FakeGateway:
    """A guild with 12 speakers in #general and the bot/invoker present."""

    members = {
        user_id: MemberRecord(user_id=user_id, role_ids=[REGULAR.role_id])
        for user_id in SPEAKER_IDS
    }
    members[AGENT_ID] = MemberRecord(user_id=AGENT_ID, role_ids=[BOT_ROLE.role_id])
    members[INVOKER_ID] = MemberRecord(user_id=INVOKER_ID, role_ids=[MODERATOR.role_id])
    return FakeGateway(
        channels={
            CHANNEL_ID: ChannelRef(channel_id=CHANNEL_ID, name="general"),
            THREAD_ID: ChannelRef(channel_id=THREAD_ID, name="event", is_thread=True),
        },
        messages={
            CHANNEL_ID: build_history(SPEAKER_IDS, human_messages=150, bot_messages=40),
            THREAD_ID: build_history(SPEAKER_IDS[:3], human_messages=6),
        },
        members=members,
    )


@pytest.fixture
def settings() -> BotSettings:
    return BotSettings(discord_token="test-token")


@pytest.fixture
def moderator_ctx() -> WorkflowContext:
    return WorkflowContext(
        guild_id=GUILD_ID,
        owner_id=OWNER_ID,
        invoker=MemberRecord(user_id=INVOKER_ID, role_ids=[MODERATOR.role_id]),
    )


def message(author_id: int, message_id: int = 1, **kwargs) -> MessageRecord:
    return MessageRecord(message_id=message_id, author_id=author_id, **kwargs)
