"""Platform capabilities consumed by the workflow, and their Discord implementation."""

from __future__ import annotations

from typing import List, Optional, Protocol

import discord

from ..errors import AccessDeniedError, NotFoundError, PlatformError, SpeakerRoleError
from ..models.records import ChannelRef, MemberRecord, MessageKind, MessageRecord, RoleRecord

_ORDINARY_MESSAGE_TYPES = {discord.MessageType.default, discord.MessageType.reply}


class PlatformGateway(Protocol):
    """Everything the workflow needs from the chat platform."""

    @property
    def agent_id(self) -> int: ...

    async def fetch_channel(self, channel_id: int) -> ChannelRef: ...

    async def fetch_messages(
        self, channel_id: int, limit: int, before: Optional[int] = None
    ) -> List[MessageRecord]: ...

    async def fetch_member(self, guild_id: int, user_id: int) -> MemberRecord: ...

    async def fetch_roles(self, guild_id: int) -> List[RoleRecord]: ...

    async def add_role(
        self, guild_id: int, user_id: int, role_id: int, reason: Optional[str] = None
    ) -> None: ...

    async def send_embed(self, channel_id: int, embed: discord.Embed) -> None: ...


def translate_http_error(exc: discord.HTTPException, action: str) -> SpeakerRoleError:
    """Map a discord.py HTTP error onto the workflow error taxonomy."""

    message = f"{action} failed: {exc.status} {exc.text or exc}"
    if isinstance(exc, discord.Forbidden):
        return AccessDeniedError(message, code=exc.code)
    if isinstance(exc, discord.NotFound):
        return NotFoundError(message, code=exc.code)
    return PlatformError(message, code=exc.code)


def member_record(member: discord.Member) -> MemberRecord:
    # Member.roles includes @everyone; keep only explicitly held roles.
    return MemberRecord(
        user_id=member.id,
        role_ids=[role.id for role in member.roles if not role.is_default()],
    )


def role_record(role: discord.Role) -> RoleRecord:
    return RoleRecord(
        role_id=role.id,
        name=role.name,
        position=role.position,
        permissions=role.permissions.value,
        managed=role.managed,
        is_default=role.is_default(),
    )


def message_record(message: discord.Message) -> MessageRecord:
    kind = MessageKind.ORDINARY if message.type in _ORDINARY_MESSAGE_TYPES else MessageKind.SYSTEM
    return MessageRecord(
        message_id=message.id,
        author_id=message.author.id,
        author_is_bot=message.author.bot,
        kind=kind,
    )


class DiscordGateway:
    """``PlatformGateway`` backed by a connected discord.py client."""

    def __init__(self, client: discord.Client):
        self._client = client

    @property
    def agent_id(self) -> int:
        if self._client.user is None:
            raise PlatformError("Client is not logged in yet")
        return self._client.user.id

    async def _get_channel(self, channel_id: int):
        channel = self._client.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await self._client.fetch_channel(channel_id)
        except discord.HTTPException as exc:
            raise translate_http_error(exc, f"Fetching channel {channel_id}") from exc

    async def _get_guild(self, guild_id: int) -> discord.Guild:
        guild = self._client.get_guild(guild_id)
        if guild is not None:
            return guild
        try:
            return await self._client.fetch_guild(guild_id)
        except discord.HTTPException as exc:
            raise translate_http_error(exc, f"Fetching guild {guild_id}") from exc

    async def fetch_channel(self, channel_id: int) -> ChannelRef:
        channel = await self._get_channel(channel_id)
        return ChannelRef(
            channel_id=channel.id,
            is_thread=isinstance(channel, discord.Thread),
            name=getattr(channel, "name", None),
        )

    async def fetch_messages(
        self, channel_id: int, limit: int, before: Optional[int] = None
    ) -> List[MessageRecord]:
        channel = await self._get_channel(channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            raise PlatformError(f"Channel {channel_id} has no message history")
        cursor = discord.Object(id=before) if before is not None else None
        try:
            return [
                message_record(message)
                async for message in channel.history(limit=limit, before=cursor)
            ]
        except discord.HTTPException as exc:
            raise translate_http_error(exc, f"Fetching messages from {channel_id}") from exc

    async def fetch_member(self, guild_id: int, user_id: int) -> MemberRecord:
        guild = await self._get_guild(guild_id)
        try:
            member = await guild.fetch_member(user_id)
        except discord.HTTPException as exc:
            raise translate_http_error(exc, f"Fetching member {user_id}") from exc
        return member_record(member)

    async def fetch_roles(self, guild_id: int) -> List[RoleRecord]:
        guild = await self._get_guild(guild_id)
        try:
            roles = await guild.fetch_roles()
        except discord.HTTPException as exc:
            raise translate_http_error(exc, f"Fetching roles for guild {guild_id}") from exc
        return [role_record(role) for role in roles]

    async def add_role(
        self, guild_id: int, user_id: int, role_id: int, reason: Optional[str] = None
    ) -> None:
        try:
            await self._client.http.add_role(guild_id, user_id, role_id, reason=reason)
        except discord.HTTPException as exc:
            raise translate_http_error(exc, f"Adding role {role_id} to {user_id}") from exc

    async def send_embed(self, channel_id: int, embed: discord.Embed) -> None:
        channel = await self._get_channel(channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            raise PlatformError(f"Channel {channel_id} cannot receive messages")
        try:
            await channel.send(embed=embed)
        except discord.HTTPException as exc:
            raise translate_http_error(exc, f"Sending to channel {channel_id}") from exc
