"""Records passed between the workflow services."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class MessageKind(str, Enum):
    ORDINARY = "ordinary"
    SYSTEM = "system"


class ChannelRef(BaseModel):
    """A channel or thread the workflow scans."""

    channel_id: int
    is_thread: bool = False
    name: Optional[str] = None

    @property
    def label(self) -> str:
        if self.is_thread:
            return f"Thread: {self.name or self.channel_id}"
        return f"Channel: {self.name or self.channel_id}"


class MessageRecord(BaseModel):
    message_id: int
    author_id: int
    author_is_bot: bool = False
    kind: MessageKind = MessageKind.ORDINARY


class MemberRecord(BaseModel):
    """A guild member as seen at lookup time."""

    user_id: int
    role_ids: List[int] = Field(default_factory=list)

    def has_role(self, role_id: int) -> bool:
        return role_id in self.role_ids


class RoleRecord(BaseModel):
    role_id: int
    name: str
    position: int
    permissions: int = 0
    managed: bool = False  # integration/bot roles cannot be granted manually
    is_default: bool = False  # the @everyone role


class WorkflowContext(BaseModel):
    """Who is acting, and in which guild, for a single interaction."""

    guild_id: int
    owner_id: Optional[int] = None
    invoker: MemberRecord


class GrantFailure(BaseModel):
    user_id: int
    reason: str


class GrantOutcome(BaseModel):
    """Tally of a single batch grant run."""

    granted: int = 0
    skipped: int = 0
    failed: int = 0
    failures: List[GrantFailure] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.granted + self.skipped + self.failed
