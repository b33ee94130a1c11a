"""Platform-neutral descriptions of what the bot sends back to Discord."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class AckKind(str, Enum):
    MESSAGE = "message"  # new ephemeral message
    DEFER = "defer"  # "thinking…" placeholder, edited later
    UPDATE = "update"  # replace the message the component belongs to


class SelectOption(BaseModel):
    label: str
    value: str
    description: Optional[str] = None


class RoleSelectMenu(BaseModel):
    custom_id: str
    placeholder: str
    options: List[SelectOption]


class ButtonTone(str, Enum):
    SUCCESS = "success"
    SECONDARY = "secondary"


class ActionButton(BaseModel):
    custom_id: str
    label: str
    tone: ButtonTone = ButtonTone.SECONDARY
    emoji: Optional[str] = None


Component = Union[RoleSelectMenu, ActionButton]


class Reply(BaseModel):
    content: Optional[str] = None
    components: List[Component] = Field(default_factory=list)
    kind: AckKind = AckKind.UPDATE
