"""Error taxonomy shared by the services and the workflow boundary."""

from __future__ import annotations

from enum import Enum
from typing import Optional

import discord


class ErrorKind(str, Enum):
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    PLATFORM = "platform"
    MALFORMED_TOKEN = "malformed_token"


class SpeakerRoleError(Exception):
    """Base error carrying a message that is safe to show to the invoker."""

    kind: ErrorKind = ErrorKind.PLATFORM
    default_user_message = "Something went wrong. Please try again later."

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        code: Optional[int] = None,
    ):
        super().__init__(message)
        self.user_message = user_message or self.default_user_message
        self.code = code


class AccessDeniedError(SpeakerRoleError):
    kind = ErrorKind.ACCESS_DENIED
    default_user_message = "I don't have access to that. Check my permissions."


class NotFoundError(SpeakerRoleError):
    kind = ErrorKind.NOT_FOUND
    default_user_message = "That no longer exists."


class PlatformError(SpeakerRoleError):
    kind = ErrorKind.PLATFORM


class MalformedTokenError(SpeakerRoleError):
    """Raised when a component custom_id cannot be decoded."""

    kind = ErrorKind.MALFORMED_TOKEN
    default_user_message = "This menu is no longer valid. Run the command again."


def user_message_for(exc: BaseException) -> str:
    """Translate any exception raised inside a workflow into user-facing text."""

    if isinstance(exc, SpeakerRoleError):
        return exc.user_message
    if isinstance(exc, discord.Forbidden):
        return "I'm missing the permissions needed for that. Ask a server admin to check."
    if isinstance(exc, discord.NotFound):
        return "That channel or role could not be found."
    return SpeakerRoleError.default_user_message
