"""Encoding of workflow context into component custom_ids.

Components carry the only state the workflow keeps between interactions: the
channel being scanned and, once chosen, the role to grant. Decoded ids must
still be re-fetched before they are trusted.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from ..errors import MalformedTokenError

TOKEN_DELIMITER = ":"
# Discord rejects custom_ids longer than this.
MAX_CUSTOM_ID_LENGTH = 100


class TokenAction(str, Enum):
    SELECT = "role_select"
    CONFIRM = "role_confirm"
    CANCEL = "role_cancel"


_EXPECTED_PARTS = {
    TokenAction.SELECT: 2,
    TokenAction.CONFIRM: 3,
    TokenAction.CANCEL: 3,
}


class WorkflowToken(BaseModel):
    action: TokenAction
    channel_id: int
    role_id: Optional[int] = None


def encode_token(action: TokenAction, channel_id: int, role_id: Optional[int] = None) -> str:
    parts = [action.value, str(channel_id)]
    if _EXPECTED_PARTS[action] == 3:
        if role_id is None:
            raise ValueError(f"{action.value} tokens require a role id")
        parts.append(str(role_id))
    elif role_id is not None:
        raise ValueError(f"{action.value} tokens do not carry a role id")
    return TOKEN_DELIMITER.join(parts)


def _parse_id(raw: str, custom_id: str) -> int:
    if not raw.isascii() or not raw.isdigit():
        raise MalformedTokenError(f"Non-numeric id {raw!r} in custom_id {custom_id!r}")
    value = int(raw)
    if value <= 0:
        raise MalformedTokenError(f"Invalid id {raw!r} in custom_id {custom_id!r}")
    return value


def decode_token(custom_id: Optional[str]) -> WorkflowToken:
    """Decode a custom_id, raising ``MalformedTokenError`` for anything unexpected."""

    if not custom_id or len(custom_id) > MAX_CUSTOM_ID_LENGTH:
        raise MalformedTokenError(f"Missing or oversized custom_id: {custom_id!r}")

    parts = custom_id.split(TOKEN_DELIMITER)
    try:
        action = TokenAction(parts[0])
    except ValueError:
        raise MalformedTokenError(f"Unknown token prefix in custom_id {custom_id!r}") from None

    if len(parts) != _EXPECTED_PARTS[action]:
        raise MalformedTokenError(
            f"Expected {_EXPECTED_PARTS[action]} parts in custom_id {custom_id!r}, got {len(parts)}"
        )

    channel_id = _parse_id(parts[1], custom_id)
    role_id = _parse_id(parts[2], custom_id) if len(parts) == 3 else None
    return WorkflowToken(action=action, channel_id=channel_id, role_id=role_id)


def token_action(custom_id: Optional[str]) -> Optional[TokenAction]:
    """Cheap prefix check used to route component interactions."""

    if not custom_id:
        return None
    prefix = custom_id.split(TOKEN_DELIMITER, 1)[0]
    try:
        return TokenAction(prefix)
    except ValueError:
        return None
