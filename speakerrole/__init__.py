"""Grant a role to everyone who spoke in a Discord channel."""

from .bot import create_bot

__all__ = ["create_bot"]
