"""Context menu command definitions for the Speaker Role bot."""

from __future__ import annotations

from typing import Any, Dict

import discord
from discord import app_commands

from ..models.config import BotSettings
from ..services.workflow import ApplyRoleWorkflow
from .interactions import dispatch, reject_outside_guild, workflow_context


def register_context_menu_commands(
    tree: app_commands.CommandTree, workflow: ApplyRoleWorkflow, settings: BotSettings
) -> None:
    """Register all context menu commands to the command tree."""

    scope: Dict[str, Any] = {}
    if settings.guild_id:
        scope["guild"] = discord.Object(id=settings.guild_id)

    @tree.context_menu(name=settings.command_name, **scope)
    @app_commands.guild_only()
    async def apply_role_to_speakers(
        interaction: discord.Interaction, message: discord.Message
    ) -> None:
        """Grant a role to everyone who spoke in the message's channel."""
        ctx = workflow_context(interaction)
        if ctx is None:
            await reject_outside_guild(interaction)
            return

        step = workflow.handle_trigger(ctx, message.channel.id)
        await dispatch(interaction, step)
