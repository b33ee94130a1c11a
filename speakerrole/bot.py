"""Discord bot wiring for the Speaker Role bot."""

from __future__ import annotations

import logging

import discord
from discord.ext import commands

from .commands import register_component_handlers, register_context_menu_commands
from .models.config import BotSettings
from .services.platform import DiscordGateway
from .services.workflow import ApplyRoleWorkflow

logger = logging.getLogger(__name__)


def create_bot(settings: BotSettings) -> commands.Bot:
    intents = discord.Intents.default()
    intents.members = True

    # Context menu and components only - no text command prefix needed
    bot = commands.Bot(
        command_prefix="!",  # Required by discord.py but unused
        intents=intents,
        help_command=None,
    )

    workflow = ApplyRoleWorkflow(DiscordGateway(bot), settings)
    register_context_menu_commands(bot.tree, workflow, settings)
    register_component_handlers(bot, workflow)

    @bot.event
    async def setup_hook() -> None:  # type: ignore[override]
        try:
            if settings.guild_id:
                logger.info("Syncing commands to guild %s...", settings.guild_id)
                synced = await bot.tree.sync(guild=discord.Object(id=settings.guild_id))
            else:
                logger.info("Syncing commands to Discord...")
                synced = await bot.tree.sync()
            logger.info("✅ Synced %d commands to Discord", len(synced))
            for cmd in synced:
                logger.debug("  - %s (%s)", cmd.name, cmd.type.name)
        except discord.HTTPException:
            logger.exception("Failed to sync commands to Discord")

    @bot.event
    async def on_ready() -> None:
        logger.info("Logged in as %s", bot.user)
        if settings.required_role_ids:
            logger.info("Command restricted to roles: %s", settings.required_role_ids)
        else:
            logger.info("No REQUIRED_ROLE_IDS set - every member may run the command")

    return bot
