"""Routing of select menu and button interactions by custom_id."""

from __future__ import annotations

import logging

import discord
from discord.ext import commands

from ..services.workflow import ApplyRoleWorkflow
from ..utils.tokens import TokenAction, token_action
from .interactions import dispatch, reject_outside_guild, workflow_context

logger = logging.getLogger(__name__)


def register_component_handlers(bot: commands.Bot, workflow: ApplyRoleWorkflow) -> None:
    """Listen for component interactions carrying workflow tokens."""

    @bot.listen("on_interaction")
    async def route_component(interaction: discord.Interaction) -> None:
        if interaction.type is not discord.InteractionType.component:
            return
        data = interaction.data or {}
        custom_id = data.get("custom_id")
        action = token_action(custom_id)
        if action is None:
            return

        ctx = workflow_context(interaction)
        if ctx is None:
            await reject_outside_guild(interaction)
            return

        if action is TokenAction.SELECT:
            step = workflow.handle_selection(ctx, custom_id, data.get("values", []))
        elif action is TokenAction.CONFIRM:
            step = workflow.handle_confirm(ctx, custom_id)
        else:
            step = workflow.handle_cancel(ctx, custom_id)

        logger.debug("Routed %s interaction %s", action.value, interaction.id)
        await dispatch(interaction, step)
