"""Glue between workflow steps and discord.py interactions."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Dict, Optional, Set

import discord

from ..models.records import MemberRecord, WorkflowContext
from ..models.replies import ActionButton, AckKind, ButtonTone, Reply, RoleSelectMenu
from ..services.platform import member_record
from ..services.workflow import WorkflowStep
from ..utils.discord import fit_message

logger = logging.getLogger(__name__)

GUILD_ONLY_MESSAGE = "❌ This command can only be used inside a server."

_BUTTON_STYLES = {
    ButtonTone.SUCCESS: discord.ButtonStyle.success,
    ButtonTone.SECONDARY: discord.ButtonStyle.secondary,
}

# Detached continuations are held here until they finish so they aren't
# garbage collected mid-flight.
_background_tasks: Set[asyncio.Task] = set()


def spawn_detached(coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
    task = asyncio.create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


def build_view(reply: Reply) -> Optional[discord.ui.View]:
    """Render reply components as a view, or ``None`` when there are none."""

    if not reply.components:
        return None

    view = discord.ui.View(timeout=None)
    for component in reply.components:
        if isinstance(component, RoleSelectMenu):
            view.add_item(
                discord.ui.Select(
                    custom_id=component.custom_id,
                    placeholder=component.placeholder,
                    min_values=1,
                    max_values=1,
                    options=[
                        discord.SelectOption(
                            label=option.label,
                            value=option.value,
                            description=option.description,
                        )
                        for option in component.options
                    ],
                )
            )
        elif isinstance(component, ActionButton):
            view.add_item(
                discord.ui.Button(
                    custom_id=component.custom_id,
                    label=component.label,
                    style=_BUTTON_STYLES[component.tone],
                    emoji=component.emoji,
                )
            )
    # Component interactions are routed by custom_id in on_interaction, so the
    # view must not be kept in discord.py's in-memory view store.
    view.stop()
    return view


def _content(reply: Reply) -> Optional[str]:
    return fit_message(reply.content) if reply.content is not None else None


async def send_acknowledgement(interaction: discord.Interaction, reply: Reply) -> None:
    if reply.kind is AckKind.DEFER:
        await interaction.response.defer(ephemeral=True, thinking=True)
        return

    view = build_view(reply)
    if reply.kind is AckKind.MESSAGE:
        kwargs: Dict[str, Any] = {"ephemeral": True}
        if view is not None:
            kwargs["view"] = view
        await interaction.response.send_message(_content(reply), **kwargs)
    else:
        await interaction.response.edit_message(content=_content(reply), view=view)


class InteractionResponder:
    """Edits the interaction's original response from a detached continuation."""

    def __init__(self, interaction: discord.Interaction):
        self._interaction = interaction

    async def edit_original(self, reply: Reply) -> None:
        await self._interaction.edit_original_response(
            content=_content(reply), view=build_view(reply)
        )


async def dispatch(interaction: discord.Interaction, step: WorkflowStep) -> None:
    """Acknowledge the interaction, then run the step's continuation detached."""

    try:
        await send_acknowledgement(interaction, step.acknowledgement)
    except discord.HTTPException:
        logger.exception("Failed to acknowledge interaction %s", interaction.id)
        return

    if step.continuation is not None:
        spawn_detached(step.continuation(InteractionResponder(interaction)))


def workflow_context(interaction: discord.Interaction) -> Optional[WorkflowContext]:
    """Build the acting user's context, or ``None`` outside of a guild."""

    if interaction.guild_id is None or not isinstance(interaction.user, discord.Member):
        return None
    owner_id = interaction.guild.owner_id if interaction.guild is not None else None
    invoker: MemberRecord = member_record(interaction.user)
    return WorkflowContext(guild_id=interaction.guild_id, owner_id=owner_id, invoker=invoker)


async def reject_outside_guild(interaction: discord.Interaction) -> None:
    try:
        await interaction.response.send_message(GUILD_ONLY_MESSAGE, ephemeral=True)
    except discord.HTTPException:
        logger.exception("Failed to respond to interaction %s", interaction.id)
