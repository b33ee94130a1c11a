"""The apply-role-to-speakers workflow.

The workflow is spread over four independent interactions (the context menu
trigger, the role selection, and the confirm/cancel buttons). Nothing is kept
in memory between them: every handler decodes the channel and role ids from
the component's custom_id, re-fetches them, and recomputes the speaker list.

Each handler returns a ``WorkflowStep`` whose acknowledgement must be sent
straight away to satisfy Discord's three second deadline. The slow part, if
any, is the step's ``continuation``, which the caller runs detached and which
reports back by editing the original response exactly once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence, Tuple

from ..errors import MalformedTokenError, NotFoundError, user_message_for
from ..models.config import BotSettings
from ..models.records import ChannelRef, GrantOutcome, MemberRecord, RoleRecord, WorkflowContext
from ..models.replies import (
    ActionButton,
    AckKind,
    ButtonTone,
    Reply,
    RoleSelectMenu,
    SelectOption,
)
from ..utils import discord as render
from ..utils.tokens import TokenAction, WorkflowToken, decode_token, encode_token
from .grants import RoleGrantExecutor
from .history import HistoryAggregator, HistoryScan
from .membership import MembershipResolver
from .permissions import (
    assignable_roles,
    can_agent_manage_role,
    can_invoke,
    can_manage_role,
)
from .platform import PlatformGateway

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    INVOKED = "invoked"
    AWAITING_SELECTION = "awaiting_selection"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    APPLYING = "applying"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {WorkflowState.COMPLETED, WorkflowState.CANCELLED, WorkflowState.FAILED}


class Responder(Protocol):
    async def edit_original(self, reply: Reply) -> None: ...


Continuation = Callable[[Responder], Awaitable[WorkflowState]]


@dataclass
class WorkflowStep:
    state: WorkflowState
    acknowledgement: Reply
    continuation: Optional[Continuation] = None


DENIED_INVOKE = "❌ You don't have permission to use this command."
DENIED_MANAGE = "❌ You don't have permission to manage this role."
DENIED_AGENT = (
    "❌ I can't grant this role. Move my role above it in the server settings."
)
NO_SPEAKERS = "❌ Nobody has spoken in this channel."
EVERYONE_LEFT = "❌ Everyone who spoke in this channel has left the server."
NO_ASSIGNABLE_ROLES = "❌ There are no roles I can grant."
CANCELLED = "❌ Cancelled."


class ApplyRoleWorkflow:
    """Stateless handlers for each interaction of the workflow."""

    def __init__(
        self,
        gateway: PlatformGateway,
        settings: BotSettings,
        history: Optional[HistoryAggregator] = None,
        resolver: Optional[MembershipResolver] = None,
        executor: Optional[RoleGrantExecutor] = None,
    ):
        self._gateway = gateway
        self._settings = settings
        self._history = history or HistoryAggregator(gateway)
        self._resolver = resolver or MembershipResolver(gateway)
        self._executor = executor or RoleGrantExecutor(gateway)

    # ------------------------------------------------------------------ handlers

    def handle_trigger(self, ctx: WorkflowContext, channel_id: int) -> WorkflowStep:
        logger.info("Command executed by %s in channel %s", ctx.invoker.user_id, channel_id)

        if not can_invoke(ctx.invoker, ctx.owner_id, self._settings.required_role_ids):
            return WorkflowStep(
                state=WorkflowState.FAILED,
                acknowledgement=Reply(content=DENIED_INVOKE, kind=AckKind.MESSAGE),
            )

        return WorkflowStep(
            state=WorkflowState.INVOKED,
            acknowledgement=Reply(kind=AckKind.DEFER),
            continuation=self._detached("trigger", self._scan_and_offer, ctx, channel_id),
        )

    def handle_selection(
        self, ctx: WorkflowContext, custom_id: str, values: Sequence[str]
    ) -> WorkflowStep:
        try:
            token = self._decode(custom_id, TokenAction.SELECT)
            role_id = self._selected_role_id(values)
        except MalformedTokenError as exc:
            return self._malformed(exc)

        logger.info(
            "Role selection by %s: role %s for channel %s",
            ctx.invoker.user_id,
            role_id,
            token.channel_id,
        )
        return WorkflowStep(
            state=WorkflowState.AWAITING_SELECTION,
            acknowledgement=Reply(content="⏳ Checking who would receive the role..."),
            continuation=self._detached(
                "selection", self._prepare_confirmation, ctx, token.channel_id, role_id
            ),
        )

    def handle_confirm(self, ctx: WorkflowContext, custom_id: str) -> WorkflowStep:
        try:
            token = self._decode(custom_id, TokenAction.CONFIRM)
        except MalformedTokenError as exc:
            return self._malformed(exc)

        logger.info(
            "Role confirm by %s: role %s for channel %s",
            ctx.invoker.user_id,
            token.role_id,
            token.channel_id,
        )
        return WorkflowStep(
            state=WorkflowState.APPLYING,
            acknowledgement=Reply(content="⏳ Granting the role..."),
            continuation=self._detached(
                "confirm", self._apply, ctx, token.channel_id, token.role_id
            ),
        )

    def handle_cancel(self, ctx: WorkflowContext, custom_id: str) -> WorkflowStep:
        try:
            self._decode(custom_id, TokenAction.CANCEL)
        except MalformedTokenError as exc:
            return self._malformed(exc)

        logger.info("Role cancel by %s", ctx.invoker.user_id)
        return WorkflowStep(state=WorkflowState.CANCELLED, acknowledgement=Reply(content=CANCELLED))

    # ------------------------------------------------------------- continuations

    async def _scan_and_offer(
        self, responder: Responder, ctx: WorkflowContext, channel_id: int
    ) -> WorkflowState:
        channel = await self._fetch_channel(channel_id)
        scan, members = await self._gather(ctx, channel_id)
        if not scan.candidates:
            await responder.edit_original(Reply(content=NO_SPEAKERS))
            return WorkflowState.COMPLETED
        if not members:
            await responder.edit_original(Reply(content=EVERYONE_LEFT))
            return WorkflowState.COMPLETED

        roles = await self._gateway.fetch_roles(ctx.guild_id)
        agent = await self._fetch_agent(ctx)
        offered = assignable_roles(roles, agent)
        if not offered:
            await responder.edit_original(Reply(content=NO_ASSIGNABLE_ROLES))
            return WorkflowState.COMPLETED

        await responder.edit_original(
            Reply(
                content=render.render_scan_summary(
                    channel, len(scan.messages), len(scan.candidates), len(members)
                ),
                components=[self._role_menu(channel_id, offered)],
            )
        )
        return WorkflowState.AWAITING_SELECTION

    async def _prepare_confirmation(
        self, responder: Responder, ctx: WorkflowContext, channel_id: int, role_id: int
    ) -> WorkflowState:
        channel, roles, role = await self._load_target(ctx, channel_id, role_id)

        denial = await self._check_eligibility(ctx, roles, role)
        if denial:
            await responder.edit_original(Reply(content=denial))
            return WorkflowState.FAILED

        scan, members = await self._gather(ctx, channel_id)
        if not members:
            await responder.edit_original(Reply(content=EVERYONE_LEFT))
            return WorkflowState.COMPLETED

        await responder.edit_original(
            Reply(
                content=render.render_confirmation(
                    channel, role, [member.user_id for member in members]
                ),
                components=self._confirmation_buttons(channel_id, role_id),
            )
        )
        return WorkflowState.AWAITING_CONFIRMATION

    async def _apply(
        self, responder: Responder, ctx: WorkflowContext, channel_id: int, role_id: int
    ) -> WorkflowState:
        channel, roles, role = await self._load_target(ctx, channel_id, role_id)

        # Hierarchy may have changed while the prompt was open.
        denial = await self._check_eligibility(ctx, roles, role)
        if denial:
            await responder.edit_original(Reply(content=denial))
            return WorkflowState.FAILED

        scan, members = await self._gather(ctx, channel_id)
        if not scan.candidates:
            await responder.edit_original(Reply(content=NO_SPEAKERS))
            return WorkflowState.COMPLETED
        if not members:
            await responder.edit_original(Reply(content=EVERYONE_LEFT))
            return WorkflowState.COMPLETED

        outcome = await self._executor.apply(
            ctx.guild_id,
            members,
            role_id,
            reason=f"Speaker role grant by {ctx.invoker.user_id} for channel {channel_id}",
        )
        await responder.edit_original(Reply(content=render.render_outcome(channel, role, outcome)))
        await self._send_audit(ctx, channel, role, outcome)
        return WorkflowState.COMPLETED

    # ------------------------------------------------------------------- helpers

    def _detached(self, label: str, work, *args) -> Continuation:
        async def run(responder: Responder) -> WorkflowState:
            try:
                return await work(responder, *args)
            except Exception as exc:
                logger.exception("Error handling %s interaction", label)
                await self._report_failure(responder, exc)
                return WorkflowState.FAILED

        return run

    async def _report_failure(self, responder: Responder, exc: BaseException) -> None:
        try:
            await responder.edit_original(Reply(content=f"❌ {user_message_for(exc)}"))
        except Exception:
            logger.exception("Failed to send error message")

    def _malformed(self, exc: MalformedTokenError) -> WorkflowStep:
        logger.warning("Rejected component interaction: %s", exc)
        return WorkflowStep(
            state=WorkflowState.FAILED,
            acknowledgement=Reply(content=f"❌ {exc.user_message}"),
        )

    @staticmethod
    def _decode(custom_id: str, expected: TokenAction) -> WorkflowToken:
        token = decode_token(custom_id)
        if token.action is not expected:
            raise MalformedTokenError(
                f"Expected a {expected.value} token, got {token.action.value}"
            )
        return token

    @staticmethod
    def _selected_role_id(values: Sequence[str]) -> int:
        if len(values) != 1 or not str(values[0]).isdigit():
            raise MalformedTokenError(f"Unexpected select values: {list(values)!r}")
        return int(values[0])

    async def _fetch_channel(self, channel_id: int) -> ChannelRef:
        try:
            return await self._gateway.fetch_channel(channel_id)
        except NotFoundError as exc:
            raise NotFoundError(
                str(exc), user_message="That channel no longer exists.", code=exc.code
            ) from exc

    async def _fetch_agent(self, ctx: WorkflowContext) -> MemberRecord:
        return await self._gateway.fetch_member(ctx.guild_id, self._gateway.agent_id)

    async def _load_target(
        self, ctx: WorkflowContext, channel_id: int, role_id: int
    ) -> Tuple[ChannelRef, List[RoleRecord], RoleRecord]:
        channel = await self._fetch_channel(channel_id)
        roles = await self._gateway.fetch_roles(ctx.guild_id)
        role = next((candidate for candidate in roles if candidate.role_id == role_id), None)
        if role is None:
            raise NotFoundError(
                f"Role {role_id} not found in guild {ctx.guild_id}",
                user_message="That role no longer exists.",
            )
        return channel, roles, role

    async def _gather(
        self, ctx: WorkflowContext, channel_id: int
    ) -> Tuple[HistoryScan, List[MemberRecord]]:
        scan = await self._history.collect(channel_id, self._settings.max_message_fetch)
        if not scan.candidates:
            return scan, []
        members = await self._resolver.resolve(ctx.guild_id, scan.candidates)
        return scan, members

    async def _check_eligibility(
        self, ctx: WorkflowContext, roles: List[RoleRecord], role: RoleRecord
    ) -> Optional[str]:
        if role.is_default or role.managed:
            return DENIED_AGENT
        if not can_manage_role(ctx.invoker, ctx.owner_id, roles, role):
            return DENIED_MANAGE
        agent = await self._fetch_agent(ctx)
        if not can_agent_manage_role(agent, roles, role):
            return DENIED_AGENT
        return None

    async def _send_audit(
        self,
        ctx: WorkflowContext,
        channel: ChannelRef,
        role: RoleRecord,
        outcome: GrantOutcome,
    ) -> None:
        audit_channel_id = self._settings.audit_log_channel_id
        if audit_channel_id is None:
            return
        embed = render.build_audit_embed(ctx.invoker.user_id, channel, role, outcome)
        try:
            await self._gateway.send_embed(audit_channel_id, embed)
            logger.info("Audit log sent to channel %s", audit_channel_id)
        except Exception:
            logger.exception("Failed to send audit log to channel %s", audit_channel_id)

    @staticmethod
    def _role_menu(channel_id: int, roles: Sequence[RoleRecord]) -> RoleSelectMenu:
        return RoleSelectMenu(
            custom_id=encode_token(TokenAction.SELECT, channel_id),
            placeholder="Choose the role to grant",
            options=[
                SelectOption(
                    label=role.name[:100],
                    value=str(role.role_id),
                    description=f"Grant @{role.name}"[:100],
                )
                for role in roles
            ],
        )

    @staticmethod
    def _confirmation_buttons(channel_id: int, role_id: int) -> List[ActionButton]:
        return [
            ActionButton(
                custom_id=encode_token(TokenAction.CONFIRM, channel_id, role_id),
                label="Grant",
                tone=ButtonTone.SUCCESS,
                emoji="✅",
            ),
            ActionButton(
                custom_id=encode_token(TokenAction.CANCEL, channel_id, role_id),
                label="Cancel",
                tone=ButtonTone.SECONDARY,
                emoji="❌",
            ),
        ]
