"""Role hierarchy and permission checks.

All functions here are pure: they take the guild's role list as fetched for the
current interaction and never call the platform.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

import discord

from ..models.records import MemberRecord, RoleRecord

logger = logging.getLogger(__name__)

# Discord's cap on options in a single select menu.
SELECT_MENU_MAX_OPTIONS = 25


def _index(roles: Iterable[RoleRecord]) -> Dict[int, RoleRecord]:
    return {role.role_id: role for role in roles}


def _default_role(roles: Iterable[RoleRecord]) -> Optional[RoleRecord]:
    return next((role for role in roles if role.is_default), None)


def highest_position(member: MemberRecord, roles: Sequence[RoleRecord]) -> int:
    """Position of the member's most senior role (0 when only @everyone is held)."""

    by_id = _index(roles)
    positions = [by_id[role_id].position for role_id in member.role_ids if role_id in by_id]
    return max(positions, default=0)


def effective_permissions(member: MemberRecord, roles: Sequence[RoleRecord]) -> discord.Permissions:
    """Union of the member's role permissions plus the @everyone baseline."""

    by_id = _index(roles)
    value = 0
    default = _default_role(roles)
    if default is not None:
        value |= default.permissions
    for role_id in member.role_ids:
        role = by_id.get(role_id)
        if role is not None:
            value |= role.permissions

    permissions = discord.Permissions(value)
    if permissions.administrator:
        return discord.Permissions.all()
    return permissions


def can_invoke(
    member: MemberRecord, owner_id: Optional[int], gating_role_ids: Sequence[int]
) -> bool:
    """Gate for starting the workflow at all."""

    if owner_id is not None and member.user_id == owner_id:
        logger.debug("User %s is the guild owner, allowing access", member.user_id)
        return True
    if not gating_role_ids:
        return True

    allowed = any(member.has_role(role_id) for role_id in gating_role_ids)
    if not allowed:
        logger.info("User %s holds none of the required roles, denying access", member.user_id)
    return allowed


def can_manage_role(
    member: MemberRecord,
    owner_id: Optional[int],
    roles: Sequence[RoleRecord],
    target: RoleRecord,
) -> bool:
    """Whether a human invoker may hand out ``target``."""

    if owner_id is not None and member.user_id == owner_id:
        return True

    if not effective_permissions(member, roles).manage_roles:
        logger.info(
            "User %s lacks Manage Roles, cannot grant role %s", member.user_id, target.name
        )
        return False

    top = highest_position(member, roles)
    if top <= target.position:
        logger.info(
            "User %s cannot manage role %s (user highest: %d, target: %d)",
            member.user_id,
            target.name,
            top,
            target.position,
        )
        return False
    return True


def can_agent_manage_role(
    agent: MemberRecord, roles: Sequence[RoleRecord], target: RoleRecord
) -> bool:
    """Whether the bot's own hierarchy lets it grant ``target``."""

    top = highest_position(agent, roles)
    if top <= target.position:
        logger.warning(
            "Bot cannot manage role %s (bot highest: %d, target: %d)",
            target.name,
            top,
            target.position,
        )
        return False
    return True


def assignable_roles(
    roles: Sequence[RoleRecord],
    agent: MemberRecord,
    limit: int = SELECT_MENU_MAX_OPTIONS,
) -> List[RoleRecord]:
    """Roles that can be offered in the selection menu, most senior first."""

    ceiling = highest_position(agent, roles)
    candidates = sorted(
        (
            role
            for role in roles
            if not role.is_default and not role.managed and role.position < ceiling
        ),
        key=lambda role: role.position,
        reverse=True,
    )
    if len(candidates) > limit:
        logger.warning(
            "Guild has %d assignable roles, only offering the first %d", len(candidates), limit
        )
        candidates = candidates[:limit]
    return candidates
