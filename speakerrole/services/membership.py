"""Resolve speaker ids to members still present in the guild."""

from __future__ import annotations

import logging
from typing import Iterable, List

from ..errors import NotFoundError
from ..models.records import MemberRecord
from .platform import PlatformGateway

logger = logging.getLogger(__name__)


class MembershipResolver:
    def __init__(self, gateway: PlatformGateway):
        self._gateway = gateway

    async def resolve(self, guild_id: int, candidates: Iterable[int]) -> List[MemberRecord]:
        """Look up each candidate one at a time, dropping anyone who can't be found."""

        user_ids = list(dict.fromkeys(candidates))
        members: List[MemberRecord] = []
        absent = 0

        logger.info("Fetching %d members from guild %s", len(user_ids), guild_id)
        for user_id in user_ids:
            try:
                members.append(await self._gateway.fetch_member(guild_id, user_id))
            except NotFoundError:
                absent += 1
                logger.debug("Member %s not found in guild %s (likely left)", user_id, guild_id)
            except Exception:
                logger.warning(
                    "Failed to fetch member %s from guild %s", user_id, guild_id, exc_info=True
                )

        if absent:
            logger.info("%d speakers are no longer in the server", absent)
        logger.info("Found %d present members out of %d speakers", len(members), len(user_ids))
        return members
