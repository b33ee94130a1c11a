"""Sequential role grants with per-member failure accounting."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from ..models.records import GrantFailure, GrantOutcome, MemberRecord
from .platform import PlatformGateway

logger = logging.getLogger(__name__)

GRANT_DELAY_SECONDS = 0.1


class RoleGrantExecutor:
    def __init__(self, gateway: PlatformGateway, grant_delay: float = GRANT_DELAY_SECONDS):
        self._gateway = gateway
        self._grant_delay = grant_delay

    async def apply(
        self,
        guild_id: int,
        members: Sequence[MemberRecord],
        role_id: int,
        reason: Optional[str] = None,
    ) -> GrantOutcome:
        """Grant ``role_id`` to every member that doesn't already hold it.

        Members are processed in order and never concurrently. A failed grant is
        recorded and the batch carries on; nothing is retried.
        """

        outcome = GrantOutcome()
        logger.info("Applying role %s to %d members", role_id, len(members))

        for member in members:
            if member.has_role(role_id):
                outcome.skipped += 1
                logger.debug("Member %s already has role %s, skipping", member.user_id, role_id)
                continue

            try:
                await self._gateway.add_role(guild_id, member.user_id, role_id, reason=reason)
            except Exception as exc:
                outcome.failed += 1
                outcome.failures.append(GrantFailure(user_id=member.user_id, reason=str(exc)))
                logger.warning(
                    "Failed to add role %s to %s", role_id, member.user_id, exc_info=True
                )
            else:
                outcome.granted += 1
                logger.debug("Added role %s to %s", role_id, member.user_id)

            await asyncio.sleep(self._grant_delay)

        logger.info(
            "Role application complete: %d granted, %d skipped, %d failed",
            outcome.granted,
            outcome.skipped,
            outcome.failed,
        )
        return outcome
