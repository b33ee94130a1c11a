"""Channel history scanning and speaker extraction."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, NamedTuple, Set

from ..errors import AccessDeniedError, PlatformError
from ..models.records import MessageKind, MessageRecord
from .platform import PlatformGateway

logger = logging.getLogger(__name__)

# Discord returns at most this many messages per history request.
MESSAGE_PAGE_SIZE = 100
PAGE_DELAY_SECONDS = 0.1


class HistoryScan(NamedTuple):
    messages: List[MessageRecord]
    candidates: Set[int]


def extract_candidates(messages: Iterable[MessageRecord]) -> Set[int]:
    """Unique authors of ordinary, human-written messages."""

    return {
        message.author_id
        for message in messages
        if not message.author_is_bot and message.kind is MessageKind.ORDINARY
    }


class HistoryAggregator:
    """Pages through a channel's history newest-first."""

    def __init__(self, gateway: PlatformGateway, page_delay: float = PAGE_DELAY_SECONDS):
        self._gateway = gateway
        self._page_delay = page_delay

    async def fetch_messages(self, channel_id: int, limit: int) -> List[MessageRecord]:
        """Fetch up to ``limit`` messages.

        Raises ``AccessDeniedError`` when the bot cannot read the channel and
        ``PlatformError`` for anything else; nothing fetched so far is returned
        in either case.
        """

        messages: List[MessageRecord] = []
        before = None
        logger.info("Fetching messages from channel %s (max: %d)", channel_id, limit)

        try:
            while len(messages) < limit:
                request = min(MESSAGE_PAGE_SIZE, limit - len(messages))
                page = await self._gateway.fetch_messages(channel_id, request, before=before)
                messages.extend(page)
                logger.debug("Fetched %d messages, total: %d", len(page), len(messages))

                if len(page) < request:
                    break
                before = page[-1].message_id

                if len(messages) < limit:
                    await asyncio.sleep(self._page_delay)
        except AccessDeniedError as exc:
            raise AccessDeniedError(
                f"Missing access to channel {channel_id}: {exc}",
                user_message="I can't read that channel. Check my permissions there.",
                code=exc.code,
            ) from exc
        except Exception as exc:
            raise PlatformError(
                f"Failed to fetch messages from channel {channel_id}: {exc}",
                user_message="Something went wrong while reading the channel history.",
            ) from exc

        logger.info("Fetched %d messages from channel %s", len(messages), channel_id)
        return messages

    async def collect(self, channel_id: int, limit: int) -> HistoryScan:
        messages = await self.fetch_messages(channel_id, limit)
        candidates = extract_candidates(messages)
        logger.info(
            "Extracted %d unique speakers from %d messages", len(candidates), len(messages)
        )
        return HistoryScan(messages=messages, candidates=candidates)
