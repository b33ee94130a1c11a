"""Tests for resolving speakers to present guild members."""

import pytest

from conftest import GUILD_ID, SPEAKER_IDS
from speakerrole.errors import NotFoundError, PlatformError
from speakerrole.services.membership import MembershipResolver


class TestMembershipResolver:
    @pytest.mark.asyncio
    async def test_members_who_left_are_dropped(self, gateway):
        """Of 12 speakers, 3 have left: 9 members come back and nothing is raised."""
        for user_id in SPEAKER_IDS[:3]:
            del gateway.members[user_id]

        members = await MembershipResolver(gateway).resolve(GUILD_ID, set(SPEAKER_IDS))

        assert len(members) == 9
        assert {member.user_id for member in members} == set(SPEAKER_IDS[3:])

    @pytest.mark.asyncio
    async def test_unexpected_error_only_drops_that_id(self, gateway, caplog):
        gateway.member_errors[SPEAKER_IDS[0]] = PlatformError("500 Internal Server Error")
        gateway.member_errors[SPEAKER_IDS[1]] = RuntimeError("boom")

        with caplog.at_level("WARNING"):
            members = await MembershipResolver(gateway).resolve(GUILD_ID, SPEAKER_IDS)

        assert len(members) == 10
        assert gateway.member_calls == SPEAKER_IDS
        assert f"Failed to fetch member {SPEAKER_IDS[0]}" in caplog.text

    @pytest.mark.asyncio
    async def test_unknown_user_is_treated_as_absent(self, gateway):
        gateway.member_errors[SPEAKER_IDS[0]] = NotFoundError("Unknown User", code=10013)
        members = await MembershipResolver(gateway).resolve(GUILD_ID, SPEAKER_IDS[:2])
        assert [member.user_id for member in members] == [SPEAKER_IDS[1]]

    @pytest.mark.asyncio
    async def test_no_duplicates(self, gateway):
        members = await MembershipResolver(gateway).resolve(
            GUILD_ID, [SPEAKER_IDS[0], SPEAKER_IDS[0], SPEAKER_IDS[1]]
        )
        assert len(members) == 2
        assert gateway.member_calls == SPEAKER_IDS[:2]

    @pytest.mark.asyncio
    async def test_everyone_gone_returns_empty(self, gateway):
        gateway.members.clear()
        assert await MembershipResolver(gateway).resolve(GUILD_ID, SPEAKER_IDS) == []
