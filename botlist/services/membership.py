from __future__ import annotations

import logging
from typing import Protocol

from botlist.services.discord_client import DiscordHttpClient, HttpResult
from botlist.services.errors import UpstreamError


log = logging.getLogger(__name__)


class MembershipAuthority(Protocol):
    async def is_member(self, principal_id: str) -> bool: ...

    async def roles_of(self, principal_id: str) -> set[str]: ...

    async def remove_member(self, principal_id: str, reason: str) -> None: ...


class DiscordMembershipAuthority:
    """
    Answers membership/role questions for the controlling guild.
    Non-members are reported as 404 by Discord and map to "not a member" / no roles.
    """

    def __init__(self, client: DiscordHttpClient, *, guild_id: str):
        self._client = client
        self._guild_id = guild_id

    async def _member(self, principal_id: str) -> dict | None:
        res = await self._client.get_member(self._guild_id, principal_id)
        if res.ok:
            return res.detail
        if res.status_code in (400, 404):
            return None
        raise _upstream("member lookup", res)

    async def is_member(self, principal_id: str) -> bool:
        return await self._member(principal_id) is not None

    async def roles_of(self, principal_id: str) -> set[str]:
        member = await self._member(principal_id)
        if member is None:
            return set()
        return {str(r) for r in member.get("roles") or []}

    async def remove_member(self, principal_id: str, reason: str) -> None:
        res = await self._client.remove_member(self._guild_id, principal_id, reason=reason)
        if res.ok:
            log.info("removed %s from guild %s", principal_id, self._guild_id)
            return
        if res.status_code == 404:
            # already gone
            return
        raise _upstream("member removal", res)


def _upstream(what: str, res: HttpResult) -> UpstreamError:
    return UpstreamError(
        f"{what} failed: {res.error_code} {res.error_message}",
        status_code=res.status_code,
        retryable=res.retryable,
    )
