from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from botlist.services.discord_client import DiscordHttpClient
from botlist.services.errors import UpstreamError


@dataclass(frozen=True)
class Account:
    id: str
    username: str
    discriminator: str | None
    avatar: str | None
    is_service_account: bool


class IdentityResolver(Protocol):
    async def fetch_account(self, account_id: str) -> Account | None: ...


class DiscordIdentityResolver:
    """Resolves Discord user ids to profile snapshots via GET /users/{id}."""

    def __init__(self, client: DiscordHttpClient):
        self._client = client

    async def fetch_account(self, account_id: str) -> Account | None:
        res = await self._client.get_user(account_id)
        if res.ok:
            d = res.detail
            return Account(
                id=str(d.get("id") or account_id),
                username=str(d.get("username") or ""),
                discriminator=d.get("discriminator"),
                avatar=d.get("avatar"),
                is_service_account=bool(d.get("bot", False)),
            )
        # 400 is what Discord answers for malformed snowflakes
        if res.status_code in (400, 404):
            return None
        raise UpstreamError(
            f"user lookup failed: {res.error_code} {res.error_message}",
            status_code=res.status_code,
            retryable=res.retryable,
        )
