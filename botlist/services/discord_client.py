from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Literal
from urllib.parse import quote

import httpx


HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


@dataclass(frozen=True)
class HttpResult:
    ok: bool
    status_code: int | None
    detail: dict[str, Any]

    error_code: str | None = None
    error_message: str | None = None
    retryable: bool = False

    elapsed_ms: int | None = None


def _is_json_response(resp: httpx.Response) -> bool:
    ct = (resp.headers.get("content-type") or "").lower()
    return "application/json" in ct or ct.endswith("+json")


def _cap_text(s: str, *, max_chars: int) -> str:
    if len(s) <= max_chars:
        return s
    return s[:max_chars] + f"...(truncated, {len(s)} chars)"


def _elapsed_ms(resp: httpx.Response) -> int | None:
    # httpx only sets elapsed once the client closes the stream; pre-read bodies never get it
    try:
        return int(resp.elapsed.total_seconds() * 1000)
    except RuntimeError:
        return None


class DiscordHttpClient:
    """
    Thin wrapper around the Discord REST API used by the identity resolver,
    the membership authority and the outbox worker.

    - Uses one AsyncClient instance (connection pooling).
    - Does NOT retry; the outbox layer re-attempts side effects.
    - Returns structured result with retryable classification.
    """

    def __init__(
        self,
        *,
        base_url: str,
        bot_token: str,
        timeout_seconds: float = 10.0,
        max_response_body_chars: int = 2_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._timeout = httpx.Timeout(timeout_seconds)
        self._max_body = max_response_body_chars
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=self._timeout,
            headers={"Authorization": f"Bot {bot_token}"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request_json(
        self,
        *,
        method: HttpMethod,
        path: str,
        headers: Mapping[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> HttpResult:
        try:
            resp = await self._client.request(
                method=method,
                url=path,
                headers=dict(headers or {}),
                json=json_body,
            )
        except httpx.TimeoutException as e:
            return HttpResult(
                ok=False,
                status_code=None,
                detail={"error": "timeout"},
                error_code="TIMEOUT",
                error_message=str(e),
                retryable=True,
            )
        except httpx.RequestError as e:
            # DNS errors, connection refused, TLS, etc.
            return HttpResult(
                ok=False,
                status_code=None,
                detail={"error": "request_error"},
                error_code="REQUEST_ERROR",
                error_message=str(e),
                retryable=True,
            )

        detail: dict[str, Any]
        if resp.status_code == 204 or not resp.content:
            detail = {}
        elif _is_json_response(resp):
            try:
                parsed = resp.json()
                detail = parsed if isinstance(parsed, dict) else {"data": parsed}
            except ValueError:
                detail = {"raw": _cap_text(resp.text, max_chars=self._max_body)}
        else:
            detail = {"raw": _cap_text(resp.text, max_chars=self._max_body)}

        elapsed_ms = _elapsed_ms(resp)

        if 200 <= resp.status_code < 300:
            return HttpResult(ok=True, status_code=resp.status_code, detail=detail, elapsed_ms=elapsed_ms)

        retryable = resp.status_code in (408, 429, 500, 502, 503, 504)

        return HttpResult(
            ok=False,
            status_code=resp.status_code,
            detail=detail,
            error_code=f"HTTP_{resp.status_code}",
            error_message=str(detail.get("message") or f"HTTP {resp.status_code}"),
            retryable=retryable,
            elapsed_ms=elapsed_ms,
        )

    # endpoints
    async def get_user(self, user_id: str) -> HttpResult:
        return await self.request_json(method="GET", path=f"/users/{quote(user_id, safe='')}")

    async def get_member(self, guild_id: str, user_id: str) -> HttpResult:
        return await self.request_json(
            method="GET",
            path=f"/guilds/{quote(guild_id, safe='')}/members/{quote(user_id, safe='')}",
        )

    async def remove_member(self, guild_id: str, user_id: str, *, reason: str | None = None) -> HttpResult:
        headers = {"X-Audit-Log-Reason": quote(reason)} if reason else None
        return await self.request_json(
            method="DELETE",
            path=f"/guilds/{quote(guild_id, safe='')}/members/{quote(user_id, safe='')}",
            headers=headers,
        )

    async def create_message(self, channel_id: str, content: str) -> HttpResult:
        return await self.request_json(
            method="POST",
            path=f"/channels/{quote(channel_id, safe='')}/messages",
            json_body={"content": content, "allowed_mentions": {"parse": []}},
        )
