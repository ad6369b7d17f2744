import json
from urllib.parse import unquote

import httpx
import pytest
from sqlalchemy import select

from botlist.models.outbox import OutboxEvent
from botlist.services.discord_client import DiscordHttpClient
from botlist.services.outbox import MEMBER_REMOVE, NOTIFICATION_POST, OutboxQueue
from botlist.services.outbox_dispatcher import dispatch_outbox
from worker.deliver import deliver_outbox_event


GUILD_ID = "100000000000000001"
CHANNEL_ID = "100000000000000002"
BOT_ID = "234567890123456789"
ADMIN_ID = "678901234567890123"


def discord(handler) -> DiscordHttpClient:
    return DiscordHttpClient(base_url="https://discord.test/api/v10", bot_token="t", transport=httpx.MockTransport(handler))


async def _events(session_factory) -> list[OutboxEvent]:
    async with session_factory() as db:
        return list((await db.execute(select(OutboxEvent).order_by(OutboxEvent.event_type))).scalars().all())


async def _claim(session_factory) -> list[tuple[str, str]]:
    enqueued: list[tuple[str, str]] = []
    async with session_factory() as db:
        await dispatch_outbox(db, enqueue=lambda oid, lease: enqueued.append((oid, lease)))
    return enqueued


@pytest.mark.asyncio
async def test_queue_writes_pending_rows(session_factory):
    queue = OutboxQueue(session_factory)

    await queue.post(CHANNEL_ID, "added HelperBot", actor_id=ADMIN_ID)
    await queue.remove_member(BOT_ID, actor_id=ADMIN_ID)

    events = await _events(session_factory)
    assert [e.event_type for e in events] == [MEMBER_REMOVE, NOTIFICATION_POST]
    assert all(e.status == "pending" and e.attempts == 0 for e in events)
    assert events[0].payload == {"user_id": BOT_ID, "actor_id": ADMIN_ID}
    assert events[1].payload == {"channel_id": CHANNEL_ID, "message": "added HelperBot", "actor_id": ADMIN_ID}


@pytest.mark.asyncio
async def test_dispatch_claims_pending_rows_once(session_factory):
    await OutboxQueue(session_factory).post(CHANNEL_ID, "hello")

    first = await _claim(session_factory)
    second = await _claim(session_factory)

    assert len(first) == 1
    assert second == []

    [ev] = await _events(session_factory)
    assert ev.status == "processing"
    assert ev.attempts == 1
    assert ev.lease_id == first[0][1]


@pytest.mark.asyncio
async def test_dispatch_returns_rows_when_enqueue_fails(session_factory):
    await OutboxQueue(session_factory).post(CHANNEL_ID, "hello")

    def broken(outbox_id, lease_id):
        raise ConnectionError("broker down")

    async with session_factory() as db:
        assert await dispatch_outbox(db, enqueue=broken) == 0

    [ev] = await _events(session_factory)
    assert ev.status == "pending"
    assert ev.lease_id is None
    assert "broker down" in ev.last_error


async def _deliver_all(session_factory, client) -> list[str | None]:
    statuses = []
    for outbox_id, lease_id in await _claim(session_factory):
        async with session_factory() as db:
            statuses.append(await deliver_outbox_event(db, outbox_id, lease_id, client=client, guild_id=GUILD_ID))
    return statuses


@pytest.mark.asyncio
async def test_deliver_resolves_actor_name_posts_and_removes_member(session_factory):
    queue = OutboxQueue(session_factory)
    await queue.post(CHANNEL_ID, f"deleted HelperBot (<@{BOT_ID}>)", actor_id=ADMIN_ID)
    await queue.remove_member(BOT_ID, actor_id=ADMIN_ID)

    calls = []
    sent = {}

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        if request.url.path.endswith(f"/users/{ADMIN_ID}"):
            return httpx.Response(200, json={"id": ADMIN_ID, "username": "admin"})
        if request.method == "DELETE":
            sent["reason"] = unquote(request.headers["X-Audit-Log-Reason"])
            return httpx.Response(204)
        if request.method == "POST":
            sent["content"] = json.loads(request.read())["content"]
        return httpx.Response(200, json={"id": "1"})

    client = discord(handler)
    try:
        assert await _deliver_all(session_factory, client) == ["done", "done"]
    finally:
        await client.aclose()

    assert sent == {"content": f"admin deleted HelperBot (<@{BOT_ID}>)", "reason": "Removed by admin"}
    assert ("GET", f"/api/v10/guilds/{GUILD_ID}/members/{BOT_ID}") in calls
    assert ("DELETE", f"/api/v10/guilds/{GUILD_ID}/members/{BOT_ID}") in calls
    assert all(e.status == "done" and e.lease_id is None for e in await _events(session_factory))


@pytest.mark.asyncio
async def test_removal_is_skipped_when_bot_already_left_guild(session_factory):
    await OutboxQueue(session_factory).remove_member(BOT_ID, actor_id=ADMIN_ID)
    methods = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(404, json={"message": "Unknown Member"})

    client = discord(handler)
    try:
        assert await _deliver_all(session_factory, client) == ["done"]
    finally:
        await client.aclose()

    assert "DELETE" not in methods


@pytest.mark.asyncio
async def test_unresolvable_actor_is_rendered_as_mention(session_factory):
    await OutboxQueue(session_factory).post(CHANNEL_ID, "added HelperBot", actor_id=ADMIN_ID)
    sent = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(502, text="bad gateway")
        sent["content"] = json.loads(request.read())["content"]
        return httpx.Response(200, json={"id": "1"})

    client = discord(handler)
    try:
        assert await _deliver_all(session_factory, client) == ["done"]
    finally:
        await client.aclose()

    assert sent["content"] == f"<@{ADMIN_ID}> added HelperBot"


@pytest.mark.asyncio
async def test_retryable_failure_goes_back_to_pending_until_attempts_run_out(session_factory):
    await OutboxQueue(session_factory).post(CHANNEL_ID, "hello")
    client = discord(lambda r: httpx.Response(503, json={"message": "unavailable"}))

    try:
        [(outbox_id, lease_id)] = await _claim(session_factory)
        async with session_factory() as db:
            assert await deliver_outbox_event(db, outbox_id, lease_id, client=client, guild_id=GUILD_ID, max_attempts=2) == "pending"

        [(outbox_id, lease_id)] = await _claim(session_factory)
        async with session_factory() as db:
            assert await deliver_outbox_event(db, outbox_id, lease_id, client=client, guild_id=GUILD_ID, max_attempts=2) == "failed"
    finally:
        await client.aclose()

    [ev] = await _events(session_factory)
    assert ev.status == "failed"
    assert ev.attempts == 2
    assert "unavailable" in ev.last_error


@pytest.mark.asyncio
async def test_non_retryable_failure_fails_immediately(session_factory):
    await OutboxQueue(session_factory).remove_member(BOT_ID, actor_id=ADMIN_ID)
    client = discord(lambda r: httpx.Response(403, json={"message": "Missing Permissions"}))

    try:
        [(outbox_id, lease_id)] = await _claim(session_factory)
        async with session_factory() as db:
            status = await deliver_outbox_event(db, outbox_id, lease_id, client=client, guild_id=GUILD_ID)
    finally:
        await client.aclose()

    assert status == "failed"


@pytest.mark.asyncio
async def test_deliver_ignores_stale_lease(session_factory):
    await OutboxQueue(session_factory).post(CHANNEL_ID, "hello")
    calls = []
    client = discord(lambda r: calls.append(r) or httpx.Response(200, json={}))

    try:
        [(outbox_id, _lease)] = await _claim(session_factory)
        async with session_factory() as db:
            assert await deliver_outbox_event(db, outbox_id, "someone-else", client=client, guild_id=GUILD_ID) is None
    finally:
        await client.aclose()

    assert calls == []
    [ev] = await _events(session_factory)
    assert ev.status == "processing"
