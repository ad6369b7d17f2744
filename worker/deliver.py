from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from botlist.models.outbox import OutboxEvent
from botlist.services.discord_client import DiscordHttpClient
from botlist.services.errors import UpstreamError
from botlist.services.identity import DiscordIdentityResolver
from botlist.services.membership import DiscordMembershipAuthority
from botlist.services.outbox import MEMBER_REMOVE, NOTIFICATION_POST


log = logging.getLogger(__name__)

MAX_OUTBOX_ATTEMPTS = 5


class DeliveryFailed(Exception):
    def __init__(self, message: str, *, retryable: bool):
        super().__init__(message)
        self.retryable = retryable


async def display_name(client: DiscordHttpClient, user_id: str) -> str:
    """Username of the acting user, or a mention when it cannot be looked up."""
    try:
        account = await DiscordIdentityResolver(client).fetch_account(user_id)
    except UpstreamError as e:
        log.warning("could not resolve %s for audit text: %s", user_id, e)
        account = None
    return account.username if account and account.username else f"<@{user_id}>"


async def _perform(ev: OutboxEvent, *, client: DiscordHttpClient, guild_id: str) -> None:
    payload = ev.payload
    actor_id = payload.get("actor_id")

    if ev.event_type == NOTIFICATION_POST:
        message = payload["message"]
        if actor_id:
            message = f"{await display_name(client, actor_id)} {message}"
        res = await client.create_message(payload["channel_id"], message)
        if not res.ok:
            raise DeliveryFailed(f"{res.error_code}: {res.error_message}", retryable=res.retryable)
        return

    if ev.event_type == MEMBER_REMOVE:
        membership = DiscordMembershipAuthority(client, guild_id=guild_id)
        user_id = payload["user_id"]
        try:
            if not await membership.is_member(user_id):
                log.info("outbox %s: %s is not in guild %s, nothing to remove", ev.id, user_id, guild_id)
                return
            reason = f"Removed by {await display_name(client, actor_id)}" if actor_id else ""
            await membership.remove_member(user_id, reason)
        except UpstreamError as e:
            raise DeliveryFailed(str(e), retryable=e.retryable)
        return

    raise DeliveryFailed(f"unknown event type {ev.event_type!r}", retryable=False)


async def deliver_outbox_event(
    db: AsyncSession,
    outbox_id: str,
    lease_id: str,
    *,
    client: DiscordHttpClient,
    guild_id: str,
    max_attempts: int = MAX_OUTBOX_ATTEMPTS,
) -> str | None:
    """
    Perform one claimed outbox side effect and record the outcome.
    Returns the new status, or None when the row is gone or the lease was lost.
    """
    ev = (await db.execute(select(OutboxEvent).where(OutboxEvent.id == outbox_id))).scalar_one_or_none()
    if not ev:
        return None

    # Lease ownership check
    if ev.lease_id != lease_id or ev.status != "processing":
        # Another dispatcher reclaimed it or it's already done.
        return None

    try:
        await _perform(ev, client=client, guild_id=guild_id)
    except DeliveryFailed as e:
        status = "pending" if e.retryable and ev.attempts < max_attempts else "failed"
        log.warning("outbox %s (%s) failed, now %s: %s", outbox_id, ev.event_type, status, e)
        values = {"status": status, "last_error": str(e)}
    else:
        status = "done"
        values = {"status": status, "processed_at": datetime.now(timezone.utc)}

    # Mark only if lease still matches
    result = await db.execute(
        update(OutboxEvent)
        .where(OutboxEvent.id == outbox_id, OutboxEvent.lease_id == lease_id)
        .values(lease_id=None, lease_expires_at=None, processing_started_at=None, **values)
    )
    if result.rowcount == 0:
        # lease lost; do not overwrite
        await db.rollback()
        return None

    await db.commit()
    return status
