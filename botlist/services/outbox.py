from __future__ import annotations

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from botlist.models.outbox import OutboxEvent


NOTIFICATION_POST = "notification.post"
MEMBER_REMOVE = "member.remove"


class OutboundQueue(Protocol):
    async def post(self, channel_id: str, message: str, *, actor_id: str | None = None) -> None: ...

    async def remove_member(self, user_id: str, *, actor_id: str) -> None: ...


class OutboxQueue:
    """
    Records side effects as pending outbox rows for the worker to deliver.
    Each call runs in its own session so it never joins (or breaks) the
    listing transaction of the request.

    Only ids are stored for the acting user. The worker resolves the display
    name at delivery time: a notification with an actor_id is rendered as
    "{actor} {message}", and a member removal carries "Removed by {actor}".
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _emit(self, *, aggregate_type: str, aggregate_id: str, event_type: str, payload: dict[str, Any]) -> None:
        async with self._session_factory() as db:
            db.add(
                OutboxEvent(
                    aggregate_type=aggregate_type,
                    aggregate_id=aggregate_id,
                    event_type=event_type,
                    payload=payload,
                    status="pending",
                )
            )
            await db.commit()

    async def post(self, channel_id: str, message: str, *, actor_id: str | None = None) -> None:
        await self._emit(
            aggregate_type="channel",
            aggregate_id=channel_id,
            event_type=NOTIFICATION_POST,
            payload={"channel_id": channel_id, "message": message, "actor_id": actor_id},
        )

    async def remove_member(self, user_id: str, *, actor_id: str) -> None:
        await self._emit(
            aggregate_type="member",
            aggregate_id=user_id,
            event_type=MEMBER_REMOVE,
            payload={"user_id": user_id, "actor_id": actor_id},
        )
