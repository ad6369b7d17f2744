import asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from worker.celery_app import celery
from botlist.core.config import settings
from botlist.services.discord_client import DiscordHttpClient
from worker.deliver import deliver_outbox_event


async def _process_outbox_event(outbox_id: str, lease_id: str) -> None:
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    client = DiscordHttpClient(
        base_url=settings.discord_api_base,
        bot_token=settings.discord_bot_token.get_secret_value(),
        timeout_seconds=settings.http_timeout_seconds,
    )

    try:
        async with Session() as db:
            await deliver_outbox_event(
                db,
                outbox_id,
                lease_id,
                client=client,
                guild_id=settings.list_guild_id,
                max_attempts=settings.outbox_max_attempts,
            )
    finally:
        await client.aclose()
        await engine.dispose()


@celery.task(name="worker.tasks.process_outbox_event", bind=True, max_retries=5)
def process_outbox_event(self, outbox_id: str, lease_id: str) -> None:
    asyncio.run(_process_outbox_event(outbox_id, lease_id))
