import asyncio
import logging
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from botlist.core.config import settings
from botlist.services.outbox_dispatcher import dispatch_outbox
from worker.celery_app import celery


log = logging.getLogger(__name__)

POLL_SECONDS = 2


async def _tick(Session) -> int:
    async with Session() as db:
        n = await dispatch_outbox(
            db,
            batch_size=settings.outbox_batch_size,
            lease_minutes=settings.outbox_lease_minutes,
        )
    if n:
        log.info("tick: enqueued %d outbox events", n)
    return n


async def main():
    celery.connection().ensure_connection(max_retries=3)

    logging.basicConfig(level=settings.log_level)
    log.info("dispatcher: started")

    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    try:
        while True:
            try:
                await _tick(Session)
            except Exception:
                log.exception("dispatcher: tick crashed")
            await asyncio.sleep(POLL_SECONDS)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
