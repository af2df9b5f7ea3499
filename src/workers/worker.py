from __future__ import annotations

import asyncio
from collections.abc import Sequence

import structlog
from redis import Redis
from rq import Queue, Worker
from src.core.config import get_settings
from src.core.logging import setup_logging
from src.workers import jobs

logger = structlog.get_logger()

REGISTERED_JOBS = {
    "deliver_notification": jobs.deliver_notification_job,
}


async def main() -> None:
    """Bootstrap the notification worker."""
    settings = get_settings()
    setup_logging(settings.log_level)
    redis_connection = Redis.from_url(settings.redis_url)
    queue_names = (settings.notification_queue,)
    logger.info(
        "worker_bootstrap",
        queues=list(queue_names),
        redis_url=settings.redis_url,
        jobs=list(REGISTERED_JOBS.keys()),
    )

    await asyncio.to_thread(_run_worker, redis_connection, queue_names)


def _run_worker(connection: Redis, queue_names: Sequence[str]) -> None:
    queues = [Queue(name, connection=connection) for name in queue_names]
    worker = Worker(queues, connection=connection, name="cohort-core-notifications")
    worker.work(with_scheduler=False)


if __name__ == "__main__":
    asyncio.run(main())
