"""Lifecycle notification payloads and the sinks that hand them off.

The core only builds the payload. Delivery happens in the RQ worker, and a
failed enqueue never undoes the committed change that produced it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Protocol

import structlog
from redis import Redis
from redis.exceptions import RedisError
from rq import Queue
from src.core.config import Settings

logger = structlog.get_logger()

DELIVERY_JOB = "src.workers.jobs.deliver_notification_job"


@dataclass(frozen=True, slots=True)
class LifecycleNotification:
    enrollment_id: str
    participant_id: str
    cohort_id: str
    old_status: str
    new_status: str
    trigger: str
    occurred_at: datetime

    def to_payload(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["occurred_at"] = self.occurred_at.isoformat()
        return payload


class NotificationSink(Protocol):
    def publish(self, notification: LifecycleNotification) -> None: ...


class NullNotificationSink:
    """Drops notifications; used when delivery is disabled."""

    def publish(self, notification: LifecycleNotification) -> None:
        logger.debug("notification_dropped", enrollment_id=notification.enrollment_id)


class RQNotificationSink:
    def __init__(self, queue: Queue) -> None:
        self._queue = queue

    @classmethod
    def from_settings(cls, settings: Settings) -> RQNotificationSink:
        connection = Redis.from_url(settings.redis_url)
        return cls(Queue(settings.notification_queue, connection=connection))

    def publish(self, notification: LifecycleNotification) -> None:
        try:
            job = self._queue.enqueue(DELIVERY_JOB, notification.to_payload())
        except RedisError as exc:
            logger.warning(
                "notification_enqueue_failed",
                enrollment_id=notification.enrollment_id,
                new_status=notification.new_status,
                error=str(exc),
            )
            return
        logger.info(
            "notification_enqueued",
            job_id=job.id,
            queue=self._queue.name,
            enrollment_id=notification.enrollment_id,
        )


def build_notification_sink(settings: Settings) -> NotificationSink:
    if not settings.notifications_enabled:
        return NullNotificationSink()
    return RQNotificationSink.from_settings(settings)
