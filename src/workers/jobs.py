"""RQ job entry points."""

from __future__ import annotations

from typing import Any

import structlog

logger = structlog.get_logger()

REQUIRED_FIELDS = ("enrollment_id", "participant_id", "cohort_id", "old_status", "new_status")


def deliver_notification_job(payload: dict[str, Any]) -> dict[str, Any]:
    """Hand a lifecycle notification to the delivery channel.

    The payload is the dict built by ``LifecycleNotification.to_payload``. A
    malformed payload is logged and reported as failed instead of raising, so
    RQ does not retry a message that can never succeed.
    """
    missing = [name for name in REQUIRED_FIELDS if not payload.get(name)]
    if missing:
        logger.error("notification_payload_invalid", missing=missing)
        return {"status": "failed", "missing": missing}

    logger.info(
        "notification_delivered",
        enrollment_id=payload["enrollment_id"],
        participant_id=payload["participant_id"],
        cohort_id=payload["cohort_id"],
        transition=f"{payload['old_status']}->{payload['new_status']}",
        trigger=payload.get("trigger"),
        occurred_at=payload.get("occurred_at"),
    )
    return {"status": "delivered", "enrollment_id": payload["enrollment_id"]}
