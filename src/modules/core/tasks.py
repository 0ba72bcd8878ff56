"""Background tasks for the core module."""

import structlog
from celery import shared_task
from django.conf import settings
from django.db import transaction

from modules.core.models import OutboxEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size: int | None = None) -> dict:
    """Deliver pending outbox rows to the in-process event bus.

    Each row is locked while it is relayed so two workers never publish
    the same event.  A handler failure marks only that row as failed; it is
    retried on a later run until ``OUTBOX_MAX_RETRIES`` is reached.
    """
    batch_size = batch_size or settings.OUTBOX_RELAY_BATCH_SIZE
    published = failed = 0

    candidate_ids = list(
        OutboxEvent.objects.relayable(settings.OUTBOX_MAX_RETRIES).values_list(
            "id", flat=True
        )[:batch_size]
    )

    for event_id in candidate_ids:
        with transaction.atomic():
            event = (
                OutboxEvent.objects.select_for_update(skip_locked=True)
                .filter(id=event_id)
                .relayable(settings.OUTBOX_MAX_RETRIES)
                .first()
            )
            if event is None:
                continue
            try:
                delivered = event_bus.publish_serialized(
                    event.event_type, event.payload
                )
            except Exception as exc:
                logger.exception(
                    "outbox.relay_failed",
                    outbox_id=str(event.id),
                    event_type=event.event_type,
                )
                event.mark_as_failed(str(exc))
                failed += 1
                continue
            if not delivered:
                event.mark_as_failed(f"Unknown event type: {event.event_type}")
                failed += 1
                continue
            event.mark_as_published()
            published += 1

    logger.info("outbox.relay_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}
