"""Celery tasks for calendar reconciliation."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from apps.resources.models import Resource
from shared.domain.errors import BookingError, ReconcileInProgress

logger = logging.getLogger(__name__)


@shared_task(name="calendars.reconcile_resource_calendar")
def reconcile_resource_calendar(resource_id: str) -> dict:
    """
    Run one reconcile pass for a resource.

    Returns:
        dict: the SyncResult, ``{"skipped": True}`` when another pass holds
        the lock, or ``{"error": code, "detail": ...}`` when the pass aborted.
    """
    from apps.bookings.factories import build_reconciler

    try:
        result = build_reconciler().reconcile(resource_id)
    except ReconcileInProgress:
        logger.info(f"Reconcile of {resource_id} already running; skipped")
        return {"resource_id": resource_id, "skipped": True}
    except BookingError as exc:
        logger.warning(f"Reconcile of {resource_id} aborted: {exc.detail}")
        return {"resource_id": resource_id, "error": exc.code, "detail": exc.detail}
    return result.to_dict()


# ============================================================================
# PERIODIC TASKS (Celery Beat)
# ============================================================================

@shared_task(name="calendars.reconcile_linked_calendars")
def reconcile_linked_calendars() -> dict[str, int]:
    """
    Fan out one reconcile task per active resource with a linked calendar.

    Returns:
        dict: {"scheduled": number of tasks enqueued}
    """
    resource_ids = list(
        Resource.objects.filter(is_active=True)
        .exclude(calendar_id="")
        .values_list("pk", flat=True)
    )
    for resource_id in resource_ids:
        reconcile_resource_calendar.delay(str(resource_id))

    logger.info(f"Scheduled calendar reconcile for {len(resource_ids)} resources")
    return {"scheduled": len(resource_ids)}
