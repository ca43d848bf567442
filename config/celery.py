import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("outfitter_booking")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

RECONCILE_INTERVAL = float(os.environ.get("CALENDAR_RECONCILE_INTERVAL", "900"))

app.conf.beat_schedule = {
    # Fold owner edits made directly in Google Calendar back into the database
    "reconcile-linked-calendars": {
        "task": "calendars.reconcile_linked_calendars",
        "schedule": RECONCILE_INTERVAL,
        "options": {"expires": RECONCILE_INTERVAL - 10},
    },
}

app.conf.timezone = "America/Montreal"
