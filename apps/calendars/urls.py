"""URL routing for calendar connections."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import CalendarConnectionStatusView

urlpatterns = [
    path(
        "connections/<uuid:pk>/status/",
        CalendarConnectionStatusView.as_view(),
        name="calendar-connection-status",
    ),
]
