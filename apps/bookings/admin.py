"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "resource",
        "customer_name",
        "status",
        "source",
        "start",
        "end",
        "is_paid",
        "synced_at",
    )
    list_filter = ("status", "source", "is_paid", "resource__kind")
    search_fields = ("customer_name", "customer_email", "google_event_id")
    readonly_fields = ("google_event_id", "deleted_at", "synced_at", "created_at", "updated_at")
    date_hierarchy = "start"

    def has_delete_permission(self, request, obj=None):  # type: ignore
        # Bookings are soft-deleted only
        return False
