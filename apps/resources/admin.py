"""Admin registrations for resources."""

from django.contrib import admin  # type: ignore

from .models import Chalet, Establishment, Guide


@admin.register(Establishment)
class EstablishmentAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "owner", "calendar_connection")
    search_fields = ("name", "email")


@admin.register(Chalet)
class ChaletAdmin(admin.ModelAdmin):
    list_display = ("name", "establishment", "capacity", "nightly_price", "calendar_id", "is_active")
    list_filter = ("is_active", "establishment")
    search_fields = ("name",)
    exclude = ("kind",)


@admin.register(Guide)
class GuideAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "hourly_rate", "calendar_id", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "email")
    exclude = ("kind",)
