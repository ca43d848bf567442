"""Admin registrations for calendar connections."""

from django.contrib import admin  # type: ignore

from .models import CalendarConnection


@admin.register(CalendarConnection)
class CalendarConnectionAdmin(admin.ModelAdmin):
    list_display = ("label", "account_email", "user", "token_created_at", "revoked_at")
    search_fields = ("label", "account_email")
    readonly_fields = ("token_created_at", "revoked_at")
    exclude = ("refresh_token",)
