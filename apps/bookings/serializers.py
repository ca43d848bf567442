"""Serializers for the booking domain."""

from __future__ import annotations

from datetime import date, datetime

from django.conf import settings  # type: ignore
from django.utils.dateparse import parse_date, parse_datetime  # type: ignore
from rest_framework import serializers  # type: ignore

from apps.resources.models import Resource
from shared.domain.value_objects import as_instant

from .models import Booking


class InstantField(serializers.Field):
    """
    Accepts ``YYYY-MM-DD`` or an ISO-8601 datetime.

    Dates mean midnight in the calendar time zone, so a chalet stay from
    2025-07-01 to 2025-07-05 leaves the checkout day free. Naive datetimes are
    read in the same zone.
    """

    default_error_messages = {
        "invalid": "Enter a date (YYYY-MM-DD) or an ISO-8601 datetime.",
    }

    def to_internal_value(self, data):  # type: ignore
        value = None
        if isinstance(data, (date, datetime)):
            value = data
        elif isinstance(data, str) and data.strip():
            try:
                value = parse_datetime(data.strip()) or parse_date(data.strip())
            except ValueError:
                value = None
        if value is None:
            self.fail("invalid")
        return as_instant(value, settings.CALENDAR_TIME_ZONE)

    def to_representation(self, value):  # type: ignore
        return value.isoformat() if value else None


class BookingSerializer(serializers.ModelSerializer):
    resource_id = serializers.UUIDField(read_only=True)
    resource_name = serializers.ReadOnlyField(source="resource.name")
    start = InstantField(read_only=True)
    end = InstantField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "resource_id",
            "resource_name",
            "start",
            "end",
            "status",
            "source",
            "google_event_id",
            "customer_name",
            "customer_email",
            "customer_phone",
            "trip_type",
            "number_of_people",
            "notes",
            "is_paid",
            "deleted_at",
            "synced_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def to_representation(self, instance):  # type: ignore
        data = super().to_representation(instance)
        if not data.get("google_event_id"):
            data.pop("google_event_id", None)
        return data


class BookingCreateSerializer(serializers.Serializer):
    CREATE_STATUSES = [
        Booking.Status.PENDING,
        Booking.Status.CONFIRMED,
        Booking.Status.BLOCKED,
    ]

    resource = serializers.PrimaryKeyRelatedField(queryset=Resource.objects.filter(is_active=True))
    start = InstantField()
    end = InstantField()
    customer_name = serializers.CharField(max_length=255)
    customer_email = serializers.EmailField(required=False, allow_blank=True, default="")
    customer_phone = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    trip_type = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    number_of_people = serializers.IntegerField(min_value=1, default=1)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    status = serializers.ChoiceField(choices=CREATE_STATUSES, default=Booking.Status.PENDING)


class BookingUpdateSerializer(serializers.Serializer):
    """Partial update; only the fields sent are changed."""

    start = InstantField(required=False)
    end = InstantField(required=False)
    customer_name = serializers.CharField(max_length=255, required=False)
    customer_email = serializers.EmailField(required=False, allow_blank=True)
    customer_phone = serializers.CharField(max_length=50, required=False, allow_blank=True)
    trip_type = serializers.CharField(max_length=100, required=False, allow_blank=True)
    number_of_people = serializers.IntegerField(min_value=1, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    allow_paid_override = serializers.BooleanField(required=False, default=False)


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    allow_paid_override = serializers.BooleanField(required=False, default=False)


class BookingConfirmSerializer(serializers.Serializer):
    paid = serializers.BooleanField(required=False, default=False)


class AvailabilityQuerySerializer(serializers.Serializer):
    start = InstantField()
    end = InstantField()
    exclude_booking = serializers.UUIDField(required=False)
