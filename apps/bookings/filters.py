"""FilterSet definitions for booking listing."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Booking


class BookingFilterSet(django_filters.FilterSet):
    resource = django_filters.UUIDFilter(field_name="resource_id")
    status = django_filters.ChoiceFilter(choices=Booking.Status.choices)
    source = django_filters.ChoiceFilter(choices=Booking.Source.choices)
    is_paid = django_filters.BooleanFilter()
    start_after = django_filters.IsoDateTimeFilter(field_name="end", lookup_expr="gt")
    end_before = django_filters.IsoDateTimeFilter(field_name="start", lookup_expr="lt")

    class Meta:
        model = Booking
        fields = ["resource", "status", "source", "is_paid"]
