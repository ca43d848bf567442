"""Serializers for bookable resources."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Chalet, Guide, Resource


class ResourceSerializer(serializers.ModelSerializer):
    """Public view of a chalet or guide. Calendar ids stay private."""

    calendar_linked = serializers.BooleanField(source="is_calendar_linked", read_only=True)
    details = serializers.SerializerMethodField()

    class Meta:
        model = Resource
        fields = ["id", "kind", "name", "calendar_linked", "is_active", "details"]
        read_only_fields = fields

    def get_details(self, obj: Resource) -> dict:
        specific = obj.specific
        if isinstance(specific, Chalet):
            return {
                "establishment_id": str(specific.establishment_id),
                "establishment_name": specific.establishment.name,
                "capacity": specific.capacity,
                "nightly_price": str(specific.nightly_price),
                "description": specific.description,
            }
        if isinstance(specific, Guide):
            return {
                "hourly_rate": str(specific.hourly_rate),
                "specialties": specific.specialties,
                "publishes_open_slots": bool(specific.availability_calendar_id),
            }
        return {}
