"""Resource API views."""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.factories import build_booking_service, build_reconciler, build_slot_finder
from apps.bookings.serializers import AvailabilityQuerySerializer

from .filters import ResourceFilterSet
from .models import Resource
from .permissions import IsResourceManager
from .serializers import ResourceSerializer


class ResourceViewSet(viewsets.ReadOnlyModelViewSet):
    """Browse chalets and guides, check availability, trigger reconciliation."""

    queryset = Resource.objects.filter(is_active=True).select_related(
        "chalet", "chalet__establishment", "guide"
    )
    serializer_class = ResourceSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend]
    filterset_class = ResourceFilterSet

    @action(detail=True, methods=["get"])
    def availability(self, request, pk=None):  # type: ignore
        resource: Resource = self.get_object()  # type: ignore
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        result = build_booking_service().check_availability(
            resource.pk,
            query.validated_data["start"],
            query.validated_data["end"],
            exclude_booking_id=query.validated_data.get("exclude_booking"),
        )
        return Response({"resource_id": str(resource.pk), **result.to_dict()})

    @action(detail=True, methods=["get"], url_path="open-slots")
    def open_slots(self, request, pk=None):  # type: ignore
        resource: Resource = self.get_object()  # type: ignore
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        slots = build_slot_finder().find(
            resource.pk, query.validated_data["start"], query.validated_data["end"]
        )
        return Response({"resource_id": str(resource.pk), "slots": [slot.to_dict() for slot in slots]})

    @action(
        detail=True,
        methods=["post"],
        permission_classes=[permissions.IsAuthenticated, IsResourceManager],
    )
    def reconcile(self, request, pk=None):  # type: ignore
        resource: Resource = self.get_object()  # type: ignore
        result = build_reconciler().reconcile(resource.pk)
        return Response(result.to_dict())
