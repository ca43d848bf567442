"""API views for the booking domain."""

from __future__ import annotations

from django.db.models import Q  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import PermissionDenied  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.resources.permissions import IsResourceManager

from .factories import build_booking_service
from .filters import BookingFilterSet
from .models import Booking
from .serializers import (
    BookingCancelSerializer,
    BookingConfirmSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    BookingUpdateSerializer,
)
from .services import Customer

TRUE_VALUES = {"1", "true", "yes", "on"}


def _flag(value) -> bool:
    return str(value).strip().lower() in TRUE_VALUES if value is not None else False


class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Bookings are created by anyone (website customers) and managed by the
    owner of the booked resource. There is no DELETE: bookings are cancelled
    or soft-deleted, never removed.
    """

    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsResourceManager]
    filter_backends = [DjangoFilterBackend]
    filterset_class = BookingFilterSet

    def get_permissions(self):  # type: ignore
        if self.action == "create":
            return [permissions.AllowAny()]
        return super().get_permissions()

    def get_service(self):
        return build_booking_service()

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = Booking.objects.select_related("resource")
        if self.action == "list":
            params = self.request.query_params
            qs = qs.for_listing(
                include_deleted=_flag(params.get("include_deleted")),
                include_historical=_flag(params.get("include_historical")),
            )
        if not user.is_authenticated:
            return qs.none()
        if user.is_staff or user.is_superuser:
            return qs
        return qs.filter(
            Q(resource__chalet__establishment__owner=user) | Q(resource__guide__user=user)
        )

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        resource = data["resource"]

        if data["status"] != Booking.Status.PENDING and not resource.is_managed_by(request.user):
            raise PermissionDenied("Only the owner can create confirmed or blocked bookings.")

        booking = self.get_service().create_booking(
            resource.pk,
            data["start"],
            data["end"],
            Customer(
                name=data["customer_name"],
                email=data["customer_email"],
                phone=data["customer_phone"],
            ),
            data["notes"],
            status=data["status"],
            trip_type=data["trip_type"],
            number_of_people=data["number_of_people"],
        )
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = BookingUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        changes = dict(serializer.validated_data)
        allow_paid_override = changes.pop("allow_paid_override", False)

        booking = self.get_service().update_booking(
            booking.pk, changes, allow_paid_override=allow_paid_override
        )
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = BookingCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.get_service().cancel_booking(
            booking.pk,
            serializer.validated_data["reason"],
            allow_paid_override=serializer.validated_data["allow_paid_override"],
        )
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = BookingConfirmSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.get_service().confirm_booking(booking.pk, paid=serializer.validated_data["paid"])
        return Response(BookingSerializer(booking).data)
