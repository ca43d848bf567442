"""Calendar connection API views."""

from __future__ import annotations

from django.shortcuts import get_object_or_404  # type: ignore
from rest_framework import permissions  # type: ignore
from rest_framework.exceptions import PermissionDenied  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from .models import CalendarConnection


class CalendarConnectionStatusView(APIView):
    """Whether the stored refresh token still yields an access token."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):  # type: ignore
        from apps.bookings.factories import build_token_provider

        connection = get_object_or_404(CalendarConnection, pk=pk)
        user = request.user
        if not (user.is_staff or user.is_superuser or connection.user_id == user.pk):
            raise PermissionDenied("You cannot inspect this calendar connection.")

        result = build_token_provider().check(connection.pk)
        return Response(result.to_dict())
