"""Permissions shared by the resource and booking APIs."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore


class IsResourceManager(permissions.BasePermission):
    """Staff, the establishment owner of a chalet, or the guide themselves."""

    message = "Only the owner of this resource can do that."

    def has_object_permission(self, request, view, obj):  # type: ignore
        resource = getattr(obj, "resource", obj)
        return resource.is_managed_by(request.user)
