"""FilterSet definitions for resource listing."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Resource


class ResourceFilterSet(django_filters.FilterSet):
    kind = django_filters.ChoiceFilter(choices=Resource.Kind.choices)
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")
    establishment = django_filters.UUIDFilter(field_name="chalet__establishment_id")

    class Meta:
        model = Resource
        fields = ["kind", "name", "establishment"]
