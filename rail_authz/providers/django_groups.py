"""
Provider reading roles and grants from django.contrib.auth groups.

Each group is a role without parents. A group holding the Django permission
``blog.delete_post`` grants the ``blog.delete_post`` permission.
"""

from ..types import RoleDefinition


def _get_group_model():
    """Lazy import to avoid AppRegistryNotReady during Django setup."""
    from django.contrib.auth.models import Group

    return Group


class DjangoGroupProvider:
    cache_key = "django:auth.group"

    def load_roles(self) -> list[RoleDefinition]:
        group_model = _get_group_model()
        names = group_model.objects.order_by("name").values_list("name", flat=True)
        return [RoleDefinition(name=name) for name in names]

    def load_grants(self) -> dict[str, set[str]]:
        group_model = _get_group_model()
        grants: dict[str, set[str]] = {}
        groups = group_model.objects.prefetch_related("permissions__content_type")
        for group in groups:
            for permission in group.permissions.all():
                key = f"{permission.content_type.app_label}.{permission.codename}"
                grants.setdefault(key, set()).add(group.name)
        return grants

    def __repr__(self) -> str:
        return "DjangoGroupProvider()"


__all__ = ["DjangoGroupProvider"]
