# apps/rbac/permissions.py
from typing import Iterable, Set

from rest_framework.permissions import BasePermission

STAFF_ROLES = ("staff", "admin")


def _norm(s: str) -> str:
    """I normalize role names for reliable comparisons."""
    return (s or "").strip().lower()


def user_roles(user) -> Set[str]:
    """
    Return the normalized role names of a user.
    Roles are Django auth groups ("patient", "dentist", "staff", "admin").
    """
    if not getattr(user, "is_authenticated", False):
        return set()
    return {_norm(name) for name in user.groups.values_list("name", flat=True)}


def has_role(user, *roles: str, allow_superuser: bool = True) -> bool:
    """Does the user have ANY of the given roles? 'admin' passes everything."""
    if not getattr(user, "is_authenticated", False):
        return False
    if allow_superuser and getattr(user, "is_superuser", False):
        return True

    required = {_norm(r) for r in roles if isinstance(r, str) and r.strip()}
    if not required:
        return True

    found = user_roles(user)
    if "admin" in found:
        return True
    return bool(found & required)


def is_clinic_staff(user) -> bool:
    return has_role(user, *STAFF_ROLES)


class HasRole(BasePermission):
    """
    I gate an endpoint by role names. Subclasses (or the roles_required()
    factory below) set `required_roles`.

    Behavior:
    - Superusers always pass (configurable via allow_superuser).
    - If the user has the 'admin' role, they pass everything.
    - Role matching is case-insensitive.
    """

    message = "You do not have permission to perform this action."
    required_roles: Set[str] = set()
    allow_superuser: bool = True

    def has_permission(self, request, view) -> bool:
        # No roles configured → allow (useful for composing with other perms).
        if not self.required_roles:
            return True

        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False

        return has_role(user, *self.required_roles, allow_superuser=self.allow_superuser)

    def has_object_permission(self, request, view, obj) -> bool:
        return self.has_permission(request, view)


def roles_required(*roles: Iterable[str]):
    """
    I return a concrete DRF permission class that requires ANY of the given roles.

    Usage:
        permission_classes = [IsAuthenticated, roles_required("staff", "admin")]
    """
    required = {_norm(r) for r in roles if isinstance(r, str) and r.strip()}

    class RolesRequired(HasRole):
        required_roles = required

    return RolesRequired
