from __future__ import annotations

from typing import Iterable

from rest_framework.permissions import BasePermission

from operations.models import User

ADMINS = (User.Roles.ADMIN, User.Roles.SUPER_ADMIN)
ADMINS_AND_ENGINEERS = ADMINS + (User.Roles.ENGINEER,)
ADMINS_AND_FINANCE = ADMINS + (User.Roles.FINANCE,)
ALL_STAFF = ADMINS + (User.Roles.ENGINEER, User.Roles.FINANCE)


class RolePermission(BasePermission):
    message = 'You do not have permission to perform this action'
    allowed_roles: Iterable[str] | None = None

    def has_permission(self, request, view) -> bool:
        roles = getattr(view, 'allowed_roles', None) or self.allowed_roles
        user = getattr(request, 'user', None)
        if not user or not user.is_authenticated:
            return False
        if not roles:
            return True
        if user.is_superuser:
            return True
        has_any = getattr(user, 'has_any_role', None)
        if callable(has_any):
            return has_any(*roles)
        return getattr(user, 'role', None) in roles
