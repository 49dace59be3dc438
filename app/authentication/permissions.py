"""
Role-based permission classes for the marketplace API.

- IsAdminRole: User has the ADMIN role (or is a superuser)

Object-level checks (is this user the buyer on this order?) live in the
services, which return FORBIDDEN results instead of raising.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsAdminRole(permissions.BasePermission):
    """Allows access only to users with the admin marketplace role."""

    message = "Forbidden"

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin)

