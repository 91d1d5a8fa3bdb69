"""Caller identity as supplied by the upstream session layer.

Token issuance and verification happen before requests reach this service;
the gateway forwards the verified identity in ``X-User-*`` headers.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Header

from .errors import AccessDenied, AuthenticationRequired
from .models import USER_ROLES


@dataclass(frozen=True, slots=True)
class Caller:
    user_id: int
    role: str
    email: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_caller(
    x_user_id: int | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
) -> Caller:
    if x_user_id is None or not x_user_role or not x_user_email:
        raise AuthenticationRequired()
    if x_user_role not in USER_ROLES:
        raise AccessDenied(f"Unknown role {x_user_role!r}")
    return Caller(user_id=x_user_id, role=x_user_role, email=x_user_email)


def require_admin(caller: Caller = Depends(get_caller)) -> Caller:
    if not caller.is_admin:
        raise AccessDenied()
    return caller
