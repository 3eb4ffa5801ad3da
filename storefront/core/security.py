from __future__ import annotations

import base64
import hmac
import json
import time
from hashlib import sha256
from typing import Literal

from fastapi import Header
from pydantic import BaseModel

from storefront.core.config import get_settings
from storefront.core.errors import AuthenticationError, AuthorizationError


Role = Literal["customer", "admin", "super_admin"]

ADMIN_ROLES = frozenset({"admin", "super_admin"})


class Principal(BaseModel):
    id: str
    role: Role = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def _token_key() -> bytes:
    settings = get_settings()
    return settings.token_signing_secret.encode("utf-8")


def create_access_token(principal_id: str, role: str, ttl_seconds: int | None = None) -> str:
    settings = get_settings()
    now = int(time.time())
    payload = {
        "sub": principal_id,
        "role": role,
        "iat": now,
        "exp": now + (ttl_seconds if ttl_seconds is not None else settings.access_token_ttl_seconds),
    }
    body = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    mac = hmac.new(_token_key(), body, sha256).digest()
    return base64.urlsafe_b64encode(body + mac).decode("ascii")


def verify_access_token(token: str) -> Principal:
    try:
        raw = base64.urlsafe_b64decode(token.encode("ascii"))
    except (ValueError, UnicodeEncodeError) as exc:
        raise AuthenticationError("Invalid token") from exc

    if len(raw) <= 32:
        raise AuthenticationError("Invalid token")

    body, mac = raw[:-32], raw[-32:]
    expected = hmac.new(_token_key(), body, sha256).digest()
    if not hmac.compare_digest(mac, expected):
        raise AuthenticationError("Invalid token")

    payload = json.loads(body.decode("utf-8"))
    if int(time.time()) > int(payload.get("exp", 0)):
        raise AuthenticationError("Token expired", code="TOKEN_EXPIRED")
    return Principal(id=str(payload["sub"]), role=payload.get("role", "customer"))


def _extract_bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Invalid authorization header")
    return token.strip()


def get_principal(authorization: str | None = Header(default=None)) -> Principal:
    settings = get_settings()
    if not settings.auth_enabled:
        return Principal(id=settings.dev_principal_id, role=settings.dev_principal_role)

    token = _extract_bearer(authorization)
    if not token:
        raise AuthenticationError("Access token required", code="TOKEN_REQUIRED")
    return verify_access_token(token)


def require_admin(principal: Principal) -> None:
    if not principal.is_admin:
        raise AuthorizationError("Admin access required", code="ADMIN_REQUIRED")
