from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from typing import Any

import jwt
from jwt import PyJWKClient
from sqlalchemy import select
from starlette.requests import Request

from app.core.config import settings
from app.core.db.models import User
from app.core.db.session import get_session_local
from app.shared.enums import STAFF_ROLES, Env, Role


@dataclass(frozen=True)
class Actor:
    actor_id: str
    role: str

    @property
    def is_staff(self) -> bool:
        return self.role in {r.value for r in STAFF_ROLES}

    @property
    def user_uuid(self) -> uuid.UUID | None:
        try:
            return uuid.UUID(self.actor_id)
        except ValueError:
            return None


def _role_value(raw: Any) -> str:
    if isinstance(raw, Role):
        return raw.value
    return str(raw or "").strip().lower()


def _parse_dev_actor_header(raw: str) -> Actor:
    """
    DEV ONLY: X-DEV-ACTOR header payload as JSON.

    Example:
      {"actor_id":"3f0c...","role":"operations"}
    """
    payload = json.loads(raw)
    return Actor(actor_id=str(payload["actor_id"]), role=_role_value(payload.get("role")))


def _get_bearer_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization")
    if not auth:
        return None
    if not auth.lower().startswith("bearer "):
        return None
    return auth.split(" ", 1)[1].strip()


def _verify_jwt(token: str) -> dict[str, Any]:
    if not settings.oidc_jwks_url:
        raise NotImplementedError("OIDC JWKS URL is not configured")
    jwk_client = PyJWKClient(str(settings.oidc_jwks_url))
    signing_key = jwk_client.get_signing_key_from_jwt(token)

    options = {"verify_aud": bool(settings.oidc_audience), "verify_iss": bool(settings.oidc_issuer)}
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=["RS256"],
        audience=settings.oidc_audience,
        issuer=settings.oidc_issuer,
        options=options,
    )


def _load_user(subject: str, email: str | None) -> User | None:
    session = get_session_local()()
    try:
        user = session.execute(select(User).where(User.external_id == subject)).scalar_one_or_none()
        if user is None and email:
            user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        return user
    finally:
        session.close()


def actor_from_request(request: Request) -> Actor:
    if settings.env == Env.dev:
        raw = request.headers.get(settings.dev_actor_header)
        if raw:
            return _parse_dev_actor_header(raw)

    token = _get_bearer_token(request)
    if not token:
        raise PermissionError("Missing bearer token")

    claims = _verify_jwt(token)
    subject = str(claims.get("sub") or claims.get("oid") or "")
    if not subject:
        raise PermissionError("Token has no subject")
    email = claims.get("email") or claims.get("preferred_username")

    user = _load_user(subject, str(email) if email else None)
    if user is not None:
        if not user.is_active:
            raise PermissionError("User is inactive")
        return Actor(actor_id=str(user.id), role=_role_value(user.role))

    # Unknown users keep the token's role claim; anything unrecognised is denied downstream.
    return Actor(actor_id=subject, role=_role_value(claims.get("role")))
