"""
Auth security helpers: password hashing and access tokens.

Access tokens are self-contained JWTs. Nothing is stored per token, so a
token stays valid until it expires.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

import bcrypt
import jwt

from core import settings

ROLE_ADMIN = "admin"
ROLE_STUDENT = "student"
ROLES = frozenset({ROLE_ADMIN, ROLE_STUDENT})


class AuthSecurityError(RuntimeError):
    pass


@dataclass(frozen=True)
class AuthContext:
    """
    Identity and role decoded from a verified access token.
    """

    identity: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def jwt_secret() -> str:
    # Local default keeps development simple.
    # In production, set JWT_SECRET in environment.
    return settings.env_str("JWT_SECRET", "dev-change-this-secret")


def jwt_algorithm() -> str:
    return settings.env_str("JWT_ALG", "HS256")


def access_token_expire_minutes() -> int:
    return settings.env_int("ACCESS_TOKEN_EXPIRE_MIN", 60)


def now_epoch_s() -> int:
    return int(time.time())


def hash_password(plain_password: str) -> str:
    password = (plain_password or "").encode("utf-8")
    if not password:
        raise AuthSecurityError("Password is empty.")
    return bcrypt.hashpw(password, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    password = (plain_password or "").encode("utf-8")
    hashed = (password_hash or "").encode("utf-8")
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password, hashed)
    except ValueError:
        return False


def build_access_token(*, identity: str, role: str, expires_in_s: int | None = None) -> str:
    if role not in ROLES:
        raise AuthSecurityError(f"Unknown role: {role!r}.")

    issued_at = now_epoch_s()
    lifetime = expires_in_s if expires_in_s is not None else access_token_expire_minutes() * 60

    payload = {
        "sub": identity,
        "role": role,
        "type": "access",
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(payload, jwt_secret(), algorithm=jwt_algorithm())


def decode_access_token(token: str) -> AuthContext:
    raw = (token or "").strip()
    if not raw:
        raise AuthSecurityError("Access token is empty.")

    try:
        payload: dict[str, Any] = jwt.decode(
            raw,
            jwt_secret(),
            algorithms=[jwt_algorithm()],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthSecurityError("Access token has expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthSecurityError("Invalid access token.") from exc

    token_type = str(payload.get("type") or "").strip().lower()
    if token_type != "access":
        raise AuthSecurityError("Token is not an access token.")

    identity = str(payload.get("sub") or "").strip()
    role = str(payload.get("role") or "").strip()
    if not identity or role not in ROLES:
        raise AuthSecurityError("Access token payload is malformed.")

    return AuthContext(identity=identity, role=role)
