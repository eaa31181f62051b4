"""
Auth dependencies for protected FastAPI routes.

Every protected route depends on `get_current_user`, which runs before the
handler body. Missing/malformed headers and bad tokens all fail closed with 401.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Header, HTTPException, Request, status

from .security import AuthContext, AuthSecurityError, decode_access_token

logger = logging.getLogger(__name__)

AUTH_REQUIRED_DETAIL = "Authentication required. Send 'Authorization: Bearer <token>'."


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _extract_bearer_token(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    if not raw:
        raise _unauthorized(AUTH_REQUIRED_DETAIL)

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        raise _unauthorized(AUTH_REQUIRED_DETAIL)

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise _unauthorized(AUTH_REQUIRED_DETAIL)
    return token


async def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    return _extract_bearer_token(authorization)


async def get_current_user(
    request: Request,
    access_token: str = Depends(get_bearer_token),
) -> AuthContext:
    try:
        auth = decode_access_token(access_token)
    except AuthSecurityError as exc:
        logger.info("token_rejected path=%s reason=%s", request.url.path, exc)
        raise _unauthorized("Invalid or expired token.") from exc

    request.state.auth = auth
    return auth


async def require_admin(auth: AuthContext = Depends(get_current_user)) -> AuthContext:
    if not auth.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required.",
        )
    return auth
