"""
Auth business logic.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import HTTPException, status

from core import db, settings

from . import repository, schemas, security

logger = logging.getLogger(__name__)


def _admin_response(user_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=int(user_row["id"]),
        identity=str(user_row["username"]),
        role=str(user_row["role"]),
    )


def _student_response(student_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=int(student_row["id"]),
        identity=str(student_row["reg_no"]),
        role=security.ROLE_STUDENT,
        name=str(student_row["name"]),
    )


def _departmental_token_matches(candidate: str) -> bool:
    expected = settings.departmental_id_token().encode("utf-8")
    return hmac.compare_digest(expected, (candidate or "").encode("utf-8"))


def _conflict(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


def _invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials.",
    )


async def register_admin(payload: schemas.AdminRegisterRequest) -> schemas.RegisterResponse:
    # Checked before any lookup so a wrong token never creates or probes users.
    if not _departmental_token_matches(payload.departmental_id_token):
        logger.info("register_rejected reason=departmental_token username=%s", payload.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid departmental ID token.",
        )

    existing = await repository.get_user_by_username(payload.username)
    if existing is not None:
        raise _conflict("Username is already registered.")

    password_hash = security.hash_password(payload.password)
    try:
        user_row = await repository.create_user(
            username=payload.username,
            password_hash=password_hash,
            role=security.ROLE_ADMIN,
        )
    except db.UniqueViolation as exc:
        raise _conflict("Username is already registered.") from exc

    logger.info("user_registered role=admin username=%s", user_row["username"])
    return schemas.RegisterResponse(
        message="Admin registered successfully.",
        user=_admin_response(user_row),
    )


async def register_student(payload: schemas.StudentRegisterRequest) -> schemas.RegisterResponse:
    existing = await repository.get_student_by_reg_no(payload.reg_no)
    if existing is not None:
        raise _conflict("Registration number is already registered.")

    try:
        student_row = await repository.create_student(
            name=payload.name,
            reg_no=payload.reg_no,
            major=payload.major or None,
            contact=payload.contact or None,
        )
    except db.UniqueViolation as exc:
        raise _conflict("Registration number is already registered.") from exc

    logger.info("user_registered role=student reg_no=%s", student_row["reg_no"])
    return schemas.RegisterResponse(
        message="Student registered successfully.",
        user=_student_response(student_row),
    )


async def register(
    payload: schemas.AdminRegisterRequest | schemas.StudentRegisterRequest,
) -> schemas.RegisterResponse:
    if isinstance(payload, schemas.AdminRegisterRequest):
        return await register_admin(payload)
    return await register_student(payload)


def _login_response(user: schemas.UserResponse) -> schemas.LoginResponse:
    token = security.build_access_token(identity=user.identity, role=user.role)
    return schemas.LoginResponse(
        token=token,
        expires_in=security.access_token_expire_minutes() * 60,
        user=user,
    )


async def login_admin(payload: schemas.AdminLoginRequest) -> schemas.LoginResponse:
    user_row = await repository.get_user_by_username(payload.username)
    if user_row is None:
        logger.info("login_failed role=admin reason=unknown_user")
        raise _invalid_credentials()

    is_valid = security.verify_password(payload.password, str(user_row.get("password_hash") or ""))
    if not is_valid or str(user_row.get("role")) != security.ROLE_ADMIN:
        logger.info("login_failed role=admin reason=bad_password username=%s", user_row["username"])
        raise _invalid_credentials()

    logger.info("login_succeeded role=admin username=%s", user_row["username"])
    return _login_response(_admin_response(user_row))


async def login_student(payload: schemas.StudentLoginRequest) -> schemas.LoginResponse:
    student_row = await repository.get_student_by_reg_no(payload.reg_no)
    if student_row is None:
        logger.info("login_failed role=student reason=unknown_reg_no")
        raise _invalid_credentials()

    if str(student_row["name"]).strip().casefold() != payload.name.casefold():
        logger.info("login_failed role=student reason=name_mismatch reg_no=%s", payload.reg_no)
        raise _invalid_credentials()

    logger.info("login_succeeded role=student reg_no=%s", student_row["reg_no"])
    return _login_response(_student_response(student_row))


async def login(
    payload: schemas.AdminLoginRequest | schemas.StudentLoginRequest,
) -> schemas.LoginResponse:
    if isinstance(payload, schemas.AdminLoginRequest):
        return await login_admin(payload)
    return await login_student(payload)
