"""
Auth API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from . import dependencies, schemas, service
from .security import AuthContext

router = APIRouter(prefix="/auth")


@router.post(
    "/register",
    response_model=schemas.RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(payload: schemas.RegisterRequest) -> schemas.RegisterResponse:
    return await service.register(payload)


@router.post("/login", response_model=schemas.LoginResponse)
async def login(payload: schemas.LoginRequest) -> schemas.LoginResponse:
    return await service.login(payload)


@router.get("/me", response_model=schemas.MeResponse)
async def me(auth: AuthContext = Depends(dependencies.get_current_user)) -> schemas.MeResponse:
    return schemas.MeResponse(identity=auth.identity, role=auth.role)
