"""Регистрация и вход"""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from habits_api import audit
from habits_api.auth import PasswordHasher, get_password_hasher, get_token_service
from habits_api.database import get_db
from habits_api.errors import ApiError, get_correlation_id
from habits_api.metrics import track_auth_failure, track_auth_request, track_user_registered
from habits_api.schemas import AuthResponse, LoginRequest, RegisterRequest, UserPublic
from habits_api.services import users
from habits_api.tokens import TokenService

logger = logging.getLogger("habits_api.routers.auth")

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db),  # noqa: B008
    hasher: PasswordHasher = Depends(get_password_hasher),  # noqa: B008
    tokens: TokenService = Depends(get_token_service),  # noqa: B008
):
    """
    Регистрация нового пользователя

    Returns:
        Публичные данные пользователя и JWT токен
    """
    try:
        user, token = users.register(
            db,
            hasher,
            tokens,
            email=payload.email,
            username=payload.username,
            password=payload.password,
            first_name=payload.first_name,
            last_name=payload.last_name,
        )
    except ApiError:
        track_auth_failure("user_exists")
        track_auth_request("register", False)
        raise

    track_user_registered()
    track_auth_request("register", True)
    audit.log_create(
        resource_type="user",
        resource_id=user.id,
        user_id=user.id,
        correlation_id=get_correlation_id(request),
        details={"username": user.username},
    )
    logger.info("New user registered: %s", user.username)

    return AuthResponse(
        message="User created successfully", user=UserPublic.model_validate(user), token=token
    )


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),  # noqa: B008
    hasher: PasswordHasher = Depends(get_password_hasher),  # noqa: B008
    tokens: TokenService = Depends(get_token_service),  # noqa: B008
):
    """Вход пользователя и получение нового JWT токена"""
    try:
        user, token = users.login(db, hasher, tokens, payload.email, payload.password)
    except ApiError:
        track_auth_failure("invalid_credentials")
        track_auth_request("login", False)
        logger.warning("Failed login attempt")
        raise

    track_auth_request("login", True)
    return AuthResponse(message="Login successful", user=UserPublic.model_validate(user), token=token)
