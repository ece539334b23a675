"""
Модуль аутентификации и авторизации для Habit Tracker API
Хеширование паролей и проверка bearer-токена для каждого запроса
"""

import logging
import uuid
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext
from pydantic import BaseModel

from habits_api.errors import AuthorizationError
from habits_api.metrics import track_auth_failure
from habits_api.tokens import InvalidTokenError, TokenService

logger = logging.getLogger("habits_api.auth")

# auto_error=False: отсутствие токена обрабатываем сами (401), невалидный токен - 403
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


class PasswordHasher:
    """Хеширование паролей через passlib (argon2 по умолчанию, bcrypt опционально)"""

    def __init__(self, scheme: str = "argon2", bcrypt_rounds: int = 12):
        options = {}
        if scheme == "bcrypt":
            options["bcrypt__rounds"] = bcrypt_rounds
        self._context = CryptContext(schemes=[scheme], deprecated="auto", **options)

    def hash(self, password: str) -> str:
        """Хеширование пароля"""
        return self._context.hash(password)

    def verify(self, password: str, digest: str) -> bool:
        """Проверка пароля"""
        return self._context.verify(password, digest)


class TokenIdentity(BaseModel):
    """Проверенные claims токена, доступные обработчикам"""

    id: uuid.UUID
    email: str
    username: str


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


async def get_current_identity(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),  # noqa: B008
    tokens: TokenService = Depends(get_token_service),  # noqa: B008
) -> TokenIdentity:
    """
    Dependency для получения личности пользователя из JWT токена

    Пользователь в БД не проверяется: токен считается самодостаточным
    доказательством личности на момент выпуска.

    Raises:
        AuthorizationError: 401 если заголовок отсутствует или не Bearer,
            403 если токен невалиден или истек
    """
    if not token:
        track_auth_failure("missing_token")
        raise AuthorizationError(
            "Access token required",
            code="unauthorized",
            status_code=401,
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        claims = tokens.verify(token)
        identity = TokenIdentity(
            id=claims["id"], email=claims["email"], username=claims["username"]
        )
    except (InvalidTokenError, KeyError, ValueError) as e:
        logger.info("Rejected bearer token on %s: %s", request.url.path, e)
        track_auth_failure("invalid_token")
        raise AuthorizationError("Invalid or expired token") from e

    request.state.user = identity
    return identity
