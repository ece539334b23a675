"""
Сервис JWT-токенов
Выпуск и проверка подписанных bearer-токенов с ограниченным сроком жизни
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt

MIN_SECRET_LENGTH = 32
DEFAULT_TOKEN_TTL = timedelta(days=7)


class ConfigurationError(Exception):
    """Сервис токенов не настроен (нет секрета или он слишком короткий)"""


class InvalidTokenError(Exception):
    """Токен поврежден, подписан другим ключом или истек"""


class TokenService:
    """
    Выпуск и проверка JWT (HS256 по умолчанию)

    Токен самодостаточен: при проверке пользователь в БД не ищется,
    поэтому удаление или переименование пользователя не отзывает
    уже выданные токены до истечения их срока.
    """

    def __init__(
        self,
        secret: Optional[str],
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        algorithm: str = "HS256",
    ):
        self._secret = secret
        self.ttl = ttl
        self.algorithm = algorithm

    def _require_secret(self) -> str:
        if not self._secret:
            raise ConfigurationError("JWT_SECRET is not configured")
        if len(self._secret) < MIN_SECRET_LENGTH:
            raise ConfigurationError(f"JWT_SECRET must be at least {MIN_SECRET_LENGTH} characters")
        return self._secret

    def issue(self, claims: dict[str, Any], now: Optional[datetime] = None) -> str:
        """
        Создание JWT токена

        Args:
            claims: Данные пользователя (id, email, username)
            now: Момент выпуска (по умолчанию текущее время UTC)

        Returns:
            Компактный JWT

        Raises:
            ConfigurationError: Если секрет не настроен
        """
        secret = self._require_secret()
        issued_at = now or datetime.now(timezone.utc)

        to_encode = {
            "id": str(claims["id"]),
            "email": claims["email"],
            "username": claims["username"],
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ttl).timestamp()),
        }
        return jwt.encode(to_encode, secret, algorithm=self.algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        """
        Проверка подписи и срока действия токена

        Returns:
            Claims токена без изменений

        Raises:
            InvalidTokenError: Подпись не совпадает, токен поврежден или истек
        """
        secret = self._require_secret()
        try:
            return jwt.decode(token, secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise InvalidTokenError("Token has expired") from e
        except JWTError as e:
            raise InvalidTokenError("Token is invalid") from e
