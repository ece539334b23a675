"""
Конфигурация Habit Tracker API
Все параметры читаются из переменных окружения (или файла .env)
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Настройки приложения"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: Literal["development", "production", "test"] = "development"

    # База данных
    database_url: str = "sqlite:///./habits.db"
    database_pool_size: int = Field(default=10, ge=1)
    database_max_overflow: int = Field(default=5, ge=0)
    database_auto_create: bool = True

    # JWT
    jwt_secret: Optional[str] = Field(default=None, min_length=32)
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = Field(default=60 * 24 * 7, ge=1)
    # Refresh-токены не реализованы, параметр оставлен для совместимости окружений
    refresh_token_secret: Optional[str] = Field(default=None, min_length=32)

    # Хеширование паролей
    password_hash_scheme: Literal["argon2", "bcrypt"] = "argon2"
    bcrypt_rounds: int = Field(default=12, ge=10, le=20)

    # HTTP
    cors_origins: str = ""
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = Field(default=100, ge=1)
    use_rfc7807_errors: bool = True
    metrics_enabled: bool = True

    # Логирование
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_file: Optional[str] = None
    audit_log_enabled: bool = True
    audit_log_path: Optional[str] = None
    audit_log_actions: str = "CREATE,UPDATE,DELETE"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def audit_action_set(self) -> set[str]:
        return {action.strip().upper() for action in self.audit_log_actions.split(",") if action.strip()}


@lru_cache
def get_settings() -> Settings:
    """Настройки процесса (читаются один раз)"""
    return Settings()
