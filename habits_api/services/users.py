"""
Регистрация, вход и смена пароля
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from habits_api.auth import PasswordHasher
from habits_api.errors import AuthenticationError, ConflictError, NotFoundError
from habits_api.models import User, utcnow
from habits_api.tokens import TokenService

logger = logging.getLogger("habits_api.services.users")

INVALID_CREDENTIALS = "Invalid credentials"


def _issue_token(tokens: TokenService, user: User) -> str:
    return tokens.issue({"id": user.id, "email": user.email, "username": user.username})


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Получить пользователя по email"""
    return db.query(User).filter(User.email == email).first()


def get_user_by_id(db: Session, user_id: uuid.UUID) -> Optional[User]:
    """Получить пользователя по ID"""
    return db.query(User).filter(User.id == user_id).first()


def register(
    db: Session,
    hasher: PasswordHasher,
    tokens: TokenService,
    email: str,
    username: str,
    password: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> tuple[User, str]:
    """
    Регистрация нового пользователя

    Уникальность email и username обеспечивает БД; нарушение
    превращается в ConflictError.

    Returns:
        (созданный пользователь, JWT токен)
    """
    user = User(
        email=email,
        username=username,
        password=hasher.hash(password),
        first_name=first_name,
        last_name=last_name,
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        logger.info("Registration conflict for %s / %s", email, username)
        raise ConflictError("User with this email or username already exists") from e

    # пользователь фиксируется только вместе с успешно выпущенным токеном
    try:
        token = _issue_token(tokens, user)
    except Exception:
        db.rollback()
        raise
    db.commit()
    db.refresh(user)
    return user, token


def login(
    db: Session, hasher: PasswordHasher, tokens: TokenService, email: str, password: str
) -> tuple[User, str]:
    """
    Аутентификация пользователя

    Неизвестный email и неверный пароль дают одинаковую ошибку.

    Returns:
        (пользователь, новый JWT токен)
    """
    user = get_user_by_email(db, email)
    if user is None or not hasher.verify(password, user.password):
        raise AuthenticationError(INVALID_CREDENTIALS)
    return user, _issue_token(tokens, user)


def get_profile(db: Session, user_id: uuid.UUID) -> User:
    user = get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def change_password(
    db: Session,
    hasher: PasswordHasher,
    user_id: uuid.UUID,
    current_password: str,
    new_password: str,
) -> User:
    """Смена пароля; единственная операция, изменяющая хеш"""
    user = get_profile(db, user_id)
    if not hasher.verify(current_password, user.password):
        raise AuthenticationError("Current password is incorrect")

    user.password = hasher.hash(new_password)
    user.updated_at = utcnow()
    db.commit()
    return user
