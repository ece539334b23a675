"""Профиль текущего пользователя"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from habits_api import audit
from habits_api.auth import PasswordHasher, TokenIdentity, get_current_identity, get_password_hasher
from habits_api.database import get_db
from habits_api.errors import get_correlation_id
from habits_api.schemas import ChangePasswordRequest, MessageResponse, UserPublic, UserResponse
from habits_api.services import users

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
def get_me(
    db: Session = Depends(get_db),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    """Информация о текущем пользователе"""
    user = users.get_profile(db, identity.id)
    return UserResponse(user=UserPublic.model_validate(user))


@router.put("/me/password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    request: Request,
    db: Session = Depends(get_db),  # noqa: B008
    hasher: PasswordHasher = Depends(get_password_hasher),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    """Смена пароля; выданные ранее токены остаются действительными"""
    users.change_password(db, hasher, identity.id, payload.current_password, payload.new_password)
    audit.log_update(
        resource_type="user",
        resource_id=identity.id,
        user_id=identity.id,
        correlation_id=get_correlation_id(request),
        details={"updated_fields": ["password"]},
    )
    return MessageResponse(message="Password updated successfully")
