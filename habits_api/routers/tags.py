"""
Endpoints тегов

Чтение тегов публичное; создание, изменение, удаление и просмотр
своих привычек по тегу требуют аутентификации.
"""

import uuid

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from habits_api import audit
from habits_api.auth import TokenIdentity, get_current_identity
from habits_api.database import get_db
from habits_api.errors import ConflictError, get_correlation_id
from habits_api.metrics import track_tag_created
from habits_api.schemas import (
    HabitOut,
    MessageResponse,
    PopularTagsResponse,
    TagCreate,
    TagDetailResponse,
    TagHabitsResponse,
    TagListResponse,
    TagMutationResponse,
    TagOut,
    TagUpdate,
    TagWithUsage,
)
from habits_api.services import tags as service

router = APIRouter(prefix="/api/tags", tags=["Tags"])


def _with_usage(tag, count: int) -> TagWithUsage:
    return TagWithUsage(**TagOut.model_validate(tag).model_dump(), usage_count=count)


@router.get("", response_model=TagListResponse)
def list_tags(db: Session = Depends(get_db)):  # noqa: B008
    return TagListResponse(tags=[TagOut.model_validate(t) for t in service.list_tags(db)])


@router.get("/popular", response_model=PopularTagsResponse)
def popular_tags(db: Session = Depends(get_db)):  # noqa: B008
    """Топ-10 тегов по числу привычек"""
    rows = service.get_popular_tags(db)
    return PopularTagsResponse(tags=[_with_usage(tag, count) for tag, count in rows])


@router.get("/{tag_id}", response_model=TagDetailResponse)
def get_tag(tag_id: uuid.UUID, db: Session = Depends(get_db)):  # noqa: B008
    tag, count = service.get_tag(db, tag_id)
    return TagDetailResponse(tag=_with_usage(tag, count))


@router.post("", response_model=TagMutationResponse, status_code=status.HTTP_201_CREATED)
def create_tag(
    payload: TagCreate,
    request: Request,
    db: Session = Depends(get_db),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    tag = service.create_tag(db, payload.name, payload.color)
    track_tag_created()
    audit.log_create(
        resource_type="tag",
        resource_id=tag.id,
        user_id=identity.id,
        correlation_id=get_correlation_id(request),
        details={"name": tag.name},
    )
    return TagMutationResponse(message="Tag created successfully", tag=TagOut.model_validate(tag))


@router.put("/{tag_id}", response_model=TagMutationResponse)
def update_tag(
    tag_id: uuid.UUID,
    payload: TagUpdate,
    request: Request,
    db: Session = Depends(get_db),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    tag = service.update_tag(db, tag_id, name=payload.name, color=payload.color)
    audit.log_update(
        resource_type="tag",
        resource_id=tag.id,
        user_id=identity.id,
        correlation_id=get_correlation_id(request),
        details={"updated_fields": sorted(payload.model_dump(exclude_none=True))},
    )
    return TagMutationResponse(message="Tag updated successfully", tag=TagOut.model_validate(tag))


@router.delete("/{tag_id}", response_model=MessageResponse)
def delete_tag(
    tag_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    """Удалить тег; тег, привязанный к привычкам, удалить нельзя (409)"""
    try:
        service.delete_tag(db, tag_id)
    except ConflictError as e:
        audit.log_failed_operation(
            action="DELETE",
            resource_type="tag",
            user_id=identity.id,
            correlation_id=get_correlation_id(request),
            error=e.message,
        )
        raise
    audit.log_delete(
        resource_type="tag",
        resource_id=tag_id,
        user_id=identity.id,
        correlation_id=get_correlation_id(request),
    )
    return MessageResponse(message="Tag deleted successfully")


@router.get("/{tag_id}/habits", response_model=TagHabitsResponse)
def tag_habits(
    tag_id: uuid.UUID,
    db: Session = Depends(get_db),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    """Тег и привычки текущего пользователя с этим тегом"""
    tag, habits = service.get_tag_habits(db, tag_id, identity.id)
    return TagHabitsResponse(
        tag=TagOut.model_validate(tag), habits=[HabitOut.model_validate(h) for h in habits]
    )
