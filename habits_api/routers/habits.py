"""
Endpoints привычек: CRUD, отметка выполнения, теги привычки
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from habits_api import audit
from habits_api.auth import TokenIdentity, get_current_identity
from habits_api.database import get_db
from habits_api.errors import get_correlation_id
from habits_api.metrics import track_habit_completed, track_habit_created
from habits_api.schemas import (
    CompleteHabitRequest,
    EntryOut,
    EntryResponse,
    HabitCreate,
    HabitDetail,
    HabitListResponse,
    HabitMutationResponse,
    HabitOut,
    HabitResponse,
    HabitTagsRequest,
    HabitUpdate,
    MessageResponse,
)
from habits_api.services import habits as service

logger = logging.getLogger("habits_api.routers.habits")

router = APIRouter(prefix="/api/habits", tags=["Habits"])


@router.get("", response_model=HabitListResponse)
def list_habits(
    db: Session = Depends(get_db),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    """Список привычек пользователя с тегами, новые первыми"""
    habits = service.list_habits(db, identity.id)
    return HabitListResponse(habits=[HabitOut.model_validate(h) for h in habits])


@router.post("", response_model=HabitMutationResponse, status_code=status.HTTP_201_CREATED)
def create_habit(
    payload: HabitCreate,
    request: Request,
    db: Session = Depends(get_db),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    """
    Создать новую привычку

    Привычка и ее связи с тегами сохраняются атомарно.
    """
    habit = service.create_habit(
        db,
        identity.id,
        name=payload.name,
        frequency=payload.frequency.value,
        description=payload.description,
        target_count=payload.target_count,
        tag_ids=payload.tag_ids,
    )

    track_habit_created()
    audit.log_create(
        resource_type="habit",
        resource_id=habit.id,
        user_id=identity.id,
        correlation_id=get_correlation_id(request),
        details={"name": habit.name, "frequency": habit.frequency, "tag_ids": payload.tag_ids},
    )

    return HabitMutationResponse(
        message="Habit created successfully", habit=HabitOut.model_validate(habit)
    )


@router.get("/tag/{tag_id}", response_model=HabitListResponse)
def list_habits_by_tag(
    tag_id: uuid.UUID,
    db: Session = Depends(get_db),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    """Привычки пользователя с указанным тегом"""
    habits = service.list_habits_by_tag(db, tag_id, identity.id)
    return HabitListResponse(habits=[HabitOut.model_validate(h) for h in habits])


@router.get("/{habit_id}", response_model=HabitResponse)
def get_habit(
    habit_id: uuid.UUID,
    db: Session = Depends(get_db),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    """Привычка с тегами и последними записями выполнения"""
    habit, entries = service.get_habit(db, identity.id, habit_id)
    detail = HabitDetail(
        **HabitOut.model_validate(habit).model_dump(),
        entries=[EntryOut.model_validate(entry) for entry in entries],
    )
    return HabitResponse(habit=detail)


@router.put("/{habit_id}", response_model=HabitMutationResponse)
def update_habit(
    habit_id: uuid.UUID,
    payload: HabitUpdate,
    request: Request,
    db: Session = Depends(get_db),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    """
    Обновить привычку

    tagIds заменяет набор тегов целиком; если поле не передано, теги не меняются.
    """
    fields = payload.changed_fields()
    habit = service.update_habit(db, identity.id, habit_id, fields, tag_ids=payload.tag_ids)

    updated_fields = sorted(fields)
    if payload.tag_ids is not None:
        updated_fields.append("tag_ids")
    audit.log_update(
        resource_type="habit",
        resource_id=habit.id,
        user_id=identity.id,
        correlation_id=get_correlation_id(request),
        details={"updated_fields": updated_fields},
    )

    return HabitMutationResponse(
        message="Habit updated successfully", habit=HabitOut.model_validate(habit)
    )


@router.delete("/{habit_id}", response_model=MessageResponse)
def delete_habit(
    habit_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    """Удалить привычку вместе с записями и связями"""
    service.delete_habit(db, identity.id, habit_id)
    audit.log_delete(
        resource_type="habit",
        resource_id=habit_id,
        user_id=identity.id,
        correlation_id=get_correlation_id(request),
    )
    return MessageResponse(message="Habit deleted successfully")


@router.post(
    "/{habit_id}/complete", response_model=EntryResponse, status_code=status.HTTP_201_CREATED
)
def complete_habit(
    habit_id: uuid.UUID,
    request: Request,
    payload: Optional[CompleteHabitRequest] = None,
    db: Session = Depends(get_db),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    """Отметить выполнение привычки (тело запроса необязательно)"""
    note = payload.note if payload is not None else None
    entry = service.complete_habit(db, identity.id, habit_id, note=note)

    track_habit_completed()
    audit.log_create(
        resource_type="entry",
        resource_id=entry.id,
        user_id=identity.id,
        correlation_id=get_correlation_id(request),
        details={"habit_id": habit_id},
    )

    return EntryResponse(message="Habit completed successfully", entry=EntryOut.model_validate(entry))


@router.post("/{habit_id}/tags", response_model=MessageResponse)
def add_tags(
    habit_id: uuid.UUID,
    payload: HabitTagsRequest,
    request: Request,
    db: Session = Depends(get_db),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    """Добавить теги к привычке; уже привязанные пропускаются"""
    added = service.add_tags_to_habit(db, identity.id, habit_id, payload.tag_ids)
    if added:
        audit.log_create(
            resource_type="habit_tag",
            resource_id=habit_id,
            user_id=identity.id,
            correlation_id=get_correlation_id(request),
            details={"tag_ids": added},
        )
    return MessageResponse(message="Tags added successfully")


@router.delete("/{habit_id}/tags/{tag_id}", response_model=MessageResponse)
def remove_tag(
    habit_id: uuid.UUID,
    tag_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),  # noqa: B008
    identity: TokenIdentity = Depends(get_current_identity),  # noqa: B008
):
    """Отвязать тег от привычки"""
    removed = service.remove_tag_from_habit(db, identity.id, habit_id, tag_id)
    if removed:
        audit.log_delete(
            resource_type="habit_tag",
            resource_id=habit_id,
            user_id=identity.id,
            correlation_id=get_correlation_id(request),
            details={"tag_id": tag_id},
        )
    return MessageResponse(message="Tag removed successfully")
