"""
Управление глобальными тегами

Теги не принадлежат пользователям; привязки к привычкам видны
только через привычки вызывающего пользователя.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from habits_api.errors import ConflictError, NotFoundError
from habits_api.models import DEFAULT_TAG_COLOR, HabitTag, Tag, utcnow
from habits_api.services.habits import list_habits_by_tag

logger = logging.getLogger("habits_api.services.tags")

POPULAR_TAGS_LIMIT = 10
TAG_EXISTS = "Tag with this name already exists"


def _commit_unique_name(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError(TAG_EXISTS) from e


def list_tags(db: Session) -> list[Tag]:
    """Все теги по алфавиту"""
    return db.query(Tag).order_by(Tag.name).all()


def find_tag(db: Session, tag_id: uuid.UUID) -> Tag:
    tag = db.query(Tag).filter(Tag.id == tag_id).first()
    if tag is None:
        raise NotFoundError("Tag not found")
    return tag


def usage_count(db: Session, tag_id: uuid.UUID) -> int:
    return db.query(func.count(HabitTag.id)).filter(HabitTag.tag_id == tag_id).scalar() or 0


def get_tag(db: Session, tag_id: uuid.UUID) -> tuple[Tag, int]:
    """Тег и количество привычек, к которым он привязан"""
    tag = find_tag(db, tag_id)
    return tag, usage_count(db, tag.id)


def get_popular_tags(db: Session, limit: int = POPULAR_TAGS_LIMIT) -> list[tuple[Tag, int]]:
    """Топ тегов по числу привязанных привычек; при равенстве - в порядке создания"""
    links = func.count(HabitTag.id).label("usage_count")
    rows = (
        db.query(Tag, links)
        .outerjoin(HabitTag, HabitTag.tag_id == Tag.id)
        .group_by(Tag.id)
        .order_by(links.desc(), Tag.created_at.asc())
        .limit(limit)
        .all()
    )
    return [(tag, count) for tag, count in rows]


def create_tag(db: Session, name: str, color: Optional[str] = None) -> Tag:
    """Создать тег; имя глобально уникально"""
    if db.query(Tag).filter(Tag.name == name).first() is not None:
        raise ConflictError(TAG_EXISTS)

    now = utcnow()
    tag = Tag(name=name, color=color or DEFAULT_TAG_COLOR, created_at=now, updated_at=now)
    db.add(tag)
    _commit_unique_name(db)
    return tag


def update_tag(
    db: Session, tag_id: uuid.UUID, name: Optional[str] = None, color: Optional[str] = None
) -> Tag:
    """Переименовать или перекрасить тег"""
    if name:
        existing = db.query(Tag).filter(Tag.name == name).first()
        if existing is not None and existing.id != tag_id:
            raise ConflictError(TAG_EXISTS)

    tag = find_tag(db, tag_id)
    if name:
        tag.name = name
    if color:
        tag.color = color
    tag.updated_at = utcnow()
    _commit_unique_name(db)
    return tag


def delete_tag(db: Session, tag_id: uuid.UUID) -> None:
    """Удалить тег, если он ни к чему не привязан"""
    in_use = db.query(HabitTag.id).filter(HabitTag.tag_id == tag_id).first() is not None
    if in_use:
        raise ConflictError(
            "Cannot delete tag that is currently in use",
            detail="Cannot delete tag that is currently in use. "
            "Remove this tag from all habits before deleting",
        )

    tag = find_tag(db, tag_id)
    db.delete(tag)
    db.commit()


def get_tag_habits(db: Session, tag_id: uuid.UUID, owner_id: uuid.UUID):
    """Тег и привычки пользователя с этим тегом"""
    tag = find_tag(db, tag_id)
    return tag, list_habits_by_tag(db, tag.id, owner_id)
