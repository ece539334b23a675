"""
Операции над привычками пользователя

Каждая операция над конкретной привычкой сначала проверяет владельца:
чужая и несуществующая привычка неотличимы (NotFoundError).
Многострочные изменения (привычка + теги, замена набора тегов)
выполняются в одной транзакции сессии.
"""

import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from habits_api.errors import InactiveHabitError, NotFoundError, ValidationError
from habits_api.models import Entry, Habit, HabitTag, utcnow

logger = logging.getLogger("habits_api.services.habits")

RECENT_ENTRIES_LIMIT = 10


def _unique(tag_ids: Iterable[uuid.UUID]) -> list[uuid.UUID]:
    # порядок сохраняется, повторы отбрасываются
    return list(dict.fromkeys(tag_ids))


def _commit_tag_links(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info("Rolled back habit write: %s", e.orig)
        raise ValidationError("Invalid tag reference") from e


def _habits_query(db: Session):
    return db.query(Habit).options(selectinload(Habit.habit_tags).selectinload(HabitTag.tag))


def find_owned_habit(db: Session, owner_id: uuid.UUID, habit_id: uuid.UUID) -> Habit:
    """Найти привычку по ID с проверкой владельца"""
    habit = (
        _habits_query(db).filter(Habit.id == habit_id, Habit.user_id == owner_id).first()
    )
    if habit is None:
        raise NotFoundError("Habit not found")
    return habit


def create_habit(
    db: Session,
    owner_id: uuid.UUID,
    name: str,
    frequency: str,
    description: Optional[str] = None,
    target_count: int = 1,
    tag_ids: Iterable[uuid.UUID] = (),
) -> Habit:
    """
    Создать привычку и связать ее с тегами

    Привычка и связи фиксируются одним коммитом: если хотя бы один тег
    не существует, не сохраняется ничего.
    """
    now = utcnow()
    habit = Habit(
        id=uuid.uuid4(),
        user_id=owner_id,
        name=name,
        description=description,
        frequency=frequency,
        target_count=target_count,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    habit.habit_tags = [HabitTag(tag_id=tag_id, created_at=now) for tag_id in _unique(tag_ids)]
    db.add(habit)

    _commit_tag_links(db)
    return find_owned_habit(db, owner_id, habit.id)


def list_habits(db: Session, owner_id: uuid.UUID) -> list[Habit]:
    """Все привычки пользователя с тегами, новые первыми"""
    return (
        _habits_query(db)
        .filter(Habit.user_id == owner_id)
        .order_by(Habit.created_at.desc())
        .all()
    )


def recent_entries(db: Session, habit_id: uuid.UUID, limit: int = RECENT_ENTRIES_LIMIT) -> list[Entry]:
    return (
        db.query(Entry)
        .filter(Entry.habit_id == habit_id)
        .order_by(Entry.completion_date.desc())
        .limit(limit)
        .all()
    )


def get_habit(db: Session, owner_id: uuid.UUID, habit_id: uuid.UUID) -> tuple[Habit, list[Entry]]:
    """Привычка с тегами и последними 10 записями выполнения"""
    habit = find_owned_habit(db, owner_id, habit_id)
    return habit, recent_entries(db, habit.id)


def update_habit(
    db: Session,
    owner_id: uuid.UUID,
    habit_id: uuid.UUID,
    fields: dict,
    tag_ids: Optional[Iterable[uuid.UUID]] = None,
) -> Habit:
    """
    Частичное обновление привычки

    Args:
        fields: Только переданные клиентом поля
        tag_ids: None - связи не трогаются; иначе набор связей заменяется целиком
    """
    habit = find_owned_habit(db, owner_id, habit_id)

    for key, value in fields.items():
        if key == "frequency" and hasattr(value, "value"):
            value = value.value
        setattr(habit, key, value)
    habit.updated_at = utcnow()

    if tag_ids is not None:
        # delete-orphan удаляет старые связи, новые вставляются тем же коммитом
        habit.habit_tags = [HabitTag(tag_id=tag_id) for tag_id in _unique(tag_ids)]

    _commit_tag_links(db)
    return find_owned_habit(db, owner_id, habit_id)


def delete_habit(db: Session, owner_id: uuid.UUID, habit_id: uuid.UUID) -> None:
    """Удалить привычку (записи и связи удаляются каскадно)"""
    habit = find_owned_habit(db, owner_id, habit_id)
    db.delete(habit)
    db.commit()


def complete_habit(
    db: Session, owner_id: uuid.UUID, habit_id: uuid.UUID, note: Optional[str] = None
) -> Entry:
    """
    Отметить выполнение привычки

    Повторные отметки в тот же день не отсекаются: каждая создает запись.
    """
    habit = find_owned_habit(db, owner_id, habit_id)
    if not habit.is_active:
        raise InactiveHabitError("Cannot complete an inactive habit")

    now = utcnow()
    entry = Entry(habit_id=habit.id, completion_date=now, note=note, created_at=now)
    db.add(entry)
    db.commit()
    return entry


def add_tags_to_habit(
    db: Session, owner_id: uuid.UUID, habit_id: uuid.UUID, tag_ids: Iterable[uuid.UUID]
) -> list[uuid.UUID]:
    """
    Добавить теги к привычке (уже связанные пропускаются)

    Returns:
        ID тегов, для которых созданы новые связи
    """
    habit = find_owned_habit(db, owner_id, habit_id)
    existing = habit.tag_ids
    new_tag_ids = [tag_id for tag_id in _unique(tag_ids) if tag_id not in existing]

    for tag_id in new_tag_ids:
        habit.habit_tags.append(HabitTag(tag_id=tag_id))

    if new_tag_ids:
        _commit_tag_links(db)
    return new_tag_ids


def remove_tag_from_habit(
    db: Session, owner_id: uuid.UUID, habit_id: uuid.UUID, tag_id: uuid.UUID
) -> int:
    """Удалить связь с тегом; отсутствие связи не ошибка"""
    habit = find_owned_habit(db, owner_id, habit_id)
    removed = (
        db.query(HabitTag)
        .filter(HabitTag.habit_id == habit.id, HabitTag.tag_id == tag_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return removed


def list_habits_by_tag(db: Session, tag_id: uuid.UUID, owner_id: uuid.UUID) -> list[Habit]:
    """Привычки пользователя, помеченные тегом"""
    return (
        _habits_query(db)
        .join(HabitTag, HabitTag.habit_id == Habit.id)
        .filter(HabitTag.tag_id == tag_id, Habit.user_id == owner_id)
        .order_by(Habit.created_at.desc())
        .distinct()
        .all()
    )
