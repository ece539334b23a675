"""
ORM-модели Habit Tracker API
Пользователи, привычки, записи выполнения, теги и связи привычка-тег
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.types import TypeDecorator
from sqlalchemy.orm import relationship

from habits_api.database import Base

DEFAULT_TAG_COLOR = "#6B7280"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """DateTime, который всегда возвращается с tzinfo=UTC (SQLite теряет зону)"""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class FrequencyType(str, Enum):
    """Частота отслеживания привычки"""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    habits = relationship(
        "Habit", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )


class Habit(Base):
    __tablename__ = "habits"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    frequency = Column(String(20), nullable=False)
    target_count = Column(Integer, default=1, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="habits")
    entries = relationship(
        "Entry",
        back_populates="habit",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Entry.completion_date.desc()",
    )
    habit_tags = relationship(
        "HabitTag",
        back_populates="habit",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="HabitTag.created_at",
    )

    @property
    def tags(self) -> list["Tag"]:
        return [link.tag for link in self.habit_tags]

    @property
    def tag_ids(self) -> set[uuid.UUID]:
        return {link.tag_id for link in self.habit_tags}


class Entry(Base):
    __tablename__ = "entries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    habit_id = Column(Uuid, ForeignKey("habits.id", ondelete="CASCADE"), nullable=False, index=True)
    completion_date = Column(UTCDateTime, default=utcnow, nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    habit = relationship("Habit", back_populates="entries")


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(50), unique=True, nullable=False)
    color = Column(String(7), default=DEFAULT_TAG_COLOR, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, nullable=False)

    habit_tags = relationship(
        "HabitTag", back_populates="tag", cascade="all, delete-orphan", passive_deletes=True
    )


class HabitTag(Base):
    """Связь многие-ко-многим; уникальность пары не проверяется на уровне БД"""

    __tablename__ = "habit_tags"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    habit_id = Column(Uuid, ForeignKey("habits.id", ondelete="CASCADE"), nullable=False, index=True)
    tag_id = Column(Uuid, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    habit = relationship("Habit", back_populates="habit_tags")
    tag = relationship("Tag", back_populates="habit_tags")
