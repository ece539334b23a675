"""
Схемы запросов и ответов с валидацией для Habit Tracker API
JSON использует camelCase; на входе принимается и snake_case
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from habits_api.models import DEFAULT_TAG_COLOR, FrequencyType

DANGEROUS_CHARS = ["<", ">", "&", '"', "'", "`"]
HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"


def _reject_dangerous_chars(value: Optional[str], field: str) -> Optional[str]:
    """Запрет потенциально опасных символов (XSS)"""
    if value is None:
        return value
    for char in DANGEROUS_CHARS:
        if char in value:
            raise ValueError(f"{field} contains forbidden character: {char}")
    return value.strip()


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


# === Users / Auth ===


class RegisterRequest(ApiModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v: Optional[str]) -> Optional[str]:
        return _reject_dangerous_chars(v, "Name")


class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class ChangePasswordRequest(ApiModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=128)


class UserPublic(ApiModel):
    """Публичное представление пользователя (без хеша пароля)"""

    id: uuid.UUID
    email: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: datetime


class AuthResponse(ApiModel):
    message: str
    user: UserPublic
    token: str


class UserResponse(ApiModel):
    user: UserPublic


class MessageResponse(ApiModel):
    message: str


# === Tags ===


class TagCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=50)
    color: str = Field(default=DEFAULT_TAG_COLOR, pattern=HEX_COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _reject_dangerous_chars(v, "Tag name")


class TagUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return _reject_dangerous_chars(v, "Tag name")


class TagOut(ApiModel):
    id: uuid.UUID
    name: str
    color: str
    created_at: datetime
    updated_at: datetime


class TagWithUsage(TagOut):
    usage_count: int


class TagDetailResponse(ApiModel):
    tag: TagWithUsage


class TagMutationResponse(ApiModel):
    message: str
    tag: TagOut


class TagListResponse(ApiModel):
    tags: list[TagOut]


class PopularTagsResponse(ApiModel):
    tags: list[TagWithUsage]


# === Habits ===


class HabitCreate(ApiModel):
    """Создание привычки; tagIds связываются в той же транзакции"""

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    frequency: FrequencyType
    target_count: int = Field(default=1, ge=1, le=100)
    tag_ids: list[uuid.UUID] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name_content(cls, v: str) -> str:
        return _reject_dangerous_chars(v, "Habit name")

    @field_validator("description")
    @classmethod
    def validate_description_content(cls, v: Optional[str]) -> Optional[str]:
        return _reject_dangerous_chars(v, "Description")


class HabitUpdate(ApiModel):
    """
    Частичное обновление привычки

    tag_ids отсутствует -> связи не меняются; tag_ids = [] -> все связи удаляются
    """

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    frequency: Optional[FrequencyType] = None
    target_count: Optional[int] = Field(default=None, ge=1, le=100)
    is_active: Optional[bool] = None
    tag_ids: Optional[list[uuid.UUID]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return _reject_dangerous_chars(v, "Habit name")

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _reject_dangerous_chars(v, "Description")

    @field_validator("name", "frequency", "target_count", "is_active")
    @classmethod
    def reject_explicit_null(cls, v):
        # валидатор не вызывается для непереданных полей, только для явного null
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    def changed_fields(self) -> dict:
        """Переданные клиентом поля привычки (без tag_ids); null в description очищает поле"""
        return self.model_dump(exclude_unset=True, exclude={"tag_ids"})


class CompleteHabitRequest(ApiModel):
    note: Optional[str] = Field(default=None, max_length=500)

    @field_validator("note")
    @classmethod
    def validate_note(cls, v: Optional[str]) -> Optional[str]:
        return _reject_dangerous_chars(v, "Note")


class HabitTagsRequest(ApiModel):
    tag_ids: list[uuid.UUID] = Field(..., min_length=1)


class EntryOut(ApiModel):
    id: uuid.UUID
    habit_id: uuid.UUID
    completion_date: datetime
    note: Optional[str] = None
    created_at: datetime


class HabitOut(ApiModel):
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    description: Optional[str] = None
    frequency: FrequencyType
    target_count: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
    tags: list[TagOut] = Field(default_factory=list)


class HabitDetail(HabitOut):
    entries: list[EntryOut] = Field(default_factory=list)


class HabitListResponse(ApiModel):
    habits: list[HabitOut]


class HabitResponse(ApiModel):
    habit: HabitDetail


class HabitMutationResponse(ApiModel):
    message: str
    habit: HabitOut


class EntryResponse(ApiModel):
    message: str
    entry: EntryOut


class TagHabitsResponse(ApiModel):
    tag: TagOut
    habits: list[HabitOut]


class HealthResponse(ApiModel):
    status: str
    timestamp: datetime
    service: str
