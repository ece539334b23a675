"""
Модуль аудит-логирования для Habit Tracker API
Логирует критичные операции (CREATE, UPDATE, DELETE) с user_id и correlation_id
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Optional

audit_logger = logging.getLogger("audit")
audit_logger.setLevel(logging.INFO)
audit_logger.propagate = False

# Формат логов: JSON для удобства парсинга
formatter = logging.Formatter(
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "message": %(message)s}'
)

_enabled = True
_actions = {"CREATE", "UPDATE", "DELETE"}


def configure_audit_logging(
    enabled: bool = True,
    actions: Optional[set[str]] = None,
    log_path: Optional[str] = None,
) -> None:
    """
    Настройка аудит-логгера (вызывается при создании приложения)

    Args:
        enabled: Включено ли аудит-логирование
        actions: Какие действия логировать
        log_path: Файл для записи (по умолчанию только консоль)
    """
    global _enabled, _actions

    _enabled = enabled
    if actions is not None:
        _actions = set(actions)

    for handler in list(audit_logger.handlers):
        audit_logger.removeHandler(handler)
        handler.close()

    if not enabled:
        return

    if log_path:
        audit_dir = os.path.dirname(log_path)
        if audit_dir:
            os.makedirs(audit_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        audit_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    audit_logger.addHandler(console_handler)


def _json_default(value: Any) -> str:
    # UUID, datetime и прочее сериализуем строкой
    return str(value)


def log_audit_event(
    action: str,
    resource_type: str,
    resource_id: Any,
    user_id: Any,
    correlation_id: str,
    details: Optional[dict] = None,
    status: str = "success",
) -> None:
    """
    Логирование аудит-события

    Args:
        action: Тип действия (CREATE, UPDATE, DELETE)
        resource_type: Тип ресурса (user, habit, entry, tag, habit_tag)
        resource_id: ID ресурса
        user_id: ID пользователя, выполнившего действие
        correlation_id: ID для корреляции запросов
        details: Дополнительные детали операции
        status: Статус операции (success, failure)
    """
    if not _enabled or action not in _actions:
        return

    audit_data = {
        "action": action,
        "resource_type": resource_type,
        "resource_id": resource_id,
        "user_id": user_id,
        "correlation_id": correlation_id,
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if details:
        audit_data["details"] = details

    audit_logger.info(json.dumps(audit_data, default=_json_default, ensure_ascii=False))


def log_create(resource_type: str, resource_id: Any, user_id: Any, correlation_id: str,
               details: Optional[dict] = None) -> None:
    """Логирование создания ресурса"""
    log_audit_event("CREATE", resource_type, resource_id, user_id, correlation_id, details)


def log_update(resource_type: str, resource_id: Any, user_id: Any, correlation_id: str,
               details: Optional[dict] = None) -> None:
    """Логирование обновления ресурса"""
    log_audit_event("UPDATE", resource_type, resource_id, user_id, correlation_id, details)


def log_delete(resource_type: str, resource_id: Any, user_id: Any, correlation_id: str,
               details: Optional[dict] = None) -> None:
    """Логирование удаления ресурса"""
    log_audit_event("DELETE", resource_type, resource_id, user_id, correlation_id, details)


def log_failed_operation(action: str, resource_type: str, user_id: Any, correlation_id: str,
                         error: str) -> None:
    """Логирование неудачной операции"""
    log_audit_event(
        action=action,
        resource_type=resource_type,
        resource_id=None,
        user_id=user_id,
        correlation_id=correlation_id,
        details={"error": error},
        status="failure",
    )
