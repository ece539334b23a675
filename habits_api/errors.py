"""
Обработчики ошибок с поддержкой RFC 7807 Problem Details
Таксономия ошибок API, маскирование внутренних деталей, correlation_id
"""

import logging
import uuid
from typing import Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("habits_api.errors")


class ApiError(Exception):
    """Базовое исключение API с поддержкой RFC 7807"""

    code = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
        headers: Optional[dict] = None,
    ):
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail or message
        self.headers = headers
        super().__init__(self.message)


class ValidationError(ApiError):
    """Некорректные или отсутствующие входные данные"""

    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(ApiError):
    """Неверные учетные данные"""

    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(ApiError):
    """Отсутствующий (401) или недействительный (403) токен"""

    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ApiError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ApiError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class InactiveHabitError(ApiError):
    code = "inactive_habit"
    status_code = status.HTTP_400_BAD_REQUEST


class InternalError(ApiError):
    code = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# Карта типов ошибок для RFC 7807
ERROR_TYPE_MAP = {
    "validation_error": {
        "type": "https://api.habittracker.dev/errors/validation",
        "title": "Validation Error",
        "description": "Входные данные не прошли валидацию",
    },
    "inactive_habit": {
        "type": "https://api.habittracker.dev/errors/inactive-habit",
        "title": "Inactive Habit",
        "description": "Привычка неактивна",
    },
    "not_found": {
        "type": "https://api.habittracker.dev/errors/not-found",
        "title": "Resource Not Found",
        "description": "Запрошенный ресурс не найден",
    },
    "conflict": {
        "type": "https://api.habittracker.dev/errors/conflict",
        "title": "Resource Conflict",
        "description": "Конфликт при создании/обновлении ресурса",
    },
    "rate_limit": {
        "type": "https://api.habittracker.dev/errors/rate-limit",
        "title": "Rate Limit Exceeded",
        "description": "Превышен лимит запросов",
    },
    "internal_error": {
        "type": "https://api.habittracker.dev/errors/internal",
        "title": "Internal Server Error",
        "description": "Внутренняя ошибка сервера",
    },
    "unauthorized": {
        "type": "https://api.habittracker.dev/errors/unauthorized",
        "title": "Unauthorized",
        "description": "Требуется аутентификация",
    },
    "forbidden": {
        "type": "https://api.habittracker.dev/errors/forbidden",
        "title": "Forbidden",
        "description": "Недостаточно прав доступа",
    },
}


def get_correlation_id(request: Request) -> str:
    """correlation_id текущего запроса (выставляется middleware логирования)"""
    return getattr(request.state, "correlation_id", None) or str(uuid.uuid4())


def _use_rfc7807(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return settings.use_rfc7807_errors if settings is not None else True


def create_error_response(
    request: Request,
    error_code: str,
    detail: str,
    status_code: int,
    correlation_id: Optional[str] = None,
    mask_sensitive: bool = True,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """
    Создание ответа об ошибке в формате RFC 7807

    Args:
        request: HTTP запрос
        error_code: Код ошибки из ERROR_TYPE_MAP
        detail: Детальное описание ошибки
        status_code: HTTP статус код
        correlation_id: ID для корреляции в логах
        mask_sensitive: Маскировать чувствительную информацию
        headers: Дополнительные заголовки ответа

    Returns:
        JSONResponse с телом в формате RFC 7807
    """
    correlation_id = correlation_id or get_correlation_id(request)

    error_info = ERROR_TYPE_MAP.get(
        error_code,
        {
            "type": "https://api.habittracker.dev/errors/unknown",
            "title": "Unknown Error",
            "description": "Неизвестная ошибка",
        },
    )

    # Не раскрываем внутренние детали серверных ошибок
    if mask_sensitive and status_code >= 500:
        detail = error_info["description"]

    problem_detail = {
        "type": error_info["type"],
        "title": error_info["title"],
        "status": status_code,
        "detail": detail,
        "instance": str(request.url.path),
        "correlation_id": correlation_id,
    }

    return JSONResponse(status_code=status_code, content=problem_detail, headers=headers)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Обработчик ApiError с поддержкой обоих форматов"""
    if exc.status_code >= 500:
        logger.error(
            "API error %s: %s",
            exc.code,
            exc.message,
            extra={"correlation_id": get_correlation_id(request), "path": request.url.path},
        )

    if _use_rfc7807(request):
        return create_error_response(
            request=request,
            error_code=exc.code,
            detail=exc.detail,
            status_code=exc.status_code,
            mask_sensitive=True,
            headers=exc.headers,
        )

    # Старый формат для обратной совместимости
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.code, "message": exc.message}},
        headers=exc.headers,
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Обработчик ошибок валидации входящего запроса

    Невалидный запрос отклоняется с 400 до вызова доменных операций.
    Ошибки валидации внутри обработчика считаются серверными (500).
    """
    correlation_id = get_correlation_id(request)
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())

    if _use_rfc7807(request):
        errors = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            errors.append({"field": field, "message": error["msg"], "type": error["type"]})

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "type": ERROR_TYPE_MAP["validation_error"]["type"],
                "title": "Validation Error",
                "status": 400,
                "detail": "Request validation failed",
                "instance": str(request.url.path),
                "errors": errors,
                "correlation_id": correlation_id,
            },
        )

    first_error = exc.errors()[0]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": {"code": "validation_error", "message": first_error["msg"]}},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Обработчик неожиданных исключений

    Логирует с correlation_id; детали показываются только вне production
    """
    correlation_id = get_correlation_id(request)
    logger.error(
        "Unhandled exception: %s",
        exc,
        exc_info=exc,
        extra={"correlation_id": correlation_id, "path": request.url.path},
    )

    settings = getattr(request.app.state, "settings", None)
    if settings is None or settings.is_production:
        detail = "Внутренняя ошибка сервера. Обратитесь к администратору."
        mask = True
    else:
        detail = f"Internal error: {type(exc).__name__}: {str(exc)}"
        mask = False

    if not _use_rfc7807(request):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": {"code": "internal_error", "message": detail}},
        )

    return create_error_response(
        request=request,
        error_code="internal_error",
        detail=detail,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        correlation_id=correlation_id,
        mask_sensitive=mask,
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
