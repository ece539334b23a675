"""
Модуль для экспорта метрик в формате Prometheus
Отслеживает количество запросов, время ответа, ошибки и бизнес-события
"""

import time
from typing import Callable

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

# Метрики запросов
http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method"],
)

http_errors_total = Counter(
    "http_errors_total",
    "Total number of HTTP errors",
    ["method", "endpoint", "status_code"],
)

# Метрики аутентификации
auth_requests_total = Counter(
    "auth_requests_total",
    "Total number of authentication requests",
    ["endpoint", "status"],
)

auth_failures_total = Counter(
    "auth_failures_total", "Total number of authentication failures", ["reason"]
)

# Бизнес-события: habit_created, habit_completed, tag_created, user_registered
domain_events_total = Counter(
    "habit_tracker_events_total", "Domain events by type", ["event"]
)


def _route_template(request: Request) -> str:
    # Шаблон маршрута вместо сырого пути: UUID в пути не должны плодить серии
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware для автоматического сбора метрик HTTP запросов
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        http_requests_in_progress.labels(method=method).inc()
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            status_code = response.status_code
            duration = time.perf_counter() - start_time
            endpoint = _route_template(request)

            http_requests_total.labels(
                method=method, endpoint=endpoint, status_code=status_code
            ).inc()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)

            if status_code >= 400:
                http_errors_total.labels(
                    method=method, endpoint=endpoint, status_code=status_code
                ).inc()

            return response

        finally:
            http_requests_in_progress.labels(method=method).dec()


def metrics_endpoint() -> Response:
    """Экспорт метрик в формате Prometheus"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def track_auth_request(endpoint: str, success: bool):
    """
    Отслеживание запросов аутентификации

    Args:
        endpoint: Endpoint аутентификации (login, register)
        success: Успешность запроса
    """
    status = "success" if success else "failure"
    auth_requests_total.labels(endpoint=endpoint, status=status).inc()


def track_auth_failure(reason: str):
    """
    Отслеживание неудачных попыток аутентификации

    Args:
        reason: Причина неудачи (invalid_credentials, user_exists, invalid_token, ...)
    """
    auth_failures_total.labels(reason=reason).inc()


def track_event(event: str):
    domain_events_total.labels(event=event).inc()


def track_habit_created():
    track_event("habit_created")


def track_habit_completed():
    track_event("habit_completed")


def track_tag_created():
    track_event("tag_created")


def track_user_registered():
    track_event("user_registered")
