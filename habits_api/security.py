"""
Middleware безопасности для Habit Tracker API
Ограничение частоты запросов, заголовки безопасности, correlation_id
"""

import logging
import time
import uuid
from collections import defaultdict, deque
from typing import Callable, Optional

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from habits_api.errors import create_error_response

logger = logging.getLogger("habits_api.requests")

CORRELATION_ID_HEADER = "X-Correlation-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Присваивает запросу correlation_id и логирует время обработки
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        logger.info(
            "%s %s -> %s (%.0fms)",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            extra={"correlation_id": correlation_id},
        )
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Ограничение частоты запросов на IP адрес (скользящее окно в одну минуту)

    Для /health и /metrics лимит в 10 раз больше.
    """

    WINDOW_SECONDS = 60.0
    RELAXED_PATHS = ("/health", "/metrics")

    def __init__(
        self,
        app,
        requests_per_minute: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self._clock = clock
        self._hits: dict[str, deque] = defaultdict(deque)
        self._last_sweep = clock()

    def _limit_for(self, path: str) -> int:
        if path in self.RELAXED_PATHS:
            return self.requests_per_minute * 10
        return self.requests_per_minute

    def _sweep(self, now: float) -> None:
        """Забыть клиентов без запросов за последнее окно (не чаще раза в окно)"""
        if now - self._last_sweep < self.WINDOW_SECONDS:
            return
        self._last_sweep = now
        stale = [
            ip for ip, hits in self._hits.items()
            if not hits or now - hits[-1] >= self.WINDOW_SECONDS
        ]
        for ip in stale:
            del self._hits[ip]

    def _register_hit(self, client_ip: str, limit: int) -> Optional[int]:
        """Учесть запрос; None - лимит исчерпан, иначе остаток"""
        now = self._clock()
        self._sweep(now)
        hits = self._hits[client_ip]
        while hits and now - hits[0] >= self.WINDOW_SECONDS:
            hits.popleft()
        if len(hits) >= limit:
            return None
        hits.append(now)
        return limit - len(hits)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        client_ip = request.client.host if request.client else "unknown"
        limit = self._limit_for(request.url.path)
        remaining = self._register_hit(client_ip, limit)

        if remaining is None:
            logger.warning("Rate limit exceeded for %s on %s", client_ip, request.url.path)
            return create_error_response(
                request=request,
                error_code="rate_limit",
                detail=f"Превышен лимит запросов. Максимум {limit} запросов в минуту.",
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                headers={
                    "Retry-After": str(int(self.WINDOW_SECONDS)),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Добавление заголовков безопасности ко всем ответам
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'self'"

        return response
