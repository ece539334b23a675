from datetime import datetime, timezone

from fastapi import APIRouter

from habits_api.metrics import metrics_endpoint
from habits_api.schemas import HealthResponse

SERVICE_NAME = "Habit Tracker API"

router = APIRouter(tags=["Health"])
metrics_router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
def health():
    """Health check endpoint"""
    return HealthResponse(status="OK", timestamp=datetime.now(timezone.utc), service=SERVICE_NAME)


@metrics_router.get("/metrics", include_in_schema=False)
def metrics():
    """Prometheus metrics endpoint"""
    return metrics_endpoint()
