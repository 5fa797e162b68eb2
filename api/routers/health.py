# File: api/routers/health.py
from datetime import datetime, timezone

from fastapi import APIRouter

from api.models.thematic_models import HealthResponse


router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}
