from fastapi import APIRouter, Depends

from app.cache import ResourceCache
from app.config import settings
from app.dependencies import get_cache
from app.schemas import MetricsResponse

router = APIRouter(prefix="/api/metrics", tags=["metrics"])


@router.get("", response_model=MetricsResponse)
async def get_metrics(cache: ResourceCache = Depends(get_cache)):
    return MetricsResponse(
        cache_backend=cache.backend.name,
        fetch_concurrency=settings.FETCH_CONCURRENCY,
        cache_info=cache.stats,
    )
