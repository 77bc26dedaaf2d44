from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.api.deps import get_location_caches, get_weather_cache
from app.schemas.weather_schemas import CacheStats, CacheStatsResponse, ClearCacheResponse
from app.services.location_service import ClientLocationCaches
from app.services.weather_cache import WeatherCache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["cache"])


@router.post("/clear-cache", response_model=ClearCacheResponse)
async def clear_cache(
    weather_cache: WeatherCache = Depends(get_weather_cache),
    location_caches: ClientLocationCaches = Depends(get_location_caches),
):
    # 天气缓存 + 所有客户端的位置缓存一起清
    weather_cache.clear()
    location_caches.clear()
    logger.info("服务端缓存已全部清空")
    return ClearCacheResponse(
        success=True,
        message="服务端缓存已全部清空",
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(weather_cache: WeatherCache = Depends(get_weather_cache)):
    return CacheStatsResponse(
        success=True,
        data=CacheStats(**weather_cache.get_stats()),
        timestamp=datetime.now(timezone.utc),
    )
