from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from app.api.deps import get_weather_service
from app.schemas.location_schemas import Location, LocationSource
from app.schemas.weather_schemas import WeatherResponse
from app.services.weather_service import WeatherService

router = APIRouter(prefix="/api", tags=["weather"])


@router.get("/weather", response_model=WeatherResponse)
async def get_weather(
    request: Request,
    lat: float = Query(..., ge=-90, le=90, description="纬度"),
    lon: float = Query(..., ge=-180, le=180, description="经度"),
    city: Optional[str] = Query(None, description="显示用城市名"),
    country: Optional[str] = Query(None, description="显示用国家名"),
    service: WeatherService = Depends(get_weather_service),
) -> WeatherResponse:
    location = Location(
        latitude=lat,
        longitude=lon,
        city=city or None,
        country=country or None,
        source=LocationSource.MANUAL,
    )
    # WeatherError 交给 app 上注册的异常处理器
    data, cached = await service.get_weather(location)
    request.state.cache_hit = cached
    return WeatherResponse(
        success=True,
        message="获取天气数据成功（缓存）" if cached else "获取天气数据成功（Open-Meteo）",
        cached=cached,
        data=data,
        timestamp=datetime.now(timezone.utc),
    )
