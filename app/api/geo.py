"""地理编码接口 - 正向搜索 / 反向地理编码"""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_location_resolver
from app.schemas.location_schemas import GeoResponse, LocationResponse
from app.services.location_service import LocationResolver

router = APIRouter(prefix="/api/geo", tags=["geo"])


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@router.get("/reverse", response_model=GeoResponse)
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90, description="纬度"),
    lon: float = Query(..., ge=-180, le=180, description="经度"),
    resolver: LocationResolver = Depends(get_location_resolver),
):
    """
    反向地理编码 - 根据经纬度获取城市 / 国家名

    使用 Nominatim (OpenStreetMap)，城市级别精度；上游失败时返回 success=False，不报 5xx
    """
    names = await resolver.reverse_geocode(lat, lon)
    if names.is_empty:
        return GeoResponse(
            success=False,
            message="无法解析该位置的城市信息",
            timestamp=_utc_now(),
        )
    return GeoResponse(
        success=True,
        message="获取城市信息成功",
        data=names,
        timestamp=_utc_now(),
    )


@router.get("/search", response_model=LocationResponse)
async def search_location(
    q: str = Query(..., min_length=1, max_length=200, description="城市名，例如 London"),
    resolver: LocationResolver = Depends(get_location_resolver),
):
    """按地名搜索位置（手动选择城市）"""
    location = await resolver.search_location(q)
    if location is None:
        return LocationResponse(
            success=False,
            message="未找到该城市，请检查拼写后重试",
            timestamp=_utc_now(),
        )
    return LocationResponse(
        success=True,
        message="搜索成功",
        data=location,
        timestamp=_utc_now(),
    )
