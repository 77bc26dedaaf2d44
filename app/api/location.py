from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_client_ip, get_location_resolver
from app.clients.geolocation import ClientReportedGeolocation
from app.core.config import settings
from app.schemas.location_schemas import (
    ClientPositionOptions,
    LocationOptions,
    LocationResponse,
    PermissionResponse,
    PermissionState,
)
from app.services.location_service import LocationResolver

router = APIRouter(prefix="/api/location", tags=["location"])


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@router.get("/detect", response_model=LocationResponse)
async def detect_location(
    force_refresh: bool = Query(False, alias="forceRefresh", description="忽略缓存重新定位"),
    gps_lat: Optional[float] = Query(None, alias="gpsLat", ge=-90, le=90, description="浏览器上报的纬度"),
    gps_lon: Optional[float] = Query(None, alias="gpsLon", ge=-180, le=180, description="浏览器上报的经度"),
    gps_accuracy: Optional[float] = Query(None, alias="gpsAccuracy", ge=0),
    gps_error: Optional[int] = Query(None, alias="gpsError", ge=1, le=3, description="W3C 定位错误码"),
    permission: Optional[PermissionState] = Query(None, description="浏览器定位权限状态"),
    timeout: Optional[float] = Query(None, gt=0, le=15, description="GPS 超时（秒）"),
    resolver: LocationResolver = Depends(get_location_resolver),
    client_ip: Optional[str] = Depends(get_client_ip),
):
    """
    定位：GPS（浏览器上报）-> IP -> 默认位置

    一定返回一个位置，source 表示实际用到的是哪一级
    """
    geolocation = ClientReportedGeolocation.from_query(
        latitude=gps_lat,
        longitude=gps_lon,
        accuracy=gps_accuracy,
        error_code=gps_error,
        permission=permission,
    )
    options = LocationOptions(
        enable_high_accuracy=settings.gps_high_accuracy,
        timeout=timeout or settings.geo_timeout,
        maximum_age=settings.gps_maximum_age,
        force_refresh=force_refresh,
    )
    location = await resolver.detect_location(
        geolocation=geolocation,
        options=options,
        client_ip=client_ip,
    )
    return LocationResponse(
        success=True,
        message="定位成功",
        data=location,
        # 下次调用浏览器定位时用的参数
        positionOptions=ClientPositionOptions.from_options(options),
        timestamp=_utc_now(),
    )


@router.get("/cached", response_model=LocationResponse)
async def cached_location(resolver: LocationResolver = Depends(get_location_resolver)):
    location = resolver.get_cached_location()
    if location is None:
        return LocationResponse(success=False, message="没有有效的缓存位置", timestamp=_utc_now())
    return LocationResponse(success=True, message="获取缓存位置成功", data=location, timestamp=_utc_now())


@router.get("/permission", response_model=PermissionResponse)
async def permission_state(
    permission: Optional[PermissionState] = Query(None, description="浏览器定位权限状态"),
    resolver: LocationResolver = Depends(get_location_resolver),
):
    geolocation = ClientReportedGeolocation.from_query(None, None, permission=permission)
    state = await resolver.check_permission_state(geolocation)
    return PermissionResponse(success=True, state=state, timestamp=_utc_now())
