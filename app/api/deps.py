"""
路由层依赖

httpx 客户端、天气缓存和按客户端划分的位置缓存都在 lifespan 里创建、挂在 app.state 上（每个进程一份），
服务对象按请求组装，测试里可以通过 dependency_overrides 换成假的实现。
"""
from __future__ import annotations

from typing import Optional

import httpx
from fastapi import Depends, Request

from app.clients.geo_clients import IpLocationClient, NominatimClient
from app.clients.weather_clients import OpenMeteoClient
from app.services.location_service import ClientLocationCaches, LocationCache, LocationResolver
from app.services.weather_cache import WeatherCache
from app.services.weather_service import WeatherService


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_weather_cache(request: Request) -> WeatherCache:
    return request.app.state.weather_cache


def get_location_caches(request: Request) -> ClientLocationCaches:
    return request.app.state.location_caches


def get_client_ip(request: Request) -> Optional[str]:
    """优先取反向代理带来的 X-Forwarded-For 第一跳"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


def get_location_cache(
    client_ip: Optional[str] = Depends(get_client_ip),
    caches: ClientLocationCaches = Depends(get_location_caches),
) -> LocationCache:
    # 位置属于某个客户端，不能在客户端之间共享
    return caches.for_client(client_ip)


def get_weather_service(
    http_client: httpx.AsyncClient = Depends(get_http_client),
    cache: WeatherCache = Depends(get_weather_cache),
) -> WeatherService:
    return WeatherService(weather_client=OpenMeteoClient(http_client), cache=cache)


def get_location_resolver(
    http_client: httpx.AsyncClient = Depends(get_http_client),
    cache: LocationCache = Depends(get_location_cache),
) -> LocationResolver:
    return LocationResolver(
        cache=cache,
        geocoder=NominatimClient(http_client),
        ip_client=IpLocationClient(http_client),
    )

