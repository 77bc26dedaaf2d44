"""
定位服务：GPS -> IP -> 默认位置 三级回退

- 每一级只有在上一级明确失败后才会尝试，不并发、不重试
- 前两级的错误只记日志，不抛给调用方；默认位置一定能给出坐标，所以整条链不会失败
- 城市 / 国家名统一走 Nominatim 反向地理编码，保证不同来源的命名一致
- 结果写入当前客户端的单槽缓存（默认 5 分钟），有效期内的再次调用直接返回缓存
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, List, Optional

from app.clients.geo_clients import IpLocationClient, NominatimClient
from app.clients.geolocation import GeolocationProvider
from app.core.config import settings
from app.core.errors import LocationError, LocationErrorType, RequestCancelled
from app.schemas.location_schemas import (
    Location,
    LocationOptions,
    LocationSource,
    PermissionState,
    PositionOptions,
    ReverseGeocodeResult,
)
from app.utils.aio import run_with_deadline

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LocationCacheEntry:
    location: Location
    timestamp: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


class LocationCache:
    """只保存最近一次定位结果的单槽缓存；过期条目在读取时顺手清掉"""

    def __init__(self, ttl: float = 300.0, clock: Callable[[], float] = time.time) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entry: Optional[LocationCacheEntry] = None

    def get(self) -> Optional[Location]:
        if self._entry is None:
            return None
        if self._entry.is_valid(self._clock()):
            return self._entry.location
        self._entry = None
        return None

    def set(self, location: Location) -> None:
        self._entry = LocationCacheEntry(location=location, timestamp=self._clock(), ttl=self.ttl)

    def clear(self) -> None:
        self._entry = None


# 拿不到客户端 IP 时共用的槽位
ANONYMOUS_CLIENT = "-"


class ClientLocationCaches:
    """
    按客户端（IP）分开的位置缓存，每个客户端一个单槽 LocationCache

    客户端数量有上限，满了淘汰最久没访问过的那个客户端
    """

    def __init__(
        self,
        ttl: float = 300.0,
        max_clients: int = 1000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_clients < 1:
            raise ValueError("max_clients 必须 >= 1")
        self.ttl = ttl
        self.max_clients = max_clients
        self._clock = clock
        self._caches: "OrderedDict[str, LocationCache]" = OrderedDict()

    @property
    def size(self) -> int:
        return len(self._caches)

    def for_client(self, client_key: Optional[str]) -> LocationCache:
        key = client_key or ANONYMOUS_CLIENT
        cache = self._caches.get(key)
        if cache is not None:
            self._caches.move_to_end(key)
            return cache

        if len(self._caches) >= self.max_clients:
            evicted, _ = self._caches.popitem(last=False)
            logger.debug("淘汰最久未访问的客户端位置缓存: %s", evicted)

        cache = LocationCache(ttl=self.ttl, clock=self._clock)
        self._caches[key] = cache
        return cache

    def clear(self) -> None:
        self._caches.clear()


def default_location_options() -> LocationOptions:
    return LocationOptions(
        enable_high_accuracy=settings.gps_high_accuracy,
        timeout=settings.geo_timeout,
        maximum_age=settings.gps_maximum_age,
    )


class LocationResolver:
    def __init__(
        self,
        cache: LocationCache,
        geocoder: NominatimClient,
        ip_client: IpLocationClient,
        default_latitude: Optional[float] = None,
        default_longitude: Optional[float] = None,
        default_city: Optional[str] = None,
    ) -> None:
        self.cache = cache
        self.geocoder = geocoder
        self.ip_client = ip_client
        self.default_latitude = settings.default_lat if default_latitude is None else default_latitude
        self.default_longitude = settings.default_lon if default_longitude is None else default_longitude
        self.default_city = settings.default_city if default_city is None else default_city

    # ---------------- 缓存 ----------------

    def get_cached_location(self) -> Optional[Location]:
        return self.cache.get()

    def clear_location_cache(self) -> None:
        self.cache.clear()

    # ---------------- 反向 / 正向地理编码 ----------------

    async def reverse_geocode(
        self,
        latitude: float,
        longitude: float,
        cancel: Optional[asyncio.Event] = None,
    ) -> ReverseGeocodeResult:
        """尽力而为：失败返回空结果，不抛异常"""
        return await self.geocoder.reverse(latitude, longitude, cancel)

    async def search_location(
        self,
        query: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[Location]:
        """按地名搜索（手动选择城市），找不到返回 None"""
        query = query.strip()
        if not query:
            return None

        hit = await self.geocoder.search(query, cancel)
        if hit is None:
            return None

        names = await self.reverse_geocode(hit.latitude, hit.longitude, cancel)
        city = names.city
        if not city and names.is_empty:
            # 反向编码拿不到名字时用搜索结果 display_name 的第一段
            city = hit.display_name.split(",")[0].strip() or None

        return Location(
            latitude=hit.latitude,
            longitude=hit.longitude,
            city=city,
            country=names.country,
            source=LocationSource.MANUAL,
        )

    # ---------------- 权限 ----------------

    async def check_permission_state(
        self, geolocation: Optional[GeolocationProvider]
    ) -> PermissionState:
        if geolocation is None:
            logger.info("客户端不支持定位权限查询")
            return PermissionState.UNSUPPORTED
        try:
            state = await geolocation.query_permission()
        except Exception as e:
            logger.error("查询定位权限失败: %r", e)
            return PermissionState.UNSUPPORTED
        return state or PermissionState.UNSUPPORTED

    # ---------------- 回退链 ----------------

    async def _from_gps(
        self,
        geolocation: Optional[GeolocationProvider],
        options: PositionOptions,
        cancel: Optional[asyncio.Event],
    ) -> Location:
        if geolocation is None:
            raise LocationError(LocationErrorType.NOT_SUPPORTED, "客户端不支持 Geolocation")

        try:
            position = await run_with_deadline(
                geolocation.get_current_position(options), options.timeout, cancel
            )
        except LocationError:
            raise
        except (asyncio.TimeoutError, RequestCancelled) as e:
            raise LocationError(LocationErrorType.TIMEOUT, "GPS 定位超时", e) from e
        except Exception as e:
            raise LocationError(LocationErrorType.UNKNOWN_ERROR, "GPS 定位发生未知错误", e) from e

        logger.debug("GPS 坐标精度: %s m", position.accuracy)
        names = await self.reverse_geocode(position.latitude, position.longitude, cancel)
        return Location(
            latitude=position.latitude,
            longitude=position.longitude,
            city=names.city,
            country=names.country,
            source=LocationSource.GPS,
        )

    async def _from_ip(self, client_ip: Optional[str], cancel: Optional[asyncio.Event]) -> Location:
        try:
            data = await self.ip_client.lookup(client_ip, cancel)
        except LocationError:
            raise
        except Exception as e:
            raise LocationError(LocationErrorType.UNKNOWN_ERROR, "IP 定位发生未知错误", e) from e

        names = await self.reverse_geocode(data.lat, data.lon, cancel)
        # 反向编码拿不到的字段，用 IP 接口自带的名字兜底
        return Location(
            latitude=data.lat,
            longitude=data.lon,
            city=names.city or data.city or None,
            country=names.country or data.country or None,
            source=LocationSource.IP,
        )

    async def _from_default(self, cancel: Optional[asyncio.Event]) -> Location:
        names = await self.reverse_geocode(self.default_latitude, self.default_longitude, cancel)
        return Location(
            latitude=self.default_latitude,
            longitude=self.default_longitude,
            city=names.city or self.default_city or None,
            country=names.country,
            source=LocationSource.DEFAULT,
        )

    async def detect_location(
        self,
        geolocation: Optional[GeolocationProvider] = None,
        options: Optional[LocationOptions] = None,
        client_ip: Optional[str] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> Location:
        options = options or default_location_options()

        if not options.force_refresh:
            cached = self.cache.get()
            if cached is not None:
                logger.debug("使用缓存的位置: %s", cached.source.value)
                return cached

        errors: List[LocationError] = []

        try:
            location = await self._from_gps(geolocation, options, cancel)
            logger.info("GPS 定位成功")
        except LocationError as gps_error:
            logger.warning("GPS 定位失败 [%s]: %s", gps_error.kind.value, gps_error.message)
            errors.append(gps_error)

            try:
                location = await self._from_ip(client_ip, cancel)
                logger.info("IP 定位成功")
            except LocationError as ip_error:
                logger.warning("IP 定位失败 [%s]: %s", ip_error.kind.value, ip_error.message)
                errors.append(ip_error)

                location = await self._from_default(cancel)
                logger.info("使用默认位置: %s", location.city)

        if errors:
            logger.debug("定位回退过程中的错误: %r", errors)

        self.cache.set(location)
        return location
