from __future__ import annotations

import asyncio
import ipaddress
import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from app.core.config import settings
from app.core.errors import LocationError, LocationErrorType, RequestCancelled
from app.schemas.location_schemas import IPLocationResponse, ReverseGeocodeResult
from app.utils.aio import run_with_deadline

logger = logging.getLogger(__name__)

# Nominatim address 里可能表示"城市"的字段，按优先级排列
CITY_FIELDS = ("city", "town", "village", "hamlet", "municipality")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class NominatimSearchResult(BaseModel):
    latitude: float
    longitude: float
    display_name: str


class NominatimClient:
    """
    OpenStreetMap Nominatim 正向 / 反向地理编码

    只是"锦上添花"：任何失败都记日志后返回空结果，不向上抛
    """

    def __init__(self, http_client: httpx.AsyncClient, timeout: Optional[float] = None):
        self.http_client = http_client
        self.base_url = settings.nominatim_base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.geocode_timeout
        self.headers = {"User-Agent": settings.user_agent, "Accept": "application/json"}

    async def _get_json(self, path: str, params: dict, cancel: Optional[asyncio.Event]) -> Any:
        resp = await run_with_deadline(
            self.http_client.get(f"{self.base_url}{path}", params=params, headers=self.headers),
            self.timeout,
            cancel,
        )
        resp.raise_for_status()
        return resp.json()

    async def reverse(
        self,
        latitude: float,
        longitude: float,
        cancel: Optional[asyncio.Event] = None,
    ) -> ReverseGeocodeResult:
        params = {
            "format": "json",
            "lat": str(latitude),
            "lon": str(longitude),
            "accept-language": "en",
            "zoom": "10",  # 城市级别
        }
        try:
            data = await self._get_json("/reverse", params, cancel)
        except httpx.HTTPStatusError as e:
            logger.warning("反向地理编码失败，状态码: %s", e.response.status_code)
            return ReverseGeocodeResult()
        except Exception as e:
            logger.warning("反向地理编码异常: %r", e)
            return ReverseGeocodeResult()

        address = data.get("address") if isinstance(data, dict) else None
        if not isinstance(address, dict):
            return ReverseGeocodeResult()

        city = next((address[f] for f in CITY_FIELDS if address.get(f)), None)
        country = address.get("country") or None
        return ReverseGeocodeResult(
            city=city if isinstance(city, str) else None,
            country=country if isinstance(country, str) else None,
        )

    async def search(
        self,
        query: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[NominatimSearchResult]:
        params = {"q": query, "format": "json", "limit": "1"}
        try:
            data = await self._get_json("/search", params, cancel)
        except Exception as e:
            logger.warning("地点搜索失败 q=%s: %r", query, e)
            return None

        if not isinstance(data, list) or not data:
            return None

        first = data[0]
        try:
            lat = float(first["lat"])
            lon = float(first["lon"])
        except (KeyError, TypeError, ValueError):
            logger.warning("地点搜索返回的坐标无法解析: %r", first)
            return None
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            return None

        return NominatimSearchResult(
            latitude=lat,
            longitude=lon,
            display_name=str(first.get("display_name") or ""),
        )


class IpLocationClient:
    """ip-api.com：根据 IP 粗略定位"""

    def __init__(self, http_client: httpx.AsyncClient, timeout: Optional[float] = None):
        self.http_client = http_client
        self.base_url = settings.ip_api_url
        self.timeout = timeout if timeout is not None else settings.ip_timeout

    def _url_for(self, client_ip: Optional[str]) -> str:
        # 内网 / 回环地址查不到有意义的位置，退回查询服务端出口 IP
        if client_ip:
            try:
                if ipaddress.ip_address(client_ip).is_global:
                    return f"{self.base_url.rstrip('/')}/{client_ip}"
            except ValueError:
                logger.debug("客户端 IP 格式非法，忽略: %s", client_ip)
        return self.base_url

    async def lookup(
        self,
        client_ip: Optional[str] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> IPLocationResponse:
        try:
            resp = await run_with_deadline(
                self.http_client.get(
                    self._url_for(client_ip), headers={"Accept": "application/json"}
                ),
                self.timeout,
                cancel,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException, RequestCancelled) as e:
            raise LocationError(LocationErrorType.TIMEOUT, "IP 定位请求超时", e) from e
        except httpx.TransportError as e:
            raise LocationError(LocationErrorType.NETWORK_ERROR, "IP 定位网络错误", e) from e

        if not resp.is_success:
            raise LocationError(
                LocationErrorType.UNKNOWN_ERROR,
                f"IP 定位请求失败，状态码: {resp.status_code}",
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise LocationError(LocationErrorType.UNKNOWN_ERROR, "IP 定位返回的不是 JSON", e) from e

        if not isinstance(data, dict) or data.get("status") != "success":
            message = data.get("message") if isinstance(data, dict) else None
            raise LocationError(LocationErrorType.UNKNOWN_ERROR, message or "IP 定位失败")

        lat, lon = data.get("lat"), data.get("lon")
        if not (_is_number(lat) and _is_number(lon)) or not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise LocationError(LocationErrorType.UNKNOWN_ERROR, "IP 定位返回的坐标无效")

        return IPLocationResponse.model_validate(data)
