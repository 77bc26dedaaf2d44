from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.core.errors import RequestCancelled, WeatherError, WeatherErrorType
from app.schemas.weather_schemas import OpenMeteoResponse
from app.utils.aio import run_with_deadline

logger = logging.getLogger(__name__)

HOURLY_FIELDS = (
    "temperature_2m",
    "relativehumidity_2m",
    "apparent_temperature",
    "precipitation_probability",
    "weathercode",
    "surface_pressure",
    "visibility",
    "uv_index",
)

DAILY_FIELDS = (
    "temperature_2m_max",
    "temperature_2m_min",
    "weathercode",
    "precipitation_sum",
    "precipitation_probability_max",
    "windspeed_10m_max",
    "uv_index_max",
)

FORECAST_DAYS = 5


class OpenMeteoClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        timeout: Optional[float] = None,
        temperature_unit: Optional[str] = None,
    ):
        self.http_client = http_client
        self.base_url = settings.weather_api_url
        self.timeout = timeout if timeout is not None else settings.api_timeout
        self.temperature_unit = temperature_unit or settings.temp_unit

    def build_params(self, latitude: float, longitude: float) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "latitude": str(latitude),
            "longitude": str(longitude),
            "current_weather": "true",
            "hourly": ",".join(HOURLY_FIELDS),
            "daily": ",".join(DAILY_FIELDS),
            "timezone": "auto",
            "forecast_days": str(FORECAST_DAYS),
        }
        if self.temperature_unit == "fahrenheit":
            params["temperature_unit"] = "fahrenheit"
        return params

    async def fetch_forecast(
        self,
        latitude: float,
        longitude: float,
        cancel: Optional[asyncio.Event] = None,
    ) -> OpenMeteoResponse:
        """请求 Open-Meteo 并校验返回结构，失败统一抛 WeatherError"""
        try:
            resp = await run_with_deadline(
                self.http_client.get(
                    self.base_url,
                    params=self.build_params(latitude, longitude),
                    headers={"Accept": "application/json"},
                ),
                self.timeout,
                cancel,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise WeatherError(WeatherErrorType.TIMEOUT, "天气接口请求超时", e) from e
        except RequestCancelled as e:
            raise WeatherError(WeatherErrorType.TIMEOUT, "天气接口请求已取消", e) from e
        except httpx.TransportError as e:
            raise WeatherError(WeatherErrorType.NETWORK_ERROR, "获取天气数据时网络错误", e) from e
        except Exception as e:
            raise WeatherError(WeatherErrorType.UNKNOWN_ERROR, str(e) or "获取天气数据时发生未知错误", e) from e

        if not resp.is_success:
            raise WeatherError(
                WeatherErrorType.API_ERROR,
                f"天气接口请求失败，状态码: {resp.status_code}",
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise WeatherError(WeatherErrorType.INVALID_RESPONSE, "天气接口返回的不是合法 JSON", e) from e

        try:
            return OpenMeteoResponse.model_validate(data)
        except ValidationError as e:
            logger.warning("天气接口返回结构校验失败: %s", e.errors())
            raise WeatherError(WeatherErrorType.VALIDATION_ERROR, "天气接口返回的数据无效", e) from e
