from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence, Tuple, TypeVar

from app.clients.weather_clients import OpenMeteoClient
from app.schemas.location_schemas import Location
from app.schemas.weather_schemas import (
    CurrentWeather,
    ForecastDay,
    OpenMeteoHourly,
    OpenMeteoResponse,
    WeatherData,
    WeatherLocation,
)
from app.services.weather_cache import WeatherCache
from app.utils.weather_utils import (
    get_day_of_week,
    get_uv_index_level,
    get_weather_condition,
    get_weather_icon,
    get_wind_category,
    round_half_up,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PRESSURE = 1013  # hPa
DEFAULT_VISIBILITY_KM = 10


def _at(values: Optional[Sequence[Optional[T]]], index: int) -> Optional[T]:
    if not values or not 0 <= index < len(values):
        return None
    return values[index]


def _current_hour_index(hourly: Optional[OpenMeteoHourly], utc_offset_seconds: int, now: datetime) -> int:
    """找到当地当前整点在 hourly 里的下标，找不到用 0"""
    if hourly is None:
        return 0
    local_now = now.astimezone(timezone.utc) + timedelta(seconds=utc_offset_seconds)
    prefix = local_now.strftime("%Y-%m-%dT%H")
    for i, t in enumerate(hourly.time):
        if t.startswith(prefix):
            return i
    return 0


def _display_name(location: Location) -> str:
    return location.city or f"{location.latitude:.2f}, {location.longitude:.2f}"


def transform_weather_response(
    raw: OpenMeteoResponse,
    location: Location,
    now: Optional[datetime] = None,
) -> WeatherData:
    """Open-Meteo 原始结构 -> 对外的 WeatherData"""
    now = now or datetime.now(timezone.utc)
    hourly = raw.hourly
    idx = _current_hour_index(hourly, raw.utc_offset_seconds, now)
    cw = raw.current_weather

    apparent = _at(hourly.apparent_temperature, idx) if hourly else None
    humidity = _at(hourly.relativehumidity_2m, idx) if hourly else None
    pressure = _at(hourly.surface_pressure, idx) if hourly else None
    uv_index = _at(hourly.uv_index, idx) if hourly else None
    visibility = _at(hourly.visibility, idx) if hourly else None

    wind_speed = round_half_up(cw.windspeed)
    uv = uv_index if uv_index is not None else 0

    current = CurrentWeather(
        temperature=round_half_up(cw.temperature),
        feelsLike=round_half_up(apparent if apparent is not None else cw.temperature),
        condition=get_weather_condition(cw.weathercode),
        weatherCode=cw.weathercode,
        humidity=humidity if humidity is not None else 0,
        windSpeed=wind_speed,
        windDirection=cw.winddirection,
        pressure=round_half_up(pressure) if pressure is not None else DEFAULT_PRESSURE,
        uvIndex=uv,
        uvLevel=get_uv_index_level(uv).label,
        windCategory=get_wind_category(wind_speed),
        # 米 -> 公里
        visibility=round_half_up(visibility / 1000) if visibility is not None else DEFAULT_VISIBILITY_KM,
        icon=get_weather_icon(cw.weathercode),
        time=cw.time,
    )

    daily = raw.daily
    forecast = []
    for i, day in enumerate(daily.time):
        code = _at(daily.weathercode, i)
        code = code if code is not None else -1
        t_max = _at(daily.temperature_2m_max, i)
        t_min = _at(daily.temperature_2m_min, i)
        forecast.append(
            ForecastDay(
                date=day,
                dayOfWeek=get_day_of_week(day),
                temperatureMax=round_half_up(t_max) if t_max is not None else 0,
                temperatureMin=round_half_up(t_min) if t_min is not None else 0,
                condition=get_weather_condition(code),
                weatherCode=code,
                icon=get_weather_icon(code),
                precipitationSum=_at(daily.precipitation_sum, i) or 0,
                precipitationProbability=_at(daily.precipitation_probability_max, i) or 0,
                windSpeedMax=_at(daily.windspeed_10m_max, i) or 0,
                uvIndexMax=_at(daily.uv_index_max, i) or 0,
            )
        )

    weather_location = WeatherLocation(
        name=_display_name(location),
        country=location.country,
        latitude=raw.latitude,
        longitude=raw.longitude,
        timezone=raw.timezone,
    )

    return WeatherData(
        current=current,
        forecast=forecast,
        location=weather_location,
        timestamp=int(now.timestamp() * 1000),
        source="api",
    )


class WeatherService:
    def __init__(self, weather_client: OpenMeteoClient, cache: WeatherCache) -> None:
        self.weather_client = weather_client
        self.cache = cache

    async def fetch_weather(
        self,
        location: Location,
        cancel: Optional[asyncio.Event] = None,
    ) -> WeatherData:
        """直接请求上游，不读写缓存；失败抛 WeatherError"""
        raw = await self.weather_client.fetch_forecast(location.latitude, location.longitude, cancel)
        return transform_weather_response(raw, location)

    async def get_weather(
        self,
        location: Location,
        cancel: Optional[asyncio.Event] = None,
    ) -> Tuple[WeatherData, bool]:
        """
        先查缓存，未命中再请求 Open-Meteo 并写回缓存

        返回 (数据, 是否来自缓存)；上游失败时 WeatherError 原样抛给调用方
        """
        cached = self.cache.get(location)
        if cached is not None:
            # 同一个缓存 key 可能对应不同的显示名，用本次请求的名字
            if isinstance(cached, WeatherData):
                cached = cached.model_copy(
                    update={
                        "location": cached.location.model_copy(
                            update={"name": _display_name(location), "country": location.country}
                        )
                    }
                )
            return cached, True

        data = await self.fetch_weather(location, cancel)
        # 只有完整成功才写缓存
        self.cache.set(location, data)
        return data, False
