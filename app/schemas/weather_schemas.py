# app/schemas/weather_schemas.py
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict


# -------- Open-Meteo 原始结构（只做校验，不直接对外） --------

class OpenMeteoCurrentWeather(BaseModel):
    temperature: float
    weathercode: int
    windspeed: float
    winddirection: float
    time: str
    is_day: Optional[int] = None


class OpenMeteoHourly(BaseModel):
    time: List[str]
    temperature_2m: List[float]
    relativehumidity_2m: List[float]
    apparent_temperature: List[float]
    precipitation_probability: Optional[List[Optional[float]]] = None
    weathercode: List[int]
    surface_pressure: List[float]
    visibility: Optional[List[Optional[float]]] = None
    uv_index: Optional[List[Optional[float]]] = None


class OpenMeteoDaily(BaseModel):
    time: List[str]
    temperature_2m_max: List[float]
    temperature_2m_min: List[float]
    weathercode: List[int]
    precipitation_sum: Optional[List[Optional[float]]] = None
    precipitation_probability_max: Optional[List[Optional[float]]] = None
    windspeed_10m_max: Optional[List[Optional[float]]] = None
    uv_index_max: Optional[List[Optional[float]]] = None


class OpenMeteoResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    latitude: float
    longitude: float
    generationtime_ms: float
    utc_offset_seconds: int
    timezone: str
    timezone_abbreviation: str
    elevation: Optional[float] = None
    current_weather: OpenMeteoCurrentWeather
    hourly: Optional[OpenMeteoHourly] = None
    daily: OpenMeteoDaily


# -------- 对外的天气数据 --------

class CurrentWeather(BaseModel):
    temperature: int
    feelsLike: int
    condition: str
    weatherCode: int
    humidity: float
    windSpeed: int
    windDirection: float
    pressure: int
    uvIndex: float
    uvLevel: str
    windCategory: str
    visibility: int  # km
    icon: str
    time: str


class ForecastDay(BaseModel):
    date: str
    dayOfWeek: str
    temperatureMax: int
    temperatureMin: int
    condition: str
    weatherCode: int
    icon: str
    precipitationSum: float
    precipitationProbability: float
    windSpeedMax: float
    uvIndexMax: float


class WeatherLocation(BaseModel):
    name: str
    country: Optional[str] = None
    latitude: float
    longitude: float
    timezone: str


class WeatherData(BaseModel):
    current: CurrentWeather
    forecast: List[ForecastDay]
    location: WeatherLocation
    timestamp: int  # 毫秒时间戳
    source: Literal["api", "cache"]


class WeatherResponse(BaseModel):
    success: bool
    message: str
    cached: bool = False
    data: Optional[WeatherData] = None
    timestamp: datetime


# -------- 缓存 --------

class CacheStats(BaseModel):
    size: int
    maxEntries: int
    ttl: float  # 秒
    enabled: bool


class CacheStatsResponse(BaseModel):
    success: bool
    data: CacheStats
    timestamp: datetime


class ClearCacheResponse(BaseModel):
    success: bool
    message: str
    timestamp: datetime
