"""
天气相关的常量与小工具

WMO 天气代码含义参考 https://open-meteo.com/en/docs#weathervariables
"""
from __future__ import annotations

import math
from datetime import date
from typing import Dict, NamedTuple

WEATHER_CODES: Dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}

WEATHER_ICONS: Dict[int, str] = {
    0: "☀️",
    1: "🌤️",
    2: "⛅",
    3: "☁️",
    45: "🌫️",
    48: "🌫️",
    51: "🌦️",
    53: "🌦️",
    55: "🌦️",
    56: "🌨️",
    57: "🌨️",
    61: "🌧️",
    63: "🌧️",
    65: "🌧️",
    66: "🌨️",
    67: "🌨️",
    71: "🌨️",
    73: "❄️",
    75: "❄️",
    77: "🌨️",
    80: "🌦️",
    81: "🌧️",
    82: "⛈️",
    85: "🌨️",
    86: "❄️",
    95: "⛈️",
    96: "⛈️",
    99: "⛈️",
}

UNKNOWN_ICON = "❓"

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class Level(NamedTuple):
    min: float
    max: float
    label: str
    color: str = ""


# 风速分级（km/h），区间左闭右开
WIND_SPEED_CATEGORIES = (
    Level(0, 5, "Calm"),
    Level(5, 20, "Light"),
    Level(20, 40, "Moderate"),
    Level(40, 60, "Strong"),
    Level(60, 90, "Gale"),
    Level(90, math.inf, "Storm"),
)

# 紫外线指数分级，区间两端闭合
UV_INDEX_LEVELS = (
    Level(0, 2, "Low", "#4ade80"),
    Level(3, 5, "Moderate", "#facc15"),
    Level(6, 7, "High", "#fb923c"),
    Level(8, 10, "Very High", "#f87171"),
    Level(11, math.inf, "Extreme", "#dc2626"),
)


def round_half_up(value: float) -> int:
    # 内置 round 是银行家舍入，2.5 -> 2；这里要 2.5 -> 3
    return math.floor(value + 0.5)


def convert_temp(temp: float, to: str) -> int:
    """摄氏度 -> 目标单位并取整；Open-Meteo 默认返回摄氏度"""
    if to == "fahrenheit":
        return round_half_up(temp * 9 / 5 + 32)
    return round_half_up(temp)


def get_weather_condition(code: int) -> str:
    return WEATHER_CODES.get(code, "Unknown")


def get_weather_icon(code: int) -> str:
    return WEATHER_ICONS.get(code, UNKNOWN_ICON)


def get_day_of_week(date_string: str) -> str:
    """"2024-05-01" -> "Wednesday" """
    return DAY_NAMES[date.fromisoformat(date_string[:10]).weekday()]


def get_wind_category(speed: float) -> str:
    for category in WIND_SPEED_CATEGORIES:
        if category.min <= speed < category.max:
            return category.label
    return "Unknown"


def get_uv_index_level(index: float) -> Level:
    for level in UV_INDEX_LEVELS:
        if level.min <= index <= level.max:
            return level
    return UV_INDEX_LEVELS[0]
