# app/services/__init__.py
"""服务层模块"""

from .location_service import ClientLocationCaches, LocationCache, LocationResolver
from .weather_cache import WeatherCache
from .weather_service import WeatherService

__all__ = ["ClientLocationCaches", "LocationCache", "LocationResolver", "WeatherCache", "WeatherService"]
