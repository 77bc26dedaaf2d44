import logging
from typing import Literal

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


ENV_FILE_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
)


class Settings(BaseSettings):

    model_config = ENV_FILE_CONFIG

    # 当前环境：dev / test / prod
    env: str = Field("dev", alias="ENV")

    # ==== 默认位置（GPS / IP 都失败时兜底） ====
    default_city: str = Field("San Francisco, California", alias="DEFAULT_CITY")
    default_lat: float = Field(37.7749, ge=-90, le=90, alias="DEFAULT_LAT")
    default_lon: float = Field(-122.4194, ge=-180, le=180, alias="DEFAULT_LON")

    # 温度单位
    temp_unit: Literal["celsius", "fahrenheit"] = Field("celsius", alias="TEMP_UNIT")

    # ==== 超时（秒） ====
    api_timeout: float = Field(10.0, ge=1, le=30, alias="API_TIMEOUT")
    geo_timeout: float = Field(5.0, ge=1, le=15, alias="GEO_TIMEOUT")
    ip_timeout: float = Field(3.0, ge=0.5, le=15, alias="IP_TIMEOUT")
    geocode_timeout: float = Field(5.0, ge=0.5, le=30, alias="GEOCODE_TIMEOUT")

    # GPS 选项
    gps_high_accuracy: bool = Field(True, alias="GPS_HIGH_ACCURACY")
    gps_maximum_age: float = Field(300.0, ge=0, alias="GPS_MAXIMUM_AGE")

    # ==== 缓存 ====
    # 位置单槽缓存有效期（秒）
    location_cache_ttl: float = Field(300.0, gt=0, alias="LOCATION_CACHE_TTL")
    # 最多为多少个客户端各保留一份位置缓存
    location_cache_max_clients: int = Field(1000, ge=1, alias="LOCATION_CACHE_MAX_CLIENTS")
    # 天气缓存有效期（秒）
    cache_ttl: float = Field(600.0, ge=60, le=3600, alias="CACHE_TTL")
    cache_enabled: bool = Field(True, alias="ENABLE_CACHE")
    cache_max_entries: int = Field(10, ge=1, le=1000, alias="CACHE_MAX_ENTRIES")

    # ==== 上游接口 ====
    weather_api_url: str = Field(
        "https://api.open-meteo.com/v1/forecast",
        alias="WEATHER_API_URL",
    )
    ip_api_url: str = Field("http://ip-api.com/json/", alias="IP_API_URL")
    nominatim_base_url: str = Field(
        "https://nominatim.openstreetmap.org",
        alias="NOMINATIM_BASE_URL",
    )
    # Nominatim 要求必须带 User-Agent
    user_agent: str = Field(
        "WeatherLite/1.0 (https://github.com/riseansmal/weather-lite)",
        alias="USER_AGENT",
    )


class _EnvName(BaseSettings):
    """只读 ENV，和 Settings 同样的来源（环境变量 + .env）"""

    model_config = ENV_FILE_CONFIG

    env: str = Field("dev", alias="ENV")


def load_settings() -> Settings:
    """
    读取并校验环境变量

    - dev 环境：配置非法直接抛错，尽早暴露问题
    - 其他环境：记录错误后退回默认值
    """
    try:
        return Settings()
    except ValidationError as e:
        logger.error("环境变量配置无效: %s", e.errors())
        if _EnvName().env == "dev":
            raise
        return Settings.model_construct()


settings = load_settings()
