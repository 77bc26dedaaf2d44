from __future__ import annotations

import httpx
import pytest
import pytest_asyncio
import respx
from asgi_lifespan import LifespanManager

from app.main import app


class FakeClock:
    """可手动拨动的时钟，替代 time.time"""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def open_meteo_payload() -> dict:
    """Open-Meteo /v1/forecast 的一份精简返回"""
    return {
        "latitude": 37.77,
        "longitude": -122.42,
        "generationtime_ms": 0.5,
        "utc_offset_seconds": 0,
        "timezone": "GMT",
        "timezone_abbreviation": "GMT",
        "elevation": 16.0,
        "current_weather": {
            "temperature": 14.5,
            "weathercode": 2,
            "windspeed": 12.4,
            "winddirection": 270.0,
            "time": "2024-05-01T01:00",
        },
        "hourly": {
            "time": ["2024-05-01T00:00", "2024-05-01T01:00", "2024-05-01T02:00"],
            "temperature_2m": [14.0, 14.5, 13.9],
            "relativehumidity_2m": [80, 82, 85],
            "apparent_temperature": [12.2, 12.6, 12.0],
            "precipitation_probability": [0, 5, 10],
            "weathercode": [1, 2, 3],
            "surface_pressure": [1012.4, 1013.6, 1014.0],
            "visibility": [24000.0, 18500.0, 16000.0],
            "uv_index": [0.0, 0.0, 0.0],
        },
        "daily": {
            "time": ["2024-05-01", "2024-05-02"],
            "temperature_2m_max": [18.4, 19.5],
            "temperature_2m_min": [11.2, 10.5],
            "weathercode": [2, 61],
            "precipitation_sum": [0.0, 3.2],
            "precipitation_probability_max": [5, 70],
            "windspeed_10m_max": [20.1, 25.3],
            "uv_index_max": [6.1, 4.0],
        },
    }


@pytest.fixture
def forecast_payload() -> dict:
    return open_meteo_payload()


@pytest.fixture
def upstream():
    """
    拦截所有对上游（Open-Meteo / ip-api / Nominatim）的 HTTP 请求

    ASGITransport 不经过 httpcore，测试客户端打到 app 的请求不受影响
    """
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest_asyncio.fixture
async def client():
    """
    提供一个可用于 async 测试的 HTTP 客户端：
    - 触发 FastAPI lifespan，每个测试拿到全新的缓存
    - 仍然使用 ASGITransport 写法
    """
    async with LifespanManager(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(
            transport=transport,
            base_url="http://test",
        ) as ac:
            yield ac

    app.dependency_overrides.clear()
