# app/main.py
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.api.weather import router as weather_router
from app.api.health import router as health_router
from app.api.geo import router as geo_router
from app.api.location import router as location_router
from app.api.cache import router as cache_router
from app.core.config import settings
from app.core.errors import (
    WeatherError,
    http_exception_handler,
    validation_exception_handler,
    weather_exception_handler,
)
from app.middlewares.request_id import request_id_middleware
from app.middlewares.logging import LoggingMiddleware
from app.services.location_service import ClientLocationCaches
from app.services.weather_cache import WeatherCache


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 应用启动：全局 httpx.AsyncClient + 进程内缓存（每个进程各一份）
    http_client = httpx.AsyncClient(timeout=settings.api_timeout)
    app.state.http_client = http_client
    app.state.weather_cache = WeatherCache(
        max_entries=settings.cache_max_entries,
        ttl=settings.cache_ttl,
        enabled=settings.cache_enabled,
    )
    # 位置缓存按客户端 IP 分开，每个客户端一个单槽
    app.state.location_caches = ClientLocationCaches(
        ttl=settings.location_cache_ttl,
        max_clients=settings.location_cache_max_clients,
    )
    yield
    # 应用关闭：释放 http client
    await http_client.aclose()


app = FastAPI(
    title="Weather Lite",
    lifespan=lifespan,
)

# middleware
app.middleware("http")(request_id_middleware)
# 使用纯 ASGI 中间件，避免 BaseHTTPMiddleware 在 Python 3.11+ 中的兼容性问题
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID", "X-Cache"],
)

# exception handlers
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(WeatherError, weather_exception_handler)

# routers
app.include_router(weather_router)
app.include_router(health_router)
app.include_router(geo_router)
app.include_router(location_router)
app.include_router(cache_router)


@app.get("/health")
async def health():
    return {"status": "ok", "message": "FastAPI is running!"}
