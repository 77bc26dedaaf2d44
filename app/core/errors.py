from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc).isoformat()


# ---------------- 领域错误 ----------------

class LocationErrorType(str, Enum):
    PERMISSION_DENIED = "PERMISSION_DENIED"
    POSITION_UNAVAILABLE = "POSITION_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    NOT_SUPPORTED = "NOT_SUPPORTED"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class WeatherErrorType(str, Enum):
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    API_ERROR = "API_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class LocationError(Exception):
    """定位失败（GPS / IP），只在回退链内部流转，不会抛给调用方"""

    def __init__(
        self,
        kind: LocationErrorType,
        message: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause

    def __repr__(self) -> str:
        return f"LocationError({self.kind.value}: {self.message})"


class WeatherError(Exception):
    """天气接口失败，按类型打标签后抛给路由层"""

    # 可重试：网络抖动 / 超时；其余视为硬失败
    RETRYABLE = frozenset({WeatherErrorType.TIMEOUT, WeatherErrorType.NETWORK_ERROR})

    def __init__(
        self,
        kind: WeatherErrorType,
        message: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause

    @property
    def retryable(self) -> bool:
        return self.kind in self.RETRYABLE

    def __repr__(self) -> str:
        return f"WeatherError({self.kind.value}: {self.message})"


class RequestCancelled(Exception):
    """调用方通过取消信号中止了请求"""


# ---------------- 异常处理器 ----------------

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.detail,
            "path": str(request.url.path),
            "requestId": getattr(request.state, "request_id", None),
            "timestamp": _now(),
        },
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "参数校验失败",
            "errors": [
                {"field": ".".join(str(p) for p in e.get("loc", ())), "message": e.get("msg")}
                for e in exc.errors()
            ],
            "path": str(request.url.path),
            "requestId": getattr(request.state, "request_id", None),
            "timestamp": _now(),
        },
    )


def _weather_error_status(exc: WeatherError) -> int:
    if exc.retryable:
        return 503
    if exc.kind == WeatherErrorType.UNKNOWN_ERROR:
        return 500
    return 502


async def weather_exception_handler(request: Request, exc: WeatherError):
    logger.warning("天气数据获取失败 [%s]: %s", exc.kind.value, exc.message)
    return JSONResponse(
        status_code=_weather_error_status(exc),
        content={
            "success": False,
            "message": exc.message or "获取天气数据失败",
            "type": exc.kind.value,
            "retryable": exc.retryable,
            "path": str(request.url.path),
            "requestId": getattr(request.state, "request_id", None),
            "timestamp": _now(),
        },
    )
