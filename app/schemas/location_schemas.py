from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LocationSource(str, Enum):
    GPS = "gps"
    IP = "ip"
    MANUAL = "manual"
    DEFAULT = "default"


class PermissionState(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"
    UNSUPPORTED = "unsupported"


class Location(BaseModel):
    """一次定位的结果；创建后不可修改，新的定位结果直接替换旧对象"""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    city: Optional[str] = None
    country: Optional[str] = None
    source: LocationSource


class ReverseGeocodeResult(BaseModel):
    """反向地理编码结果，两个字段都可能为空"""

    city: Optional[str] = None
    country: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.city and not self.country


class PositionOptions(BaseModel):
    enable_high_accuracy: bool = True
    timeout: float = Field(5.0, gt=0)  # 秒
    maximum_age: float = Field(300.0, ge=0)  # 秒


class Position(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = None


class LocationOptions(PositionOptions):
    force_refresh: bool = False


class ClientPositionOptions(BaseModel):
    """
    浏览器 navigator.geolocation.getCurrentPosition 的参数

    服务端拿不到设备，高精度 / 缓存时长只能由浏览器执行，这里按 W3C 的写法（毫秒）回传
    """

    enableHighAccuracy: bool
    timeout: int  # 毫秒
    maximumAge: int  # 毫秒

    @classmethod
    def from_options(cls, options: PositionOptions) -> "ClientPositionOptions":
        return cls(
            enableHighAccuracy=options.enable_high_accuracy,
            timeout=round(options.timeout * 1000),
            maximumAge=round(options.maximum_age * 1000),
        )


class IPLocationResponse(BaseModel):
    """ip-api.com 返回结构"""

    model_config = ConfigDict(extra="ignore")

    status: str
    lat: Optional[float] = None
    lon: Optional[float] = None
    city: Optional[str] = None
    country: Optional[str] = None
    message: Optional[str] = None


# ---------------- 接口响应 ----------------

class LocationResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Location] = None
    positionOptions: Optional[ClientPositionOptions] = None
    timestamp: datetime


class PermissionResponse(BaseModel):
    success: bool
    state: PermissionState
    timestamp: datetime


class GeoResponse(BaseModel):
    """反向地理编码响应"""

    success: bool
    message: str
    data: Optional[ReverseGeocodeResult] = None
    timestamp: datetime
