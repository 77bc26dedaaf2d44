"""
设备定位（GPS）来源

服务端本身没有 GPS：浏览器调用 Geolocation API 后把结果（坐标或错误码）
通过查询参数带上来，这里把它包装成统一的 GeolocationProvider。
"""
from __future__ import annotations

import abc
from typing import Optional

from app.core.errors import LocationError, LocationErrorType
from app.schemas.location_schemas import PermissionState, Position, PositionOptions

# W3C GeolocationPositionError.code
GPS_ERROR_CODES = {
    1: (LocationErrorType.PERMISSION_DENIED, "用户拒绝了定位权限"),
    2: (LocationErrorType.POSITION_UNAVAILABLE, "无法获取位置信息"),
    3: (LocationErrorType.TIMEOUT, "定位请求超时"),
}


class GeolocationProvider(abc.ABC):
    @abc.abstractmethod
    async def get_current_position(self, options: PositionOptions) -> Position:
        """成功返回坐标，失败抛 LocationError"""

    async def query_permission(self) -> Optional[PermissionState]:
        """返回权限状态；不支持权限查询时返回 None"""
        return None


class ClientReportedGeolocation(GeolocationProvider):
    """
    浏览器已经定位完再上报的结果

    PositionOptions 里的高精度 / maximum_age 由浏览器执行（detect 响应里的 positionOptions），
    这里只用 timeout 限制等待时间；accuracy 原样带回，不参与判断
    """

    def __init__(
        self,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        accuracy: Optional[float] = None,
        error_code: Optional[int] = None,
        permission: Optional[PermissionState] = None,
    ) -> None:
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy = accuracy
        self.error_code = error_code
        self.permission = permission

    @classmethod
    def from_query(
        cls,
        latitude: Optional[float],
        longitude: Optional[float],
        accuracy: Optional[float] = None,
        error_code: Optional[int] = None,
        permission: Optional[PermissionState] = None,
    ) -> Optional["ClientReportedGeolocation"]:
        """客户端什么都没报上来时返回 None（视为不支持定位）"""
        if latitude is None and longitude is None and error_code is None and permission is None:
            return None
        return cls(latitude, longitude, accuracy, error_code, permission)

    async def get_current_position(self, options: PositionOptions) -> Position:
        if self.error_code is not None:
            kind, message = GPS_ERROR_CODES.get(
                self.error_code, (LocationErrorType.UNKNOWN_ERROR, "定位发生未知错误")
            )
            raise LocationError(kind, message)

        if self.permission == PermissionState.DENIED:
            raise LocationError(LocationErrorType.PERMISSION_DENIED, "用户拒绝了定位权限")

        if self.latitude is None or self.longitude is None:
            raise LocationError(LocationErrorType.POSITION_UNAVAILABLE, "客户端未提供坐标")

        return Position(latitude=self.latitude, longitude=self.longitude, accuracy=self.accuracy)

    async def query_permission(self) -> Optional[PermissionState]:
        if self.permission is not None:
            return self.permission
        # 报了坐标说明已授权；报了 1 号错误说明被拒绝
        if self.latitude is not None and self.longitude is not None:
            return PermissionState.GRANTED
        if self.error_code == 1:
            return PermissionState.DENIED
        return None
