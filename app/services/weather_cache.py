"""
进程内天气缓存：LRU 淘汰 + TTL 过期

- key：坐标保留 4 位小数（约 11m 精度），格式 "lat,lon"
- 读写都会刷新最近使用顺序；容量满且写入新 key 时淘汰最久未使用的一条
- 过期条目不主动清理，下一次 get / has 访问到时才删除
- enabled=False 时读写全部绕过存储

单进程、协程调度下使用：所有修改都在两个 await 之间同步完成，不加锁。
"""
from __future__ import annotations

import logging
import math
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class HasCoordinates(Protocol):
    latitude: float
    longitude: float


@dataclass(slots=True)
class WeatherCacheEntry:
    data: Any
    timestamp: float
    expires_at: float


def make_cache_key(latitude: float, longitude: float) -> Optional[str]:
    """坐标 -> 缓存 key；坐标非法（NaN / inf / 非数字）返回 None"""
    try:
        lat = float(latitude)
        lon = float(longitude)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    # + 0.0 把 -0.0 归一成 0.0，避免 "-0.0000" 和 "0.0000" 成为两个 key
    return f"{round(lat, 4) + 0.0:.4f},{round(lon, 4) + 0.0:.4f}"


def _mark_cached(data: Any) -> Any:
    """浅拷贝一份并把来源标记为 cache；存储里的原对象不动"""
    if isinstance(data, BaseModel):
        return data.model_copy(update={"source": "cache"})
    if isinstance(data, dict):
        return {**data, "source": "cache"}
    return data


class WeatherCache:
    def __init__(
        self,
        max_entries: int = 10,
        ttl: float = 600.0,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries 必须 >= 1")
        if ttl <= 0:
            raise ValueError("ttl 必须 > 0")
        self._entries: "OrderedDict[str, WeatherCacheEntry]" = OrderedDict()
        self.max_entries = max_entries
        self.ttl = ttl
        self.enabled = enabled
        self._clock = clock

    @property
    def size(self) -> int:
        return len(self._entries)

    def _key(self, location: HasCoordinates) -> Optional[str]:
        key = make_cache_key(
            getattr(location, "latitude", None), getattr(location, "longitude", None)
        )
        if key is None:
            logger.warning("坐标非法，按未命中处理: %r", location)
        return key

    def _live_entry(self, key: str) -> Optional[WeatherCacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            logger.debug("天气缓存已过期: %s", key)
            del self._entries[key]
            return None
        return entry

    def get(self, location: HasCoordinates) -> Any:
        if not self.enabled:
            return None

        key = self._key(location)
        if key is None:
            return None

        entry = self._live_entry(key)
        if entry is None:
            logger.debug("天气缓存未命中: %s", key)
            return None

        self._entries.move_to_end(key)
        logger.debug("天气缓存命中: %s", key)
        return _mark_cached(entry.data)

    def set(self, location: HasCoordinates, data: Any) -> None:
        if not self.enabled:
            return

        key = self._key(location)
        if key is None:
            return

        now = self._clock()
        entry = WeatherCacheEntry(data=data, timestamp=now, expires_at=now + self.ttl)

        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("淘汰最久未使用的天气缓存: %s", evicted)

        self._entries[key] = entry
        logger.debug("写入天气缓存: %s", key)

    def has(self, location: HasCoordinates) -> bool:
        """与 get 相同的过期语义，但不刷新最近使用顺序"""
        if not self.enabled:
            return False
        key = self._key(location)
        if key is None:
            return False
        return self._live_entry(key) is not None

    def clear(self) -> None:
        self._entries.clear()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "maxEntries": self.max_entries,
            "ttl": self.ttl,
            "enabled": self.enabled,
        }
