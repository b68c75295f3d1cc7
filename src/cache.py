# -*- coding: utf-8 -*-
"""
실시간 도착정보 TTL 캐시
- 캐시 키: 정규화된 역명
- TTL: 기본 30초 (REALTIME_CACHE_TTL로 조정)
- Thread-safe: RLock으로 동시 접근 보호, 같은 키는 마지막 저장이 우선
"""
import threading
import time
from typing import Any, Dict, Optional


class TTLCache:
    """외부 API 응답용 TTL 캐시 (thread-safe)"""

    def __init__(self, ttl_seconds: float = 30.0):
        self.ttl_seconds = ttl_seconds
        self.cache: Dict[str, Dict[str, Any]] = {}  # {key: {value, timestamp}}
        self._lock = threading.RLock()

    def _is_expired(self, entry: Dict[str, Any], now: float) -> bool:
        return now - entry["timestamp"] >= self.ttl_seconds

    def get(self, key: str) -> Optional[Any]:
        """만료되지 않은 값을 반환하고, 만료된 항목은 제거한다."""
        with self._lock:
            entry = self.cache.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, time.time()):
                del self.cache[key]
                return None
            return entry["value"]

    def set(self, key: str, value: Any):
        with self._lock:
            self.cache[key] = {
                "value": value,
                "timestamp": time.time(),
            }

    def invalidate(self):
        with self._lock:
            self.cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self.cache)
