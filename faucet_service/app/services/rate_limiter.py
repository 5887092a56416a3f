from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable


class SlidingWindowRateLimiter:
    """키(클라이언트 IP)별 슬라이딩 윈도우 요청 제한.

    프로세스 메모리에만 보관하므로 인스턴스가 여러 개면 인스턴스마다 따로 센다.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        max_tracked_keys: int = 1024,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be > 0")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if max_tracked_keys <= 0:
            raise ValueError("max_tracked_keys must be > 0")
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._max_tracked_keys = max_tracked_keys
        self._evict_threshold = max_tracked_keys
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> bool:
        """요청 한 번을 기록한다. 허용되면 True, 제한에 걸리면 False (기록하지 않음)."""

        with self._lock:
            now = self._clock()
            window_start = now - self._window_seconds

            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= window_start:
                hits.popleft()

            if len(hits) >= self._max_requests:
                return False

            hits.append(now)
            # 추적 키가 임계치를 넘을 때만 전체를 훑는다.
            if len(self._hits) > self._evict_threshold:
                self._evict_idle(window_start)
                # 활성 키가 많이 남으면 다음 정리 시점을 늦춘다.
                self._evict_threshold = max(self._max_tracked_keys, 2 * len(self._hits))
            return True

    @property
    def tracked_keys(self) -> int:
        return len(self._hits)

    def _evict_idle(self, window_start: float) -> None:
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in idle:
            del self._hits[key]
