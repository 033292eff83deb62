"""스캐너 중복 입력 억제 캐시"""

import time
from typing import Callable, Dict

DEDUP_WINDOW_MS = 2000
DEDUP_HORIZON_MS = 5000


class DedupCache:
    """한 번의 물리적 스캔이 여러 입력으로 들어오는 경우를 걸러냅니다."""

    def __init__(self, window_ms: int = DEDUP_WINDOW_MS, horizon_ms: int = DEDUP_HORIZON_MS,
                 clock: Callable[[], float] = time.monotonic):
        self.window_ms = window_ms
        self.horizon_ms = horizon_ms
        self._clock = clock
        self._last_seen: Dict[str, float] = {}

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def _purge(self, now_ms: float):
        expired = [code for code, seen in self._last_seen.items() if now_ms - seen > self.horizon_ms]
        for code in expired:
            del self._last_seen[code]

    def is_duplicate(self, code: str) -> bool:
        """중복이면 True (기록 갱신 없음), 아니면 현재 시각으로 기록하고 False."""
        now_ms = self._now_ms()
        self._purge(now_ms)

        last_seen = self._last_seen.get(code)
        if last_seen is not None and now_ms - last_seen < self.window_ms:
            return True

        self._last_seen[code] = now_ms
        return False

    def clear(self):
        self._last_seen.clear()

    def __len__(self) -> int:
        return len(self._last_seen)

    def __contains__(self, code: str) -> bool:
        return code in self._last_seen
