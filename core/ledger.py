"""검증 이력(원장) 관리 모듈"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from core.barcode import normalize_code
from core.models import ValidationResult, ValidationState

MAX_LEDGER_ENTRIES = 100


@dataclass
class LedgerStats:
    """세션 통계"""
    total: int = 0
    approved: int = 0
    rejected: int = 0
    errors: int = 0

    @property
    def success_rate(self) -> int:
        """승인 비율(%)을 반올림하여 반환합니다."""
        if self.total == 0:
            return 0
        return round(self.approved / self.total * 100)


class ValidationLedger:
    """최근 검증 결과를 최신순으로 최대 100건 보관합니다.

    변경이 있을 때마다 전체 목록을 저장소에 넘기며, 저장은 저장소 쪽에서
    비동기로 처리됩니다.
    """

    def __init__(self, store=None, max_entries: int = MAX_LEDGER_ENTRIES, loaded: bool = True):
        self.store = store
        self.max_entries = max_entries
        self._entries: List[ValidationResult] = []
        self._loaded = loaded

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def entries(self) -> List[ValidationResult]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def load(self, entries: Iterable[ValidationResult]):
        """세션 시작 시 저장된 이력을 한 번 불러옵니다."""
        ordered = sorted(entries, key=lambda r: r.timestamp, reverse=True)
        self._entries = ordered[:self.max_entries]
        self._loaded = True

    def append(self, result: ValidationResult):
        self._entries.insert(0, result)
        del self._entries[self.max_entries:]
        self._persist()

    def was_code_used(self, canonical_code: str) -> bool:
        """이력에 있는 코드(1번 또는 2번)와 같은 표준 코드인지 확인합니다."""
        for entry in self._entries:
            if normalize_code(entry.serial1) == canonical_code or normalize_code(entry.serial2) == canonical_code:
                return True
        return False

    def clear(self):
        self._entries = []
        self._persist()

    def latest(self) -> Optional[ValidationResult]:
        return self._entries[0] if self._entries else None

    def stats(self) -> LedgerStats:
        stats = LedgerStats(total=len(self._entries))
        for entry in self._entries:
            if entry.state == ValidationState.APPROVED:
                stats.approved += 1
            elif entry.state == ValidationState.REJECTED:
                stats.rejected += 1
            elif entry.state == ValidationState.ERROR:
                stats.errors += 1
        return stats

    def _persist(self):
        if self.store is not None:
            self.store.save_history(list(self._entries))
