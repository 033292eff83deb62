"""데이터 모델 정의 모듈"""

from dataclasses import dataclass, field, fields, asdict
from enum import Enum
from typing import Dict, Optional, Any
import datetime
import math

from utils.exceptions import ConfigurationError


AUTO_RESET_MIN_SEC = 1.0
AUTO_RESET_MAX_SEC = 10.0
AUTO_RESET_STEP_SEC = 0.5
DEFAULT_AUTO_RESET_SEC = 3.0


class ValidationState(str, Enum):
    """검증 결과 상태"""
    WAITING = "waiting"
    APPROVED = "approved"
    REJECTED = "rejected"
    ERROR = "error"
    BLOCKED = "blocked"


def clamp_auto_reset(seconds: float) -> float:
    """자동 리셋 시간을 1~10초, 0.5초 단위로 맞춥니다."""
    seconds = float(seconds)
    if not math.isfinite(seconds):
        raise ValueError(f"자동 리셋 시간은 유한한 숫자여야 합니다: {seconds}")
    snapped = round(seconds / AUTO_RESET_STEP_SEC) * AUTO_RESET_STEP_SEC
    return min(AUTO_RESET_MAX_SEC, max(AUTO_RESET_MIN_SEC, snapped))


# 작업장 / 제품 정보 문자열 필드
TEXT_FIELDS = ('station_id', 'line_id', 'production_line', 'product_model', 'voltage')


@dataclass(frozen=True)
class ValidationConfig:
    """검증 한 건에 사용되는 작업 설정 스냅샷입니다."""
    auto_reset_seconds: float = DEFAULT_AUTO_RESET_SEC
    sound_enabled: bool = True
    station_id: Optional[str] = ""
    line_id: Optional[str] = ""
    production_line: Optional[str] = ""
    product_model: Optional[str] = ""
    voltage: Optional[str] = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationConfig":
        """저장된 딕셔너리에서 설정을 복원합니다. 알 수 없는 키는 무시합니다."""
        if not isinstance(data, dict):
            raise ConfigurationError(f"설정 형식이 올바르지 않습니다: {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}

        if 'auto_reset_seconds' in values:
            try:
                values['auto_reset_seconds'] = clamp_auto_reset(values['auto_reset_seconds'])
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"자동 리셋 시간 값 오류: {values['auto_reset_seconds']!r}") from e
        if 'sound_enabled' in values:
            values['sound_enabled'] = bool(values['sound_enabled'])
        for name in TEXT_FIELDS:
            if name in values:
                values[name] = "" if values[name] is None else str(values[name])
        return cls(**values)


@dataclass(frozen=True)
class ValidationResult:
    """완료된 2회 스캔 검증 한 건의 기록 (원본 입력값 보존)"""
    serial1: str
    serial2: str
    state: ValidationState
    message: str
    timestamp: datetime.datetime = field(default_factory=datetime.datetime.now)
    production_line: Optional[str] = None
    product_model: Optional[str] = None
    voltage: Optional[str] = None
    station_id: Optional[str] = None
    line_id: Optional[str] = None

    @classmethod
    def create(cls, serial1: str, serial2: str, state: ValidationState, message: str,
               config: ValidationConfig) -> "ValidationResult":
        """설정 스냅샷의 라인/모델 정보를 복사하여 기록을 만듭니다."""
        return cls(
            serial1=serial1,
            serial2=serial2,
            state=state,
            message=message,
            production_line=config.production_line or None,
            product_model=config.product_model or None,
            voltage=config.voltage or None,
            station_id=config.station_id or None,
            line_id=config.line_id or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['state'] = self.state.value
        data['timestamp'] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationResult":
        """저장된 기록을 복원합니다. 시간대가 있는 시각은 로컬 시각으로 바꿔 저장합니다."""
        if not isinstance(data, dict):
            raise ValueError(f"이력 항목 형식이 올바르지 않습니다: {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        for name in ('serial1', 'serial2', 'message'):
            values[name] = str(values[name])
        for name in TEXT_FIELDS:
            if values.get(name) is not None:
                values[name] = str(values[name])
        values['state'] = ValidationState(values['state'])
        timestamp = datetime.datetime.fromisoformat(values['timestamp'])
        if timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone().replace(tzinfo=None)
        values['timestamp'] = timestamp
        return cls(**values)
