"""2회 스캔 라벨 검증 상태 머신"""

from typing import Any, Callable, Dict, Optional

from core.barcode import normalize_code, is_valid_format
from core.dedup import DedupCache
from core.ledger import ValidationLedger
from core.models import ValidationConfig, ValidationResult, ValidationState
from utils.exceptions import SessionError


FORMAT_ERROR_RECOVERY_MS = 2000

MSG_WAITING_FIRST = "첫 번째 코드를 스캔하세요"
MSG_WAITING_SECOND = "두 번째 코드를 스캔하세요"
MSG_INVALID_FIRST = "첫 번째 코드 형식이 올바르지 않습니다"
MSG_INVALID_FORMAT = "잘못된 코드 형식이 감지되었습니다"
MSG_ALREADY_USED = "이미 사용된 코드입니다"
MSG_APPROVED = "승인 - 코드 일치"
MSG_REJECTED = "불합격 - 코드 불일치"
MSG_BLOCKED = "시스템 잠김 - 수동 리셋이 필요합니다"
MSG_HISTORY_LOADING = "검증 이력을 불러오는 중입니다"

PHASE_IDLE = "idle"
PHASE_SLOT1_FILLED = "slot1_filled"


class ValidationStateMachine:
    """작업자 한 명의 스캔 세션을 처리합니다.

    슬롯, 중복 캐시, 타이머는 모두 이 객체가 소유하며 스캔 이벤트는 한 번에
    하나씩 끝까지 처리됩니다. 타이머는 tkinter 의 ``after``/``after_cancel``
    형태를 가진 scheduler 로 예약합니다 (운영에서는 Tk root).

    audio 는 play_success / play_warning / play_error / stop_alarm 을,
    event_logger 는 log_event(event_type, detail) 를 제공해야 합니다.
    """

    def __init__(self, ledger: ValidationLedger, audio, scheduler,
                 config: Optional[ValidationConfig] = None,
                 dedup: Optional[DedupCache] = None,
                 event_logger=None,
                 on_change: Optional[Callable[["ValidationStateMachine"], None]] = None):
        self.ledger = ledger
        self.audio = audio
        self.scheduler = scheduler
        self.config = config or ValidationConfig()
        self.dedup = dedup or DedupCache()
        self.event_logger = event_logger
        self.on_change = on_change

        self.state = ValidationState.WAITING
        self.message = MSG_WAITING_FIRST
        self.serial1 = ""
        self.serial2 = ""
        self._comparison_failed = False
        self._timer_job: Optional[Any] = None

    # ------------------------------------------------------------------
    # 상태 조회
    # ------------------------------------------------------------------

    @property
    def is_serial1_complete(self) -> bool:
        return bool(self.serial1)

    @property
    def phase(self) -> str:
        if self.state in (ValidationState.APPROVED, ValidationState.REJECTED, ValidationState.BLOCKED):
            return self.state.value
        if self._comparison_failed:
            return ValidationState.ERROR.value
        return PHASE_SLOT1_FILLED if self.serial1 else PHASE_IDLE

    @property
    def awaiting_confirmation(self) -> bool:
        return self.state == ValidationState.REJECTED

    @property
    def is_blocked(self) -> bool:
        return self.state == ValidationState.BLOCKED

    @property
    def requires_manual_reset(self) -> bool:
        """리셋 전까지 스캔을 받지 않는 상태인지 여부"""
        return self._comparison_failed or self.state in (ValidationState.REJECTED, ValidationState.BLOCKED)

    @property
    def has_pending_timer(self) -> bool:
        return self._timer_job is not None

    # ------------------------------------------------------------------
    # 스캔 처리
    # ------------------------------------------------------------------

    def process_scan(self, raw: str) -> bool:
        """스캔 한 건을 처리합니다. 무시되거나 중복으로 버려지면 False.

        serial1 / serial2 와 이력에는 앞뒤 공백만 제거한 입력값을 그대로 보관하고,
        비교와 재사용 검사에는 정규화한 코드를 씁니다.
        """
        raw = (raw or "").strip()
        if not raw:
            return False

        if not self.ledger.is_loaded:
            self.message = MSG_HISTORY_LOADING
            self._log('SCAN_IGNORED', {'raw': raw, 'reason': 'history_loading'})
            self._notify()
            return False

        if self.requires_manual_reset:
            self._log('SCAN_IGNORED', {'raw': raw, 'state': self.state.value})
            return False

        code = normalize_code(raw)
        if self.dedup.is_duplicate(code):
            self._log('SCAN_DUPLICATE_DROPPED', {'code': code})
            return False

        # 자동 리셋/복구 대기 중에 들어온 스캔은 새 사이클로 처리
        if self._timer_job is not None:
            self._cancel_timer()
            if self.state == ValidationState.APPROVED:
                self._clear_slots()

        if not self.serial1:
            self._handle_first_scan(raw, code)
        else:
            self._handle_second_scan(raw, code)

        self._notify()
        return True

    def _handle_first_scan(self, raw: str, code: str):
        if not is_valid_format(code):
            self.state = ValidationState.ERROR
            self.message = MSG_INVALID_FIRST
            self._play('play_warning')
            self._schedule(FORMAT_ERROR_RECOVERY_MS, self._recover_from_format_error)
            self._log('SCAN_FORMAT_ERROR', {'raw': raw, 'code': code, 'slot': 1})
            return

        if self.ledger.was_code_used(code):
            self._reject_reused(raw, code, slot=1)
            return

        self.serial1 = raw
        self.state = ValidationState.WAITING
        self.message = MSG_WAITING_SECOND
        self._log('SCAN_ACCEPTED', {'raw': raw, 'code': code, 'slot': 1})

    def _handle_second_scan(self, raw: str, code: str):
        if self.ledger.was_code_used(code):
            self._reject_reused(raw, code, slot=2)
            return

        self.serial2 = raw
        self._log('SCAN_ACCEPTED', {'raw': raw, 'code': code, 'slot': 2})
        self._compare()

    def _reject_reused(self, raw: str, code: str, slot: int):
        self.state = ValidationState.ERROR
        self.message = MSG_ALREADY_USED
        self._play('play_warning')
        self._log('SCAN_ALREADY_USED', {'raw': raw, 'code': code, 'slot': slot})

    def _compare(self):
        code1 = normalize_code(self.serial1)
        code2 = normalize_code(self.serial2)

        if not is_valid_format(code1) or not is_valid_format(code2):
            self._comparison_failed = True
            self.state = ValidationState.ERROR
            self.message = MSG_INVALID_FORMAT
            self._play('play_warning')
            self._log('VALIDATION_FORMAT_ERROR', {'serial1': self.serial1, 'serial2': self.serial2})
            return

        approved = code1 == code2
        self.state = ValidationState.APPROVED if approved else ValidationState.REJECTED
        self.message = MSG_APPROVED if approved else MSG_REJECTED

        result = ValidationResult.create(self.serial1, self.serial2, self.state, self.message, self.config)
        self.ledger.append(result)

        detail = {'serial1': self.serial1, 'serial2': self.serial2, 'code1': code1, 'code2': code2}
        if approved:
            self._play('play_success')
            self._schedule(int(self.config.auto_reset_seconds * 1000), self._auto_reset)
            self._log('VALIDATION_APPROVED', detail)
        else:
            self._play('play_error')
            self._log('VALIDATION_REJECTED', detail)

    # ------------------------------------------------------------------
    # 작업자 명령
    # ------------------------------------------------------------------

    def confirm_rejection(self):
        """불합격 확인: 알람을 끄고 잠금 상태로 전환합니다."""
        if self.state != ValidationState.REJECTED:
            raise SessionError(f"불합격 상태에서만 확인할 수 있습니다 (현재: {self.state.value})")

        self.state = ValidationState.BLOCKED
        self.message = MSG_BLOCKED
        self.audio.stop_alarm()
        self._log('REJECTION_CONFIRMED', {'serial1': self.serial1, 'serial2': self.serial2})
        self._notify()

    def reset(self):
        """수동 리셋: 어떤 상태에서든 대기 상태로 돌아갑니다."""
        self._full_reset('SYSTEM_RESET')

    def update_config(self, config: ValidationConfig):
        self.config = config
        self._log('CONFIG_UPDATED', config.to_dict())
        self._notify()

    def load_history(self, entries):
        self.ledger.load(entries)
        if self.message == MSG_HISTORY_LOADING:
            self.message = MSG_WAITING_SECOND if self.serial1 else MSG_WAITING_FIRST
        self._log('HISTORY_LOADED', {'count': len(self.ledger)})
        self._notify()

    def clear_history(self):
        count = len(self.ledger)
        self.ledger.clear()
        self._log('HISTORY_CLEARED', {'count': count})
        self._notify()

    def shutdown(self):
        """종료 시 예약된 타이머와 알람을 정리합니다."""
        self._cancel_timer()
        self.audio.stop_alarm()

    # ------------------------------------------------------------------
    # 내부 처리
    # ------------------------------------------------------------------

    def _full_reset(self, event_type: str, detail: Optional[Dict[str, Any]] = None):
        self._cancel_timer()
        self._clear_slots()
        self._comparison_failed = False
        self.dedup.clear()
        self.state = ValidationState.WAITING
        self.message = MSG_WAITING_FIRST
        self.audio.stop_alarm()
        self._log(event_type, detail)
        self._notify()

    def _auto_reset(self):
        self._timer_job = None
        self._full_reset('AUTO_RESET')

    def _recover_from_format_error(self):
        self._timer_job = None
        self._full_reset('AUTO_RESET', {'reason': 'format_error'})

    def _clear_slots(self):
        self.serial1 = ""
        self.serial2 = ""

    def _schedule(self, delay_ms: int, callback: Callable[[], None]):
        self._cancel_timer()
        self._timer_job = self.scheduler.after(delay_ms, callback)

    def _cancel_timer(self):
        if self._timer_job is not None:
            self.scheduler.after_cancel(self._timer_job)
            self._timer_job = None

    def _play(self, tone: str):
        if self.config.sound_enabled:
            getattr(self.audio, tone)()

    def _log(self, event_type: str, detail: Optional[Dict[str, Any]] = None):
        if self.event_logger is not None:
            self.event_logger.log_event(event_type, detail)

    def _notify(self):
        if self.on_change is not None:
            self.on_change(self)
