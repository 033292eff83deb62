"""검증 상태 머신 테스트"""

import unittest
import datetime
import sys
import os
from unittest.mock import MagicMock

# 상위 디렉토리의 모듈들을 import 하기 위해 경로 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from core.dedup import DedupCache
from core.ledger import ValidationLedger
from core.models import ValidationConfig, ValidationResult, ValidationState
from core.validator import (ValidationStateMachine, PHASE_IDLE, PHASE_SLOT1_FILLED,
                            MSG_WAITING_FIRST, MSG_WAITING_SECOND, MSG_INVALID_FIRST,
                            MSG_INVALID_FORMAT, MSG_ALREADY_USED, MSG_APPROVED, MSG_REJECTED,
                            MSG_BLOCKED, MSG_HISTORY_LOADING)
from utils.exceptions import SessionError
from utils.storage import PersistenceStore
from fakes import FakeScheduler

# 같은 코드를 연속으로 스캔해도 중복으로 걸리지 않는 간격
SCAN_GAP_MS = 2500


class ValidatorTestBase(unittest.TestCase):

    def setUp(self):
        """테스트 시작 전 설정"""
        self.scheduler = FakeScheduler()
        self.audio = MagicMock()
        self.store = MagicMock()
        self.event_logger = MagicMock()
        self.on_change = MagicMock()
        self.ledger = ValidationLedger(store=self.store)
        self.machine = self.create_machine(ValidationConfig())

    def create_machine(self, config, ledger=None):
        return ValidationStateMachine(
            ledger=ledger if ledger is not None else self.ledger,
            audio=self.audio,
            scheduler=self.scheduler,
            config=config,
            dedup=DedupCache(clock=self.scheduler.monotonic),
            event_logger=self.event_logger,
            on_change=self.on_change,
        )

    def scan_pair(self, first, second):
        self.machine.process_scan(first)
        self.scheduler.advance(SCAN_GAP_MS)
        self.machine.process_scan(second)

    def logged_events(self):
        return [c.args[0] for c in self.event_logger.log_event.call_args_list]


class TestTwoSlotCycle(ValidatorTestBase):
    """2회 스캔 기본 흐름"""

    def test_initial_state(self):
        self.assertEqual(self.machine.state, ValidationState.WAITING)
        self.assertEqual(self.machine.phase, PHASE_IDLE)
        self.assertEqual(self.machine.message, MSG_WAITING_FIRST)
        self.assertFalse(self.machine.is_serial1_complete)

    def test_first_scan_fills_slot1(self):
        self.assertTrue(self.machine.process_scan("AAAAAAAA"))

        self.assertEqual(self.machine.phase, PHASE_SLOT1_FILLED)
        self.assertEqual(self.machine.serial1, "AAAAAAAA")
        self.assertEqual(self.machine.serial2, "")
        self.assertEqual(self.machine.state, ValidationState.WAITING)
        self.assertEqual(self.machine.message, MSG_WAITING_SECOND)
        self.audio.play_success.assert_not_called()
        self.assertEqual(len(self.ledger), 0)

    def test_equal_codes_approved(self):
        """'SN12345678' 과 '12345678' 은 같은 코드로 승인"""
        self.scan_pair("SN12345678", "12345678")

        self.assertEqual(self.machine.state, ValidationState.APPROVED)
        self.assertEqual(self.machine.message, MSG_APPROVED)
        self.assertEqual(len(self.ledger), 1)
        self.audio.play_success.assert_called_once_with()
        self.audio.play_error.assert_not_called()
        self.store.save_history.assert_called_once()

        entry = self.ledger.latest()
        self.assertEqual(entry.serial1, "SN12345678")
        self.assertEqual(entry.serial2, "12345678")
        self.assertEqual(entry.state, ValidationState.APPROVED)

    def test_approved_auto_resets_after_configured_time(self):
        self.scan_pair("AAAAAAAA", "aaaaaaaa")
        self.assertTrue(self.machine.has_pending_timer)

        self.scheduler.advance(2999)
        self.assertEqual(self.machine.state, ValidationState.APPROVED)

        self.scheduler.advance(1)
        self.assertEqual(self.machine.state, ValidationState.WAITING)
        self.assertEqual(self.machine.phase, PHASE_IDLE)
        self.assertEqual(self.machine.serial1, "")
        self.assertEqual(self.machine.serial2, "")
        self.assertEqual(len(self.machine.dedup), 0)
        self.assertIn('AUTO_RESET', self.logged_events())

    def test_auto_reset_uses_config_snapshot(self):
        self.machine = self.create_machine(ValidationConfig(auto_reset_seconds=5.5))
        self.scan_pair("AAAAAAAA", "AAAAAAAA")

        self.scheduler.advance(5499)
        self.assertEqual(self.machine.state, ValidationState.APPROVED)
        self.scheduler.advance(1)
        self.assertEqual(self.machine.state, ValidationState.WAITING)

    def test_update_config_applies_to_next_cycle(self):
        self.machine.update_config(ValidationConfig(auto_reset_seconds=1.0))
        self.scan_pair("AAAAAAAA", "AAAAAAAA")

        self.scheduler.advance(1000)
        self.assertEqual(self.machine.state, ValidationState.WAITING)
        self.assertIn('CONFIG_UPDATED', self.logged_events())

    def test_ledger_entry_carries_station_metadata(self):
        config = ValidationConfig(station_id="ST-01", line_id="L2", production_line="Line A",
                                  product_model="M-100", voltage="220V")
        self.machine = self.create_machine(config)
        self.scan_pair("AAAAAAAA", "AAAAAAAA")

        entry = self.ledger.latest()
        self.assertEqual(entry.station_id, "ST-01")
        self.assertEqual(entry.line_id, "L2")
        self.assertEqual(entry.production_line, "Line A")
        self.assertEqual(entry.product_model, "M-100")
        self.assertEqual(entry.voltage, "220V")

    def test_sound_disabled(self):
        self.machine = self.create_machine(ValidationConfig(sound_enabled=False))
        self.scan_pair("AAAAAAAA", "AAAAAAAA")

        self.assertEqual(self.machine.state, ValidationState.APPROVED)
        self.audio.play_success.assert_not_called()

    def test_empty_scan_ignored(self):
        self.assertFalse(self.machine.process_scan("   "))
        self.assertFalse(self.machine.process_scan(""))
        self.on_change.assert_not_called()

    def test_events_logged(self):
        self.scan_pair("AAAAAAAA", "AAAAAAAA")
        self.assertEqual(self.logged_events(), ['SCAN_ACCEPTED', 'SCAN_ACCEPTED', 'VALIDATION_APPROVED'])


class TestSideEffectOrder(ValidatorTestBase):
    """상태 전환이 비동기 부수 효과보다 먼저 적용되는지 확인"""

    def test_state_applied_before_persistence_and_audio(self):
        observed = []

        def on_save(entries):
            observed.append(('save', self.machine.state, self.machine.message, len(entries)))

        def on_success():
            observed.append(('audio', self.machine.state, len(self.ledger), self.machine.has_pending_timer))

        self.store.save_history.side_effect = on_save
        self.audio.play_success.side_effect = on_success

        self.scan_pair("AAAAAAAA", "AAAAAAAA")

        self.assertEqual(observed, [
            ('save', ValidationState.APPROVED, MSG_APPROVED, 1),
            ('audio', ValidationState.APPROVED, 1, False),
        ])
        self.assertTrue(self.machine.has_pending_timer)

    def test_alarm_started_after_rejection_recorded(self):
        observed = []
        self.audio.play_error.side_effect = lambda: observed.append((self.machine.state, len(self.ledger)))

        self.scan_pair("AAAAAAAA", "BBBBBBBB")

        self.assertEqual(observed, [(ValidationState.REJECTED, 1)])


class TestRejectionFlow(ValidatorTestBase):
    """불합격 → 확인 → 잠김 → 리셋"""

    def test_mismatch_rejected_without_auto_reset(self):
        self.scan_pair("AAAAAAAA", "BBBBBBBB")

        self.assertEqual(self.machine.state, ValidationState.REJECTED)
        self.assertEqual(self.machine.message, MSG_REJECTED)
        self.assertTrue(self.machine.awaiting_confirmation)
        self.assertEqual(len(self.ledger), 1)
        self.audio.play_error.assert_called_once_with()
        self.audio.stop_alarm.assert_not_called()
        self.assertFalse(self.machine.has_pending_timer)

        self.scheduler.advance(60000)
        self.assertEqual(self.machine.state, ValidationState.REJECTED)

    def test_scans_ignored_while_awaiting_confirmation(self):
        self.scan_pair("AAAAAAAA", "BBBBBBBB")
        self.scheduler.advance(SCAN_GAP_MS)

        self.assertFalse(self.machine.process_scan("CCCCCCCC"))
        self.assertEqual(self.machine.state, ValidationState.REJECTED)
        self.assertEqual(self.machine.serial2, "BBBBBBBB")

    def test_confirm_blocks_and_stops_alarm(self):
        self.scan_pair("AAAAAAAA", "BBBBBBBB")
        self.machine.confirm_rejection()

        self.assertEqual(self.machine.state, ValidationState.BLOCKED)
        self.assertEqual(self.machine.phase, ValidationState.BLOCKED.value)
        self.assertEqual(self.machine.message, MSG_BLOCKED)
        self.assertTrue(self.machine.is_blocked)
        self.audio.stop_alarm.assert_called_once_with()

    def test_scans_ignored_while_blocked(self):
        self.scan_pair("AAAAAAAA", "BBBBBBBB")
        self.machine.confirm_rejection()
        self.scheduler.advance(SCAN_GAP_MS)

        self.assertFalse(self.machine.process_scan("CCCCCCCC"))
        self.assertEqual(self.machine.state, ValidationState.BLOCKED)
        self.assertEqual(len(self.ledger), 1)
        self.assertIn('SCAN_IGNORED', self.logged_events())

    def test_reset_from_blocked(self):
        self.scan_pair("AAAAAAAA", "BBBBBBBB")
        self.machine.confirm_rejection()
        self.machine.reset()

        self.assertEqual(self.machine.state, ValidationState.WAITING)
        self.assertEqual(self.machine.phase, PHASE_IDLE)
        self.assertTrue(self.machine.process_scan("CCCCCCCC"))
        self.assertEqual(self.machine.serial1, "CCCCCCCC")

    def test_reset_from_rejected_stops_alarm(self):
        self.scan_pair("AAAAAAAA", "BBBBBBBB")
        self.machine.reset()

        self.audio.stop_alarm.assert_called_once_with()
        self.assertEqual(self.machine.state, ValidationState.WAITING)

    def test_confirm_outside_rejected_raises(self):
        with self.assertRaises(SessionError):
            self.machine.confirm_rejection()

        self.scan_pair("AAAAAAAA", "AAAAAAAA")
        with self.assertRaises(SessionError):
            self.machine.confirm_rejection()


class TestErrorHandling(ValidatorTestBase):
    """형식 오류 / 재사용 오류"""

    def test_invalid_first_code_self_heals(self):
        self.assertTrue(self.machine.process_scan("ABC"))

        self.assertEqual(self.machine.state, ValidationState.ERROR)
        self.assertEqual(self.machine.message, MSG_INVALID_FIRST)
        self.assertEqual(self.machine.phase, PHASE_IDLE)
        self.audio.play_warning.assert_called_once_with()

        self.scheduler.advance(1999)
        self.assertEqual(self.machine.state, ValidationState.ERROR)
        self.scheduler.advance(1)
        self.assertEqual(self.machine.state, ValidationState.WAITING)
        self.assertEqual(self.machine.message, MSG_WAITING_FIRST)
        self.assertEqual(len(self.ledger), 0)

    def test_new_scan_cancels_pending_heal(self):
        """복구 타이머 대기 중 새 스캔이 들어오면 오래된 리셋이 실행되지 않아야 함"""
        self.machine.process_scan("ABC")
        self.scheduler.advance(500)
        self.machine.process_scan("AAAAAAAA")

        self.assertEqual(self.machine.phase, PHASE_SLOT1_FILLED)
        self.assertFalse(self.machine.has_pending_timer)

        self.scheduler.advance(5000)
        self.assertEqual(self.machine.phase, PHASE_SLOT1_FILLED)
        self.assertEqual(self.machine.serial1, "AAAAAAAA")

    def test_reused_code_in_first_slot(self):
        """승인된 코드를 다시 첫 번째로 스캔하면 '이미 사용됨'"""
        self.scan_pair("AAAAAAAA", "AAAAAAAA")
        self.scheduler.advance(3000)
        self.audio.reset_mock()

        self.assertTrue(self.machine.process_scan("AAAAAAAA"))

        self.assertEqual(self.machine.state, ValidationState.ERROR)
        self.assertEqual(self.machine.message, MSG_ALREADY_USED)
        self.assertEqual(self.machine.phase, PHASE_IDLE)
        self.assertEqual(self.machine.serial1, "")
        self.assertFalse(self.machine.has_pending_timer)
        self.audio.play_warning.assert_called_once_with()

        # 자동 복구 없음
        self.scheduler.advance(10000)
        self.assertEqual(self.machine.state, ValidationState.ERROR)

        # 다른 코드는 그대로 진행 가능
        self.assertTrue(self.machine.process_scan("BBBBBBBB"))
        self.assertEqual(self.machine.serial1, "BBBBBBBB")

    def test_reused_code_in_second_slot_keeps_first(self):
        self.ledger.append(ValidationResult("CCCCCCCC", "CCCCCCCC", ValidationState.APPROVED, MSG_APPROVED))
        self.scan_pair("DDDDDDDD", "sn-cccccccc")

        self.assertEqual(self.machine.state, ValidationState.ERROR)
        self.assertEqual(self.machine.message, MSG_ALREADY_USED)
        self.assertEqual(self.machine.phase, PHASE_SLOT1_FILLED)
        self.assertEqual(self.machine.serial1, "DDDDDDDD")
        self.assertEqual(self.machine.serial2, "")
        self.assertEqual(len(self.ledger), 1)

        self.scheduler.advance(SCAN_GAP_MS)
        self.machine.process_scan("DDDDDDDD")
        self.assertEqual(self.machine.state, ValidationState.APPROVED)
        self.assertEqual(len(self.ledger), 2)

    def test_invalid_second_code_requires_manual_reset(self):
        self.scan_pair("AAAAAAAA", "BAD")

        self.assertEqual(self.machine.state, ValidationState.ERROR)
        self.assertEqual(self.machine.message, MSG_INVALID_FORMAT)
        self.assertEqual(self.machine.serial2, "BAD")
        self.assertTrue(self.machine.requires_manual_reset)
        self.assertEqual(len(self.ledger), 0)
        self.store.save_history.assert_not_called()
        self.assertFalse(self.machine.has_pending_timer)
        self.audio.play_warning.assert_called_once_with()

        self.scheduler.advance(SCAN_GAP_MS)
        self.assertFalse(self.machine.process_scan("AAAAAAAA"))
        self.assertEqual(self.machine.message, MSG_INVALID_FORMAT)

        self.machine.reset()
        self.assertFalse(self.machine.requires_manual_reset)
        self.assertEqual(self.machine.phase, PHASE_IDLE)


class TestDuplicateSuppression(ValidatorTestBase):
    """중복 입력 억제"""

    def test_repeat_within_window_dropped_silently(self):
        self.machine.process_scan("AAAAAAAA")
        self.on_change.reset_mock()
        self.scheduler.advance(1000)

        self.assertFalse(self.machine.process_scan("AAAAAAAA"))

        self.assertEqual(self.machine.phase, PHASE_SLOT1_FILLED)
        self.assertEqual(self.machine.serial2, "")
        self.assertEqual(self.machine.message, MSG_WAITING_SECOND)
        self.on_change.assert_not_called()
        self.assertIn('SCAN_DUPLICATE_DROPPED', self.logged_events())

    def test_duplicate_uses_canonical_code(self):
        """표기가 달라도 같은 표준 코드면 중복"""
        self.machine.process_scan("SN:AAAAAAAA")
        self.scheduler.advance(500)
        self.assertFalse(self.machine.process_scan("aaaa-aaaa"))

    def test_repeat_outside_window_accepted(self):
        self.machine.process_scan("AAAAAAAA")
        self.scheduler.advance(1000)
        self.machine.process_scan("AAAAAAAA")
        self.scheduler.advance(1500)

        self.assertTrue(self.machine.process_scan("AAAAAAAA"))
        self.assertEqual(self.machine.state, ValidationState.APPROVED)

    def test_duplicate_check_runs_before_format_check(self):
        self.machine.process_scan("ABC")
        self.audio.reset_mock()
        self.assertFalse(self.machine.process_scan("abc"))
        self.audio.play_warning.assert_not_called()


class TestManualReset(ValidatorTestBase):
    """수동 리셋은 모든 상태에서 대기 상태로"""

    def assert_idle(self):
        self.assertEqual(self.machine.state, ValidationState.WAITING)
        self.assertEqual(self.machine.phase, PHASE_IDLE)
        self.assertEqual(self.machine.serial1, "")
        self.assertEqual(self.machine.serial2, "")
        self.assertEqual(len(self.machine.dedup), 0)
        self.assertFalse(self.machine.has_pending_timer)
        self.audio.stop_alarm.assert_called()

    def test_reset_mid_cycle(self):
        self.machine.process_scan("AAAAAAAA")
        self.machine.reset()
        self.assert_idle()

        # 중복 캐시가 비워졌으므로 바로 다시 스캔 가능
        self.assertTrue(self.machine.process_scan("AAAAAAAA"))

    def test_reset_from_error_cancels_heal(self):
        self.machine.process_scan("ABC")
        self.machine.reset()
        self.assert_idle()
        self.assertEqual(len(self.scheduler.cancelled), 1)
        self.assertEqual(self.scheduler.pending, 0)

    def test_reset_from_approved_cancels_auto_reset(self):
        self.scan_pair("AAAAAAAA", "AAAAAAAA")
        self.machine.reset()
        self.assert_idle()
        self.assertEqual(self.scheduler.pending, 0)

    def test_reset_from_blocked(self):
        self.scan_pair("AAAAAAAA", "BBBBBBBB")
        self.machine.confirm_rejection()
        self.machine.reset()
        self.assert_idle()
        self.assertIn('SYSTEM_RESET', self.logged_events())

    def test_new_scan_during_approval_starts_new_cycle(self):
        """자동 리셋 대기 중 새 스캔은 새 사이클, 오래된 타이머는 취소"""
        self.scan_pair("AAAAAAAA", "AAAAAAAA")
        self.scheduler.advance(1000)

        self.assertTrue(self.machine.process_scan("BBBBBBBB"))
        self.assertEqual(self.machine.phase, PHASE_SLOT1_FILLED)
        self.assertEqual(self.machine.serial1, "BBBBBBBB")
        self.assertEqual(self.machine.serial2, "")
        self.assertFalse(self.machine.has_pending_timer)

        self.scheduler.advance(5000)
        self.assertEqual(self.machine.serial1, "BBBBBBBB")

    def test_shutdown_cancels_timer_and_alarm(self):
        self.scan_pair("AAAAAAAA", "AAAAAAAA")
        self.machine.shutdown()
        self.assertEqual(self.scheduler.pending, 0)
        self.audio.stop_alarm.assert_called_once_with()


class TestHistoryLoading(ValidatorTestBase):
    """세션 시작 시 이력 로딩"""

    def test_scans_gated_until_history_loaded(self):
        ledger = ValidationLedger(store=self.store, loaded=False)
        self.machine = self.create_machine(ValidationConfig(), ledger=ledger)

        self.assertFalse(self.machine.process_scan("AAAAAAAA"))
        self.assertEqual(self.machine.message, MSG_HISTORY_LOADING)
        self.assertEqual(self.machine.phase, PHASE_IDLE)

        loaded = ValidationResult("AAAAAAAA", "AAAAAAAA", ValidationState.APPROVED, MSG_APPROVED,
                                  timestamp=datetime.datetime(2025, 1, 1, 9, 0))
        self.machine.load_history([loaded])
        self.assertEqual(self.machine.message, MSG_WAITING_FIRST)

        self.assertTrue(self.machine.process_scan("AAAAAAAA"))
        self.assertEqual(self.machine.message, MSG_ALREADY_USED)

    def test_damaged_history_still_opens_scanning(self):
        """손상되거나 형식이 다른 이력 파일이어도 로딩이 끝나고 스캔을 받음"""
        good = ValidationResult("CCCCCCCC", "CCCCCCCC", ValidationState.APPROVED, MSG_APPROVED,
                                timestamp=datetime.datetime(2025, 1, 1, 9, 0)).to_dict()
        aware = {**good, 'serial1': "DDDDDDDD", 'serial2': "DDDDDDDD", 'timestamp': '2025-01-01T10:00:00+09:00'}
        payloads = {
            'not_a_list': {'a': 1},
            'non_dict_items': ["garbage", 7, None],
            'mixed_timezones': [good, aware],
        }
        for name, payload in payloads.items():
            with self.subTest(payload=name):
                primary = MagicMock()
                primary.load_history.return_value = payload
                store = PersistenceStore(primary, async_writes=False)
                ledger = ValidationLedger(store=self.store, loaded=False)
                self.machine = self.create_machine(ValidationConfig(), ledger=ledger)

                thread = store.load_history_async(self.machine.load_history)
                thread.join(timeout=2.0)

                self.assertTrue(ledger.is_loaded)
                self.assertEqual(self.machine.message, MSG_WAITING_FIRST)
                self.assertTrue(self.machine.process_scan("AAAAAAAA"))
                self.assertEqual(self.machine.phase, PHASE_SLOT1_FILLED)

    def test_history_read_failure_still_opens_scanning(self):
        primary = MagicMock()
        primary.load_history.side_effect = RuntimeError("unexpected")
        store = PersistenceStore(primary, async_writes=False)
        ledger = ValidationLedger(store=self.store, loaded=False)
        self.machine = self.create_machine(ValidationConfig(), ledger=ledger)

        thread = store.load_history_async(self.machine.load_history)
        thread.join(timeout=2.0)

        self.assertTrue(ledger.is_loaded)
        self.assertEqual(len(ledger), 0)
        self.assertTrue(self.machine.process_scan("AAAAAAAA"))

    def test_stored_serials_kept_with_outer_whitespace_trimmed(self):
        self.machine.process_scan("  sn:aaaa-aaaa \t")
        self.scheduler.advance(SCAN_GAP_MS)
        self.machine.process_scan(" AAAAAAAA ")

        entry = self.ledger.latest()
        self.assertEqual(entry.serial1, "sn:aaaa-aaaa")
        self.assertEqual(entry.serial2, "AAAAAAAA")

    def test_clear_history_allows_reuse(self):
        self.scan_pair("AAAAAAAA", "AAAAAAAA")
        self.scheduler.advance(3000)
        self.machine.clear_history()

        self.assertEqual(len(self.ledger), 0)
        self.store.save_history.assert_called_with([])
        self.assertTrue(self.machine.process_scan("AAAAAAAA"))
        self.assertEqual(self.machine.phase, PHASE_SLOT1_FILLED)
        self.assertIn('HISTORY_CLEARED', self.logged_events())


if __name__ == '__main__':
    unittest.main()
