import tkinter as tk
from tkinter import ttk, messagebox
import os
import sys
from typing import Optional

from core.config import ConfigManager
from core.ledger import ValidationLedger
from core.models import ValidationConfig, ValidationState
from core.validator import ValidationStateMachine, MSG_HISTORY_LOADING
from ui.base_ui import StyleManager, DEFAULT_FONT, COLOR_BG
from ui.components import (ScannerInputComponent, StatusCardComponent, SlotDisplayComponent,
                           StatsDisplayComponent, RejectionPopup)
from ui.dialogs import ConfigDialog, HistoryWindow
from utils.audio import AudioFeedback
from utils.exceptions import ConfigurationError
from utils.logger import EventLogger
from utils.storage import JsonFileStore, PersistenceStore


# #####################################################################
# # 메인 어플리케이션
# #####################################################################

class LabelVerifierProgram:
    """라벨 이중 스캔 검증을 위한 메인 GUI 어플리케이션 클래스입니다."""
    RESET_KEYS = ('<F9>', '<Escape>')
    HISTORY_KEY = '<F6>'
    CONFIG_KEY = '<Control-period>'

    def __init__(self, app_config: Optional[ConfigManager] = None):
        self.app_config = app_config or ConfigManager()
        self.root = tk.Tk()
        app_title = f"{self.app_config.get('ui.window_title', '라벨 검증 시스템')} ({self.app_config.get('app.version', 'v1.0.0')})"
        self.root.title(app_title)
        self.root.geometry(self.app_config.get('ui.window_geometry', '1280x800'))
        self.root.configure(bg=COLOR_BG)

        data_folder = self.app_config.resolve_path('storage.data_folder', 'data')
        self.store = PersistenceStore(JsonFileStore(
            data_folder,
            history_file=self.app_config.get('storage.history_file', JsonFileStore.HISTORY_FILE),
            settings_file=self.app_config.get('storage.settings_file', JsonFileStore.SETTINGS_FILE),
        ))

        try:
            default_config = ValidationConfig.from_dict(self.app_config.get('validation', {}))
        except ConfigurationError as e:
            print(f"기본 검증 설정 오류: {e}")
            default_config = ValidationConfig()
        self.default_config = default_config
        validation_config = self.store.load_config(default_config)

        self.event_logger: Optional[EventLogger] = None
        if self.app_config.get('logging.enabled', True):
            log_folder = self.app_config.resolve_path('logging.log_folder', 'logs')
            self.event_logger = EventLogger(log_folder, station_id=validation_config.station_id or "")

        self.audio = AudioFeedback()

        # 이력 로딩이 끝날 때까지 스캔을 받지 않음
        self.ledger = ValidationLedger(store=self.store, loaded=False)
        self.machine = ValidationStateMachine(
            ledger=self.ledger,
            audio=self.audio,
            scheduler=self.root,
            config=validation_config,
            event_logger=self.event_logger,
            on_change=self._on_state_change,
        )

        self.rejection_popup: Optional[RejectionPopup] = None
        self.history_window: Optional[HistoryWindow] = None

        StyleManager().setup_default_styles()
        self._setup_ui()
        self._bind_shortcuts()
        self.machine.message = MSG_HISTORY_LOADING
        self._refresh_display()

        self.root.protocol("WM_DELETE_WINDOW", self.on_closing)
        self.root.after(0, lambda: self.store.load_history_async(self.machine.load_history, scheduler=self.root))

    # ------------------------------------------------------------------
    # 화면 구성
    # ------------------------------------------------------------------

    def _setup_ui(self):
        header = ttk.Frame(self.root)
        header.pack(fill="x", padx=10, pady=(10, 0))
        ttk.Label(header, text=self.app_config.get('app.name', 'Label Verifier'), style='Header.TLabel').pack(side="left")
        self.station_label = ttk.Label(header, font=(DEFAULT_FONT, 11))
        self.station_label.pack(side="right")

        body = ttk.Frame(self.root)
        body.pack(fill="both", expand=True)
        main_area = ttk.Frame(body)
        main_area.pack(side="left", fill="both", expand=True)
        sidebar = ttk.Frame(body, width=280)
        sidebar.pack(side="right", fill="y")

        self.status_card = StatusCardComponent(main_area).build()
        self.scanner_input = ScannerInputComponent(main_area).build()
        self.scanner_input.bind_scan_event(self.process_scan)
        self.slot_display = SlotDisplayComponent(main_area).build()

        actions = ttk.LabelFrame(sidebar, text="빠른 실행", padding=10)
        actions.pack(fill="x", padx=10, pady=5)
        ttk.Button(actions, text="시스템 리셋 (F9)", style='Default.TButton', command=self.reset).pack(fill="x", pady=2)
        ttk.Button(actions, text="이력 보기 (F6)", style='Default.TButton', command=self.open_history).pack(fill="x", pady=2)
        ttk.Button(actions, text="설정 (Ctrl+.)", style='Default.TButton', command=self.open_config).pack(fill="x", pady=2)

        self.stats_display = StatsDisplayComponent(sidebar).build()

    def _bind_shortcuts(self):
        for key in self.RESET_KEYS:
            self.root.bind_all(key, lambda e: self.reset())
        self.root.bind_all(self.HISTORY_KEY, lambda e: self.open_history())
        self.root.bind_all(self.CONFIG_KEY, lambda e: self.open_config())

    # ------------------------------------------------------------------
    # 명령
    # ------------------------------------------------------------------

    def process_scan(self, barcode: str):
        self.machine.process_scan(barcode)
        self.scanner_input.focus_input()

    def reset(self):
        self.machine.reset()
        self.scanner_input.clear_input()
        self.scanner_input.focus_input()

    def confirm_rejection(self):
        self.rejection_popup = None
        if self.machine.awaiting_confirmation:
            self.machine.confirm_rejection()
        self.scanner_input.focus_input()

    def open_history(self):
        if self.history_window and self.history_window.exists():
            self.history_window.window.lift()
            return
        self.history_window = HistoryWindow(self.root, self.ledger.entries, self.ledger.stats(),
                                            on_clear=self.machine.clear_history,
                                            max_entries=self.ledger.max_entries)

    def open_config(self):
        ConfigDialog(self.root, self.machine.config, on_save=self.apply_config, on_clear_all=self.clear_all_data)

    def apply_config(self, new_config: ValidationConfig):
        self.machine.update_config(new_config)
        self.store.save_config(new_config)
        if self.event_logger:
            self.event_logger.station_id = new_config.station_id or ""
        self.scanner_input.focus_input()

    def clear_all_data(self):
        """저장된 이력과 작업 설정을 모두 지우고 기본 설정으로 돌아갑니다."""
        self.machine.clear_history()
        self.store.clear_all_data()
        self.machine.update_config(self.default_config)
        if self.event_logger:
            self.event_logger.station_id = self.default_config.station_id or ""
        self.reset()

    # ------------------------------------------------------------------
    # 화면 갱신
    # ------------------------------------------------------------------

    def _on_state_change(self, machine: ValidationStateMachine):
        self._refresh_display()

        if machine.awaiting_confirmation and self.rejection_popup is None:
            self.rejection_popup = RejectionPopup(
                self.root, "불합격!", f"두 코드가 일치하지 않습니다.\n\n[1] {machine.serial1}\n[2] {machine.serial2}",
                on_confirm=self.confirm_rejection,
                fullscreen=self.app_config.get('ui.fullscreen_rejection', True))
        elif not machine.awaiting_confirmation and self.rejection_popup is not None:
            self.rejection_popup.close()
            self.rejection_popup = None

        if self.history_window and self.history_window.exists():
            self.history_window.refresh(self.ledger.entries, self.ledger.stats())

    def _status_hint(self) -> str:
        machine = self.machine
        if machine.state == ValidationState.APPROVED:
            return f"{machine.config.auto_reset_seconds:g}초 후 자동 리셋"
        if machine.requires_manual_reset:
            return "F9 또는 ESC 키로 리셋하세요"
        if machine.state == ValidationState.WAITING and not machine.is_serial1_complete:
            return "스캐너를 입력 칸에 두고 라벨을 스캔하세요"
        return ""

    def _refresh_display(self):
        machine = self.machine
        self.status_card.update_state(machine.state.value, machine.message, self._status_hint())
        self.slot_display.update_slots(machine.serial1, machine.serial2,
                                       machine.is_serial1_complete, machine.is_blocked)
        self.stats_display.update_stats(self.ledger.stats())

        if machine.state in (ValidationState.REJECTED, ValidationState.BLOCKED):
            status_type = "error"
        elif machine.state == ValidationState.ERROR:
            status_type = "warning"
        else:
            status_type = "normal"
        self.scanner_input.set_status(machine.message, status_type)

        cfg = machine.config
        station_text = " / ".join(part for part in (cfg.station_id, cfg.line_id, cfg.production_line,
                                                    cfg.product_model, cfg.voltage) if part)
        self.station_label.config(text=station_text)

    # ------------------------------------------------------------------
    # 실행 / 종료
    # ------------------------------------------------------------------

    def on_closing(self):
        if messagebox.askokcancel("종료", "프로그램을 종료하시겠습니까?"):
            self.machine.shutdown()
            if self.event_logger:
                self.event_logger.log_event('APP_CLOSED')
                self.event_logger.stop_logger()
            self.store.flush()
            self.store.close()
            self.audio.shutdown()
            self.root.destroy()

    def run(self):
        self.scanner_input.focus_input()
        self.root.mainloop()


def main():
    config_dir = os.path.dirname(sys.executable) if getattr(sys, 'frozen', False) else os.getcwd()
    app = LabelVerifierProgram(ConfigManager(config_dir=config_dir))
    app.run()


if __name__ == "__main__":
    main()
