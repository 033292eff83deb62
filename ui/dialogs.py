"""설정 / 이력 대화상자"""

import dataclasses
import tkinter as tk
from tkinter import ttk
from typing import Callable, Dict, List, Optional

from core.ledger import LedgerStats
from core.models import (ValidationConfig, ValidationResult, clamp_auto_reset,
                         AUTO_RESET_MIN_SEC, AUTO_RESET_MAX_SEC, AUTO_RESET_STEP_SEC)
from .base_ui import UIUtils, DEFAULT_FONT
from .components import HistoryTableComponent, StatsDisplayComponent

AUTO_RESET_PRESETS = [1, 2, 3, 5, 10]


class ConfigDialog:
    """작업 설정 대화상자. 저장하면 새 ValidationConfig 를 on_save 로 넘깁니다."""

    TEXT_FIELDS = [
        ('station_id', "스테이션 ID"),
        ('line_id', "라인 ID"),
        ('production_line', "생산 라인"),
        ('product_model', "제품 모델"),
        ('voltage', "전압"),
    ]

    def __init__(self, root: tk.Tk, config: ValidationConfig, on_save: Callable[[ValidationConfig], None],
                 on_clear_all: Optional[Callable[[], None]] = None):
        self.config = config
        self.on_save = on_save
        self.on_clear_all = on_clear_all
        self.entries: Dict[str, ttk.Entry] = {}

        self.window = tk.Toplevel(root)
        self.window.title("설정")
        self.window.transient(root)
        self.window.grab_set()

        timing = ttk.LabelFrame(self.window, text="자동 리셋 시간 (초)", padding=10)
        timing.pack(fill="x", padx=10, pady=5)
        self.auto_reset_var = tk.DoubleVar(value=config.auto_reset_seconds)
        ttk.Spinbox(timing, from_=AUTO_RESET_MIN_SEC, to=AUTO_RESET_MAX_SEC, increment=AUTO_RESET_STEP_SEC,
                    textvariable=self.auto_reset_var, width=6, font=(DEFAULT_FONT, 12)).pack(side="left")
        for preset in AUTO_RESET_PRESETS:
            ttk.Button(timing, text=f"{preset}s", width=4,
                       command=lambda value=preset: self.auto_reset_var.set(value)).pack(side="left", padx=2)

        self.sound_var = tk.BooleanVar(value=config.sound_enabled)
        ttk.Checkbutton(self.window, text="음향 피드백 사용", variable=self.sound_var).pack(anchor="w", padx=15, pady=5)

        station = ttk.LabelFrame(self.window, text="스테이션 / 제품 정보", padding=10)
        station.pack(fill="x", padx=10, pady=5)
        for row, (name, text) in enumerate(self.TEXT_FIELDS):
            _, entry = UIUtils.create_labeled_entry(station, text, width=30, row=row,
                                                    value=getattr(config, name) or "")
            self.entries[name] = entry
        station.columnconfigure(1, weight=1)

        buttons = ttk.Frame(self.window)
        buttons.pack(fill="x", padx=10, pady=10)
        ttk.Button(buttons, text="취소", command=self.window.destroy).pack(side="right", padx=5)
        ttk.Button(buttons, text="저장", style='Default.TButton', command=self.save).pack(side="right")
        if on_clear_all is not None:
            ttk.Button(buttons, text="모든 데이터 초기화", command=self._confirm_clear_all).pack(side="left")

        self.window.bind('<Escape>', self._close)

    def build_config(self) -> ValidationConfig:
        try:
            auto_reset = clamp_auto_reset(self.auto_reset_var.get())
        except (tk.TclError, ValueError):
            auto_reset = self.config.auto_reset_seconds
        values = {name: entry.get().strip() for name, entry in self.entries.items()}
        return dataclasses.replace(self.config, auto_reset_seconds=auto_reset,
                                   sound_enabled=self.sound_var.get(), **values)

    def save(self):
        new_config = self.build_config()
        self.window.destroy()
        self.on_save(new_config)

    def _confirm_clear_all(self):
        if UIUtils.ask_yes_no("데이터 초기화", "저장된 검증 이력과 설정을 모두 삭제하시겠습니까?", parent=self.window):
            self.window.destroy()
            self.on_clear_all()

    def _close(self, event=None):
        # 메인 창의 ESC(리셋) 바인딩까지 전달되지 않도록 중단
        self.window.destroy()
        return "break"


class HistoryWindow:
    """검증 이력과 통계를 보여주는 창"""

    def __init__(self, root: tk.Tk, entries: List[ValidationResult], stats: LedgerStats,
                 on_clear: Callable[[], None], max_entries: int):
        self.on_clear = on_clear
        self.max_entries = max_entries

        self.window = tk.Toplevel(root)
        self.window.title("검증 이력")
        self.window.geometry("1000x600")
        self.window.transient(root)

        self.stats_display = StatsDisplayComponent(self.window).build()

        toolbar = ttk.Frame(self.window)
        toolbar.pack(fill="x", padx=10)
        self.count_label = ttk.Label(toolbar)
        self.count_label.pack(side="left")
        self.clear_button = ttk.Button(toolbar, text="이력 지우기", command=self._confirm_clear)
        self.clear_button.pack(side="right")

        self.table = HistoryTableComponent(self.window).build()
        self.refresh(entries, stats)
        self.window.bind('<Escape>', self._close)

    def refresh(self, entries: List[ValidationResult], stats: LedgerStats):
        self.stats_display.update_stats(stats)
        self.table.show_entries(entries)
        self.count_label.config(text=f"전체 기록: {len(entries)} / {self.max_entries}")
        self.clear_button.config(state=tk.NORMAL if entries else tk.DISABLED)

    def _confirm_clear(self):
        if UIUtils.ask_yes_no("이력 지우기", "모든 검증 이력을 삭제하시겠습니까?\n삭제 후에는 사용된 코드도 다시 스캔할 수 있습니다.", parent=self.window):
            self.on_clear()

    def _close(self, event=None):
        self.window.destroy()
        return "break"

    def exists(self) -> bool:
        return bool(self.window.winfo_exists())
