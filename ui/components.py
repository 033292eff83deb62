"""특화된 UI 컴포넌트들"""

import tkinter as tk
from tkinter import ttk
from typing import List, Dict, Optional, Callable

from core.ledger import LedgerStats
from core.models import ValidationResult
from .base_ui import (BaseUIComponent, DEFAULT_FONT, CODE_FONT, STATE_COLORS,
                      COLOR_PRIMARY, COLOR_SUCCESS, COLOR_DEFECT, COLOR_BLOCKED, COLOR_TEXT_SUBTLE)


STATE_TITLES = {
    'waiting': "대기",
    'approved': "승인",
    'rejected': "불합격",
    'error': "오류",
    'blocked': "잠김",
}


class ScannerInputComponent(BaseUIComponent):
    """스캐너 입력칸. 스캐너가 Enter 로 끝내는 한 줄을 한 건의 스캔으로 넘깁니다."""

    STATUS_STYLES = {
        'error': 'Status.Error.TLabel',
        'warning': 'Status.Warning.TLabel',
        'normal': 'Status.Good.TLabel',
    }

    def __init__(self, parent: tk.Widget):
        super().__init__(parent)
        self.entry: Optional[ttk.Entry] = None
        self.status_label: Optional[ttk.Label] = None

    def create_widgets(self):
        self.frame = ttk.LabelFrame(self.parent, text="라벨 스캔", padding=10)
        self.entry = ttk.Entry(self.frame, font=(CODE_FONT, 20), justify='center')
        self.entry.pack(fill="x", padx=5, pady=5)
        self.status_label = ttk.Label(self.frame, style=self.STATUS_STYLES['normal'])
        self.status_label.pack(pady=2)

    def setup_layout(self):
        self.frame.pack(fill="x", padx=10, pady=5)

    def bind_scan_event(self, callback: Callable[[str], None]):
        def submit(event):
            token = self.entry.get()
            self.clear_input()
            if token.strip():
                callback(token)

        for sequence in ('<Return>', '<KP_Enter>'):
            self.entry.bind(sequence, submit)
        self.focus_input()

    def set_status(self, message: str, status_type: str = "normal"):
        if self.status_label is not None:
            style = self.STATUS_STYLES.get(status_type, self.STATUS_STYLES['normal'])
            self.status_label.config(text=message, style=style)

    def clear_input(self):
        if self.entry is not None:
            self.entry.delete(0, tk.END)

    def focus_input(self):
        if self.entry is not None:
            self.entry.focus_set()


class StatusCardComponent(BaseUIComponent):
    """현재 검증 상태와 메시지를 크게 보여주는 카드"""

    def __init__(self, parent: tk.Widget):
        super().__init__(parent)
        self.title_label: Optional[tk.Label] = None
        self.message_label: Optional[tk.Label] = None
        self.hint_label: Optional[tk.Label] = None

    def create_widgets(self):
        self.frame = tk.Frame(self.parent, bg=COLOR_PRIMARY, padx=20, pady=20)
        self.title_label = tk.Label(self.frame, font=(DEFAULT_FONT, 40, 'bold'), fg='white', bg=COLOR_PRIMARY)
        self.title_label.pack(pady=(10, 5))
        self.message_label = tk.Label(self.frame, font=(DEFAULT_FONT, 22, 'bold'), fg='white', bg=COLOR_PRIMARY)
        self.message_label.pack(pady=5)
        self.hint_label = tk.Label(self.frame, font=(DEFAULT_FONT, 12), fg='white', bg=COLOR_PRIMARY)
        self.hint_label.pack(pady=(5, 10))

    def setup_layout(self):
        self.frame.pack(fill="x", padx=10, pady=10)

    def update_state(self, state: str, message: str, hint: str = ""):
        color = STATE_COLORS.get(state, COLOR_PRIMARY)
        for widget in (self.frame, self.title_label, self.message_label, self.hint_label):
            widget.config(bg=color)
        self.title_label.config(text=STATE_TITLES.get(state, state))
        self.message_label.config(text=message)
        self.hint_label.config(text=hint)


class SlotDisplayComponent(BaseUIComponent):
    """코드 1 / 코드 2 슬롯 표시"""

    def __init__(self, parent: tk.Widget):
        super().__init__(parent)
        self.value_labels: List[ttk.Label] = []
        self.marker_labels: List[ttk.Label] = []

    def create_widgets(self):
        self.frame = ttk.Frame(self.parent)
        for index in range(2):
            slot = ttk.LabelFrame(self.frame, text=f"코드 {index + 1}", padding=10)
            slot.grid(row=0, column=index, sticky="nsew", padx=5)
            value = ttk.Label(slot, text="읽은 코드 없음", style='Slot.TLabel', anchor='center')
            value.pack(fill="x", pady=10)
            marker = ttk.Label(slot, text="")
            marker.pack()
            self.value_labels.append(value)
            self.marker_labels.append(marker)
        self.frame.columnconfigure(0, weight=1)
        self.frame.columnconfigure(1, weight=1)

    def setup_layout(self):
        self.frame.pack(fill="x", padx=10, pady=5)

    def update_slots(self, serial1: str, serial2: str, is_serial1_complete: bool, is_blocked: bool):
        for label, value in zip(self.value_labels, (serial1, serial2)):
            if is_blocked:
                style = 'Slot.Blocked.TLabel'
            else:
                style = 'Slot.Filled.TLabel' if value else 'Slot.TLabel'
            label.config(text=value or "읽은 코드 없음", style=style)

        first_marker, second_marker = self.marker_labels
        first_marker.config(text="✔ 코드 1 등록됨" if is_serial1_complete else "(대기 중...)",
                            foreground=COLOR_SUCCESS if is_serial1_complete else COLOR_TEXT_SUBTLE)
        if is_blocked:
            second_marker.config(text="(잠김)", foreground=COLOR_BLOCKED)
        elif is_serial1_complete and not serial2:
            second_marker.config(text="(대기 중...)", foreground=COLOR_TEXT_SUBTLE)
        else:
            second_marker.config(text="")


class StatsDisplayComponent(BaseUIComponent):
    """세션 통계 표시"""

    def __init__(self, parent: tk.Widget, title: str = "세션 통계"):
        super().__init__(parent)
        self.title = title
        self.value_labels: Dict[str, ttk.Label] = {}

    def create_widgets(self):
        self.frame = ttk.LabelFrame(self.parent, text=self.title, padding=10)
        rows = [('total', "전체"), ('approved', "승인"), ('rejected', "불합격"),
                ('errors', "오류"), ('success_rate', "성공률")]
        for row, (key, text) in enumerate(rows):
            ttk.Label(self.frame, text=text, style='Stats.TLabel').grid(row=row, column=0, sticky="w", pady=2)
            value = ttk.Label(self.frame, text="0", font=(DEFAULT_FONT, 14, 'bold'))
            value.grid(row=row, column=1, sticky="e", pady=2)
            self.value_labels[key] = value
        self.frame.columnconfigure(1, weight=1)

    def setup_layout(self):
        self.frame.pack(fill="x", padx=10, pady=5)

    def update_stats(self, stats: LedgerStats):
        self.value_labels['total'].config(text=str(stats.total))
        self.value_labels['approved'].config(text=str(stats.approved), foreground=COLOR_SUCCESS)
        self.value_labels['rejected'].config(text=str(stats.rejected), foreground=COLOR_DEFECT)
        self.value_labels['errors'].config(text=str(stats.errors))
        self.value_labels['success_rate'].config(text=f"{stats.success_rate}%")


class HistoryTableComponent(BaseUIComponent):
    """검증 이력 표 (최신 기록이 맨 위)"""

    # (제목, 폭)
    COLUMNS = [('시각', 150), ('코드 1', 160), ('코드 2', 160), ('결과', 70),
               ('메시지', 200), ('라인', 100), ('모델', 100)]

    def __init__(self, parent: tk.Widget):
        super().__init__(parent)
        self.treeview: Optional[ttk.Treeview] = None

    def create_widgets(self):
        self.frame = ttk.Frame(self.parent, padding=5)
        names = [name for name, _ in self.COLUMNS]
        self.treeview = ttk.Treeview(self.frame, columns=names, show="headings")
        scrollbar = ttk.Scrollbar(self.frame, orient="vertical", command=self.treeview.yview)
        self.treeview.configure(yscrollcommand=scrollbar.set)

        for name, width in self.COLUMNS:
            self.treeview.heading(name, text=name)
            self.treeview.column(name, width=width, anchor='center' if width <= 100 else 'w')

        for state, color in STATE_COLORS.items():
            self.treeview.tag_configure(state, foreground=color)

        self.treeview.pack(side="left", fill="both", expand=True)
        scrollbar.pack(side="right", fill="y")

    def setup_layout(self):
        self.frame.pack(fill="both", expand=True, padx=10, pady=5)

    def show_entries(self, entries: List[ValidationResult]):
        self.treeview.delete(*self.treeview.get_children())
        for entry in entries:
            state = entry.state.value
            self.treeview.insert("", "end", tags=(state,), values=(
                entry.timestamp.strftime('%Y-%m-%d %H:%M:%S'),
                entry.serial1,
                entry.serial2,
                STATE_TITLES.get(state, state),
                entry.message,
                entry.production_line or "",
                entry.product_model or "",
            ))


class RejectionPopup:
    """불합격 시 전체 화면 경고. 확인 버튼을 눌러야 닫힙니다."""

    def __init__(self, root: tk.Tk, title: str, message: str, on_confirm: Callable[[], None],
                 fullscreen: bool = True, color: str = COLOR_DEFECT):
        self.on_confirm = on_confirm
        self.popup = tk.Toplevel(root)
        self.popup.title(title)
        if fullscreen:
            self.popup.attributes('-fullscreen', True)
        self.popup.configure(bg=color)
        self.popup.protocol("WM_DELETE_WINDOW", lambda: None)
        self.popup.grab_set()

        title_font = (DEFAULT_FONT, 60, 'bold')
        msg_font = (DEFAULT_FONT, 30, 'bold')
        tk.Label(self.popup, text=title, font=title_font, fg='white', bg=color).pack(pady=(100, 50), expand=True)
        tk.Label(self.popup, text=message, font=msg_font, fg='white', bg=color,
                 wraplength=root.winfo_screenwidth() - 100, justify=tk.CENTER).pack(pady=20, expand=True)
        btn = tk.Button(self.popup, text="확인 (클릭)", font=msg_font, command=self._confirm,
                        bg='white', fg=color, relief='flat', padx=20, pady=10)
        btn.pack(pady=50, expand=True)
        btn.focus_set()

    def _confirm(self):
        self.popup.grab_release()
        self.popup.destroy()
        self.on_confirm()

    def close(self):
        if self.popup.winfo_exists():
            self.popup.grab_release()
            self.popup.destroy()

    def exists(self) -> bool:
        return bool(self.popup.winfo_exists())
