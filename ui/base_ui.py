"""기본 UI 컴포넌트와 유틸리티 클래스"""

import tkinter as tk
from tkinter import ttk, messagebox
from typing import Optional
from abc import ABC, abstractmethod


DEFAULT_FONT = 'Malgun Gothic'
CODE_FONT = 'Consolas'

COLOR_BG = "#F5F7FA"
COLOR_TEXT = "#343A40"
COLOR_TEXT_SUBTLE = "#6C757D"
COLOR_PRIMARY = "#0D6EFD"
COLOR_SUCCESS = "#28A745"
COLOR_DEFECT = "#DC3545"
COLOR_WARNING = "#FFC107"
COLOR_BLOCKED = "#8A0707"

# 검증 상태별 상태 카드 색상
STATE_COLORS = {
    'waiting': COLOR_PRIMARY,
    'approved': COLOR_SUCCESS,
    'rejected': COLOR_DEFECT,
    'error': COLOR_WARNING,
    'blocked': COLOR_BLOCKED,
}


class BaseUIComponent(ABC):
    """메인 창에 배치되는 위젯 묶음의 기본 클래스.

    build() 가 create_widgets() 와 setup_layout() 을 차례로 호출하고 자기 자신을 돌려주므로
    ``StatusCardComponent(parent).build()`` 처럼 생성과 배치를 한 줄로 쓸 수 있습니다.
    """

    def __init__(self, parent: tk.Widget):
        self.parent = parent
        self.frame = None

    @abstractmethod
    def create_widgets(self):
        pass

    @abstractmethod
    def setup_layout(self):
        pass

    def build(self):
        self.create_widgets()
        self.setup_layout()
        return self


class UIUtils:
    """대화상자에서 쓰는 위젯 헬퍼"""

    @staticmethod
    def create_labeled_entry(parent: tk.Widget, label_text: str, width: int = 20, row: int = 0,
                             value: str = "") -> tuple[ttk.Label, ttk.Entry]:
        """grid 한 줄에 라벨과 입력칸을 만들고 초기값을 채웁니다."""
        label = ttk.Label(parent, text=label_text)
        label.grid(row=row, column=0, sticky="w", padx=(5, 2), pady=2)

        entry = ttk.Entry(parent, width=width, font=(DEFAULT_FONT, 11))
        entry.grid(row=row, column=1, sticky="ew", padx=(2, 5), pady=2)
        if value:
            entry.insert(0, value)

        return label, entry

    @staticmethod
    def ask_yes_no(title: str, message: str, parent: Optional[tk.Widget] = None) -> bool:
        return messagebox.askyesno(title, message, parent=parent)


class StyleManager:
    """ttk 스타일 설정"""

    def __init__(self):
        self.style = ttk.Style()

    def setup_default_styles(self):
        self.style.configure('Default.TButton', padding=(10, 5), font=(DEFAULT_FONT, 11))
        self.style.configure('TFrame', background=COLOR_BG)
        self.style.configure('TLabel', background=COLOR_BG, foreground=COLOR_TEXT, font=(DEFAULT_FONT, 11))
        self.style.configure('TLabelframe', background=COLOR_BG)
        self.style.configure('TLabelframe.Label', background=COLOR_BG, font=(DEFAULT_FONT, 12, 'bold'))
        self.style.configure('TCheckbutton', background=COLOR_BG, font=(DEFAULT_FONT, 11))

        self.style.configure('Header.TLabel', font=(DEFAULT_FONT, 20, 'bold'))

        # 코드 슬롯
        self.style.configure('Slot.TLabel', font=(CODE_FONT, 22, 'bold'), foreground=COLOR_TEXT_SUBTLE)
        self.style.configure('Slot.Filled.TLabel', font=(CODE_FONT, 22, 'bold'), foreground=COLOR_SUCCESS)
        self.style.configure('Slot.Blocked.TLabel', font=(CODE_FONT, 22, 'bold'), foreground=COLOR_BLOCKED)

        # 스캐너 입력 상태 문구
        self.style.configure('Status.Good.TLabel', foreground=COLOR_SUCCESS)
        self.style.configure('Status.Error.TLabel', foreground=COLOR_DEFECT)
        self.style.configure('Status.Warning.TLabel', foreground='orange')

        self.style.configure('Stats.TLabel', font=(DEFAULT_FONT, 13))
