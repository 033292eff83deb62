"""애플리케이션 설정 관리 모듈"""

import json
import os
from typing import Any, Dict, Optional

from core.models import DEFAULT_AUTO_RESET_SEC


class ConfigManager:
    """애플리케이션 설정을 관리하는 클래스"""

    def __init__(self, config_file: str = "config.json", config_dir: Optional[str] = None):
        self.config_file = config_file
        self.config_dir = config_dir or os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.config = self._load_config()

    @property
    def config_path(self) -> str:
        return os.path.join(self.config_dir, self.config_file)

    def _load_config(self) -> Dict[str, Any]:
        """설정 파일을 로드합니다."""
        try:
            if os.path.exists(self.config_path):
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            else:
                # 기본 설정 생성
                return self._create_default_config()
        except (OSError, json.JSONDecodeError) as e:
            print(f"설정 파일 로드 오류: {e}")
            return self._create_default_config()

    def _create_default_config(self) -> Dict[str, Any]:
        """기본 설정을 생성합니다."""
        default_config = {
            "app": {
                "name": "Label Verifier",
                "version": "v1.0.0",
                "description": "라벨 이중 스캔 검증 시스템"
            },
            "validation": {
                "auto_reset_seconds": DEFAULT_AUTO_RESET_SEC,
                "sound_enabled": True
            },
            "storage": {
                "data_folder": "data",
                "history_file": "validation_history.json",
                "settings_file": "validation_settings.json"
            },
            "ui": {
                "window_title": "라벨 검증 시스템",
                "window_geometry": "1280x800",
                "fullscreen_rejection": True
            },
            "logging": {
                "enabled": True,
                "log_folder": "logs"
            }
        }
        self.save_config(default_config)
        return default_config

    def get(self, key_path: str, default=None):
        """점 표기법으로 설정값을 가져옵니다. 예: 'app.version'"""
        keys = key_path.split('.')
        value = self.config

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key_path: str, value):
        """점 표기법으로 설정값을 설정합니다."""
        keys = key_path.split('.')
        config = self.config

        for key in keys[:-1]:
            if key not in config:
                config[key] = {}
            config = config[key]

        config[keys[-1]] = value

    def save_config(self, config_data=None):
        """설정을 파일로 저장합니다."""
        try:
            data = config_data if config_data is not None else self.config
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=4)
        except OSError as e:
            print(f"설정 파일 저장 오류: {e}")

    def resolve_path(self, key_path: str, default: str) -> str:
        """설정에 있는 상대 경로를 설정 파일 위치 기준 절대 경로로 바꿉니다."""
        value = self.get(key_path, default)
        if os.path.isabs(value):
            return value
        return os.path.join(self.config_dir, value)
