"""설정 및 검증 이력 저장소 모듈"""

import json
import os
import queue
import threading
from typing import Any, Callable, Dict, List, Optional

from core.models import ValidationConfig, ValidationResult
from utils.exceptions import ConfigurationError, FileHandlingError
from utils.file_handler import ensure_directory_exists, write_json_atomic


class JsonFileStore:
    """JSON 파일 기반 기본 저장소"""
    HISTORY_FILE = 'validation_history.json'
    SETTINGS_FILE = 'validation_settings.json'

    def __init__(self, data_folder: str, history_file: str = HISTORY_FILE, settings_file: str = SETTINGS_FILE):
        self.data_folder = data_folder
        self.history_path = os.path.join(data_folder, history_file)
        self.settings_path = os.path.join(data_folder, settings_file)

    def _read(self, path: str) -> Optional[Any]:
        if not os.path.exists(path):
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise FileHandlingError(f"'{path}' 읽기 실패: {e}") from e

    def _write(self, path: str, data: Any):
        if not ensure_directory_exists(self.data_folder):
            raise FileHandlingError(f"데이터 폴더를 만들 수 없습니다: {self.data_folder}")
        try:
            write_json_atomic(path, data)
        except (OSError, TypeError) as e:
            raise FileHandlingError(f"'{path}' 저장 실패: {e}") from e

    def load_config(self) -> Optional[Dict[str, Any]]:
        return self._read(self.settings_path)

    def save_config(self, data: Dict[str, Any]):
        self._write(self.settings_path, data)

    def load_history(self) -> Optional[List[Dict[str, Any]]]:
        return self._read(self.history_path)

    def save_history(self, data: List[Dict[str, Any]]):
        self._write(self.history_path, data)

    def clear(self):
        for path in (self.history_path, self.settings_path):
            try:
                if os.path.exists(path):
                    os.remove(path)
            except OSError as e:
                raise FileHandlingError(f"'{path}' 삭제 실패: {e}") from e


class MemoryStore:
    """기본 저장소를 쓸 수 없을 때 사용하는 메모리 저장소"""

    def __init__(self):
        self._config: Optional[Dict[str, Any]] = None
        self._history: Optional[List[Dict[str, Any]]] = None

    def load_config(self) -> Optional[Dict[str, Any]]:
        return dict(self._config) if self._config is not None else None

    def save_config(self, data: Dict[str, Any]):
        self._config = dict(data)

    def load_history(self) -> Optional[List[Dict[str, Any]]]:
        return list(self._history) if self._history is not None else None

    def save_history(self, data: List[Dict[str, Any]]):
        self._history = list(data)

    def clear(self):
        self._config = None
        self._history = None


class PersistenceStore:
    """기본 저장소 실패 시 메모리 저장소로 대체하는 저장소 래퍼.

    쓰기는 큐에 넣어 백그라운드 스레드에서 처리하므로 호출한 쪽을 막지 않습니다.
    저장 실패는 출력만 하고 호출한 쪽으로 전파하지 않습니다.
    """

    def __init__(self, primary=None, fallback=None, async_writes: bool = True):
        self.primary = primary
        self.fallback = fallback or MemoryStore()
        self.async_writes = async_writes
        self.using_fallback = primary is None
        self._write_queue: queue.Queue = queue.Queue()
        self._writer_thread: Optional[threading.Thread] = None
        if async_writes:
            self._writer_thread = threading.Thread(target=self._storage_writer, daemon=True)
            self._writer_thread.start()

    # ------------------------------------------------------------------
    # 읽기
    # ------------------------------------------------------------------

    def load_config(self, default: Optional[ValidationConfig] = None) -> ValidationConfig:
        """저장된 작업 설정을 읽습니다. 없거나 손상되었으면 default 를 반환합니다."""
        default = default or ValidationConfig()
        data = self._read('load_config')
        if data is None:
            return default
        try:
            return ValidationConfig.from_dict(data)
        except (ConfigurationError, TypeError) as e:
            print(f"검증 설정 로드 오류, 기본값 사용: {e}")
            return default

    def load_history(self) -> List[ValidationResult]:
        """저장된 이력을 최신순으로 읽습니다. 손상된 항목은 건너뜁니다."""
        data = self._read('load_history')
        if data is None:
            return []
        if not isinstance(data, list):
            print(f"이력 파일 형식 오류, 빈 이력으로 시작합니다: {type(data).__name__}")
            return []
        results = []
        for item in data:
            try:
                results.append(ValidationResult.from_dict(item))
            except (KeyError, ValueError, TypeError) as e:
                print(f"손상된 이력 항목을 건너뜁니다: {e}")
        results.sort(key=lambda r: r.timestamp, reverse=True)
        return results

    def load_history_async(self, callback: Callable[[List[ValidationResult]], None], scheduler=None):
        """별도 스레드에서 이력을 읽고 scheduler 를 통해 메인 루프에서 callback 을 호출합니다."""
        def loader():
            try:
                entries = self.load_history()
            except Exception as e:
                # 실패해도 callback 은 반드시 호출 (빈 이력으로 로딩 완료)
                print(f"이력 로드 오류, 빈 이력으로 시작합니다: {e}")
                entries = []
            if scheduler is not None:
                scheduler.after(0, lambda: callback(entries))
            else:
                callback(entries)

        thread = threading.Thread(target=loader, daemon=True)
        thread.start()
        return thread

    def _read(self, method: str):
        if self.primary is not None:
            try:
                return getattr(self.primary, method)()
            except FileHandlingError as e:
                print(f"저장소 읽기 오류, 메모리 저장소 사용: {e}")
                self.using_fallback = True
        return getattr(self.fallback, method)()

    # ------------------------------------------------------------------
    # 쓰기
    # ------------------------------------------------------------------

    def save_config(self, config: ValidationConfig):
        self._submit('save_config', config.to_dict())

    def save_history(self, entries: List[ValidationResult]):
        self._submit('save_history', [entry.to_dict() for entry in entries])

    def clear_all_data(self):
        self._submit('clear', None)

    def _submit(self, method: str, payload: Any):
        if self.async_writes:
            self._write_queue.put((method, payload))
        else:
            self._write(method, payload)

    def _write(self, method: str, payload: Any):
        args = () if payload is None else (payload,)
        if self.primary is not None:
            try:
                getattr(self.primary, method)(*args)
                return
            except FileHandlingError as e:
                print(f"저장소 쓰기 오류, 메모리 저장소 사용: {e}")
                self.using_fallback = True
        getattr(self.fallback, method)(*args)

    def _storage_writer(self):
        """저장 요청을 순서대로 처리하는 스레드 함수"""
        while True:
            item = self._write_queue.get()
            try:
                if item is None:
                    break
                method, payload = item
                self._write(method, payload)
            except Exception as e:
                print(f"저장 처리 오류: {e}")
            finally:
                self._write_queue.task_done()

    def flush(self):
        """대기 중인 저장 요청이 모두 끝날 때까지 기다립니다."""
        if self.async_writes:
            self._write_queue.join()

    def close(self):
        if self._writer_thread is not None and self._writer_thread.is_alive():
            self._write_queue.put(None)
            self._writer_thread.join(timeout=1.0)
