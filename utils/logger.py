"""로깅 유틸리티 모듈"""

import csv
import json
import datetime
import os
import queue
import threading
from typing import Dict, Any, Optional, List

from utils.file_handler import ensure_directory_exists, get_safe_filename


class EventLogger:
    """검증 이벤트를 일자별 CSV 파일에 기록하는 클래스"""

    FIELDNAMES = ['timestamp', 'station', 'event', 'details']

    def __init__(self, log_folder: str, station_id: str = ""):
        self.log_folder = log_folder
        self.station_id = station_id
        self.log_queue: queue.Queue = queue.Queue()
        self.log_writer_running = True
        ensure_directory_exists(self.log_folder)
        self._start_log_writer_thread()

    def _start_log_writer_thread(self):
        """로그 작성 스레드를 시작합니다."""
        self.log_thread = threading.Thread(target=self._event_log_writer, daemon=True)
        self.log_thread.start()

    def log_file_path(self, date: Optional[datetime.date] = None) -> str:
        """해당 일자의 로그 파일 경로를 반환합니다."""
        date = date or datetime.date.today()
        station = get_safe_filename(self.station_id) or "STATION"
        return os.path.join(self.log_folder, f"라벨검증이벤트로그_{station}_{date.strftime('%Y%m%d')}.csv")

    def _event_log_writer(self):
        """이벤트 로그를 파일에 작성하는 스레드 함수"""
        while self.log_writer_running:
            try:
                log_entry = self.log_queue.get(timeout=1)
            except queue.Empty:
                continue

            try:
                if log_entry is None:
                    break

                target_path = log_entry.pop('_path')
                file_exists = os.path.exists(target_path) and os.stat(target_path).st_size > 0
                with open(target_path, mode='a', newline='', encoding='utf-8-sig') as csvfile:
                    writer = csv.DictWriter(csvfile, fieldnames=self.FIELDNAMES)

                    if not file_exists:
                        writer.writeheader()

                    writer.writerow(log_entry)
                    csvfile.flush()
            except Exception as e:
                print(f"로그 작성 오류: {e}")
            finally:
                self.log_queue.task_done()

    def log_event(self, event_type: str, detail: Optional[Dict] = None):
        """이벤트를 로그에 기록합니다."""
        now = datetime.datetime.now()
        log_entry = {
            '_path': self.log_file_path(now.date()),
            'timestamp': now.isoformat(),
            'station': self.station_id or "",
            'event': event_type,
            'details': json.dumps(detail, ensure_ascii=False) if detail else ""
        }
        self.log_queue.put(log_entry)

    def get_todays_logs(self) -> List[Dict[str, Any]]:
        """오늘 날짜의 모든 로그를 반환합니다."""
        logs = []
        path = self.log_file_path()

        if not os.path.exists(path):
            return logs

        try:
            with open(path, mode='r', encoding='utf-8-sig') as csvfile:
                reader = csv.DictReader(csvfile)
                for row in reader:
                    try:
                        detail = json.loads(row['details']) if row['details'] else {}
                    except json.JSONDecodeError:
                        continue
                    logs.append({
                        'timestamp': row['timestamp'],
                        'station': row['station'],
                        'event': row['event'],
                        'detail': detail
                    })
            return logs
        except OSError as e:
            print(f"로그 파일 읽기 오류: {e}")
            return logs

    def flush(self):
        """대기 중인 로그가 모두 기록될 때까지 기다립니다."""
        self.log_queue.join()

    def stop_logger(self):
        """로깅을 중지합니다."""
        self.log_queue.put(None)  # 종료 신호
        if self.log_thread.is_alive():
            self.log_thread.join(timeout=1.0)
        self.log_writer_running = False
