"""검증 결과 음향 피드백 모듈"""

import math
import os
from array import array
from typing import Optional

import pygame

from utils.file_handler import resource_path

SAMPLE_RATE = 44100

# (주파수 Hz, 길이 초)
SUCCESS_TONE = (800, 0.2)
WARNING_TONE = (500, 0.4)
ERROR_TONE = (300, 0.8)


def build_tone(frequency: float, duration: float, volume: float = 0.3) -> pygame.mixer.Sound:
    """감쇠하는 사인파 비프음을 만듭니다. 믹서가 초기화되어 있어야 합니다."""
    sample_rate, _size, channels = pygame.mixer.get_init()
    total = int(sample_rate * duration)
    amplitude = 32767 * volume
    samples = array('h')
    for i in range(total):
        decay = 1.0 - (i / total)
        value = int(amplitude * decay * math.sin(2 * math.pi * frequency * i / sample_rate))
        samples.extend([value] * channels)
    return pygame.mixer.Sound(buffer=samples.tobytes())


class AudioFeedback:
    """성공/경고/오류음과 반복 알람을 재생합니다.

    assets 폴더에 wav 파일이 있으면 그것을, 없으면 합성한 비프음을 사용합니다.
    사운드 장치를 쓸 수 없으면 모든 재생 요청을 무시합니다.
    """

    def __init__(self, assets_dir: str = 'assets'):
        self.success_sound: Optional[pygame.mixer.Sound] = None
        self.warning_sound: Optional[pygame.mixer.Sound] = None
        self.error_sound: Optional[pygame.mixer.Sound] = None
        self.alarm_active = False

        try:
            pygame.mixer.init(frequency=SAMPLE_RATE, size=-16, channels=1)
            self.success_sound = self._load(assets_dir, 'success.wav', SUCCESS_TONE)
            self.warning_sound = self._load(assets_dir, 'warning.wav', WARNING_TONE)
            self.error_sound = self._load(assets_dir, 'error.wav', ERROR_TONE)
        except pygame.error as e:
            print(f"사운드 초기화 실패, 음향 피드백 없이 실행합니다: {e}")
            self.success_sound = self.warning_sound = self.error_sound = None

    @property
    def available(self) -> bool:
        return self.success_sound is not None

    def _load(self, assets_dir: str, filename: str, tone) -> pygame.mixer.Sound:
        path = resource_path(os.path.join(assets_dir, filename))
        if os.path.exists(path):
            try:
                return pygame.mixer.Sound(path)
            except pygame.error as e:
                print(f"사운드 파일 로드 실패 ({filename}): {e}")
        return build_tone(*tone)

    def play_success(self):
        if self.success_sound: self.success_sound.play()

    def play_warning(self):
        if self.warning_sound: self.warning_sound.play()

    def play_error(self):
        """불합격 알람을 반복 재생합니다. stop_alarm() 전까지 멈추지 않습니다."""
        if self.error_sound:
            self.error_sound.play(loops=-1)
            self.alarm_active = True

    def stop_alarm(self):
        if self.error_sound: self.error_sound.stop()
        self.alarm_active = False

    def shutdown(self):
        self.stop_alarm()
        if pygame.mixer.get_init():
            pygame.mixer.quit()
