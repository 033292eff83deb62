"""바코드 정규화 및 형식 검증 모듈"""

import re

# 'SN', 'SN:', 'SN=', 'SN-' 뒤에 오는 실제 코드 부분
LABEL_PREFIX_PATTERN = re.compile(r'^SN\s*[:=\-]?\s*(.+)$')
NON_ALNUM_PATTERN = re.compile(r'[^A-Z0-9]')
CODE_FORMAT_PATTERN = re.compile(r'[A-Z0-9]{8,20}')


def normalize_code(raw: str) -> str:
    """스캔된 원본 문자열을 비교용 표준 코드로 변환합니다.

    앞뒤 공백 제거, 대문자 변환, 'SN' 라벨 접두어 제거 후
    영문 대문자/숫자 이외의 문자를 모두 제거합니다.
    접두어가 더 이상 없을 때까지 반복하므로 두 번 적용해도 결과가 같습니다.
    """
    code = (raw or "").strip().upper()
    while True:
        match = LABEL_PREFIX_PATTERN.match(code)
        if match:
            code = match.group(1)
        code = NON_ALNUM_PATTERN.sub('', code)
        if not match:
            return code


def is_valid_format(code: str) -> bool:
    """표준 코드가 8~20자리 영숫자인지 확인합니다."""
    return CODE_FORMAT_PATTERN.fullmatch(code or "") is not None
