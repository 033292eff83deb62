"""커스텀 예외 클래스들"""


class LabelVerifierError(Exception):
    """라벨 검증 시스템의 기본 예외 클래스"""
    pass


class ConfigurationError(LabelVerifierError):
    """설정 관련 오류"""
    pass


class FileHandlingError(LabelVerifierError):
    """파일 처리 관련 오류"""
    pass


class SessionError(LabelVerifierError):
    """현재 상태에서 허용되지 않는 명령"""
    pass
