from __future__ import annotations


class DomainError(Exception):
    def __init__(self, error_code: str, message: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.message = message
        self.retryable = retryable


class ValidationError(DomainError):
    def __init__(self, message: str = "검증에 실패했어요.") -> None:
        super().__init__("VALIDATION_FAILED", message, retryable=False)


class ConfigurationError(DomainError):
    def __init__(self, message: str = "설정이 올바르지 않아요.") -> None:
        super().__init__("CONFIGURATION_ERROR", message, retryable=False)


class CommandTimeoutError(DomainError):
    def __init__(self, message: str = "작업 시간이 초과됐어요.") -> None:
        super().__init__("TIMEOUT", message, retryable=True)


class GitOperationError(DomainError):
    def __init__(self, message: str = "Git 작업에 실패했어요.") -> None:
        super().__init__("GIT_OPERATION_FAILED", message, retryable=False)


class ToolCancelledError(DomainError):
    def __init__(self, message: str = "도구 실행이 취소됐어요.") -> None:
        super().__init__("TOOL_CANCELLED", message, retryable=True)


class TransportError(DomainError):
    def __init__(self, message: str = "입출력 스트림에 문제가 발생했어요.") -> None:
        super().__init__("TRANSPORT_FAILED", message, retryable=False)
