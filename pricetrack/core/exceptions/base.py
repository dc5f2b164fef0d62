"""pricetrack核心异常类."""

from typing import Any

from pricetrack.core.exceptions.codes import ErrorCode


class PriceTrackError(Exception):
    """pricetrack基础异常类.

    ``error_code`` 总是字符串 (ErrorCode 会被转换为其值), CLI 据此选择退出码.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode | str = ErrorCode.GENERAL_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code.value if isinstance(error_code, ErrorCode) else str(error_code)
        self.details = dict(details or {})

    @property
    def is_validation_error(self) -> bool:
        """调用方输入有误 (而不是系统/存储故障)."""
        return self.error_code in (ErrorCode.INVALID_INPUT.value, ErrorCode.UNKNOWN_METRIC_KIND.value)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"
