"""Domain-level error hierarchy definitions."""

from __future__ import annotations

from typing import Any, Mapping

from pricetrack.core.exceptions.base import PriceTrackError
from pricetrack.core.exceptions.codes import ErrorCode


class DomainError(PriceTrackError):
    """领域错误基类，携带标准化错误上下文."""

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        layer: str,
        retryable: bool = False,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        """构造领域错误实例."""

        payload = dict(context or {})
        details = {**payload, "layer": layer, "retryable": retryable}
        super().__init__(message, code.value, details)
        self.code = code
        self.layer = layer
        self.retryable = retryable
        self.context = payload

    def to_payload(self) -> dict[str, Any]:
        """Return a serializable payload representing the error."""

        return {
            "code": self.code.value,
            "message": self.message,
            "layer": self.layer,
            "retryable": self.retryable,
            "context": dict(self.context),
        }


class InvalidInputError(DomainError):
    """A mandatory field is missing or cannot be parsed.

    Raised synchronously to callers that asked to record a single sample.
    """

    def __init__(
        self,
        message: str,
        context: Mapping[str, Any] | None = None,
        code: ErrorCode = ErrorCode.INVALID_INPUT,
    ) -> None:
        super().__init__(message, code, layer="validation", context=context)


class NormalizationDropError(DomainError):
    """One entry of a batch failed validation and will be skipped."""

    def __init__(self, reason: str, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(reason, ErrorCode.NORMALIZATION_DROP, layer="normalization", context=context)
        self.reason = reason


class PersistenceUnavailableError(DomainError):
    """The object store could not be read or written."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        key: str | None = None,
        backend: str | None = None,
    ) -> None:
        context: dict[str, Any] = {"operation": operation}
        if key is not None:
            context["key"] = key
        if backend is not None:
            context["backend"] = backend
        super().__init__(
            message,
            ErrorCode.PERSISTENCE_UNAVAILABLE,
            layer="storage",
            retryable=True,
            context=context,
        )
        self.operation = operation
        self.key = key


class ConfigurationError(DomainError):
    """Invalid or incomplete configuration."""

    def __init__(self, message: str, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, layer="config", context=context)


class UnknownMetricKindError(InvalidInputError):
    """The requested metric kind is not configured."""

    def __init__(self, kind: str, available: list[str]) -> None:
        super().__init__(
            f"Unknown metric kind '{kind}'",
            context={"kind": kind, "available": available},
            code=ErrorCode.UNKNOWN_METRIC_KIND,
        )
        self.kind = kind
