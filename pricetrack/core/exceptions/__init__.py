"""Exception handling module."""

from pricetrack.core.exceptions.base import PriceTrackError
from pricetrack.core.exceptions.codes import ErrorCode
from pricetrack.core.exceptions.domain import (
    ConfigurationError,
    DomainError,
    InvalidInputError,
    NormalizationDropError,
    PersistenceUnavailableError,
    UnknownMetricKindError,
)

__all__ = [
    "PriceTrackError",
    "DomainError",
    "ErrorCode",
    "InvalidInputError",
    "NormalizationDropError",
    "PersistenceUnavailableError",
    "ConfigurationError",
    "UnknownMetricKindError",
]
