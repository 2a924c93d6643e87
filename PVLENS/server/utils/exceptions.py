"""Exception hierarchy shared by the search services and repositories.

    PVLensError (base)
    ├── ConfigurationError
    └── RepositoryUnavailableError

Blank queries and unknown filter values are not errors: the search services
answer them with empty or unfiltered results.
"""
from __future__ import annotations

from typing import Any


###############################################################################
class PVLensError(Exception):
    """Base class for PVLENS errors.

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    # -------------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


###############################################################################
class ConfigurationError(PVLensError):
    """Raised when a configuration or resource file cannot be used."""


###############################################################################
class RepositoryUnavailableError(PVLensError):
    """Raised when the candidate repository cannot answer a query.

    Attributes:
        pool: Term pool the failed query was addressed to
    """

    def __init__(
        self,
        message: str,
        pool: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.pool = pool
        details = details or {}
        if pool:
            details["pool"] = pool
        super().__init__(message, code, details)


__all__ = [
    "ConfigurationError",
    "PVLensError",
    "RepositoryUnavailableError",
]
