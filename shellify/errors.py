"""Error hierarchy for shellify.

Every error carries an ``ErrorType`` category, a human-readable message and
a ``details`` dict with the offending URL, registry name, module key or file
path, so callers can report precisely what failed without re-deriving it.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

__all__ = [
    "ErrorType",
    "ShellifyError",
    "ConfigError",
    "PersistenceError",
    "URLFormatError",
    "ReachabilityError",
    "RepositoryUnreachableError",
    "StructureValidationError",
    "SourceControlError",
    "RepositoryNotClonedError",
    "RegistryNotFoundError",
    "RegistryExistsError",
    "InvalidRegistryNameError",
    "UnknownModuleError",
]


class ErrorType(Enum):
    VALIDATION = "validation"
    NETWORK = "network"
    CONFIG = "config"
    REGISTRY = "registry"
    MODULE = "module"
    SYSTEM = "system"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"


class ShellifyError(Exception):
    """Base error for all shellify errors.

    ``cleanup_error`` is set when a best-effort rollback that ran after this
    error also failed. It is informational only; the error itself is always
    the primary failure.
    """

    def __init__(
        self,
        error_type: ErrorType,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.details: dict[str, Any] = details or {}
        self.cause = cause
        self.cleanup_error: Exception | None = None

    @property
    def reason(self) -> str:
        """Machine-readable reason code, empty when the error has none."""
        return self.details.get("reason", "")

    def __str__(self) -> str:
        return f"{self.error_type.value}: {self.message}"


class ConfigError(ShellifyError):
    """Raised when the user configuration is invalid."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(ErrorType.CONFIG, message, **kwargs)


class PersistenceError(ShellifyError):
    """Raised when the registry list cannot be read or written."""

    def __init__(self, message: str, path: str, **kwargs: Any) -> None:
        super().__init__(ErrorType.SYSTEM, message, details={"path": path}, **kwargs)


class URLFormatError(ShellifyError):
    """Raised when a registry URL is syntactically unacceptable."""

    def __init__(self, reason: str, message: str, url: str, **kwargs: Any) -> None:
        super().__init__(
            ErrorType.VALIDATION,
            message,
            details={"reason": reason, "url": url},
            **kwargs,
        )


class ReachabilityError(ShellifyError):
    """Raised when a single candidate endpoint does not prove the repository exists."""

    def __init__(
        self,
        reason: str,
        message: str,
        endpoint: str,
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            ErrorType.NETWORK,
            message,
            details={"reason": reason, "endpoint": endpoint, "status_code": status_code},
            **kwargs,
        )


class RepositoryUnreachableError(ShellifyError):
    """Raised when every candidate endpoint failed.

    ``reason`` is the reason of the last failed endpoint.
    """

    def __init__(
        self, url: str, endpoints: list[str], last_error: ReachabilityError | None
    ) -> None:
        last = last_error.message if last_error else "no endpoints to probe"
        super().__init__(
            ErrorType.NETWORK,
            f"repository not accessible at any known endpoints (last error: {last})",
            details={
                "reason": last_error.reason if last_error else "request_failed",
                "url": url,
                "endpoints": list(endpoints),
            },
            cause=last_error,
        )
        self.last_error = last_error


class StructureValidationError(ShellifyError):
    """Raised when a materialized registry tree does not match the registry schema."""

    def __init__(self, reason: str, message: str, subject: str, **kwargs: Any) -> None:
        details = {"reason": reason, "subject": subject}
        details.update(kwargs.pop("details", None) or {})
        super().__init__(ErrorType.REGISTRY, message, details=details, **kwargs)

    @property
    def subject(self) -> str:
        """The registry name, module key or file path that failed."""
        return self.details["subject"]


class SourceControlError(ShellifyError):
    """Raised when a version-control or cache filesystem operation fails.

    ``output`` holds the combined output of the underlying tool, if any.
    """

    def __init__(self, message: str, path: str, output: str = "", **kwargs: Any) -> None:
        super().__init__(
            ErrorType.SYSTEM,
            message,
            details={"path": path, "output": output},
            **kwargs,
        )

    @property
    def output(self) -> str:
        return self.details["output"]


class RepositoryNotClonedError(ShellifyError):
    """Raised when a registry has no local clone in the cache."""

    def __init__(self, name: str, path: str) -> None:
        super().__init__(
            ErrorType.NOT_FOUND,
            f"repository not cloned: {name}",
            details={"name": name, "path": path},
        )


class RegistryNotFoundError(ShellifyError):
    """Raised when no registered registry matches an identifier."""

    def __init__(self, identifier: str) -> None:
        super().__init__(
            ErrorType.NOT_FOUND,
            f"registry not found: {identifier}",
            details={"identifier": identifier},
        )


class InvalidRegistryNameError(ShellifyError):
    """Raised when a registry name cannot be used as a cache directory entry."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(
            ErrorType.VALIDATION,
            message,
            details={"reason": "invalid_registry_name", "name": name},
        )


class RegistryExistsError(ShellifyError):
    """Raised when a registry name or URL is already registered."""

    def __init__(self, field: str, value: str) -> None:
        label = "registry" if field == "url" else "registry name"
        super().__init__(
            ErrorType.ALREADY_EXISTS,
            f"{label} already exists: {value}",
            details={"field": field, field: value},
        )

    @property
    def field(self) -> str:
        return self.details["field"]


class UnknownModuleError(ShellifyError):
    """Raised when no registered registry declares a module."""

    def __init__(self, module_name: str) -> None:
        super().__init__(
            ErrorType.NOT_FOUND,
            f"module not found: {module_name}",
            details={"module": module_name},
        )
