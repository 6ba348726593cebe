"""
experiment_sdk.tier0_core.errors
─────────────────────────────────
Standard error taxonomy for the decision engine. Every error carries a
stable machine-readable code, a user-safe message and internal detail.

Only UnknownExperimentError escapes a decision call. Profile-service
faults are described by ProfileServiceError but are recovered at the
adapter boundary and never raised to callers.
"""
from __future__ import annotations

from typing import Any


# ── Base error ────────────────────────────────────────────────────────────────

class SDKError(Exception):
    """
    Base class for all SDK errors. Every error has:
    - code: stable machine-readable string (snake_case)
    - user_message: safe to surface to SDK consumers
    - detail: internal context
    """

    code: str = "internal_error"

    def __init__(
        self,
        code: str | None = None,
        user_message: str = "An unexpected error occurred.",
        detail: str | None = None,
        **metadata: Any,
    ) -> None:
        self.code = code or self.__class__.code
        self.user_message = user_message
        self.detail = detail or user_message
        self.metadata = metadata
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.user_message,
            }
        }


# ── Typed error classes ───────────────────────────────────────────────────────

class ValidationError(SDKError):
    """Input validation failure."""
    code = "validation_error"

    def __init__(
        self,
        code: str | None = None,
        user_message: str = "Validation failed.",
        fields: dict | None = None,
        **metadata: Any,
    ) -> None:
        self.fields = fields or {}
        super().__init__(code, user_message, **metadata)

    def to_dict(self) -> dict:
        d = super().to_dict()
        if self.fields:
            d["error"]["fields"] = self.fields
        return d


class InvalidDatafileError(ValidationError):
    """The datafile could not be turned into a configuration view."""
    code = "invalid_datafile"


class NotFoundError(SDKError):
    """Requested entity does not exist."""
    code = "not_found"


class UnknownExperimentError(NotFoundError):
    """Experiment key is not present in the configuration."""
    code = "unknown_experiment"

    def __init__(self, experiment_key: str, **metadata: Any) -> None:
        self.experiment_key = experiment_key
        super().__init__(
            user_message=f"Experiment key '{experiment_key}' is not in datafile.",
            experiment_key=experiment_key,
            **metadata,
        )


class ConfigurationError(SDKError):
    """Misconfiguration detected at startup."""
    code = "configuration_error"


class ProfileServiceError(SDKError):
    """A user profile service call failed. Recovered, never raised."""
    code = "profile_service_error"

    def __init__(
        self,
        operation: str,
        user_id: str,
        cause: BaseException | str,
        **metadata: Any,
    ) -> None:
        self.operation = operation
        self.user_id = user_id
        self.cause = cause
        super().__init__(
            user_message="User profile service failure.",
            detail=f"{operation} failed for user '{user_id}': {cause}",
            operation=operation,
            user_id=user_id,
            **metadata,
        )


__sdk_export__ = {
    "surface": "both",
    "exports": [
        "SDKError", "ValidationError", "InvalidDatafileError", "NotFoundError",
        "UnknownExperimentError", "ConfigurationError", "ProfileServiceError",
    ],
    "description": "Standard error taxonomy for the decision engine",
    "tier": "tier0_core",
    "module": "errors",
}
