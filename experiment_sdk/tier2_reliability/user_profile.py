"""
experiment_sdk.tier2_reliability.user_profile
──────────────────────────────────────────────
Sticky bucketing storage. The engine talks to an externally supplied user
profile service through UserProfileAdapter, which turns every failure of
that service into a Fault result plus an error diagnostic. Nothing the
service raises reaches the decision in progress.

Results:
  lookup → Found(profile) | Missing() | Fault(error)
  save   → Saved() | Skipped() | Fault(error)

Backends: none (no stickiness) or memory (dict, last-writer-wins).
Configure via: EXPERIMENT_USER_PROFILE_BACKEND=none|memory
"""
from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from experiment_sdk.tier0_core.config import get_config
from experiment_sdk.tier0_core.errors import (
    ConfigurationError,
    ProfileServiceError,
    ValidationError,
)
from experiment_sdk.tier0_core.metrics import record_profile_fault
from experiment_sdk.tier1_runtime import diagnostics as diag
from experiment_sdk.tier1_runtime.diagnostics import DiagnosticsSink
from experiment_sdk.tier1_runtime.validate import validate_input

LOOKUP = "lookup"
SAVE = "save"


# ── Domain model ──────────────────────────────────────────────────────────────

class ExperimentBucket(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    variation_id: str


class UserProfile(BaseModel):
    """Decisions already made for one user, keyed by experiment id."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    user_id: str
    experiment_bucket_map: dict[str, ExperimentBucket] = Field(default_factory=dict)

    def get_variation_for_experiment(self, experiment_id: str) -> str | None:
        bucket = self.experiment_bucket_map.get(experiment_id)
        return bucket.variation_id if bucket else None

    def save_variation_for_experiment(self, experiment_id: str, variation_id: str) -> None:
        self.experiment_bucket_map[experiment_id] = ExperimentBucket(variation_id=variation_id)

    def remove_experiment(self, experiment_id: str) -> None:
        self.experiment_bucket_map.pop(experiment_id, None)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


# ── Service protocol ──────────────────────────────────────────────────────────

@runtime_checkable
class UserProfileService(Protocol):
    """
    Externally supplied profile storage. lookup returns the dict form
    (or a UserProfile) or None; save receives the dict form.
    """

    def lookup(self, user_id: str) -> Mapping[str, Any] | UserProfile | None: ...

    def save(self, user_profile: dict[str, Any]) -> None: ...


class MemoryUserProfileService:
    """In-process profile storage. No locking: concurrent saves race and the last one wins."""

    def __init__(self, profiles: dict[str, dict[str, Any]] | None = None) -> None:
        self._store: dict[str, dict[str, Any]] = copy.deepcopy(profiles or {})

    def lookup(self, user_id: str) -> dict[str, Any] | None:
        profile = self._store.get(user_id)
        return copy.deepcopy(profile) if profile is not None else None

    def save(self, user_profile: dict[str, Any]) -> None:
        self._store[user_profile["user_id"]] = copy.deepcopy(user_profile)

    def clear(self) -> None:
        self._store.clear()


# ── Results ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Found:
    profile: UserProfile


@dataclass(frozen=True)
class Missing:
    pass


@dataclass(frozen=True)
class Saved:
    pass


@dataclass(frozen=True)
class Skipped:
    """No profile service configured."""


@dataclass(frozen=True)
class Fault:
    error: ProfileServiceError


LookupResult = Union[Found, Missing, Fault]
SaveResult = Union[Saved, Skipped, Fault]


# ── Adapter ───────────────────────────────────────────────────────────────────

def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class UserProfileAdapter:
    """Fault-isolating wrapper around an optional UserProfileService."""

    def __init__(
        self,
        service: UserProfileService | None,
        diagnostics: DiagnosticsSink,
    ) -> None:
        self._service = service
        self._diagnostics = diagnostics

    @property
    def configured(self) -> bool:
        return self._service is not None

    def lookup(self, user_id: str) -> LookupResult:
        if self._service is None:
            return Missing()
        try:
            raw = self._service.lookup(user_id)
        except Exception as exc:
            return self._fault(LOOKUP, user_id, exc, diag.LOOKUP_FAILED)
        if raw is None:
            return Missing()

        if isinstance(raw, UserProfile):
            raw = raw.model_dump()
        try:
            profile = validate_input(
                UserProfile, raw, user_message="User profile is malformed."
            )
        except ValidationError as exc:
            return self._fault(LOOKUP, user_id, exc, diag.LOOKUP_FAILED)
        return Found(profile)

    def save(self, profile: UserProfile) -> SaveResult:
        if self._service is None:
            return Skipped()
        try:
            self._service.save(profile.to_dict())
        except Exception as exc:
            return self._fault(SAVE, profile.user_id, exc, diag.SAVE_FAILED)
        return Saved()

    def _fault(
        self,
        operation: str,
        user_id: str,
        exc: BaseException,
        template: str,
    ) -> Fault:
        error = ProfileServiceError(operation, user_id, exc)
        record_profile_fault(operation)
        self._diagnostics.emit(
            diag.render(
                diag.ERROR,
                f"profile_{operation}_failed",
                template,
                user_id=user_id,
                error=_describe(exc),
                operation=operation,
            )
        )
        return Fault(error)


# ── Provider factory ──────────────────────────────────────────────────────────

def get_user_profile_service() -> UserProfileService | None:
    backend = get_config().user_profile_backend
    if backend == "none":
        return None
    if backend == "memory":
        return MemoryUserProfileService()
    raise ConfigurationError(
        user_message=(
            f"Unknown EXPERIMENT_USER_PROFILE_BACKEND: {backend!r}. "
            "Supported: none, memory"
        )
    )


__sdk_export__ = {
    "surface": "both",
    "exports": [
        "UserProfile", "UserProfileService", "MemoryUserProfileService",
        "UserProfileAdapter", "get_user_profile_service",
    ],
    "description": "Fault-isolating user profile adapter for sticky bucketing",
    "tier": "tier2_reliability",
    "module": "user_profile",
}
