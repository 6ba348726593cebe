"""
experiment_sdk.tier1_runtime.diagnostics
─────────────────────────────────────────
Structured decision diagnostics. Each terminal branch of a decision emits
exactly one Diagnostic carrying a severity, a stable kind and the rendered
message. Profile-service faults add an error-level diagnostic of their own.

Sinks:
  LogDiagnosticsSink     forwards to structlog (default)
  MemoryDiagnosticsSink  keeps a list, for tests and embedders
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from experiment_sdk.tier0_core.logging import get_logger

INFO = "info"
ERROR = "error"


# ── Message templates ─────────────────────────────────────────────────────────

NOT_RUNNING = "Experiment '{experiment_key}' is not running."
FORCED = (
    "Variation '{variation_key}' is mapped to experiment '{experiment_key}' "
    "and user '{user_id}' in the forced variation map."
)
WHITELISTED = (
    "User '{user_id}' is whitelisted into variation '{variation_key}' "
    "of experiment '{experiment_key}'."
)
WHITELISTED_INVALID = (
    "User '{user_id}' is whitelisted into variation '{variation_key}', "
    "which is not in the datafile."
)
FROM_USER_PROFILE = (
    "Returning previously activated variation ID {variation_id} of experiment "
    "'{experiment_key}' for user '{user_id}' from user profile."
)
AUDIENCE_MISMATCH = (
    "User '{user_id}' does not meet the conditions to be in experiment "
    "'{experiment_key}'."
)
GROUP_EXCLUDED = "User '{user_id}' is not in experiment '{experiment_key}' of group {group_id}."
GROUP_EMPTY = "User '{user_id}' is not in any experiment of group {group_id}."
NO_VARIATION = "User '{user_id}' is in no variation."
BUCKETED = (
    "User '{user_id}' is in variation '{variation_key}' of experiment "
    "'{experiment_key}'."
)
LOOKUP_FAILED = "Error while looking up user profile for user ID '{user_id}': {error}."
SAVE_FAILED = "Error while saving user profile for user ID '{user_id}': {error}."


@dataclass(frozen=True)
class Diagnostic:
    """One structured decision event."""
    level: str                 # "info" | "error"
    kind: str                  # e.g. "whitelisted", "profile_lookup_failed"
    message: str
    fields: dict[str, Any] = field(default_factory=dict)


def render(level: str, kind: str, template: str, **fields: Any) -> Diagnostic:
    return Diagnostic(
        level=level,
        kind=kind,
        message=template.format(**fields),
        fields=fields,
    )


@runtime_checkable
class DiagnosticsSink(Protocol):
    def emit(self, diagnostic: Diagnostic) -> None: ...


class LogDiagnosticsSink:
    """Write every diagnostic to structlog at its own severity."""

    def __init__(self, logger_name: str = "experiment_sdk.decision") -> None:
        self._log = get_logger(logger_name)

    def emit(self, diagnostic: Diagnostic) -> None:
        method = self._log.error if diagnostic.level == ERROR else self._log.info
        method(
            f"decision.{diagnostic.kind}",
            message=diagnostic.message,
            **diagnostic.fields,
        )


class MemoryDiagnosticsSink:
    """In-memory sink for tests."""

    def __init__(self) -> None:
        self.records: list[Diagnostic] = []

    def emit(self, diagnostic: Diagnostic) -> None:
        self.records.append(diagnostic)

    def messages(self, level: str | None = None) -> list[str]:
        return [d.message for d in self.by_level(level)]

    def by_level(self, level: str | None = None) -> list[Diagnostic]:
        if level is None:
            return list(self.records)
        return [d for d in self.records if d.level == level]

    def clear(self) -> None:
        self.records.clear()


__sdk_export__ = {
    "surface": "both",
    "exports": [
        "Diagnostic", "DiagnosticsSink", "LogDiagnosticsSink", "MemoryDiagnosticsSink",
    ],
    "description": "Structured decision diagnostics with log and in-memory sinks",
    "tier": "tier1_runtime",
    "module": "diagnostics",
}
