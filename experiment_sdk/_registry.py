"""
experiment_sdk._registry
─────────────────────────
Internal module registry — the single source of truth for which modules
exist and what each one exports.

Adding a new module:
  1. Implement it in the right tier
  2. Add ``__sdk_export__`` to the module
  3. Add one tuple to TIER_MODULES below
"""
from __future__ import annotations

import importlib
from typing import Any

# ---------------------------------------------------------------------------
# Ordered list of (tier_path, module_name), leaf modules first.
# ---------------------------------------------------------------------------
TIER_MODULES: list[tuple[str, str]] = [
    # tier0_core — foundational layer
    ("tier0_core", "errors"),
    ("tier0_core", "config"),
    ("tier0_core", "logging"),
    ("tier0_core", "metrics"),
    # tier1_runtime — validation and diagnostics
    ("tier1_runtime", "validate"),
    ("tier1_runtime", "diagnostics"),
    # tier2_reliability — fault isolation around external services
    ("tier2_reliability", "user_profile"),
    # tier3_platform — the decision engine
    ("tier3_platform", "entities"),
    ("tier3_platform", "audience"),
    ("tier3_platform", "bucketer"),
    ("tier3_platform", "project_config"),
    ("tier3_platform", "forced_variations"),
    ("tier3_platform", "decision_service"),
]


def collect_exports(surface: str | None = None) -> dict[str, Any]:
    """
    Resolve every name listed in ``__sdk_export__["exports"]`` across
    ``TIER_MODULES``.

    Args:
        surface: keep only modules whose export surface is this value or
            ``"both"``. ``None`` keeps everything.

    Returns:
        Mapping of exported name to the object it resolves to.

    Raises:
        AttributeError: a module advertises a name it does not define.
    """
    exports: dict[str, Any] = {}

    for tier_path, module_name in TIER_MODULES:
        mod = importlib.import_module(f"experiment_sdk.{tier_path}.{module_name}")
        export_meta: dict[str, Any] = getattr(mod, "__sdk_export__", {})
        if surface is not None and export_meta.get("surface") not in (surface, "both"):
            continue
        for name in export_meta.get("exports", []):
            exports[name] = getattr(mod, name)

    return exports
