"""
experiment_sdk.tier3_platform.forced_variations
────────────────────────────────────────────────
Forced variations set at runtime through the API, independent of the
datafile whitelist. One store belongs to one DecisionService and lives as
long as it does; there is no module-level table.
"""
from __future__ import annotations


class ForcedVariationStore:
    """user id → {experiment id → variation id}."""

    def __init__(self) -> None:
        self._map: dict[str, dict[str, str]] = {}

    def set(self, user_id: str, experiment_id: str, variation_id: str) -> None:
        self._map.setdefault(user_id, {})[experiment_id] = variation_id

    def get(self, user_id: str, experiment_id: str) -> str | None:
        return self._map.get(user_id, {}).get(experiment_id)

    def remove(self, user_id: str, experiment_id: str) -> bool:
        experiments = self._map.get(user_id)
        if not experiments or experiment_id not in experiments:
            return False
        del experiments[experiment_id]
        if not experiments:
            del self._map[user_id]
        return True

    def __len__(self) -> int:
        return sum(len(experiments) for experiments in self._map.values())


__sdk_export__ = {
    "surface": "service",
    "exports": ["ForcedVariationStore"],
    "description": "Per-service map of API-forced variations",
    "tier": "tier3_platform",
    "module": "forced_variations",
}
