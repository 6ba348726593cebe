"""
experiment_sdk.tier3_platform.project_config
─────────────────────────────────────────────
Read-only view over a parsed v2 datafile. Experiments, groups, audiences
and variations are indexed by id and by key once, at construction, and
never mutated afterwards, so one instance can be shared by any number of
concurrent decisions.

Usage::

    config = ProjectConfig.from_datafile(datafile_json)
    experiment = config.get_experiment_from_key("checkout_redesign")
"""
from __future__ import annotations

import json
from typing import Any

from experiment_sdk.tier0_core.errors import InvalidDatafileError
from experiment_sdk.tier0_core.logging import get_logger
from experiment_sdk.tier1_runtime.validate import validate_input
from experiment_sdk.tier3_platform.audience import MALFORMED, Node, compile_conditions
from experiment_sdk.tier3_platform.entities import (
    RUNNING,
    Datafile,
    Experiment,
    Group,
    Variation,
)

logger = get_logger("experiment_sdk.config")


class ProjectConfig:

    def __init__(self, datafile: Datafile) -> None:
        self.revision = datafile.revision
        self.project_id = datafile.project_id

        self._groups: dict[str, Group] = {g.id: g for g in datafile.groups}
        self._experiments_by_id: dict[str, Experiment] = {}
        self._experiments_by_key: dict[str, Experiment] = {}

        experiments = list(datafile.experiments)
        for group in datafile.groups:
            experiments.extend(
                exp.model_copy(update={"group_id": group.id}) for exp in group.experiments
            )
        for experiment in experiments:
            self._experiments_by_id[experiment.id] = experiment
            self._experiments_by_key[experiment.key] = experiment

        self._variations_by_id: dict[str, dict[str, Variation]] = {
            exp.id: {v.id: v for v in exp.variations} for exp in experiments
        }
        self._variations_by_key: dict[str, dict[str, Variation]] = {
            exp.id: {v.key: v for v in exp.variations} for exp in experiments
        }
        self._audience_trees: dict[str, Node | None] = {
            audience.id: compile_conditions(audience.conditions)
            for audience in datafile.audiences
        }

    @classmethod
    def from_datafile(cls, datafile: str | bytes | dict[str, Any]) -> "ProjectConfig":
        if isinstance(datafile, (str, bytes)):
            try:
                datafile = json.loads(datafile)
            except ValueError as exc:
                raise InvalidDatafileError(
                    user_message="Datafile is not valid JSON.",
                    detail=str(exc),
                ) from exc
        parsed = validate_input(
            Datafile,
            datafile,
            error_cls=InvalidDatafileError,
            user_message="Datafile failed validation.",
        )
        config = cls(parsed)
        logger.debug(
            "config.loaded",
            revision=config.revision,
            experiments=len(config._experiments_by_id),
            groups=len(config._groups),
        )
        return config

    # ── Lookups ───────────────────────────────────────────────────────────────

    def get_experiment_from_key(self, experiment_key: str) -> Experiment | None:
        return self._experiments_by_key.get(experiment_key)

    def get_experiment_from_id(self, experiment_id: str) -> Experiment | None:
        return self._experiments_by_id.get(experiment_id)

    def get_group(self, group_id: str) -> Group | None:
        return self._groups.get(group_id)

    def get_audience_tree(self, audience_id: str) -> Node | None:
        """Condition tree of an audience. Unknown ids yield MALFORMED."""
        return self._audience_trees.get(audience_id, MALFORMED)

    def experiment_audience_trees(self, experiment: Experiment) -> list[Node | None]:
        return [self.get_audience_tree(audience_id) for audience_id in experiment.audience_ids]

    def get_variation_from_id(self, experiment: Experiment, variation_id: str) -> Variation | None:
        return self._variations_by_id.get(experiment.id, {}).get(variation_id)

    def get_variation_from_key(self, experiment: Experiment, variation_key: str) -> Variation | None:
        return self._variations_by_key.get(experiment.id, {}).get(variation_key)

    # ── Predicates ────────────────────────────────────────────────────────────

    def is_experiment_running(self, experiment: Experiment) -> bool:
        return experiment.status == RUNNING

    def variation_exists(self, experiment: Experiment, variation_id: str) -> bool:
        return self.get_variation_from_id(experiment, variation_id) is not None

    def get_whitelisted_variation_key(self, experiment: Experiment, user_id: str) -> str | None:
        """Datafile-declared forced variation key for *user_id*, if any."""
        return experiment.forced_variations.get(user_id)


__sdk_export__ = {
    "surface": "both",
    "exports": ["ProjectConfig"],
    "description": "Read-only configuration view built from a datafile",
    "tier": "tier3_platform",
    "module": "project_config",
}
