"""
experiment_sdk.tier3_platform.decision_service
───────────────────────────────────────────────
Decides which variation of an experiment a user sees. Same configuration,
same user, same attributes and same stored state always give the same
variation.

Evaluation order; each step short-circuits the ones after it:
  1. experiment lookup          (unknown key raises UnknownExperimentError)
  2. running check
  3. forced variation           (API map first, then datafile whitelist)
  4. sticky decision            (user profile)
  5. audience requirement
  6. bucketing                  (group first for random-policy groups)
  7. persist the new decision   (user profile)

Every terminal branch emits exactly one info diagnostic. A whitelist entry
naming an unknown variation emits its own diagnostic and then falls through.

The service holds no locks. Two concurrent decisions for the same user both
read then write the profile and the last save wins.
"""
from __future__ import annotations

import enum
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from experiment_sdk.tier0_core.errors import UnknownExperimentError
from experiment_sdk.tier0_core.logging import bind_context, clear_context, get_logger
from experiment_sdk.tier0_core.metrics import record_decision
from experiment_sdk.tier1_runtime import diagnostics as diag
from experiment_sdk.tier1_runtime.diagnostics import DiagnosticsSink, LogDiagnosticsSink
from experiment_sdk.tier2_reliability.user_profile import (
    Found,
    Missing,
    Saved,
    UserProfile,
    UserProfileAdapter,
    UserProfileService,
)
from experiment_sdk.tier3_platform.audience import AudienceEvaluator
from experiment_sdk.tier3_platform.bucketer import Bucketer
from experiment_sdk.tier3_platform.entities import GROUP_POLICY_RANDOM, Experiment
from experiment_sdk.tier3_platform.forced_variations import ForcedVariationStore
from experiment_sdk.tier3_platform.project_config import ProjectConfig

logger = get_logger("experiment_sdk.decision")


class DecisionSource(str, enum.Enum):
    NOT_RUNNING = "not_running"
    FORCED = "forced"
    WHITELISTED = "whitelisted"
    USER_PROFILE = "user_profile"
    AUDIENCE_MISMATCH = "audience_mismatch"
    GROUP_EXCLUDED = "group_excluded"
    NO_VARIATION = "no_variation"
    BUCKETED = "bucketed"


@dataclass(frozen=True)
class Decision:
    """Outcome of one decision. Not retained by the service."""
    experiment_id: str
    variation_id: str | None
    user_id: str
    source: DecisionSource


class DecisionService:

    def __init__(
        self,
        config: ProjectConfig,
        user_profile_service: UserProfileService | None = None,
        *,
        diagnostics: DiagnosticsSink | None = None,
        bucketer: Bucketer | None = None,
        audience_evaluator: AudienceEvaluator | None = None,
        forced_variations: ForcedVariationStore | None = None,
    ) -> None:
        self.config = config
        self.diagnostics = diagnostics or LogDiagnosticsSink()
        self.bucketer = bucketer or Bucketer()
        self.audience_evaluator = audience_evaluator or AudienceEvaluator()
        self.forced_variations = forced_variations or ForcedVariationStore()
        self.user_profiles = UserProfileAdapter(user_profile_service, self.diagnostics)

    # ── Public API ────────────────────────────────────────────────────────────

    def get_variation(
        self,
        experiment_key: str,
        user_id: str,
        attributes: Mapping[str, Any] | None = None,
    ) -> str | None:
        """Return the variation id *user_id* is assigned to, or None."""
        return self.decide(experiment_key, user_id, attributes).variation_id

    def decide(
        self,
        experiment_key: str,
        user_id: str,
        attributes: Mapping[str, Any] | None = None,
    ) -> Decision:
        started = time.perf_counter()
        bind_context(experiment_key=experiment_key, user_id=user_id)
        try:
            experiment = self._get_experiment(experiment_key)
            decision = self._decide(experiment, user_id, attributes or {})
        finally:
            clear_context("experiment_key", "user_id")
        record_decision(decision.source.value, time.perf_counter() - started)
        return decision

    def set_forced_variation(
        self,
        experiment_key: str,
        user_id: str,
        variation_key: str | None,
    ) -> bool:
        """
        Force *user_id* into *variation_key* for this service's lifetime.
        A None or empty key clears the mapping. Returns False when the
        experiment has no such variation.
        """
        experiment = self._get_experiment(experiment_key)
        if not variation_key:
            removed = self.forced_variations.remove(user_id, experiment.id)
            logger.debug(
                "forced_variation.cleared",
                user_id=user_id,
                experiment_key=experiment.key,
                had_mapping=removed,
            )
            return True

        variation = self.config.get_variation_from_key(experiment, variation_key)
        if variation is None:
            logger.info(
                "forced_variation.rejected",
                user_id=user_id,
                experiment_key=experiment.key,
                variation_key=variation_key,
            )
            return False

        self.forced_variations.set(user_id, experiment.id, variation.id)
        logger.debug(
            "forced_variation.set",
            user_id=user_id,
            experiment_key=experiment.key,
            variation_key=variation.key,
        )
        return True

    def get_forced_variation(self, experiment_key: str, user_id: str) -> str | None:
        """Variation key set through set_forced_variation, if any."""
        experiment = self._get_experiment(experiment_key)
        variation_id = self.forced_variations.get(user_id, experiment.id)
        if variation_id is None:
            return None
        variation = self.config.get_variation_from_id(experiment, variation_id)
        return variation.key if variation else None

    # ── Steps ─────────────────────────────────────────────────────────────────

    def _decide(
        self,
        experiment: Experiment,
        user_id: str,
        attributes: Mapping[str, Any],
    ) -> Decision:
        if not self.config.is_experiment_running(experiment):
            self._info("not_running", diag.NOT_RUNNING, experiment_key=experiment.key)
            return Decision(experiment.id, None, user_id, DecisionSource.NOT_RUNNING)

        variation_id = self.get_forced_variation_id(experiment, user_id)
        if variation_id is not None:
            return Decision(experiment.id, variation_id, user_id, DecisionSource.FORCED)

        variation_id = self.get_whitelisted_variation_id(experiment, user_id)
        if variation_id is not None:
            return Decision(experiment.id, variation_id, user_id, DecisionSource.WHITELISTED)

        # None after a lookup fault: the decision still happens, nothing is saved.
        profile: UserProfile | None = None
        lookup = self.user_profiles.lookup(user_id)
        if isinstance(lookup, Found):
            profile = lookup.profile
            variation_id = self.get_stored_variation_id(experiment, profile)
            if variation_id is not None:
                return Decision(experiment.id, variation_id, user_id, DecisionSource.USER_PROFILE)
        elif isinstance(lookup, Missing):
            profile = UserProfile(user_id=user_id)

        if experiment.audience_ids and not self.audience_evaluator.user_meets_requirement(
            self.config.experiment_audience_trees(experiment), attributes
        ):
            self._info(
                "audience_mismatch",
                diag.AUDIENCE_MISMATCH,
                user_id=user_id,
                experiment_key=experiment.key,
            )
            return Decision(experiment.id, None, user_id, DecisionSource.AUDIENCE_MISMATCH)

        decision = self.bucket(experiment, user_id)
        if decision.variation_id is not None and profile is not None:
            self.save_user_profile(profile, experiment, decision.variation_id)
        return decision

    def get_forced_variation_id(self, experiment: Experiment, user_id: str) -> str | None:
        variation_id = self.forced_variations.get(user_id, experiment.id)
        if variation_id is None:
            return None
        variation = self.config.get_variation_from_id(experiment, variation_id)
        if variation is None:
            logger.debug(
                "forced_variation.stale",
                user_id=user_id,
                experiment_key=experiment.key,
                variation_id=variation_id,
            )
            return None
        self._info(
            "forced",
            diag.FORCED,
            user_id=user_id,
            experiment_key=experiment.key,
            variation_key=variation.key,
        )
        return variation.id

    def get_whitelisted_variation_id(self, experiment: Experiment, user_id: str) -> str | None:
        variation_key = self.config.get_whitelisted_variation_key(experiment, user_id)
        if variation_key is None:
            return None
        variation = self.config.get_variation_from_key(experiment, variation_key)
        if variation is None:
            self._info(
                "whitelisted_invalid",
                diag.WHITELISTED_INVALID,
                user_id=user_id,
                experiment_key=experiment.key,
                variation_key=variation_key,
            )
            return None
        self._info(
            "whitelisted",
            diag.WHITELISTED,
            user_id=user_id,
            experiment_key=experiment.key,
            variation_key=variation.key,
        )
        return variation.id

    def get_stored_variation_id(self, experiment: Experiment, profile: UserProfile) -> str | None:
        variation_id = profile.get_variation_for_experiment(experiment.id)
        if variation_id is None:
            return None
        if not self.config.variation_exists(experiment, variation_id):
            # Stale entry: drop it so the new decision replaces it on save.
            profile.remove_experiment(experiment.id)
            logger.debug(
                "user_profile.stale_entry",
                user_id=profile.user_id,
                experiment_id=experiment.id,
                variation_id=variation_id,
            )
            return None
        self._info(
            "user_profile",
            diag.FROM_USER_PROFILE,
            user_id=profile.user_id,
            experiment_key=experiment.key,
            variation_id=variation_id,
        )
        return variation_id

    def bucket(self, experiment: Experiment, user_id: str) -> Decision:
        group = self.config.get_group(experiment.group_id) if experiment.group_id else None
        if group is not None and group.policy == GROUP_POLICY_RANDOM:
            bucketed_experiment_id = self.bucketer.bucket(
                user_id, group.id, group.traffic_allocation
            )
            if bucketed_experiment_id is None:
                self._info("group_empty", diag.GROUP_EMPTY, user_id=user_id, group_id=group.id)
                return Decision(experiment.id, None, user_id, DecisionSource.GROUP_EXCLUDED)
            if bucketed_experiment_id != experiment.id:
                self._info(
                    "group_excluded",
                    diag.GROUP_EXCLUDED,
                    user_id=user_id,
                    experiment_key=experiment.key,
                    group_id=group.id,
                )
                return Decision(experiment.id, None, user_id, DecisionSource.GROUP_EXCLUDED)

        variation_id = self.bucketer.bucket(user_id, experiment.id, experiment.traffic_allocation)
        variation = (
            self.config.get_variation_from_id(experiment, variation_id)
            if variation_id is not None
            else None
        )
        if variation is None:
            self._info("no_variation", diag.NO_VARIATION, user_id=user_id)
            return Decision(experiment.id, None, user_id, DecisionSource.NO_VARIATION)

        self._info(
            "bucketed",
            diag.BUCKETED,
            user_id=user_id,
            experiment_key=experiment.key,
            variation_key=variation.key,
        )
        return Decision(experiment.id, variation.id, user_id, DecisionSource.BUCKETED)

    def save_user_profile(
        self,
        profile: UserProfile,
        experiment: Experiment,
        variation_id: str,
    ) -> None:
        profile.save_variation_for_experiment(experiment.id, variation_id)
        if isinstance(self.user_profiles.save(profile), Saved):
            logger.debug(
                "user_profile.saved",
                message=(
                    f"Saved variation ID {variation_id} of experiment ID "
                    f"{experiment.id} for user '{profile.user_id}'."
                ),
            )

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _get_experiment(self, experiment_key: str) -> Experiment:
        experiment = self.config.get_experiment_from_key(experiment_key)
        if experiment is None:
            raise UnknownExperimentError(experiment_key)
        return experiment

    def _info(self, kind: str, template: str, **fields: Any) -> None:
        self.diagnostics.emit(diag.render(diag.INFO, kind, template, **fields))


__sdk_export__ = {
    "surface": "both",
    "exports": ["DecisionService", "Decision", "DecisionSource"],
    "description": "Variation decisions: whitelist, sticky profile, audience, bucketing",
    "tier": "tier3_platform",
    "module": "decision_service",
}
