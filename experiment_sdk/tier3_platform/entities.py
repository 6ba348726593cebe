"""
experiment_sdk.tier3_platform.entities
───────────────────────────────────────
Typed datafile entities read by the decision engine. Field aliases follow
the v2 datafile (camelCase); attribute names are snake_case.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

MAX_TRAFFIC_VALUE = 10000

RUNNING = "Running"
GROUP_POLICY_RANDOM = "random"


class _Entity(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        frozen=True,
        coerce_numbers_to_str=True,
    )


class Variation(_Entity):
    id: str
    key: str


class TrafficAllocation(_Entity):
    """One cumulative endpoint of a traffic allocation table."""
    entity_id: str = Field(alias="entityId")
    end_of_range: int = Field(alias="endOfRange", ge=0, le=MAX_TRAFFIC_VALUE)


def _check_allocation(allocation: list[TrafficAllocation], owner: str) -> None:
    previous = 0
    for entry in allocation:
        if entry.end_of_range < previous:
            raise ValueError(
                f"traffic allocation of {owner} is not monotonically non-decreasing"
            )
        previous = entry.end_of_range


class Experiment(_Entity):
    id: str
    key: str
    status: str
    layer_id: str | None = Field(default=None, alias="layerId")
    audience_ids: list[str] = Field(default_factory=list, alias="audienceIds")
    variations: list[Variation] = Field(default_factory=list)
    # user id → variation key; not cross-checked against variations
    forced_variations: dict[str, str] = Field(default_factory=dict, alias="forcedVariations")
    traffic_allocation: list[TrafficAllocation] = Field(
        default_factory=list, alias="trafficAllocation"
    )
    group_id: str | None = Field(default=None, alias="groupId")

    @model_validator(mode="after")
    def _allocation_is_cumulative(self) -> "Experiment":
        _check_allocation(self.traffic_allocation, f"experiment '{self.key}'")
        return self


class Group(_Entity):
    id: str
    policy: str
    experiments: list[Experiment] = Field(default_factory=list)
    traffic_allocation: list[TrafficAllocation] = Field(
        default_factory=list, alias="trafficAllocation"
    )

    @model_validator(mode="after")
    def _allocation_is_cumulative(self) -> "Group":
        _check_allocation(self.traffic_allocation, f"group '{self.id}'")
        return self


class Audience(_Entity):
    id: str
    name: str = ""
    # JSON string or already-parsed list
    conditions: Any = None


class Datafile(_Entity):
    version: str = "2"
    project_id: str | None = Field(default=None, alias="projectId")
    revision: str | None = None
    experiments: list[Experiment] = Field(default_factory=list)
    groups: list[Group] = Field(default_factory=list)
    audiences: list[Audience] = Field(default_factory=list)


__sdk_export__ = {
    "surface": "service",
    "exports": [
        "MAX_TRAFFIC_VALUE", "RUNNING", "GROUP_POLICY_RANDOM",
        "Variation", "TrafficAllocation", "Experiment", "Group", "Audience", "Datafile",
    ],
    "description": "Pydantic models for the project datafile",
    "tier": "tier3_platform",
    "module": "entities",
}
