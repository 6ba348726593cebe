"""
experiment_sdk test configuration.

All tests run against an in-memory datafile and in-memory collaborators —
no external services required.
"""
from __future__ import annotations

import copy
import os

import pytest

# ── Pin the environment for all tests ─────────────────────────────────────
# These must be set before any experiment_sdk modules are imported.

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("EXPERIMENT_LOG_LEVEL", "DEBUG")
os.environ.setdefault("EXPERIMENT_LOG_FORMAT", "console")
os.environ.setdefault("EXPERIMENT_USER_PROFILE_BACKEND", "none")


_AUDIENCE_FIREFOX = (
    '["and", ["or", ["or", {"name": "browser_type", '
    '"type": "custom_attribute", "value": "firefox"}]]]'
)

DATAFILE = {
    "version": "2",
    "projectId": "111001",
    "revision": "42",
    "experiments": [
        {
            "id": "111127",
            "key": "test_experiment",
            "status": "Running",
            "layerId": "4",
            "audienceIds": [],
            "variations": [
                {"id": "111128", "key": "control"},
                {"id": "111129", "key": "variation"},
            ],
            "forcedVariations": {
                "forced_user1": "control",
                "forced_user2": "variation",
                "forced_user_with_invalid_variation": "invalid_variation",
            },
            "trafficAllocation": [
                {"entityId": "111128", "endOfRange": 5000},
                {"entityId": "111129", "endOfRange": 10000},
            ],
        },
        {
            "id": "100027",
            "key": "test_experiment_not_started",
            "status": "Not started",
            "layerId": "100026",
            "audienceIds": [],
            "variations": [
                {"id": "100028", "key": "control_not_started"},
                {"id": "100029", "key": "variation_not_started"},
            ],
            "forcedVariations": {},
            "trafficAllocation": [
                {"entityId": "100028", "endOfRange": 5000},
                {"entityId": "100029", "endOfRange": 10000},
            ],
        },
        {
            "id": "122227",
            "key": "test_experiment_with_audience",
            "status": "Running",
            "layerId": "11",
            "audienceIds": ["11154"],
            "variations": [
                {"id": "122228", "key": "control_with_audience"},
                {"id": "122229", "key": "variation_with_audience"},
            ],
            "forcedVariations": {
                "forced_audience_user": "variation_with_audience",
            },
            "trafficAllocation": [
                {"entityId": "122228", "endOfRange": 5000},
                {"entityId": "122229", "endOfRange": 10000},
            ],
        },
    ],
    "groups": [
        {
            "id": "19228",
            "policy": "random",
            "experiments": [
                {
                    "id": "133331",
                    "key": "group1_exp1",
                    "status": "Running",
                    "layerId": "5",
                    "audienceIds": [],
                    "variations": [
                        {"id": "130001", "key": "g1_e1_v1"},
                        {"id": "130002", "key": "g1_e1_v2"},
                    ],
                    "forcedVariations": {"forced_group_user2": "g1_e1_v1"},
                    "trafficAllocation": [
                        {"entityId": "130001", "endOfRange": 5000},
                        {"entityId": "130002", "endOfRange": 10000},
                    ],
                },
                {
                    "id": "133332",
                    "key": "group1_exp2",
                    "status": "Running",
                    "layerId": "6",
                    "audienceIds": [],
                    "variations": [
                        {"id": "130003", "key": "g1_e2_v1"},
                        {"id": "130004", "key": "g1_e2_v2"},
                    ],
                    "forcedVariations": {"forced_group_user1": "g1_e2_v2"},
                    "trafficAllocation": [
                        {"entityId": "130003", "endOfRange": 5000},
                        {"entityId": "130004", "endOfRange": 10000},
                    ],
                },
            ],
            "trafficAllocation": [
                {"entityId": "133331", "endOfRange": 4000},
                {"entityId": "133332", "endOfRange": 10000},
            ],
        },
    ],
    "audiences": [
        {"id": "11154", "name": "Firefox users", "conditions": _AUDIENCE_FIREFOX},
    ],
}


class RecordingProfileService:
    """Profile service double that records calls and can be told to fail."""

    def __init__(self, profile=None, lookup_error=None, save_error=None):
        self.profile = profile
        self.lookup_error = lookup_error
        self.save_error = save_error
        self.lookups: list[str] = []
        self.saves: list[dict] = []

    def lookup(self, user_id):
        self.lookups.append(user_id)
        if self.lookup_error is not None:
            raise self.lookup_error
        return copy.deepcopy(self.profile)

    def save(self, user_profile):
        if self.save_error is not None:
            raise self.save_error
        self.saves.append(copy.deepcopy(user_profile))


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def reset_config():
    """Each test sees a freshly read config."""
    from experiment_sdk.tier0_core.config import _reset_config

    _reset_config()
    yield
    _reset_config()


@pytest.fixture
def datafile():
    return copy.deepcopy(DATAFILE)


@pytest.fixture
def project_config(datafile):
    from experiment_sdk.tier3_platform.project_config import ProjectConfig
    return ProjectConfig.from_datafile(datafile)


@pytest.fixture
def sink():
    from experiment_sdk.tier1_runtime.diagnostics import MemoryDiagnosticsSink
    return MemoryDiagnosticsSink()


@pytest.fixture
def profile_service():
    return RecordingProfileService()


@pytest.fixture
def decision_service(project_config, profile_service, sink):
    from experiment_sdk.tier3_platform.decision_service import DecisionService
    return DecisionService(project_config, profile_service, diagnostics=sink)
