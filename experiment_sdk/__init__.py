"""
experiment_sdk
──────────────
Stable top-level exports. Import from here, not from sub-modules directly.
Every name exported here is part of the public API and subject to semver.
"""
from experiment_sdk.tier0_core.logging import get_logger
from experiment_sdk.tier0_core.errors import (
    SDKError,
    ValidationError,
    InvalidDatafileError,
    NotFoundError,
    UnknownExperimentError,
    ConfigurationError,
    ProfileServiceError,
)
from experiment_sdk.tier0_core.config import get_config, SDKConfig

from experiment_sdk.tier1_runtime.diagnostics import (
    Diagnostic,
    DiagnosticsSink,
    LogDiagnosticsSink,
    MemoryDiagnosticsSink,
)

from experiment_sdk.tier2_reliability.user_profile import (
    UserProfile,
    UserProfileService,
    MemoryUserProfileService,
    get_user_profile_service,
)

from experiment_sdk.tier3_platform.project_config import ProjectConfig
from experiment_sdk.tier3_platform.bucketer import Bucketer
from experiment_sdk.tier3_platform.audience import AudienceEvaluator, Truth
from experiment_sdk.tier3_platform.decision_service import (
    Decision,
    DecisionService,
    DecisionSource,
)

__version__ = "0.1.0"
__all__ = [
    # logging
    "get_logger",
    # errors
    "SDKError", "ValidationError", "InvalidDatafileError", "NotFoundError",
    "UnknownExperimentError", "ConfigurationError", "ProfileServiceError",
    # config
    "get_config", "SDKConfig",
    # diagnostics
    "Diagnostic", "DiagnosticsSink", "LogDiagnosticsSink", "MemoryDiagnosticsSink",
    # user profiles
    "UserProfile", "UserProfileService", "MemoryUserProfileService",
    "get_user_profile_service",
    # configuration view
    "ProjectConfig",
    # engine
    "Bucketer", "AudienceEvaluator", "Truth",
    "Decision", "DecisionService", "DecisionSource",
]
