"""
experiment_sdk.tier1_runtime.validate
──────────────────────────────────────
Input/schema validation via Pydantic v2. Raises SDK ValidationError
(not raw Pydantic errors) so callers always see the same taxonomy.
"""
from __future__ import annotations

from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from experiment_sdk.tier0_core.errors import ValidationError

T = TypeVar("T", bound=BaseModel)


def validate_input(
    model: Type[T],
    data: Any,
    *,
    error_cls: Type[ValidationError] = ValidationError,
    user_message: str = "Input validation failed.",
) -> T:
    """
    Validate raw data against a Pydantic model.
    Raises experiment_sdk ValidationError (or ``error_cls``) on failure.

    Usage:
        profile = validate_input(UserProfile, service.lookup(user_id))
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        fields = {
            ".".join(str(loc) for loc in err["loc"]): err["msg"]
            for err in exc.errors()
        }
        raise error_cls(
            user_message=user_message,
            fields=fields,
        ) from exc


__sdk_export__ = {
    "surface": "service",
    "exports": ["validate_input"],
    "description": "Pydantic v2 input validation mapped to the SDK error taxonomy",
    "tier": "tier1_runtime",
    "module": "validate",
}
