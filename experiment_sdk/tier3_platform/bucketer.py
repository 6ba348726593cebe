"""
experiment_sdk.tier3_platform.bucketer
───────────────────────────────────────
Deterministic traffic bucketing. A bucketing id and a parent id (experiment
or group id) are hashed with MurmurHash3 (x86, 32-bit, seed 1); the hash is
scaled into a bucket value in [0, 10000) and matched against a cumulative
traffic allocation table.

The same inputs always give the same answer across processes and across the
SDKs in other languages that share this hash and seed.
"""
from __future__ import annotations

from typing import Sequence

import mmh3

from experiment_sdk.tier0_core.logging import get_logger
from experiment_sdk.tier3_platform.entities import MAX_TRAFFIC_VALUE, TrafficAllocation

HASH_SEED = 1
MAX_HASH_VALUE = 2 ** 32
UNSIGNED_MAX_32_BIT_VALUE = 0xFFFFFFFF

logger = get_logger("experiment_sdk.bucketer")


def generate_bucket_key(bucketing_id: str, parent_id: str) -> str:
    return f"{bucketing_id}{parent_id}"


def generate_unsigned_hash_code_32_bit(bucket_key: str) -> int:
    return mmh3.hash(bucket_key, HASH_SEED, signed=False) & UNSIGNED_MAX_32_BIT_VALUE


def generate_bucket_value(bucket_key: str) -> int:
    """Map a bucket key to an integer in [0, 10000)."""
    hash_code = generate_unsigned_hash_code_32_bit(bucket_key)
    return hash_code * MAX_TRAFFIC_VALUE // MAX_HASH_VALUE


def find_bucket(bucket_value: int, traffic_allocation: Sequence[TrafficAllocation]) -> str | None:
    """Return the first entity whose endpoint is strictly above *bucket_value*."""
    for entry in traffic_allocation:
        if bucket_value < entry.end_of_range:
            return entry.entity_id
    return None


class Bucketer:
    """Pure bucketing. No state, no I/O."""

    def bucket(
        self,
        bucketing_id: str,
        parent_id: str,
        traffic_allocation: Sequence[TrafficAllocation],
    ) -> str | None:
        bucket_value = generate_bucket_value(generate_bucket_key(bucketing_id, parent_id))
        entity_id = find_bucket(bucket_value, traffic_allocation)
        logger.debug(
            "bucketer.assigned",
            bucketing_id=bucketing_id,
            parent_id=parent_id,
            bucket_value=bucket_value,
            entity_id=entity_id,
        )
        return entity_id


__sdk_export__ = {
    "surface": "service",
    "exports": [
        "HASH_SEED", "Bucketer", "generate_bucket_key", "generate_bucket_value",
        "generate_unsigned_hash_code_32_bit", "find_bucket",
    ],
    "description": "MurmurHash3 bucketing over cumulative traffic allocations",
    "tier": "tier3_platform",
    "module": "bucketer",
}
