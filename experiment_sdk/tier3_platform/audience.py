"""
experiment_sdk.tier3_platform.audience
───────────────────────────────────────
Audience evaluation over user attributes with three-valued logic.

A condition tree is made of Leaf, And, Or and Not nodes. Evaluation yields
Truth.TRUE, Truth.FALSE or Truth.UNKNOWN; UNKNOWN comes from a missing
attribute or a malformed condition and propagates through combinators the
way SQL NULL does. Only TRUE admits a user into an experiment.

Datafile condition lists look like::

    ["and", ["or", {"name": "browser_type", "type": "custom_attribute",
                    "value": "firefox"}]]

A list without a leading operator is an implicit "or".
"""
from __future__ import annotations

import enum
import json
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

CUSTOM_ATTRIBUTE = "custom_attribute"

AND = "and"
OR = "or"
NOT = "not"
_OPERATORS = (AND, OR, NOT)


class Truth(enum.Enum):
    TRUE = "true"
    FALSE = "false"
    UNKNOWN = "unknown"

    @classmethod
    def of(cls, value: bool) -> "Truth":
        return cls.TRUE if value else cls.FALSE


# ── Condition tree ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Leaf:
    name: Any
    match_type: Any
    value: Any


@dataclass(frozen=True)
class And:
    children: tuple["Node", ...]


@dataclass(frozen=True)
class Or:
    children: tuple["Node", ...]


@dataclass(frozen=True)
class Not:
    child: "Node | None"


Node = Union[Leaf, And, Or, Not]

# Stands in for anything that is neither a list nor a leaf mapping.
MALFORMED = Leaf(name=None, match_type=None, value=None)


def compile_conditions(raw: Any) -> Node | None:
    """
    Build a condition tree from datafile conditions (JSON string or list).
    Structural problems become MALFORMED leaves, which evaluate to UNKNOWN.
    Empty conditions compile to None (no restriction).
    """
    if raw is None or raw == [] or raw == "":
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return MALFORMED
        if raw is None or raw == []:
            return None
    return _compile(raw)


def _compile(raw: Any) -> Node:
    if isinstance(raw, Mapping):
        return Leaf(
            name=raw.get("name"),
            match_type=raw.get("type"),
            value=raw.get("value"),
        )
    if not isinstance(raw, list):
        return MALFORMED

    if raw and raw[0] in _OPERATORS:
        operator, operands = raw[0], raw[1:]
    else:
        operator, operands = OR, raw

    children = tuple(_compile(operand) for operand in operands)
    if operator == AND:
        return And(children)
    if operator == NOT:
        return Not(children[0] if children else None)
    return Or(children)


# ── Evaluation ────────────────────────────────────────────────────────────────

def evaluate(node: Node | None, attributes: Mapping[str, Any] | None) -> Truth:
    """Evaluate *node* against *attributes*. An absent tree is vacuously TRUE."""
    if node is None:
        return Truth.TRUE
    attributes = attributes or {}

    if isinstance(node, Leaf):
        return _evaluate_leaf(node, attributes)
    if isinstance(node, And):
        return _and(evaluate(child, attributes) for child in node.children)
    if isinstance(node, Or):
        return _or(evaluate(child, attributes) for child in node.children)
    if isinstance(node, Not):
        if node.child is None:
            return Truth.UNKNOWN
        return _not(evaluate(node.child, attributes))
    raise TypeError(f"Unsupported condition node: {node!r}")


def _and(results) -> Truth:
    saw_unknown = False
    for result in results:
        if result is Truth.FALSE:
            return Truth.FALSE
        if result is Truth.UNKNOWN:
            saw_unknown = True
    return Truth.UNKNOWN if saw_unknown else Truth.TRUE


def _or(results) -> Truth:
    saw_unknown = False
    for result in results:
        if result is Truth.TRUE:
            return Truth.TRUE
        if result is Truth.UNKNOWN:
            saw_unknown = True
    return Truth.UNKNOWN if saw_unknown else Truth.FALSE


def _not(result: Truth) -> Truth:
    if result is Truth.TRUE:
        return Truth.FALSE
    if result is Truth.FALSE:
        return Truth.TRUE
    return Truth.UNKNOWN


def _kind(value: Any) -> str | None:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number" if math.isfinite(value) else None
    if isinstance(value, str):
        return "string"
    return None


def _evaluate_leaf(leaf: Leaf, attributes: Mapping[str, Any]) -> Truth:
    if leaf.match_type != CUSTOM_ATTRIBUTE or not isinstance(leaf.name, str):
        return Truth.UNKNOWN
    expected_kind = _kind(leaf.value)
    if expected_kind is None:
        return Truth.UNKNOWN
    if leaf.name not in attributes:
        return Truth.UNKNOWN

    actual = attributes[leaf.name]
    if _kind(actual) != expected_kind:
        return Truth.UNKNOWN
    return Truth.of(actual == leaf.value)


# ── Experiment-level requirement ──────────────────────────────────────────────

class AudienceEvaluator:
    """
    Decide whether attributes satisfy an experiment's audience requirement.
    The requirement is the OR of the experiment's audiences. A None tree is
    an audience without conditions and places no restriction.
    """

    def evaluate_requirement(
        self,
        trees: list[Node | None],
        attributes: Mapping[str, Any] | None,
    ) -> Truth:
        if not trees:
            return Truth.TRUE
        return _or(evaluate(tree, attributes) for tree in trees)

    def user_meets_requirement(
        self,
        trees: list[Node | None],
        attributes: Mapping[str, Any] | None,
    ) -> bool:
        return self.evaluate_requirement(trees, attributes) is Truth.TRUE


__sdk_export__ = {
    "surface": "service",
    "exports": [
        "Truth", "Leaf", "And", "Or", "Not", "MALFORMED",
        "compile_conditions", "evaluate", "AudienceEvaluator",
    ],
    "description": "Three-valued audience condition trees and their evaluator",
    "tier": "tier3_platform",
    "module": "audience",
}
