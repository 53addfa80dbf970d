"""Parameter expressions and value generators.

Templates use `{{name}}` placeholders resolved against the current parameter
values (plus `answer` while processing a submitted answer). Anything that does
not resolve cleanly is an ExpressionError; callers turn it into an
EvaluationFailure.
"""

from __future__ import annotations

import random
import re
from collections.abc import Mapping, Sequence
from typing import Any

from player.api.models import ParamChange
from player.errors import ExpressionError
from player.params import ParameterStore


_PLACEHOLDER = re.compile(r"\{\{(.*?)\}\}")
_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def evaluate_template(template: str, context: Mapping[str, str]) -> str:
    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1).strip()
        if not _NAME.match(name):
            raise ExpressionError(f"Malformed placeholder: {match.group(0)!r}")
        if name not in context:
            raise ExpressionError(f"Unknown name in expression: {name}")
        return context[name]

    rendered_parts: list[str] = []
    last = 0
    for match in _PLACEHOLDER.finditer(template):
        literal = template[last : match.start()]
        _check_literal(literal, template)
        rendered_parts.append(literal)
        rendered_parts.append(_substitute(match))
        last = match.end()
    tail = template[last:]
    _check_literal(tail, template)
    rendered_parts.append(tail)
    return "".join(rendered_parts)


def _check_literal(literal: str, template: str) -> None:
    if "{{" in literal or "}}" in literal:
        raise ExpressionError(f"Unbalanced braces in expression: {template!r}")


def generate_value(change: ParamChange, context: Mapping[str, str], rng: random.Random) -> Any:
    args = change.customization_args

    if change.generator_id == "Copier":
        if "value" not in args:
            raise ExpressionError(f"Copier for '{change.name}' has no value")
        value = args["value"]
        if args.get("parse_with_jinja") and isinstance(value, str):
            return evaluate_template(value, context)
        return value

    if change.generator_id == "RandomSelector":
        values = args.get("list_of_values")
        if not isinstance(values, Sequence) or isinstance(values, str) or not values:
            raise ExpressionError(f"RandomSelector for '{change.name}' needs a non-empty list_of_values")
        return rng.choice(list(values))

    raise ExpressionError(f"Unknown value generator: {change.generator_id}")


def apply_param_changes(
    *,
    params: Mapping[str, str],
    changes: Sequence[ParamChange],
    rng: random.Random,
    extra_context: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Apply `changes` in order and return the resulting parameter mapping.

    Later changes see the values produced by earlier ones. `params` is never
    mutated. Setting an undeclared parameter raises UnknownParameterError.
    """

    store = ParameterStore(params)
    for change in changes:
        context = {**store.snapshot(), **(extra_context or {})}
        store.set(change.name, generate_value(change, context, rng))
    return store.snapshot()
