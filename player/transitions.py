"""Pure computation of the next state's content and parameters.

No I/O happens here. The evaluator produces the structured content for a
state (question and feedback HTML fragments with parameters interpolated);
turning widgets into markup is left to the renderer.
"""

from __future__ import annotations

import json
import random
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from player.api.models import END_DEST, Exploration, RuleSpec, StateSpec
from player.errors import ExpressionError
from player.expressions import apply_param_changes, evaluate_template


@dataclass(frozen=True, slots=True)
class TransitionResult:
    state_name: str
    params: dict[str, str]
    content_html: str
    feedback_html: str = ""


@dataclass(frozen=True, slots=True)
class EvaluationFailure:
    reason: str
    state_name: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


def answer_as_param(answer: Any) -> str:
    if isinstance(answer, str):
        return answer
    return json.dumps(answer, sort_keys=True)


def render_state_content(state: StateSpec, context: Mapping[str, str]) -> str:
    return "".join(evaluate_template(block.value, context) for block in state.content)


class TransitionEvaluator:
    def __init__(self, *, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def evaluate_initial(self, exploration: Exploration) -> TransitionResult | EvaluationFailure:
        init_state = exploration.states[exploration.init_state_name]
        try:
            params = apply_param_changes(
                params={name: str(value) for name, value in exploration.param_defaults().items()},
                changes=[*exploration.param_changes, *init_state.param_changes],
                rng=self._rng,
            )
            content_html = render_state_content(init_state, params)
        except ExpressionError as e:
            return EvaluationFailure(reason=str(e), state_name=init_state.name)

        return TransitionResult(state_name=init_state.name, params=params, content_html=content_html)

    def evaluate_next(
        self,
        *,
        rule: RuleSpec,
        answer: Any,
        destination: StateSpec | None,
        params: Mapping[str, str],
    ) -> TransitionResult | EvaluationFailure:
        """Compute the result of following `rule` from the current state.

        `destination` is None exactly when the rule ends the exploration; the
        parameters then pass through unchanged and there is no question content.
        """

        answer_context = {"answer": answer_as_param(answer)}

        if rule.is_terminal:
            if destination is not None:
                return EvaluationFailure(reason="Terminal rule must not carry a destination state", state_name=END_DEST)
            new_params = dict(params)
            content_html = ""
            state_name = END_DEST
        else:
            if destination is None or destination.name != rule.dest:
                return EvaluationFailure(reason=f"Unknown destination state: {rule.dest}", state_name=rule.dest)
            try:
                new_params = apply_param_changes(
                    params=params,
                    changes=destination.param_changes,
                    rng=self._rng,
                    extra_context=answer_context,
                )
                content_html = render_state_content(destination, {**new_params, **answer_context})
            except ExpressionError as e:
                return EvaluationFailure(reason=str(e), state_name=destination.name)
            state_name = destination.name

        try:
            feedback_html = self._render_feedback(rule, {**new_params, **answer_context})
        except ExpressionError as e:
            return EvaluationFailure(reason=str(e), state_name=state_name)

        return TransitionResult(
            state_name=state_name,
            params=new_params,
            content_html=content_html,
            feedback_html=feedback_html,
        )

    def _render_feedback(self, rule: RuleSpec, context: Mapping[str, str]) -> str:
        if not rule.feedback:
            return ""
        return evaluate_template(self._rng.choice(rule.feedback), context)
