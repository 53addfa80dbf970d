from __future__ import annotations

import random

from player.api.models import END_DEST, Exploration, ParamChange
from player.transitions import EvaluationFailure, TransitionEvaluator, TransitionResult

from tests.conftest import make_exploration, rule


def _evaluator() -> TransitionEvaluator:
    return TransitionEvaluator(rng=random.Random(7))


def test_initial_state_uses_declared_defaults(exploration: Exploration) -> None:
    result = _evaluator().evaluate_initial(exploration)

    assert isinstance(result, TransitionResult)
    assert result.state_name == "A"
    assert result.params == {"name": "learner", "count": "0"}
    assert result.content_html == "Hello learner, what is 1+1?"
    assert result.feedback_html == ""


def test_exploration_param_changes_run_before_initial_state_changes() -> None:
    exp = make_exploration(
        param_changes=[
            {"name": "name", "generator_id": "Copier", "customization_args": {"value": "Ada"}},
        ]
    )
    exp.states["A"].param_changes = [
        ParamChange(
            name="count",
            generator_id="Copier",
            customization_args={"value": "{{name}}-0", "parse_with_jinja": True},
        )
    ]

    result = _evaluator().evaluate_initial(exp)

    assert isinstance(result, TransitionResult)
    assert result.params == {"name": "Ada", "count": "Ada-0"}


def test_initial_evaluation_failure_for_malformed_content() -> None:
    exp = make_exploration()
    exp.states["A"].content[0].value = "Hello {{nobody}}"

    result = _evaluator().evaluate_initial(exp)

    assert isinstance(result, EvaluationFailure)
    assert "nobody" in result.reason


def test_next_applies_destination_param_changes(exploration: Exploration) -> None:
    params = {"name": "learner", "count": "0"}
    result = _evaluator().evaluate_next(
        rule=rule("B", "Right, {{answer}}!"),
        answer=2,
        destination=exploration.states["B"],
        params=params,
    )

    assert isinstance(result, TransitionResult)
    assert result.state_name == "B"
    assert result.params == {"name": "learner", "count": "1"}
    assert result.content_html == "Count is 1."
    assert result.feedback_html == "Right, 2!"
    assert params == {"name": "learner", "count": "0"}


def test_terminal_rule_passes_params_through(exploration: Exploration) -> None:
    params = {"name": "learner", "count": "5"}
    result = _evaluator().evaluate_next(rule=rule(END_DEST, "Bye {{name}}"), answer="x", destination=None, params=params)

    assert isinstance(result, TransitionResult)
    assert result.state_name == END_DEST
    assert result.params == params
    assert result.content_html == ""
    assert result.feedback_html == "Bye learner"


def test_unknown_destination_is_an_evaluation_failure() -> None:
    result = _evaluator().evaluate_next(rule=rule("Nowhere"), answer="x", destination=None, params={})

    assert isinstance(result, EvaluationFailure)
    assert result.state_name == "Nowhere"


def test_malformed_param_change_is_an_evaluation_failure(exploration: Exploration) -> None:
    dest = exploration.states["B"].model_copy(deep=True)
    dest.param_changes[0].customization_args = {"value": "{{oops", "parse_with_jinja": True}

    result = _evaluator().evaluate_next(rule=rule("B"), answer="x", destination=dest, params={"name": "a", "count": "0"})

    assert isinstance(result, EvaluationFailure)


def test_malformed_feedback_is_an_evaluation_failure(exploration: Exploration) -> None:
    result = _evaluator().evaluate_next(
        rule=rule("B", "{{ghost}}"),
        answer="x",
        destination=exploration.states["B"],
        params={"name": "a", "count": "0"},
    )

    assert isinstance(result, EvaluationFailure)
