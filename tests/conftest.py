from __future__ import annotations

import asyncio
from typing import Any

import pytest

from player.api.models import Exploration, ExplorationInitResponse, RuleSpec
from player.classifier import ClassificationRequest
from player.errors import ClassificationTransportError, LoadFailure
from player.events import ExplorationEvent


def make_exploration(**overrides: Any) -> Exploration:
    """A -> B -> END, with one counter parameter bumped on entering B."""

    data: dict[str, Any] = {
        "title": "Counting",
        "init_state_name": "A",
        "param_specs": {
            "name": {"obj_type": "UnicodeString", "default_value": "learner"},
            "count": {"obj_type": "UnicodeString", "default_value": 0},
        },
        "states": {
            "A": {
                "content": [{"type": "text", "value": "Hello {{name}}, what is 1+1?"}],
                "widget": {
                    "widget_id": "NumericInput",
                    "customization_args": {"placeholder": {"value": "Type a number"}},
                },
            },
            "B": {
                "content": [{"type": "text", "value": "Count is {{count}}."}],
                "widget": {"widget_id": "TextInput", "sticky": False},
                "param_changes": [
                    {
                        "name": "count",
                        "generator_id": "Copier",
                        "customization_args": {"value": "1", "parse_with_jinja": False},
                    }
                ],
            },
        },
    }
    data.update(overrides)
    return Exploration.model_validate(data)


def rule(dest: str, *feedback: str, **extra: Any) -> RuleSpec:
    return RuleSpec.model_validate({"dest": dest, "feedback": list(feedback), **extra})


class FakeLoader:
    def __init__(self, exploration: Exploration | None = None, **response: Any) -> None:
        self.exploration = exploration or make_exploration()
        self.response = {"version": 3, "session_id": "sess-1", "is_logged_in": True, "can_edit": False, **response}
        self.calls: list[tuple[str, int | None]] = []
        self.failure: LoadFailure | None = None
        self.gate: asyncio.Event | None = None

    async def load(self, exploration_id: str, version: int | None = None) -> ExplorationInitResponse:
        self.calls.append((exploration_id, version))
        if self.gate is not None:
            await self.gate.wait()
        if self.failure is not None:
            raise self.failure
        return ExplorationInitResponse(exploration=self.exploration, **self.response)


class FakeClassifier:
    """Answers from a queue of RuleSpecs (or exceptions).

    Set `gate` to hold every classification until the test releases it.
    """

    def __init__(self, *outcomes: RuleSpec | Exception) -> None:
        self.outcomes = list(outcomes)
        self.requests: list[ClassificationRequest] = []
        self.gate: asyncio.Event | None = None

    async def classify(self, request: ClassificationRequest) -> RuleSpec:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingEvents:
    def __init__(self, *, fail: bool = False) -> None:
        self.events: list[ExplorationEvent] = []
        self.fail = fail

    def record(self, event: ExplorationEvent) -> None:
        self.events.append(event)
        if self.fail:
            raise RuntimeError("event sink is down")

    def types(self) -> list[str]:
        return [e.type for e in self.events]


@pytest.fixture()
def exploration() -> Exploration:
    return make_exploration()


@pytest.fixture()
def loader(exploration: Exploration) -> FakeLoader:
    return FakeLoader(exploration)


@pytest.fixture()
def events() -> RecordingEvents:
    return RecordingEvents()


@pytest.fixture()
def transport_error() -> ClassificationTransportError:
    return ClassificationTransportError("Could not classify answer: 503 Service Unavailable")
