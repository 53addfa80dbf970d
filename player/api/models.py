from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


# Destination value that marks the end of an exploration.
END_DEST = "END"


class PlayerMode(StrEnum):
    learner = "learner"
    editor_preview = "editor_preview"


class SessionPhase(StrEnum):
    uninitialized = "uninitialized"
    loading = "loading"
    ready = "ready"
    answer_pending = "answer_pending"
    finished = "finished"


class ParamSpec(BaseModel):
    obj_type: str = "UnicodeString"
    default_value: Any = ""


class ParamChange(BaseModel):
    """One parameter mutation, produced by a named value generator."""

    name: str
    generator_id: str
    customization_args: dict[str, Any] = Field(default_factory=dict)


class CustomizationArg(BaseModel):
    value: Any = None


class WidgetSpec(BaseModel):
    widget_id: str
    customization_args: dict[str, CustomizationArg] = Field(default_factory=dict)
    sticky: bool = False
    handlers: list[dict[str, Any]] = Field(default_factory=list)


class ContentBlock(BaseModel):
    type: str = "text"
    value: str = ""


class StateSpec(BaseModel):
    # Filled from the owning exploration's `states` key when omitted.
    name: str = ""
    content: list[ContentBlock] = Field(default_factory=list)
    widget: WidgetSpec
    param_changes: list[ParamChange] = Field(default_factory=list)

    @property
    def widget_id(self) -> str:
        return self.widget.widget_id

    @property
    def is_sticky(self) -> bool:
        return self.widget.sticky


class Exploration(BaseModel):
    title: str = ""
    init_state_name: str
    states: dict[str, StateSpec]
    param_specs: dict[str, ParamSpec] = Field(default_factory=dict)
    # Applied once, before the initial state's own param changes.
    param_changes: list[ParamChange] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_graph(self) -> "Exploration":
        if END_DEST in self.states:
            raise ValueError(f"'{END_DEST}' is reserved and cannot name a state")
        if self.init_state_name not in self.states:
            raise ValueError(f"Initial state '{self.init_state_name}' is not defined")
        for name, state in self.states.items():
            if not state.name:
                state.name = name
            elif state.name != name:
                raise ValueError(f"State keyed '{name}' is named '{state.name}'")
        return self

    def param_defaults(self) -> dict[str, Any]:
        return {name: spec.default_value for name, spec in self.param_specs.items()}


class RuleSpec(BaseModel):
    """Classifier verdict for one answer.

    Only `dest` and `feedback` are interpreted by the player; every other field
    is passed through untouched to transition evaluation and event recording.
    """

    model_config = ConfigDict(extra="allow")

    dest: str
    feedback: list[str] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.dest == END_DEST


class ExplorationInitResponse(BaseModel):
    exploration: Exploration
    version: int | None = None
    session_id: str | None = None
    is_logged_in: bool = False
    can_edit: bool = False


class SessionState(BaseModel):
    exploration_id: str
    mode: PlayerMode = PlayerMode.learner
    phase: SessionPhase = SessionPhase.uninitialized

    current_state_name: str | None = None
    # Append-only; ends with current_state_name once initialized.
    state_history: list[str] = Field(default_factory=list)
    parameters: dict[str, str] = Field(default_factory=dict)
    answer_pending: bool = False

    session_id: str | None = None
    exploration_version: int | None = None
    is_logged_in: bool = False
    can_edit: bool = False


# ---- HTTP surface ----


class CreateSessionRequest(BaseModel):
    exploration_id: str = Field(..., min_length=1)
    version: int | None = None
    mode: PlayerMode = PlayerMode.learner
    # Required for editor preview, ignored in learner mode.
    exploration: Exploration | None = None


class SubmitAnswerRequest(BaseModel):
    answer: Any = None
    handler: str = "submit"


class SessionView(BaseModel):
    handle: str
    exploration_id: str
    title: str | None = None
    mode: PlayerMode
    phase: SessionPhase
    current_state_name: str | None = None
    state_history: list[str] = Field(default_factory=list)
    parameters: dict[str, str] = Field(default_factory=dict)
    answer_pending: bool = False
    session_id: str | None = None
    exploration_version: int | None = None
    is_logged_in: bool = False
    can_edit: bool = False
    content_html: str | None = None
    warnings: list[str] = Field(default_factory=list)


class TransitionPayload(BaseModel):
    state_name: str
    is_sticky: bool
    content_html: str
    response_html: str
    feedback_html: str


class AnswerResponse(BaseModel):
    dispatched: bool
    transition: TransitionPayload | None = None
    session: SessionView


class WidgetHtmlResponse(BaseModel):
    state_name: str
    html: str
