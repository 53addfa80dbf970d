"""PlayerSession: one learner's traversal of an exploration.

The session owns the playback state (current state, history, parameters), the
answer-submission sequencing and the transition commit. It has exactly two
suspension points, the exploration load in `init()` and the classification
call in `submit_answer()`. At most one answer is in flight: a submission made
while another is pending is dropped.

Load, transport and evaluation failures never escape as exceptions; each one
ends up as a single message on `warnings`. Integration mistakes (calling a
preview-only operation in learner mode, for instance) raise PreconditionError.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from player.api.models import (
    END_DEST,
    Exploration,
    PlayerMode,
    SessionPhase,
    SessionState,
    StateSpec,
)
from player.classifier import AnswerClassifier, ClassificationRequest
from player.errors import ClassificationTransportError, LoadFailure, PreconditionError, UnknownParameterError
from player.events import EventRecorder, ExplorationEvent, NullEventRecorder
from player.fsm import SessionFSM
from player.loader import ExplorationLoader
from player.params import ParameterStore
from player.render import ResponseRenderer
from player.stopwatch import Stopwatch
from player.transitions import EvaluationFailure, TransitionEvaluator
from player.warnings_data import WarningsData

logger = logging.getLogger(__name__)


EXPRESSION_ERROR_WARNING = "Expression parsing error."

OnReady = Callable[[str, str, bool], None]
OnTransitioned = Callable[[str, bool, str, str, str], None]


@dataclass(frozen=True, slots=True)
class InitialView:
    state_name: str
    content_html: str
    can_edit: bool


@dataclass(frozen=True, slots=True)
class TransitionView:
    old_state_name: str
    state_name: str
    is_sticky: bool
    content_html: str
    response_html: str
    feedback_html: str

    @property
    def finished(self) -> bool:
        return self.state_name == END_DEST


class PlayerSession:
    def __init__(
        self,
        *,
        exploration_id: str,
        mode: PlayerMode = PlayerMode.learner,
        version: int | None = None,
        loader: ExplorationLoader | None = None,
        classifier: AnswerClassifier,
        events: EventRecorder | None = None,
        evaluator: TransitionEvaluator | None = None,
        renderer: ResponseRenderer | None = None,
        stopwatch: Stopwatch | None = None,
        warnings: WarningsData | None = None,
    ) -> None:
        if not exploration_id:
            raise PreconditionError("No exploration id specified.")
        if mode == PlayerMode.learner and loader is None:
            raise PreconditionError("A learner session needs an exploration loader.")

        self._state = SessionState(exploration_id=exploration_id, mode=mode, exploration_version=version)
        self._fsm = SessionFSM(self._state)
        self._params = ParameterStore()
        self._exploration: Exploration | None = None
        self._current_content_html: str | None = None
        self._closed = False
        # Set while init() awaits the loader; a second init() is dropped.
        self._load_in_flight = False

        self._loader = loader
        self._classifier = classifier
        self._events = events or NullEventRecorder()
        self._evaluator = evaluator or TransitionEvaluator()
        self._renderer = renderer or ResponseRenderer()
        self._stopwatch = stopwatch or Stopwatch()
        self.warnings = warnings or WarningsData()

    # ---- lifecycle ----

    def populate_exploration(self, exploration: Exploration) -> None:
        """Supply the exploration directly. Editor preview only; call before init()."""

        if self._state.mode != PlayerMode.editor_preview:
            raise PreconditionError("Cannot populate exploration in learner mode.")
        phase = self._fsm.phase
        if phase not in (SessionPhase.uninitialized, SessionPhase.loading):
            raise PreconditionError(f"Cannot replace the exploration of a session that is {phase.value}.")
        self._exploration = exploration

    async def init(self, on_ready: OnReady | None = None) -> InitialView | None:
        """Load the exploration and enter its initial state.

        Returns None (and leaves the session Loading) when the exploration could
        not be loaded or its initial state could not be evaluated; the reason is
        on `warnings`. Calling init() again retries; a call made while a load
        is still in flight is dropped and returns None.
        """

        phase = self._fsm.phase
        if phase not in (SessionPhase.uninitialized, SessionPhase.loading):
            raise PreconditionError(f"Cannot initialize a session that is {phase.value}.")
        if self._state.mode == PlayerMode.editor_preview and self._exploration is None:
            raise PreconditionError("populate_exploration() must be called before init() in preview mode.")
        if self._load_in_flight:
            logger.debug("Dropping init for %s: a load is already in flight", self._state.exploration_id)
            return None

        if phase == SessionPhase.uninitialized:
            self._fsm.start_loading()
            self._fsm.sync_phase_to_model()

        if self._state.mode == PlayerMode.learner:
            if self._loader is None:
                raise PreconditionError("A learner session needs an exploration loader.")
            self._load_in_flight = True
            try:
                data = await self._loader.load(self._state.exploration_id, self._state.exploration_version)
            except LoadFailure as e:
                if not self._closed:
                    self.warnings.add_warning(str(e))
                return None
            finally:
                self._load_in_flight = False
            if self._closed or self._fsm.phase != SessionPhase.loading:
                logger.debug("Ignoring exploration load for %s in phase %s", self._state.exploration_id, self._fsm.phase.value)
                return None

            self._exploration = data.exploration
            self._state.exploration_version = data.version
            self._state.session_id = data.session_id
            self._state.is_logged_in = data.is_logged_in
            self._state.can_edit = data.can_edit

        exploration = self._require_exploration()
        result = self._evaluator.evaluate_initial(exploration)
        if isinstance(result, EvaluationFailure):
            logger.info("Initial state of %s failed to evaluate: %s", self._state.exploration_id, result.reason)
            self.warnings.add_warning(EXPRESSION_ERROR_WARNING)
            return None

        self._stopwatch.reset()
        self._commit(result.params, result.state_name, result.content_html)
        self._fsm.loaded()
        self._fsm.sync_phase_to_model()

        self._notify(
            ExplorationEvent.exploration_start(
                exploration_id=self._state.exploration_id,
                session_id=self._state.session_id,
                state_name=result.state_name,
                params=result.params,
                version=self._state.exploration_version,
            )
        )
        self._notify(
            ExplorationEvent.state_hit(
                exploration_id=self._state.exploration_id,
                session_id=self._state.session_id,
                new_state_name=result.state_name,
                version=self._state.exploration_version,
                time_spent_secs=0.0,
                old_params=result.params,
            )
        )
        logger.info("Session for %s ready at state %s", self._state.exploration_id, result.state_name)

        view = InitialView(state_name=result.state_name, content_html=result.content_html, can_edit=self._state.can_edit)
        if on_ready is not None:
            on_ready(view.state_name, view.content_html, view.can_edit)
        return view

    async def submit_answer(
        self,
        answer: Any,
        handler: str,
        on_transitioned: OnTransitioned | None = None,
    ) -> TransitionView | None:
        """Classify `answer` and move to the resulting state.

        Only acts from Ready. While another answer is pending, or before init,
        or after the exploration finished, the call is dropped and returns None.
        None is also returned when the answer was rejected (see `warnings`).
        """

        if self._closed or self._fsm.phase != SessionPhase.ready:
            logger.debug("Dropping answer for %s in phase %s", self._state.exploration_id, self._fsm.phase.value)
            return None

        self._fsm.submit()
        self._fsm.sync_phase_to_model()

        exploration = self._require_exploration()
        old_state_name = self._state.current_state_name
        if old_state_name is None or old_state_name not in exploration.states:
            self._release()
            raise PreconditionError(f"Session has no current state to answer from: {old_state_name}")
        old_state = exploration.states[old_state_name].model_copy(deep=True)
        params_before = self._params.snapshot()

        try:
            rule = await self._classifier.classify(
                ClassificationRequest(
                    exploration_id=self._state.exploration_id,
                    exploration_version=self._state.exploration_version,
                    param_specs=exploration.param_specs,
                    params=params_before,
                    old_state=old_state,
                    handler=handler,
                    answer=answer,
                )
            )
        except ClassificationTransportError as e:
            if self._closed:
                return None
            self._release()
            self.warnings.add_warning(str(e))
            return None
        except Exception:
            self._release()
            raise

        if self._closed:
            logger.debug("Ignoring classification for closed session %s", self._state.exploration_id)
            return None

        self._notify(
            ExplorationEvent.answer_submitted(
                exploration_id=self._state.exploration_id,
                old_state_name=old_state_name,
                answer=answer,
                handler=handler,
                params=params_before,
                version=self._state.exploration_version,
                rule_spec=rule.model_dump(),
            )
        )

        destination = None if rule.is_terminal else exploration.states.get(rule.dest)
        try:
            result = self._evaluator.evaluate_next(rule=rule, answer=answer, destination=destination, params=params_before)
        except UnknownParameterError:
            self._release()
            raise

        if isinstance(result, EvaluationFailure):
            logger.info("Rejecting answer in %s: %s", old_state_name, result.reason)
            self._release()
            self.warnings.add_warning(EXPRESSION_ERROR_WARNING)
            return None

        is_sticky = is_sticky_transition(old_state, destination)
        time_spent = self._stopwatch.elapsed_seconds()

        self._commit(result.params, result.state_name, result.content_html)
        self._stopwatch.reset()
        if rule.is_terminal:
            self._fsm.finish()
            logger.info("Session for %s finished", self._state.exploration_id)
        else:
            self._fsm.advance()
        self._fsm.sync_phase_to_model()

        self._notify(
            ExplorationEvent.state_hit(
                exploration_id=self._state.exploration_id,
                session_id=self._state.session_id,
                new_state_name=result.state_name,
                version=self._state.exploration_version,
                time_spent_secs=time_spent,
                old_params=params_before,
            )
        )

        choices = old_state.widget.customization_args.get("choices")
        response_html = self._renderer.reader_response_html(
            widget_id=old_state.widget_id,
            answer=answer,
            is_sticky=is_sticky,
            choices=choices.value if choices is not None else None,
        )

        view = TransitionView(
            old_state_name=old_state_name,
            state_name=result.state_name,
            is_sticky=is_sticky,
            content_html=result.content_html,
            response_html=response_html,
            feedback_html=result.feedback_html,
        )
        if on_transitioned is not None:
            on_transitioned(view.state_name, view.is_sticky, view.content_html, view.response_html, view.feedback_html)
        return view

    def register_maybe_leave(self) -> None:
        """Report that the learner may be leaving. Does not change the session."""

        phase = self._fsm.phase
        if phase in (SessionPhase.uninitialized, SessionPhase.finished):
            raise PreconditionError(f"Cannot register a leave event for a session that is {phase.value}.")

        self._notify(
            ExplorationEvent.maybe_leave(
                exploration_id=self._state.exploration_id,
                session_id=self._state.session_id,
                state_name=self._state.state_history[-1] if self._state.state_history else None,
                time_spent_secs=self._stopwatch.elapsed_seconds() if self._stopwatch.is_set else None,
                params=self._params.snapshot(),
                version=self._state.exploration_version,
            )
        )

    def close(self) -> None:
        """Abandon the session. Responses that arrive afterwards are ignored."""

        self._closed = True

    # ---- read-only accessors ----

    @property
    def exploration_id(self) -> str:
        return self._state.exploration_id

    @property
    def exploration_title(self) -> str:
        return self._require_exploration().title

    @property
    def has_exploration(self) -> bool:
        return self._exploration is not None

    @property
    def current_state_name(self) -> str | None:
        return self._state.current_state_name

    @property
    def current_content_html(self) -> str | None:
        return self._current_content_html

    @property
    def state_history(self) -> tuple[str, ...]:
        return tuple(self._state.state_history)

    @property
    def parameters(self) -> dict[str, str]:
        return self._params.snapshot()

    @property
    def phase(self) -> SessionPhase:
        return self._fsm.phase

    @property
    def session_id(self) -> str | None:
        return self._state.session_id

    @property
    def exploration_version(self) -> int | None:
        return self._state.exploration_version

    @property
    def can_edit(self) -> bool:
        return self._state.can_edit

    @property
    def is_closed(self) -> bool:
        return self._closed

    def is_logged_in(self) -> bool:
        return self._state.is_logged_in

    def is_in_preview_mode(self) -> bool:
        return self._state.mode == PlayerMode.editor_preview

    def is_answer_being_processed(self) -> bool:
        return self._state.answer_pending

    def snapshot(self) -> SessionState:
        return self._state.model_copy(deep=True)

    def get_interactive_widget_html(self, state_name: str) -> str:
        exploration = self._require_exploration()
        if state_name not in exploration.states:
            raise PreconditionError(f"Unknown state: {state_name}")
        return self._renderer.interactive_widget_html(exploration.states[state_name])

    # ---- internals ----

    def _require_exploration(self) -> Exploration:
        if self._exploration is None:
            raise PreconditionError("The exploration has not been loaded yet.")
        return self._exploration

    def _commit(self, params: dict[str, str], state_name: str, content_html: str) -> None:
        self._params.init(params)
        self._state.parameters = self._params.snapshot()
        self._state.current_state_name = state_name
        self._state.state_history.append(state_name)
        self._current_content_html = content_html

    def _release(self) -> None:
        self._fsm.release()
        self._fsm.sync_phase_to_model()

    def _notify(self, event: ExplorationEvent) -> None:
        if self._state.mode != PlayerMode.learner:
            return
        try:
            self._events.record(event)
        except Exception:
            logger.exception("Failed to record %s event for %s", event.type, event.exploration_id)


def is_sticky_transition(old_state: StateSpec, destination: StateSpec | None) -> bool:
    """Whether the destination continues the previous interaction."""

    return destination is not None and destination.is_sticky and destination.widget_id == old_state.widget_id
