from __future__ import annotations

from statemachine import State, StateMachine

from player.api.models import SessionPhase, SessionState


class SessionFSM(StateMachine):
    """Phase machine around SessionState.

    uninitialized -> loading -> ready <-> answer_pending -> finished

    The session performs the actual work; the FSM only guards which phase
    changes are legal and mirrors the phase onto the model.
    """

    uninitialized = State(
        SessionPhase.uninitialized.value,
        value=SessionPhase.uninitialized.value,
        initial=True,
    )
    loading = State(SessionPhase.loading.value, value=SessionPhase.loading.value)
    ready = State(SessionPhase.ready.value, value=SessionPhase.ready.value)
    answer_pending = State(SessionPhase.answer_pending.value, value=SessionPhase.answer_pending.value)
    finished = State(SessionPhase.finished.value, value=SessionPhase.finished.value, final=True)

    start_loading = uninitialized.to(loading)
    loaded = loading.to(ready)
    submit = ready.to(answer_pending)
    # Answer rejected or classification failed: back to the same state.
    release = answer_pending.to(ready)
    advance = answer_pending.to(ready)
    finish = answer_pending.to(finished)

    def __init__(self, session: SessionState):
        self.session = session
        super().__init__(start_value=session.phase.value)

    @property
    def phase(self) -> SessionPhase:
        return SessionPhase(str(self.current_state.value))

    def sync_phase_to_model(self) -> None:
        self.session.phase = self.phase
        self.session.answer_pending = self.phase == SessionPhase.answer_pending
