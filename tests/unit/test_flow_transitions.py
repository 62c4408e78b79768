import pytest

from booking import transitions
from booking.contracts import ConfirmPhase, FlowErrorKind, FlowState, FlowStep, TerminalState
from booking.errors import FlowStateError


def test_advance_walks_review_payment_confirm():
    state = FlowState(time_editable=True)

    transitions.advance(state)
    assert state.step is FlowStep.PAYMENT
    assert not state.time_editable

    transitions.advance(state)
    assert state.step is FlowStep.CONFIRM
    assert state.history == [
        (FlowStep.REVIEW, FlowStep.PAYMENT),
        (FlowStep.PAYMENT, FlowStep.CONFIRM),
    ]

    with pytest.raises(FlowStateError):
        transitions.advance(state)


def test_step_back_clears_confirm_flags():
    state = FlowState(step=FlowStep.CONFIRM)
    transitions.record_payment_error(state, FlowErrorKind.PAYMENT_FAILED, "declined")
    state.overbooking_detected = True

    transitions.step_back(state, FlowStep.REVIEW)

    assert state.step is FlowStep.REVIEW
    assert state.payment_error is None
    assert state.payment_error_reason is None
    assert not state.overbooking_detected
    assert state.phase is ConfirmPhase.IDLE


def test_step_back_requires_earlier_target():
    state = FlowState(step=FlowStep.PAYMENT)

    with pytest.raises(FlowStateError):
        transitions.step_back(state, FlowStep.CONFIRM)
    with pytest.raises(FlowStateError):
        transitions.step_back(FlowState(), None)


def test_price_watch_only_on_payment_and_confirm():
    assert not transitions.price_watch_active(FlowState())
    assert transitions.price_watch_active(FlowState(step=FlowStep.PAYMENT))
    assert transitions.price_watch_active(FlowState(step=FlowStep.CONFIRM))
    assert not transitions.price_watch_active(
        FlowState(step=FlowStep.CONFIRM, terminal=TerminalState.CANCELLED)
    )


def test_terminal_flow_rejects_actions():
    state = FlowState(step=FlowStep.CONFIRM)
    transitions.mark_terminal(state, TerminalState.SUCCEEDED)

    assert state.phase is ConfirmPhase.SUCCEEDED
    with pytest.raises(FlowStateError, match="Cannot confirm"):
        transitions.ensure_step(state, "confirm", FlowStep.CONFIRM)


def test_busy_reflects_in_flight_work():
    state = FlowState(step=FlowStep.CONFIRM, is_processing_payment=True)
    assert state.busy

    transitions.clear_confirm_flags(state)
    assert not state.busy
