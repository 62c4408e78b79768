"""Step transition helpers for the Review -> Payment -> Confirm wizard."""

from __future__ import annotations

from typing import Optional

from tracking import t

from booking.contracts import ConfirmPhase, FlowErrorKind, FlowState, FlowStep, TerminalState
from booking.errors import FlowStateError

WATCHED_STEPS = frozenset({FlowStep.PAYMENT, FlowStep.CONFIRM})


def ensure_active(state: FlowState, action: str) -> None:
    """Raise if the flow already terminated."""

    t('booking.transitions.ensure_active')
    if state.terminal is not None:
        raise FlowStateError(action, state.terminal)


def ensure_step(state: FlowState, action: str, *allowed: FlowStep) -> None:
    t('booking.transitions.ensure_step')
    ensure_active(state, action)
    if state.step not in allowed:
        raise FlowStateError(action, state.step, allowed)


def price_watch_active(state: FlowState) -> bool:
    """The price watcher only runs on the payment and confirm steps."""

    return state.terminal is None and state.step in WATCHED_STEPS


def clear_confirm_flags(state: FlowState) -> FlowState:
    """Drop every transient flag owned by an in-flight confirm action."""

    t('booking.transitions.clear_confirm_flags')
    state.phase = ConfirmPhase.IDLE
    state.is_checking_availability = False
    state.is_processing_payment = False
    state.overbooking_detected = False
    state.payment_error = None
    state.payment_error_reason = None
    state.availability_error = None
    return state


def _move(state: FlowState, target: FlowStep) -> FlowState:
    state.history.append((state.step, target))
    state.step = target
    return state


def advance(state: FlowState) -> FlowState:
    """Move one step forward."""

    t('booking.transitions.advance')
    ensure_step(state, "advance", FlowStep.REVIEW, FlowStep.PAYMENT)
    if state.step is FlowStep.REVIEW:
        state.time_editable = False
    _move(state, FlowStep(state.step + 1))
    state.auth_required = False
    return clear_confirm_flags(state)


def step_back(state: FlowState, target: Optional[FlowStep] = None) -> FlowState:
    """Move backward to ``target`` (default: the previous step).

    Backward moves are always permitted from payment and confirm.
    """

    t('booking.transitions.step_back')
    ensure_step(state, "go back", FlowStep.PAYMENT, FlowStep.CONFIRM)
    destination = target if target is not None else FlowStep(state.step - 1)
    if destination >= state.step:
        raise FlowStateError(f"go back to {destination.name}", state.step)
    _move(state, destination)
    state.auth_required = False
    return clear_confirm_flags(state)


def record_payment_error(state: FlowState, kind: FlowErrorKind, reason: Optional[str]) -> FlowState:
    t('booking.transitions.record_payment_error')
    state.phase = ConfirmPhase.FAILED
    state.is_processing_payment = False
    state.payment_error = kind
    state.payment_error_reason = reason
    return state


def mark_terminal(state: FlowState, terminal: TerminalState) -> FlowState:
    t('booking.transitions.mark_terminal')
    state.terminal = terminal
    state.is_checking_availability = False
    state.is_processing_payment = False
    if terminal is TerminalState.SUCCEEDED:
        state.phase = ConfirmPhase.SUCCEEDED
    return state
