"""
Per-session state and the precondition checks run before a command is sent.

The checks are pure: they read the state and answer with a success or an
error response, but never modify the state. Only the solver updates it, and
only after the engine acknowledged the command.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from pysmt.exceptions import UndefinedLogicError
from pysmt.logics import get_logic_by_name

from smtbridge import responses
from smtbridge.options import (
    DEFAULT_OPTIONS,
    BOOLEAN_OPTIONS,
    NUMERAL_OPTIONS,
    INITIAL_OPTIONS,
)
from smtbridge.pos import Pos
from smtbridge.responses import Response, Status

# Logic names accepted on top of the ones pySMT knows
EXTRA_LOGICS = frozenset({"ALL", "HORN"})

# Answered by get-info, cannot be set
PREDEFINED_INFO = frozenset(
    {
        ":name",
        ":version",
        ":authors",
        ":error-behavior",
        ":reason-unknown",
        ":all-statistics",
    }
)


@dataclass
class SessionState:
    started: bool = False
    terminated: bool = False
    logic_fixed: bool = False
    logic: Optional[str] = None
    scope_depth: int = 0
    last_check_result: Optional[Status] = None
    options: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_OPTIONS))
    info: dict[str, str] = field(default_factory=dict)


def check_start(state: SessionState) -> Response:
    if state.started:
        return responses.error("The solver has already been started")
    return responses.success()


def check_set_logic(
    state: SessionState, name: str, relax: bool, pos: Optional[Pos] = None
) -> Response:
    if state.logic_fixed and not relax:
        return responses.error("Logic is already set", pos)
    if name not in EXTRA_LOGICS:
        try:
            get_logic_by_name(name)
        except UndefinedLogicError:
            return responses.error(f"Unknown logic: {name}", pos)
    return responses.success()


def check_push(state: SessionState, number: int) -> Response:
    if number < 0:
        return responses.error(
            f"The argument to a push command must be non-negative: {number}"
        )
    return responses.success()


def check_pop(state: SessionState, number: int) -> Response:
    if number < 0:
        return responses.error(
            f"The argument to a pop command must be non-negative: {number}"
        )
    if number > state.scope_depth:
        return responses.error(
            f"The argument to a pop command is too large: {number}"
            f" vs. a maximum of {state.scope_depth}"
        )
    return responses.success()


def check_set_option(
    state: SessionState, option: str, value: str, pos: Optional[Pos] = None
) -> Response:
    if option in BOOLEAN_OPTIONS and value not in ("true", "false"):
        return responses.error(
            f"The value of the {option} option must be 'true' or 'false'", pos
        )
    if option in NUMERAL_OPTIONS and not value.isdigit():
        return responses.error(
            f"The value of the {option} option must be a numeral", pos
        )
    if option in INITIAL_OPTIONS and state.logic_fixed:
        if state.options.get(option) != value:
            return responses.error(
                f"The value of the {option} option must be set before the"
                " set-logic command",
                pos,
            )
    return responses.success()


def check_set_info(state: SessionState, key: str, pos: Optional[Pos] = None) -> Response:
    if key in PREDEFINED_INFO:
        return responses.error(
            f"Setting the value of a pre-defined keyword is not permitted: {key}", pos
        )
    return responses.success()
