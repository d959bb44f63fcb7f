from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from shutil import which
from typing import Optional, Sequence, Union

from pysmt.smtlib import commands as smtcmd

from smtbridge import __version__, responses
from smtbridge.exceptions import (
    SMTBridgeInternalException,
    SMTBridgeSolverException,
    SMTBridgeTranslationException,
    SMTBridgeTransportException,
    SMTBridgeEngineException,
)
from smtbridge.options import SessionOptions
from smtbridge.pos import Pos
from smtbridge.responses import Response, Status, quote
from smtbridge.session import (
    SessionState,
    check_start,
    check_set_logic,
    check_push,
    check_pop,
    check_set_option,
    check_set_info,
)
from smtbridge.solvers.process import SolverProcess
from smtbridge.solvers.translator import Translator
from smtbridge.terms import (
    Term,
    Sort,
    Symbol,
    Keyword,
    Numeral,
    DecimalLiteral,
    StringLiteral,
    Declaration,
)

# Failures that end a command but not the session
COMMAND_ERRORS = (
    SMTBridgeTranslationException,
    SMTBridgeTransportException,
    SMTBridgeEngineException,
)

AUTHORS = "The smtbridge developers"

# Renders attribute values back to SMT-LIB text
SMTLIB = Translator()


class Solver(ABC):
    """
    Abstract driver for an interactive solver that does not speak SMT-LIB.

    Every SMT-LIB command is handled in three steps: the precondition is
    checked against the session state, the payload is translated and sent
    to the solver, and the state is updated once the solver acknowledged
    the command. Failures of any step are reported as error responses and
    leave the session usable.

    Subclasses define NAME, PROMPT and the wire_* methods that spell each
    command in the solver's own language.
    """

    NAME: str = ""  # to be set by concrete subclasses
    CMD_ARGS: list[str] = []
    PROMPT: str = ""
    ERROR_INDICATION: str = "Error"
    LOG_FILE: Optional[str] = None
    OptionsClass = SessionOptions
    TranslatorClass = Translator

    def __init__(
        self,
        binary_path: Optional[Path] = None,
        cmd_args: Optional[list[str]] = None,
        transport=None,
        log_path: Optional[Path] = None,
        timeout: Optional[float] = None,
        **options,
    ):
        """
        :param binary_path: directory containing the solver executable
        :param cmd_args: command line arguments replacing CMD_ARGS
        :param transport: an object with start/send/send_and_listen/exit,
         used instead of spawning the executable
        :param log_path: transcript file, LOG_FILE by default
        :param timeout: seconds to wait for each reply
        :param options: forwarded to OptionsClass
        """
        if not self.NAME:
            raise SMTBridgeInternalException("Solver.NAME must be defined by subclass")
        if transport is None:
            # Locate solver binary
            solver_path = which(
                self.NAME, path=str(binary_path) if binary_path else None
            )
            if not solver_path:
                raise SMTBridgeSolverException(f"Executable for {self.NAME} not found")
            args = [solver_path] + (cmd_args if cmd_args is not None else self.CMD_ARGS)
            transport = SolverProcess(
                args,
                self.PROMPT,
                log_path=log_path or self.LOG_FILE,
                timeout=timeout,
            )
        self.transport = transport
        self.translator = self.TranslatorClass()
        self.state = SessionState()
        self.options: SessionOptions = self.OptionsClass(**options)
        self.options(self)

    # Session lifecycle

    def start(self) -> Response:
        status = check_start(self.state)
        if status.is_error():
            return status
        try:
            self.transport.start()
        except SMTBridgeTransportException as e:
            logging.error(f"Failed to start {self.NAME}: {e}")
            return responses.error(f"Failed to start process {self.NAME}: {e}")
        self.state.started = True
        self._diag(f"Started {self.NAME}")
        return responses.success()

    def exit(self) -> Response:
        try:
            try:
                self.transport.send(self.wire_exit())
            finally:
                reply = self.transport.exit()
                self.state.terminated = True
                self._diag(f"Ended {self.NAME}")
        except SMTBridgeTransportException as e:
            return self._failure(smtcmd.EXIT, e)
        if self.ERROR_INDICATION in reply:
            return responses.error(reply.strip())
        return responses.success_exit()

    # Assertions and scopes

    def assert_term(self, term: Term) -> Response:
        try:
            self._transact(self.wire_assert(term))
        except COMMAND_ERRORS as e:
            return self._failure(smtcmd.ASSERT, e)
        self.state.last_check_result = None
        return responses.success()

    def push(self, number: int = 1) -> Response:
        status = check_push(self.state, number)
        if status.is_error():
            return status
        acknowledged, failure = self._repeat(self.wire_push(), number)
        self.state.scope_depth += acknowledged
        return self._scopes_response(smtcmd.PUSH, number, acknowledged, failure)

    def pop(self, number: int = 1) -> Response:
        status = check_pop(self.state, number)
        if status.is_error():
            return status
        acknowledged, failure = self._repeat(self.wire_pop(), number)
        self.state.scope_depth -= acknowledged
        return self._scopes_response(smtcmd.POP, number, acknowledged, failure)

    def check_sat(self) -> Response:
        try:
            reply = self._transact(self.wire_check_sat())
        except COMMAND_ERRORS as e:
            return self._failure(smtcmd.CHECK_SAT, e)
        result = self.interpret_check_sat(reply)
        self.state.last_check_result = result
        return responses.verdict(result)

    def interpret_check_sat(self, reply: str) -> Status:
        text = self._strip_prompt(reply)
        # "sat" is a substring of "unsat"
        if "unsat" in text:
            return Status.UNSAT
        if "sat" in text:
            return Status.SAT
        return Status.UNKNOWN

    # Logic, options and info

    def set_logic(
        self, name: Union[Symbol, str], pos: Optional[Pos] = None
    ) -> Response:
        if isinstance(name, Symbol):
            name, pos = name.name, pos or name.pos
        status = check_set_logic(self.state, name, self.options.relax, pos)
        if status.is_error():
            return status
        if self.state.logic_fixed:
            # relaxed mode: start over with a fresh solver context
            try:
                self._transact(self.wire_reset())
            except COMMAND_ERRORS as e:
                return self._failure(smtcmd.SET_LOGIC, e, pos)
            self.state.scope_depth = 0
            self.state.last_check_result = None
        self.state.logic_fixed = True
        self.state.logic = name
        return responses.success()

    def set_option(self, option: Union[Keyword, str], value) -> Response:
        option, pos = self._keyword(option)
        try:
            text = self.render_value(value)
        except SMTBridgeTranslationException as e:
            return responses.error(e.message, e.pos)
        status = check_set_option(self.state, option, text, pos)
        if status.is_error():
            return status
        self.state.options[option] = text
        return responses.success()

    def get_option(self, option: Union[Keyword, str]) -> Response:
        option, _ = self._keyword(option)
        if option not in self.state.options:
            return responses.unsupported()
        return responses.value(self.state.options[option])

    def set_info(self, key: Union[Keyword, str], value) -> Response:
        key, pos = self._keyword(key)
        status = check_set_info(self.state, key, pos)
        if status.is_error():
            return status
        try:
            self.state.info[key] = self.render_value(value)
        except SMTBridgeTranslationException as e:
            return responses.error(e.message, e.pos)
        return responses.success()

    def get_info(self, key: Union[Keyword, str]) -> Response:
        """Answered from the session, the solver is never asked."""
        key, _ = self._keyword(key)
        if key == ":error-behavior":
            return responses.continued_execution()
        if key == ":status":
            if self.state.last_check_result is None:
                return responses.unsupported()
            return responses.verdict(self.state.last_check_result)
        if key == ":authors":
            return responses.string_literal(AUTHORS)
        if key == ":version":
            return responses.string_literal(__version__)
        if key == ":name":
            return responses.string_literal(self.NAME)
        if key in self.state.info:
            return responses.value(self.state.info[key])
        # includes :all-statistics and :reason-unknown
        return responses.unsupported()

    # Declarations

    def declare_fun(
        self,
        name: Union[Symbol, str],
        arg_sorts: Sequence[Sort],
        result_sort: Sort,
    ) -> Response:
        return self._declare(
            smtcmd.DECLARE_FUN, self._symbol(name), tuple(arg_sorts), result_sort
        )

    def declare_const(self, name: Union[Symbol, str], sort: Sort) -> Response:
        return self._declare(smtcmd.DECLARE_CONST, self._symbol(name), (), sort)

    def _declare(
        self,
        command: str,
        symbol: Symbol,
        arg_sorts: tuple[Sort, ...],
        result_sort: Sort,
    ) -> Response:
        try:
            self._transact(self.wire_declare_fun(symbol, arg_sorts, result_sort))
        except COMMAND_ERRORS as e:
            return self._failure(command, e)
        return responses.success()

    def define_fun(
        self,
        name: Union[Symbol, str],
        parameters: Sequence[Declaration],
        result_sort: Sort,
        body: Term,
    ) -> Response:
        return self._optional_transaction(
            smtcmd.DEFINE_FUN,
            lambda: self.wire_define_fun(
                self._symbol(name), tuple(parameters), result_sort, body
            ),
        )

    def declare_sort(self, name: Union[Symbol, str], arity: int = 0) -> Response:
        return self._optional_transaction(
            smtcmd.DECLARE_SORT,
            lambda: self.wire_declare_sort(self._symbol(name), arity),
        )

    def define_sort(
        self,
        name: Union[Symbol, str],
        parameters: Sequence[Union[Symbol, str]],
        sort: Sort,
    ) -> Response:
        params = tuple(p.name if isinstance(p, Symbol) else p for p in parameters)
        return self._optional_transaction(
            smtcmd.DEFINE_SORT,
            lambda: self.wire_define_sort(self._symbol(name), params, sort),
        )

    def _optional_transaction(self, command: str, build) -> Response:
        try:
            wire = build()
            if wire is not None:
                self._transact(wire)
        except COMMAND_ERRORS as e:
            return self._failure(command, e)
        return responses.success()

    # Queries

    def get_value(self, *terms: Term) -> Response:
        try:
            reply = self._transact(self.wire_get_value(terms))
        except COMMAND_ERRORS as e:
            return self._failure(smtcmd.GET_VALUE, e)
        return responses.value(self._strip_prompt(reply).strip())

    def get_proof(self) -> Response:
        return self._forward(smtcmd.GET_PROOF, self.wire_get_proof())

    def get_unsat_core(self) -> Response:
        return self._forward(smtcmd.GET_UNSAT_CORE, self.wire_get_unsat_core())

    def get_assignment(self) -> Response:
        return self._forward(smtcmd.GET_ASSIGNMENT, self.wire_get_assignment())

    def _forward(self, command: str, wire: str) -> Response:
        try:
            self._transact(wire)
        except COMMAND_ERRORS as e:
            return self._failure(command, e)
        # The reply is not turned into a structured answer
        return responses.unsupported()

    # Helpers

    def _transact(self, wire: str) -> str:
        reply = self.transport.send_and_listen(wire)
        if self.ERROR_INDICATION in reply:
            raise SMTBridgeEngineException(self._strip_prompt(reply).strip())
        return reply

    def _repeat(self, wire: str, number: int) -> tuple[int, Optional[Exception]]:
        """Send `wire` up to `number` times, stopping at the first failure."""
        acknowledged = 0
        while acknowledged < number:
            try:
                self._transact(wire)
            except COMMAND_ERRORS as e:
                return acknowledged, e
            acknowledged += 1
        return acknowledged, None

    def _scopes_response(
        self,
        command: str,
        number: int,
        acknowledged: int,
        failure: Optional[Exception],
    ) -> Response:
        if acknowledged:
            self.state.last_check_result = None
        if failure is None:
            return responses.success()
        response = self._failure(command, failure)
        if acknowledged:
            logging.warning(
                f"{self.NAME} acknowledged {acknowledged} of {number} {command}"
                f" commands, scope depth is now {self.state.scope_depth}"
            )
            return responses.error(
                f"{response.message} ({acknowledged} of {number} acknowledged)",
                response.pos,
            )
        return response

    def _failure(
        self, command: str, exc: Exception, pos: Optional[Pos] = None
    ) -> Response:
        if isinstance(exc, SMTBridgeEngineException):
            return responses.error(exc.reply, pos)
        if isinstance(exc, SMTBridgeTranslationException):
            return responses.error(
                f"{self.NAME} {command} command failed: {exc.message}", exc.pos or pos
            )
        logging.error(f"{self.NAME} {command} command failed: {exc}")
        return responses.error(f"{self.NAME} {command} command failed: {exc}", pos)

    def _strip_prompt(self, reply: str) -> str:
        if self.PROMPT and reply.endswith(self.PROMPT):
            return reply[: -len(self.PROMPT)]
        return reply

    def _diag(self, message: str) -> None:
        if self.options.verbose:
            logging.info(message)
        else:
            logging.debug(message)

    @staticmethod
    def _symbol(name: Union[Symbol, str]) -> Symbol:
        return name if isinstance(name, Symbol) else Symbol(name)

    @staticmethod
    def _keyword(key: Union[Keyword, str]) -> tuple[str, Optional[Pos]]:
        if isinstance(key, Keyword):
            return key.name, key.pos
        return key, None

    @staticmethod
    def render_value(value) -> str:
        """Render an attribute value as it would be written in SMT-LIB."""
        if value is None:
            return "true"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (Symbol, Keyword)):
            return value.name
        if isinstance(value, Numeral):
            return str(value.value)
        if isinstance(value, DecimalLiteral):
            return value.value
        if isinstance(value, StringLiteral):
            return quote(value.value)
        if isinstance(value, Term):
            return SMTLIB.translate(value)
        return str(value)

    # Wire language of the solver

    @abstractmethod
    def wire_assert(self, term: Term) -> str:
        """Assert `term` in the current scope."""

    @abstractmethod
    def wire_check_sat(self) -> str:
        """Check satisfiability of the current assertions."""

    @abstractmethod
    def wire_push(self) -> str:
        """Open one assertion scope."""

    @abstractmethod
    def wire_pop(self) -> str:
        """Close one assertion scope."""

    @abstractmethod
    def wire_reset(self) -> str:
        """Drop every declaration and assertion."""

    @abstractmethod
    def wire_exit(self) -> str:
        """Terminate the solver."""

    @abstractmethod
    def wire_declare_fun(
        self, symbol: Symbol, arg_sorts: tuple[Sort, ...], result_sort: Sort
    ) -> str:
        """Declare an uninterpreted constant (no arguments) or function."""

    @abstractmethod
    def wire_get_value(self, terms: Sequence[Term]) -> str:
        """Ask the values of `terms` in the current model."""

    @abstractmethod
    def wire_get_proof(self) -> str:
        """Ask the proof of the last unsatisfiable check."""

    @abstractmethod
    def wire_get_unsat_core(self) -> str:
        """Ask an unsatisfiable core of the last unsatisfiable check."""

    @abstractmethod
    def wire_get_assignment(self) -> str:
        """Ask the truth values of the named formulas."""

    def wire_define_fun(
        self,
        symbol: Symbol,
        parameters: tuple[Declaration, ...],
        result_sort: Sort,
        body: Term,
    ) -> Optional[str]:
        """Solvers without definitions accept the command without sending it."""
        return None

    def wire_declare_sort(self, symbol: Symbol, arity: int) -> Optional[str]:
        return None

    def wire_define_sort(
        self, symbol: Symbol, parameters: tuple[str, ...], sort: Sort
    ) -> Optional[str]:
        return None


# eoc Solver
