"""
Execution of parsed SMT-LIB commands against a solver session.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

import pysmt.smtlib.commands as smtcmd
from pysmt.smtlib.script import SmtLibCommand

from smtbridge import responses
from smtbridge.responses import Response
from smtbridge.solvers.solver import Solver


def _push(solver: Solver, args: list) -> Response:
    return solver.push(args[0] if args else 1)


def _pop(solver: Solver, args: list) -> Response:
    return solver.pop(args[0] if args else 1)


# command name -> how to run it, given the solver and the command arguments
COMMANDS = {
    smtcmd.SET_LOGIC: lambda s, args: s.set_logic(args[0]),
    smtcmd.SET_OPTION: lambda s, args: s.set_option(args[0], args[1]),
    smtcmd.GET_OPTION: lambda s, args: s.get_option(args[0]),
    smtcmd.SET_INFO: lambda s, args: s.set_info(args[0], args[1]),
    smtcmd.GET_INFO: lambda s, args: s.get_info(args[0]),
    smtcmd.DECLARE_FUN: lambda s, args: s.declare_fun(*args),
    smtcmd.DECLARE_CONST: lambda s, args: s.declare_const(*args),
    smtcmd.DEFINE_FUN: lambda s, args: s.define_fun(*args),
    smtcmd.DECLARE_SORT: lambda s, args: s.declare_sort(*args),
    smtcmd.DEFINE_SORT: lambda s, args: s.define_sort(*args),
    smtcmd.ASSERT: lambda s, args: s.assert_term(args[0]),
    smtcmd.PUSH: _push,
    smtcmd.POP: _pop,
    smtcmd.CHECK_SAT: lambda s, args: s.check_sat(),
    smtcmd.GET_VALUE: lambda s, args: s.get_value(*args),
    smtcmd.GET_PROOF: lambda s, args: s.get_proof(),
    smtcmd.GET_UNSAT_CORE: lambda s, args: s.get_unsat_core(),
    smtcmd.GET_ASSIGNMENT: lambda s, args: s.get_assignment(),
    smtcmd.EXIT: lambda s, args: s.exit(),
}


def execute(solver: Solver, command: SmtLibCommand) -> Response:
    """
    Run one command and return the solver's response.

    Commands the solver has no operation for are answered with unsupported.
    """
    run = COMMANDS.get(command.name)
    if run is None:
        logging.debug(f"No operation for {command.name}")
        return responses.unsupported()
    return run(solver, list(command.args))


def execute_script(
    solver: Solver, script: Iterable[SmtLibCommand]
) -> Iterator[tuple[SmtLibCommand, Response]]:
    """
    Run the commands in order, stopping after exit.

    :param solver: a started solver
    :param script: an SmtLibScript or any iterable of commands
    :return: a generator of (command, response) pairs
    """
    for command in script:
        response = execute(solver, command)
        yield command, response
        if command.name == smtcmd.EXIT and response.is_ok():
            return
