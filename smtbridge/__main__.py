from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from pysmt.exceptions import UnknownSmtLibCommandError

from smtbridge import __version__, responses
from smtbridge.exceptions import SMTBridgeParseException, SMTBridgeSolverException
from smtbridge.parser import SmtLibParser
from smtbridge.pos import Source
from smtbridge.responses import Response, ResponseKind
from smtbridge.script import execute
from smtbridge.solvers.yices import YicesSolver


def _print(solver: YicesSolver, response: Response) -> None:
    if response.kind == ResponseKind.SUCCESS:
        if solver.state.options.get(":print-success") == "false":
            return
    if response.is_error() and response.pos is not None:
        logging.warning(response.pos.describe())
    print(response, flush=True)


def run(solver: YicesSolver, source: Source) -> int:
    """
    Execute the commands of `source` one at a time, printing each response.
    Returns the exit status: 1 when the input is malformed.
    """
    parser = SmtLibParser(source)
    while True:
        try:
            command = parser.get_command()
        except SMTBridgeParseException as e:
            _print(solver, responses.error(e.message, e.pos))
            return 1
        except UnknownSmtLibCommandError as e:
            _print(solver, responses.error(f"Unknown command: {e}"))
            return 1
        if command is None:
            return 0
        response = execute(solver, command)
        _print(solver, response)
        if solver.state.terminated:
            return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Run an SMT-LIB script through an interactive Yices session."""
    parser = argparse.ArgumentParser(
        prog="smtbridge",
        description="Run an SMT-LIB v2 script on a solver that does not speak SMT-LIB",
    )
    parser.add_argument("file", type=str, help="SMT-LIB2 script (.smt2)")
    parser.add_argument(
        "--binary-dir",
        type=str,
        help="Directory containing the yices executable (default: PATH)",
    )
    parser.add_argument(
        "--relax",
        action="store_true",
        help="Allow set-logic to be repeated, resetting the solver",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Seconds to wait for each solver reply",
    )
    parser.add_argument(
        "--log",
        type=str,
        default=YicesSolver.LOG_FILE,
        help=f"Transcript of the solver conversation (default: {YicesSolver.LOG_FILE})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Report session events; repeat to show every exchange",
    )
    parser.add_argument("--version", action="version", version=__version__)

    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s - %(message)s")

    try:
        source = Source.from_file(Path(args.file))
    except OSError as e:
        print(f"Error: cannot read {args.file}: {e}", file=sys.stderr)
        return 1

    try:
        solver = YicesSolver(
            binary_path=Path(args.binary_dir) if args.binary_dir else None,
            log_path=Path(args.log),
            timeout=args.timeout,
            relax=args.relax,
            verbose=args.verbose,
        )
    except SMTBridgeSolverException as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    started = solver.start()
    if started.is_error():
        print(started, file=sys.stderr)
        return 1

    try:
        status = run(solver, source)
    finally:
        if not solver.state.terminated:
            solver.exit()
    return status


if __name__ == "__main__":
    sys.exit(main())
