from pathlib import Path

import pytest

from smtbridge.exceptions import SMTBridgeTransportException
from smtbridge.responses import Status
from smtbridge.parser import parse_term
from smtbridge.shortcuts import Sort
from smtbridge.solvers.process import SolverProcess
from smtbridge.solvers.yices import YicesSolver
from smtbridge.tests.common import engine_command
from smtbridge.tests.fake_engine import PROMPT


def make_process(tmp_path: Path, timeout=10.0) -> SolverProcess:
    return SolverProcess(
        engine_command(), PROMPT, log_path=tmp_path / "solver.log", timeout=timeout
    )


def test_conversation(tmp_path: Path):
    process = make_process(tmp_path)
    assert process.start() == PROMPT
    assert process.is_running()
    assert process.send_and_listen("(assert+ (> x 0))\n") == PROMPT
    assert process.send_and_listen("(check)\n") == "sat\n" + PROMPT
    process.send("(exit)\n")
    assert process.exit() == ""
    assert not process.is_running()

    log = (tmp_path / "solver.log").read_text()
    assert "(check)\n" in log
    assert "sat\n" in log


def test_replies_are_split_at_prompts(tmp_path: Path):
    process = make_process(tmp_path)
    process.start()
    process.send("(push)\n", "(pop)\n", "(pop)\n")
    assert process.listen() == PROMPT
    assert process.listen() == PROMPT
    assert process.listen().startswith("Error")
    process.send("(exit)\n")
    process.exit()


def test_unexpected_termination(tmp_path: Path):
    process = make_process(tmp_path)
    process.start()
    with pytest.raises(SMTBridgeTransportException, match="terminated unexpectedly"):
        process.send_and_listen("(crash)\n")
    process.exit()


def test_timeout(tmp_path: Path):
    process = make_process(tmp_path, timeout=0.5)
    process.start()
    with pytest.raises(SMTBridgeTransportException, match="did not answer"):
        process.send_and_listen("(sleep)\n")
    process._process.kill()
    process.exit()


def test_missing_executable(tmp_path: Path):
    process = SolverProcess([str(tmp_path / "nowhere")], PROMPT)
    with pytest.raises(SMTBridgeTransportException, match="Failed to start process"):
        process.start()
    assert not process.is_running()


def test_unwritable_transcript(tmp_path: Path):
    log_path = tmp_path / "missing" / "solver.log"
    process = SolverProcess(engine_command(), PROMPT, log_path=log_path)
    with pytest.raises(SMTBridgeTransportException, match="transcript"):
        process.start()
    assert not process.is_running()

    solver = YicesSolver(
        transport=SolverProcess(engine_command(), PROMPT, log_path=log_path)
    )
    response = solver.start()
    assert response.is_error()
    assert "Failed to start process yices" in response.message
    assert not solver.transport.is_running()
    assert not solver.state.started


def test_not_running():
    process = SolverProcess(engine_command(), PROMPT)
    with pytest.raises(SMTBridgeTransportException, match="not running"):
        process.send("(check)\n")
    with pytest.raises(SMTBridgeTransportException, match="not running"):
        process.exit()


def test_solver_over_process(tmp_path: Path):
    args = engine_command()
    solver = YicesSolver(
        transport=SolverProcess(args, PROMPT, log_path=tmp_path / "solver.log")
    )
    assert solver.start().is_ok()
    assert solver.declare_fun("x", [], Sort("Int")).is_ok()
    assert solver.assert_term(parse_term("(> x 0)")).is_ok()
    assert solver.check_sat().value == Status.SAT
    assert solver.push().is_ok()
    assert solver.assert_term(parse_term("(= x false)")).is_ok()
    assert solver.check_sat().value == Status.UNSAT
    assert solver.pop().is_ok()
    assert solver.check_sat().value == Status.SAT
    assert solver.exit().is_ok()
