from pathlib import Path

import pytest

from smtbridge import __version__
from smtbridge.exceptions import (
    SMTBridgeInternalException,
    SMTBridgeSolverException,
    SMTBridgeTransportException,
)
from smtbridge.parser import parse_term, parse_sort
from smtbridge.responses import ResponseKind, Status
from smtbridge.shortcuts import Bool, Sort, Var
from smtbridge.solvers.solver import Solver
from smtbridge.solvers.yices import YicesSolver
from smtbridge.terms import Declaration, Symbol
from smtbridge.tests.common import FakeTransport, make_solver
from smtbridge.tests.fake_engine import FakeYices


def test_solver_without_name():
    class Nameless(YicesSolver):
        NAME = ""

    with pytest.raises(SMTBridgeInternalException):
        Nameless(transport=FakeTransport())


def test_missing_executable(tmp_path: Path):
    with pytest.raises(SMTBridgeSolverException):
        YicesSolver(binary_path=tmp_path)


def test_options_applied_at_construction():
    transport = FakeTransport()
    solver = YicesSolver(transport=transport, produce_proofs=True, random_seed=7)
    assert solver.state.options[":produce-proofs"] == "true"
    assert solver.state.options[":random-seed"] == "7"
    assert solver.state.options[":produce-models"] == "true"
    assert transport.sent == []


def test_invalid_option_bundle():
    with pytest.raises(SMTBridgeSolverException):
        YicesSolver(
            transport=FakeTransport(), solver_options={":print-success": "maybe"}
        )
    with pytest.raises(SMTBridgeSolverException):
        YicesSolver(transport=FakeTransport(), unsat_cores_mode="all")
    with pytest.raises(SMTBridgeSolverException):
        YicesSolver(transport=FakeTransport(), random_seed="7")


def test_option_bundle_keeps_output_channels():
    solver = YicesSolver(
        transport=FakeTransport(), solver_options={":print-success": "false"}
    )
    assert solver.state.options[":print-success"] == "false"
    assert solver.state.options[":diagnostic-output-channel"] == '"stderr"'


def test_start_twice():
    transport = FakeTransport()
    solver = make_solver(transport)
    response = solver.start()
    assert response.is_error()
    assert response.message == "The solver has already been started"


def test_start_failure():
    class Unstartable(FakeTransport):
        def start(self):
            raise SMTBridgeTransportException("no such file")

    solver = YicesSolver(transport=Unstartable())
    response = solver.start()
    assert response.is_error()
    assert response.message.startswith("Failed to start process yices")
    assert not solver.state.started


def test_end_to_end():
    transport = FakeTransport(responder=FakeYices().handle)
    solver = make_solver(transport)
    assert solver.declare_fun("x", [], Sort("Int")).is_ok()
    assert solver.assert_term(parse_term("(> x 0)")).is_ok()
    response = solver.check_sat()
    assert response.kind == ResponseKind.VERDICT
    assert response.value == Status.SAT
    assert str(response) == "sat"
    assert solver.state.last_check_result == Status.SAT
    assert transport.sent == ["(define x::int)\n", "(assert+ (> x 0))\n", "(check)\n"]

    sent = len(transport.sent)
    status = solver.get_info(":status")
    assert status.value == Status.SAT
    assert len(transport.sent) == sent

    assert solver.exit().kind == ResponseKind.EXIT
    assert transport.sent[-1] == "(exit)\n"
    assert transport.exited
    assert solver.state.terminated


def test_unsat_takes_precedence():
    solver = make_solver(FakeTransport(replies=["sat? no: unsat\n"]))
    assert solver.check_sat().value == Status.UNSAT


def test_unknown_reply():
    solver = make_solver(FakeTransport(replies=["maybe\n"]))
    response = solver.check_sat()
    assert response.kind == ResponseKind.VERDICT
    assert response.value == Status.UNKNOWN


def test_error_marker_wins():
    solver = make_solver(FakeTransport(replies=["Error: sat unsat\n"]))
    response = solver.check_sat()
    assert response.is_error()
    assert solver.state.last_check_result is None


def test_unsat_from_engine():
    solver = make_solver()
    solver.assert_term(parse_term("(and p false)"))
    assert solver.check_sat().value == Status.UNSAT


def test_scope_depth_invariant():
    solver = make_solver()
    assert solver.push(3).is_ok()
    assert solver.pop(1).is_ok()
    assert solver.push(2).is_ok()
    assert solver.pop(4).is_ok()
    assert solver.state.scope_depth == 0
    assert solver.push(0).is_ok()
    assert solver.state.scope_depth == 0


def test_pop_too_many_is_rejected_locally():
    transport = FakeTransport(responder=FakeYices().handle)
    solver = make_solver(transport)
    solver.push(2)
    sent = len(transport.sent)
    response = solver.pop(3)
    assert response.message == (
        "The argument to a pop command is too large: 3 vs. a maximum of 2"
    )
    assert solver.state.scope_depth == 2
    assert len(transport.sent) == sent


def test_push_sends_one_command_per_scope():
    transport = FakeTransport(responder=FakeYices().handle)
    solver = make_solver(transport)
    solver.push(3)
    assert transport.sent == ["(push)\n"] * 3


def test_partial_push_tracks_acknowledged_scopes():
    transport = FakeTransport(replies=["", "", "Error: out of memory\n"])
    solver = make_solver(transport)
    response = solver.push(4)
    assert response.is_error()
    assert "(2 of 4 acknowledged)" in response.message
    assert solver.state.scope_depth == 2
    assert len(transport.sent) == 3


def test_partial_pop_tracks_acknowledged_scopes():
    engine = FakeYices()
    transport = FakeTransport(responder=engine.handle)
    solver = make_solver(transport)
    solver.push(3)
    transport.replies.extend(["", "Error: internal\n"])
    response = solver.pop(3)
    assert response.is_error()
    assert solver.state.scope_depth == 2


def test_push_transport_failure():
    solver = make_solver(FakeTransport(fail_on="(push)"))
    response = solver.push(1)
    assert response.is_error()
    assert "terminated unexpectedly" in response.message
    assert solver.state.scope_depth == 0
    # the session is still usable
    assert solver.check_sat().value == Status.UNKNOWN


def test_set_logic_twice_never_reaches_transport():
    transport = FakeTransport(responder=FakeYices().handle)
    solver = make_solver(transport)
    assert solver.set_logic("QF_LIA").is_ok()
    assert transport.sent == []
    response = solver.set_logic(Symbol("QF_LRA"))
    assert response.message == "Logic is already set"
    assert transport.sent == []
    assert solver.state.logic == "QF_LIA"


def test_unknown_logic():
    solver = make_solver()
    symbol = parse_term("QF_NOPE")
    response = solver.set_logic(symbol)
    assert response.message == "Unknown logic: QF_NOPE"
    assert response.pos == symbol.pos
    assert not solver.state.logic_fixed


def test_relaxed_set_logic_resets_engine():
    engine = FakeYices()
    transport = FakeTransport(responder=engine.handle)
    solver = make_solver(transport, relax=True)
    solver.set_logic("QF_LIA")
    solver.push(2)
    solver.check_sat()
    assert solver.set_logic("QF_LRA").is_ok()
    assert transport.sent[-1] == "(reset)\n"
    assert solver.state.logic == "QF_LRA"
    assert solver.state.scope_depth == 0
    assert solver.state.last_check_result is None
    assert engine.depth == 0


def test_assert_clears_last_verdict():
    solver = make_solver()
    solver.check_sat()
    solver.assert_term(Var("p"))
    assert solver.get_info(":status").kind == ResponseKind.UNSUPPORTED


def test_translation_failure_is_reported_with_position():
    transport = FakeTransport(responder=FakeYices().handle)
    solver = make_solver(transport)
    term = parse_term("(> x 1.5)")
    response = solver.assert_term(term)
    assert response.is_error()
    assert "decimal literals" in response.message
    assert response.pos.char_start == 5
    assert transport.sent == []


def test_engine_error_is_reported():
    solver = make_solver(FakeTransport(replies=["Error: undefined name x\n"]))
    response = solver.assert_term(Var("x"))
    assert response.is_error()
    assert response.message == "Error: undefined name x"


def test_declarations():
    transport = FakeTransport(responder=FakeYices().handle)
    solver = make_solver(transport)
    assert solver.declare_const("b", Bool()).is_ok()
    assert solver.declare_fun(Symbol("f"), [Sort("Int"), Bool()], Sort("Real")).is_ok()
    assert solver.declare_sort("U").is_ok()
    assert solver.define_sort("Num", [], parse_sort("Int")).is_ok()
    assert solver.define_fun("c", [], Sort("Int"), parse_term("3")).is_ok()
    assert solver.define_fun(
        "inc",
        [Declaration(Symbol("a"), Sort("Int"))],
        Sort("Int"),
        parse_term("(+ a 1)"),
    ).is_ok()
    assert transport.sent == [
        "(define b::bool)\n",
        "(define f::(-> int bool real))\n",
        "(define-type U)\n",
        "(define-type Num int)\n",
        "(define c::int 3)\n",
        "(define inc::(-> int int) (lambda (a::int) (+ a 1)))\n",
    ]


def test_parameterized_sorts_are_rejected():
    transport = FakeTransport(responder=FakeYices().handle)
    solver = make_solver(transport)
    assert solver.declare_sort("List", 1).is_error()
    assert solver.define_sort("Set", ["X"], parse_sort("(Array X Bool)")).is_error()
    assert transport.sent == []


def test_base_solver_validates_without_wire_effect():
    class Minimal(YicesSolver):
        wire_define_fun = Solver.wire_define_fun
        wire_declare_sort = Solver.wire_declare_sort
        wire_define_sort = Solver.wire_define_sort

    solver = Minimal(transport=FakeTransport())
    solver.start()
    assert solver.declare_sort("U").is_ok()
    assert solver.define_fun("c", [], Bool(), Var("true")).is_ok()
    assert solver.transport.sent == []


def test_get_value():
    transport = FakeTransport(responder=FakeYices().handle)
    solver = make_solver(transport)
    response = solver.get_value(Var("x"), parse_term("(- y)"))
    assert transport.sent[-1] == "(get-value x (- 0 y))\n"
    assert response.kind == ResponseKind.VALUE
    assert response.value == "(= x 0)"


def test_forwarded_queries_are_unsupported():
    transport = FakeTransport(replies=["", "", ""])
    solver = make_solver(transport)
    assert solver.get_proof().kind == ResponseKind.UNSUPPORTED
    assert solver.get_unsat_core().kind == ResponseKind.UNSUPPORTED
    assert solver.get_assignment().kind == ResponseKind.UNSUPPORTED
    assert transport.sent == ["(get-proof)\n", "(get-unsat-core)\n", "(get-assignment)\n"]


def test_get_info():
    solver = make_solver()
    assert str(solver.get_info(":name")) == '"yices"'
    assert solver.get_info(":version").value == __version__
    assert solver.get_info(":authors").kind == ResponseKind.STRING
    assert str(solver.get_info(":error-behavior")) == "continued-execution"
    assert solver.get_info(":status").kind == ResponseKind.UNSUPPORTED
    assert solver.get_info(":reason-unknown").kind == ResponseKind.UNSUPPORTED
    assert solver.get_info(":all-statistics").kind == ResponseKind.UNSUPPORTED
    assert solver.get_info(":unheard-of").kind == ResponseKind.UNSUPPORTED


def test_options_and_info_are_local():
    transport = FakeTransport(responder=FakeYices().handle)
    solver = make_solver(transport)
    assert solver.set_option(":print-success", Symbol("false")).is_ok()
    assert str(solver.get_option(":print-success")) == "false"
    assert solver.get_option(":no-such-option").kind == ResponseKind.UNSUPPORTED
    assert solver.set_option(":produce-models", "maybe").is_error()
    assert solver.set_info(":source", "test").is_ok()
    assert solver.get_info(":source").value == "test"
    assert solver.set_info(":name", "other").is_error()
    assert transport.sent == []


def test_produce_options_frozen_after_set_logic():
    solver = make_solver()
    solver.set_logic("QF_UF")
    response = solver.set_option(":produce-unsat-cores", "true")
    assert response.is_error()
    assert solver.state.options[":produce-unsat-cores"] == "false"


def test_exit_failure_is_reported():
    solver = YicesSolver(transport=FakeTransport())
    response = solver.exit()
    assert response.is_error()
    assert not solver.state.terminated


class BrokenPipeTransport(FakeTransport):
    def send(self, *text: str) -> None:
        raise SMTBridgeTransportException("yices: broken pipe")


def test_exit_after_failed_send_terminates_session():
    transport = BrokenPipeTransport()
    solver = make_solver(transport)
    response = solver.exit()
    assert response.is_error()
    assert "broken pipe" in response.message
    assert transport.exited
    assert solver.state.terminated
