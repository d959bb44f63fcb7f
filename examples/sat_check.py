from smtbridge.parser import parse_term
from smtbridge.responses import Status
from smtbridge.shortcuts import Apply, Var, Sort
from smtbridge.solvers.yices import YicesSolver

import logging

logging.basicConfig(level=logging.DEBUG)

# Note: this requires Yices 1 to be installed and accessible in PATH
# otherwise, set `binary_path` argument to the YicesSolver constructor
solver = YicesSolver(verbose=1)
solver.start()

solver.set_logic("QF_LIA")
solver.declare_fun("x", [], Sort("Int"))
solver.declare_fun("y", [], Sort("Int"))

# 0 < x < y < 10, sent to Yices as a conjunction of comparisons
solver.assert_term(Apply("<", 0, Var("x"), Var("y"), 10))
solver.assert_term(parse_term("(distinct x y 5)"))

response = solver.check_sat()
print(f"Solving status: {response}")
assert response.value == Status.SAT

print(f"Values: {solver.get_value(Var('x'), Var('y'))}")
print(f"Status: {solver.get_info(':status')}")

solver.exit()
