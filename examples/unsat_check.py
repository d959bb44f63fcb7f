from pathlib import Path

from smtbridge.parser import parse_script
from smtbridge.script import execute_script
from smtbridge.solvers.yices import YicesSolver

import logging

logging.basicConfig(level=logging.INFO)

SCRIPT = """
(set-logic QF_LIA)
(declare-fun x () Int)
(assert (> x 0))
(push 1)
(assert (< x 0))
(check-sat)
(pop 1)
(check-sat)
(exit)
"""

# Write the script to a file and read it back, as the smtbridge command does
tmp = Path("unsat_example.smt2")
tmp.write_text(SCRIPT)
print("written to:", tmp.resolve())

# Note: this requires Yices 1 to be installed and accessible in PATH
solver = YicesSolver()
solver.start()

for command, response in execute_script(solver, parse_script(tmp.read_text(), str(tmp))):
    print(f"{command.name}: {response}")
