from smtbridge.solvers.solver import Solver
from smtbridge.solvers.yices import YicesSolver, YicesTranslator

__all__ = ["Solver", "YicesSolver", "YicesTranslator"]
