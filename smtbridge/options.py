from __future__ import annotations

from pysmt.smtlib.solver import SmtLibOptions

from smtbridge.exceptions import SMTBridgeSolverException


# Values every session starts from, rendered as SMT-LIB text
DEFAULT_OPTIONS: dict[str, str] = {
    ":print-success": "true",
    ":expand-definitions": "false",
    ":interactive-mode": "false",
    ":produce-proofs": "false",
    ":produce-unsat-cores": "false",
    ":produce-models": "false",
    ":produce-assignments": "false",
    ":regular-output-channel": '"stdout"',
    ":diagnostic-output-channel": '"stderr"',
    ":random-seed": "0",
    ":verbosity": "0",
}

BOOLEAN_OPTIONS = frozenset(
    {
        ":print-success",
        ":expand-definitions",
        ":interactive-mode",
        ":produce-proofs",
        ":produce-unsat-cores",
        ":produce-models",
        ":produce-assignments",
    }
)

NUMERAL_OPTIONS = frozenset({":random-seed", ":verbosity"})

# Can only be changed before set-logic
INITIAL_OPTIONS = frozenset(
    {
        ":interactive-mode",
        ":produce-proofs",
        ":produce-unsat-cores",
        ":produce-models",
        ":produce-assignments",
    }
)


class SessionOptions(SmtLibOptions):
    """
    Configuration of one solver session, built once and handed to the solver.

    Extends pySMT's SmtLibOptions with:
    - relax: when True a second `set-logic` resets the engine instead of failing.
    - verbose: when non zero, session events are logged at INFO level.
    - produce_proofs, produce_unsat_cores, produce_assignments: initial values
      of the corresponding `:produce-*` options.

    Options are session state, not engine commands, so every value is set
    through the solver's `set_option` and a rejected one raises
    SMTBridgeSolverException.
    """

    def __init__(
        self,
        relax: bool = False,
        verbose: int = 0,
        produce_proofs: bool = False,
        produce_unsat_cores: bool = False,
        produce_assignments: bool = False,
        **base_options,
    ):
        try:
            super().__init__(**base_options)
        except ValueError as e:
            raise SMTBridgeSolverException(str(e)) from e
        self.relax = relax
        self.verbose = verbose
        self.produce_proofs = produce_proofs
        self.produce_unsat_cores = produce_unsat_cores
        self.produce_assignments = produce_assignments

    def __call__(self, solver):
        # Same options as SmtLibOptions, except the output channels, which
        # keep their defaults
        self._set(solver, ":produce-models", self._flag(self.generate_models))
        if self.random_seed is not None:
            self._set(solver, ":random-seed", str(self.random_seed))
        self._set(solver, ":produce-proofs", self._flag(self.produce_proofs))
        self._set(solver, ":produce-unsat-cores", self._flag(self.produce_unsat_cores))
        self._set(solver, ":produce-assignments", self._flag(self.produce_assignments))
        for option, value in self.solver_options.items():
            self._set(solver, option, str(value))

    @staticmethod
    def _flag(enable: bool) -> str:
        return "true" if enable else "false"

    @staticmethod
    def _set(solver, option: str, value: str):
        response = solver.set_option(option, value)
        if response.is_error():
            raise SMTBridgeSolverException(
                f"Invalid value {value} for {option}: {response.message}"
            )
