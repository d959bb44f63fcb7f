from __future__ import annotations

from typing import Optional, Sequence

from smtbridge.exceptions import SMTBridgeTranslationException
from smtbridge.solvers.solver import Solver
from smtbridge.solvers.translator import Translator
from smtbridge.terms import (
    Term,
    Sort,
    Symbol,
    DecimalLiteral,
    HexLiteral,
    BinaryLiteral,
    StringLiteral,
    FunctionSort,
    Declaration,
)


class YicesTranslator(Translator):
    """Yices 1 input language."""

    NAME = "yices"

    FUNCTION_NAMES = {"ite": "if"}
    SORT_NAMES = {"Int": "int", "Real": "real"}
    BOOL_SORT = "bool"

    def walk_decimal(self, node: DecimalLiteral) -> str:
        self.unsupported("decimal literals", node)

    def walk_string(self, node: StringLiteral) -> str:
        self.unsupported("string literals", node)

    def walk_hex(self, node: HexLiteral) -> str:
        raise SMTBridgeTranslationException(
            "Did not expect a Hex literal in an expression to be translated", node.pos
        )

    def walk_binary(self, node: BinaryLiteral) -> str:
        raise SMTBridgeTranslationException(
            "Did not expect a Binary literal in an expression to be translated",
            node.pos,
        )

    def walk_function_sort(self, node: FunctionSort) -> str:
        return self.arrow(node.arg_sorts, node.result)

    def arrow(self, arg_sorts: Sequence[Sort], result: Sort) -> str:
        """Yices function type: (-> A B R)"""
        return self.application(
            "->", [self.translate(s) for s in (*arg_sorts, result)]
        )


class YicesSolver(Solver):
    """
    Drives Yices 1 in interactive mode (`yices -i`).

    Assertions are made retractable with `assert+` so that push and pop
    behave as in SMT-LIB.
    """

    NAME = "yices"
    CMD_ARGS = ["-i"]
    PROMPT = "yices > "
    LOG_FILE = "solver.out.yices"
    TranslatorClass = YicesTranslator

    def wire_assert(self, term: Term) -> str:
        return f"(assert+ {self.translator.translate(term)})\n"

    def wire_check_sat(self) -> str:
        return "(check)\n"

    def wire_push(self) -> str:
        return "(push)\n"

    def wire_pop(self) -> str:
        return "(pop)\n"

    def wire_reset(self) -> str:
        return "(reset)\n"

    def wire_exit(self) -> str:
        return "(exit)\n"

    def wire_declare_fun(
        self, symbol: Symbol, arg_sorts: tuple[Sort, ...], result_sort: Sort
    ) -> str:
        name = self.translator.translate(symbol)
        if not arg_sorts:
            return f"(define {name}::{self.translator.translate(result_sort)})\n"
        return f"(define {name}::{self.translator.arrow(arg_sorts, result_sort)})\n"

    def wire_define_fun(
        self,
        symbol: Symbol,
        parameters: tuple[Declaration, ...],
        result_sort: Sort,
        body: Term,
    ) -> Optional[str]:
        name = self.translator.translate(symbol)
        value = self.translator.translate(body)
        if not parameters:
            sort = self.translator.translate(result_sort)
            return f"(define {name}::{sort} {value})\n"
        sort = self.translator.arrow([d.sort for d in parameters], result_sort)
        decls = " ".join(self.translator.declaration(d) for d in parameters)
        return f"(define {name}::{sort} (lambda ({decls}) {value}))\n"

    def wire_declare_sort(self, symbol: Symbol, arity: int) -> Optional[str]:
        if arity:
            raise SMTBridgeTranslationException(
                f"The yices solver cannot declare the sort {symbol.name} of arity"
                f" {arity}",
                symbol.pos,
            )
        return f"(define-type {self.translator.translate(symbol)})\n"

    def wire_define_sort(
        self, symbol: Symbol, parameters: tuple[str, ...], sort: Sort
    ) -> Optional[str]:
        if parameters:
            raise SMTBridgeTranslationException(
                f"The yices solver cannot define the parameterized sort {symbol.name}",
                symbol.pos,
            )
        name = self.translator.translate(symbol)
        return f"(define-type {name} {self.translator.translate(sort)})\n"

    def wire_get_value(self, terms: Sequence[Term]) -> str:
        values = [self.translator.translate(t) for t in terms]
        return self.translator.application("get-value", values) + "\n"

    def wire_get_proof(self) -> str:
        return "(get-proof)\n"

    def wire_get_unsat_core(self) -> str:
        return "(get-unsat-core)\n"

    def wire_get_assignment(self) -> str:
        return "(get-assignment)\n"


# eoc YicesSolver
