"""
Rendering of solver-independent terms and sorts into an engine's syntax.

A Translator is a family of `walk_*` handlers, one per node class, looked
up in a dispatch table. Engines differ mostly in how n-ary SMT-LIB
operators must be spelled: chainable comparisons become conjunctions of
adjacent pairs, associative operators are folded into binary applications
and `distinct` becomes a conjunction of pairwise disequalities.
Subclasses adapt the operator tables and override the handlers of the
constructs they cannot express.
"""

from __future__ import annotations

from itertools import combinations
from typing import Callable, Sequence

from smtbridge.exceptions import (
    SMTBridgeInternalException,
    SMTBridgeTranslationException,
)
from smtbridge.responses import quote
from smtbridge.terms import (
    Node,
    Term,
    Sort,
    Numeral,
    DecimalLiteral,
    HexLiteral,
    BinaryLiteral,
    StringLiteral,
    Symbol,
    Keyword,
    QualifiedIdentifier,
    IndexedIdentifier,
    Apply,
    Forall,
    Exists,
    Let,
    Attributed,
    ErrorTerm,
    BoolSort,
    FamilySort,
    SortAbbreviation,
    FunctionSort,
    SortParameter,
    Declaration,
)


class Translator:
    """
    Translate terms and sorts into the concrete syntax of an engine.

    The rendering is all-or-nothing: any construct the engine cannot
    express raises SMTBridgeTranslationException for the whole term.
    """

    NAME: str = "smt-lib"

    # Operators kept n-ary
    MULTI_ARITY = frozenset({"or", "and"})
    # (op a b c) means (and (op a b) (op b c))
    CHAINABLE = frozenset({"=", "<", ">", "<=", ">="})
    # source operator -> binary target operator, folded from the left
    LEFT_ASSOCIATIVE = {"xor": "/="}
    # folded from the right
    RIGHT_ASSOCIATIVE = frozenset({"=>"})
    DISTINCT = "distinct"
    NOT_EQUAL = "/="
    CONJUNCTION = "and"
    NEGATION = "-"
    ZERO = "0"

    # Plain renamings of function symbols
    FUNCTION_NAMES: dict[str, str] = {}
    # Zero-parameter sort names
    SORT_NAMES: dict[str, str] = {}
    BOOL_SORT = "Bool"

    def __init__(self):
        self.functions: dict[type, Callable[[Node], str]] = {
            Numeral: self.walk_numeral,
            DecimalLiteral: self.walk_decimal,
            HexLiteral: self.walk_hex,
            BinaryLiteral: self.walk_binary,
            StringLiteral: self.walk_string,
            Symbol: self.walk_symbol,
            Keyword: self.walk_keyword,
            QualifiedIdentifier: self.walk_qualified_identifier,
            IndexedIdentifier: self.walk_indexed_identifier,
            Apply: self.walk_apply,
            Forall: self.walk_forall,
            Exists: self.walk_exists,
            Let: self.walk_let,
            Attributed: self.walk_attributed,
            ErrorTerm: self.walk_error,
            BoolSort: self.walk_bool_sort,
            FamilySort: self.walk_family_sort,
            SortAbbreviation: self.walk_sort_abbreviation,
            FunctionSort: self.walk_function_sort,
            SortParameter: self.walk_sort_parameter,
        }

    def translate(self, node: Node) -> str:
        try:
            handler = self.functions[type(node)]
        except KeyError:
            raise SMTBridgeInternalException(
                f"No translation handler for {type(node).__name__}"
            )
        return handler(node)

    def unsupported(self, what: str, node: Node):
        raise SMTBridgeTranslationException(
            f"The {self.NAME} solver cannot handle {what}", node.pos
        )

    # Literals

    def walk_numeral(self, node: Numeral) -> str:
        return str(node.value)

    def walk_decimal(self, node: DecimalLiteral) -> str:
        return node.value

    def walk_hex(self, node: HexLiteral) -> str:
        return f"#x{node.value}"

    def walk_binary(self, node: BinaryLiteral) -> str:
        return f"#b{node.value}"

    def walk_string(self, node: StringLiteral) -> str:
        return quote(node.value)

    # Identifiers

    def walk_symbol(self, node: Symbol) -> str:
        return node.name

    def walk_keyword(self, node: Keyword) -> str:
        raise SMTBridgeTranslationException(
            "Did not expect a Keyword in an expression to be translated", node.pos
        )

    def walk_qualified_identifier(self, node: QualifiedIdentifier) -> str:
        self.unsupported("qualified identifiers", node)

    def walk_indexed_identifier(self, node: IndexedIdentifier) -> str:
        self.unsupported("indexed identifiers", node)

    def walk_error(self, node: ErrorTerm) -> str:
        raise SMTBridgeTranslationException(
            f"Did not expect an Error token in an expression to be translated:"
            f" {node.message}",
            node.pos,
        )

    # Applications

    def walk_apply(self, node: Apply) -> str:
        args = node.args
        if not args:
            raise SMTBridgeTranslationException(
                "Did not expect an empty argument list", node.pos
            )
        name = self.translate(node.head)
        if name in self.MULTI_ARITY:
            return self.application(name, self._walk_all(args))
        if name in self.CHAINABLE:
            return self._remove_chainable(name, node)
        if name in self.LEFT_ASSOCIATIVE:
            return self._remove_left_assoc(
                self.LEFT_ASSOCIATIVE[name], self._walk_all(args)
            )
        if name in self.RIGHT_ASSOCIATIVE:
            return self._remove_right_assoc(name, self._walk_all(args))
        if name == self.DISTINCT:
            return self._remove_distinct(node)
        if name == self.NEGATION and len(args) == 1:
            # No unary minus: (- x) is (- 0 x)
            return self.application(name, [self.ZERO, self.translate(args[0])])
        return self.application(
            self.FUNCTION_NAMES.get(name, name), self._walk_all(args)
        )

    def _walk_all(self, nodes: Sequence[Node]) -> list[str]:
        return [self.translate(n) for n in nodes]

    @staticmethod
    def application(name: str, args: Sequence[str]) -> str:
        return "(" + " ".join([name, *args]) + ")"

    def _conjunction(self, conjuncts: Sequence[str]) -> str:
        if len(conjuncts) == 1:
            return conjuncts[0]
        return self.application(self.CONJUNCTION, conjuncts)

    def _remove_chainable(self, name: str, node: Apply) -> str:
        if len(node.args) < 2:
            raise SMTBridgeTranslationException(
                f"Chainable operator {name} needs at least two arguments", node.pos
            )
        args = self._walk_all(node.args)
        return self._conjunction(
            [self.application(name, pair) for pair in zip(args, args[1:])]
        )

    def _remove_left_assoc(self, name: str, args: Sequence[str]) -> str:
        result = args[0]
        for arg in args[1:]:
            result = self.application(name, [result, arg])
        return result

    def _remove_right_assoc(self, name: str, args: Sequence[str]) -> str:
        result = args[-1]
        for arg in reversed(args[:-1]):
            result = self.application(name, [arg, result])
        return result

    def _remove_distinct(self, node: Apply) -> str:
        if len(node.args) < 2:
            raise SMTBridgeTranslationException(
                f"{self.DISTINCT} needs at least two arguments", node.pos
            )
        args = self._walk_all(node.args)
        return self._conjunction(
            [self.application(self.NOT_EQUAL, pair) for pair in combinations(args, 2)]
        )

    # Binders

    def walk_forall(self, node: Forall) -> str:
        return self._quantifier("forall", node.parameters, node.body)

    def walk_exists(self, node: Exists) -> str:
        return self._quantifier("exists", node.parameters, node.body)

    def declaration(self, decl: Declaration) -> str:
        return f"{self.translate(decl.parameter)}::{self.translate(decl.sort)}"

    def _quantifier(
        self, quantifier: str, parameters: Sequence[Declaration], body: Term
    ) -> str:
        decls = " ".join(self.declaration(d) for d in parameters)
        return f"({quantifier} ({decls}) {self.translate(body)})"

    def walk_let(self, node: Let) -> str:
        bindings = " ".join(
            self.application(self.translate(b.parameter), [self.translate(b.term)])
            for b in node.bindings
        )
        return f"(let ({bindings}) {self.translate(node.body)})"

    def walk_attributed(self, node: Attributed) -> str:
        # Annotations such as :named have no counterpart
        return self.translate(node.term)

    # Sorts

    def walk_bool_sort(self, node: BoolSort) -> str:
        return self.BOOL_SORT

    def walk_family_sort(self, node: FamilySort) -> str:
        if node.args or node.indices:
            self.unsupported(f"the parameterized sort {node.name}", node)
        if node.name == "Bool":
            return self.BOOL_SORT
        return self.SORT_NAMES.get(node.name, node.name)

    def walk_sort_abbreviation(self, node: SortAbbreviation) -> str:
        self.unsupported(f"the sort abbreviation {node.name}", node)

    def walk_function_sort(self, node: FunctionSort) -> str:
        self.unsupported("function sorts", node)

    def walk_sort_parameter(self, node: SortParameter) -> str:
        self.unsupported(f"the sort parameter {node.name}", node)


# eoc Translator
