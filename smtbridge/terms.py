"""
Solver-independent representation of SMT-LIB terms and sorts.

Nodes are immutable and compare structurally; the source position of a
node is carried along for diagnostics but never takes part in equality.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from smtbridge.pos import Pos


@dataclass(frozen=True)
class Node:
    pos: Optional[Pos] = field(default=None, compare=False, repr=False, kw_only=True)


# Sorts


@dataclass(frozen=True)
class Sort(Node):
    pass


@dataclass(frozen=True)
class BoolSort(Sort):
    pass


@dataclass(frozen=True)
class FamilySort(Sort):
    """`Name`, `(Name S1 ... Sn)` or `(_ Name i1 ... in)`."""

    name: str
    args: tuple[Sort, ...] = ()
    indices: tuple[int, ...] = ()


@dataclass(frozen=True)
class SortAbbreviation(Sort):
    name: str
    parameters: tuple[str, ...]
    definition: Sort


@dataclass(frozen=True)
class FunctionSort(Sort):
    arg_sorts: tuple[Sort, ...]
    result: Sort


@dataclass(frozen=True)
class SortParameter(Sort):
    name: str


# Terms


@dataclass(frozen=True)
class Term(Node):
    pass


@dataclass(frozen=True)
class Numeral(Term):
    value: int


@dataclass(frozen=True)
class DecimalLiteral(Term):
    value: str


@dataclass(frozen=True)
class HexLiteral(Term):
    """`#x...`, value holds the digits only."""

    value: str


@dataclass(frozen=True)
class BinaryLiteral(Term):
    """`#b...`, value holds the digits only."""

    value: str


@dataclass(frozen=True)
class StringLiteral(Term):
    """value holds the unquoted string."""

    value: str


@dataclass(frozen=True)
class Symbol(Term):
    name: str


@dataclass(frozen=True)
class Keyword(Term):
    """`:name`, name includes the colon."""

    name: str


@dataclass(frozen=True)
class QualifiedIdentifier(Term):
    """`(as symbol sort)`"""

    symbol: Symbol
    sort: Sort


@dataclass(frozen=True)
class IndexedIdentifier(Term):
    """`(_ symbol index ...)`"""

    symbol: Symbol
    indices: tuple[Union[int, str], ...]


Identifier = Union[Symbol, QualifiedIdentifier, IndexedIdentifier]


@dataclass(frozen=True)
class Apply(Term):
    head: Identifier
    args: tuple[Term, ...]


@dataclass(frozen=True)
class Declaration:
    parameter: Symbol
    sort: Sort


@dataclass(frozen=True)
class Binding:
    parameter: Symbol
    term: Term


@dataclass(frozen=True)
class Forall(Term):
    parameters: tuple[Declaration, ...]
    body: Term


@dataclass(frozen=True)
class Exists(Term):
    parameters: tuple[Declaration, ...]
    body: Term


@dataclass(frozen=True)
class Let(Term):
    bindings: tuple[Binding, ...]
    body: Term


@dataclass(frozen=True)
class Attribute:
    keyword: Keyword
    value: Optional[Term] = None


@dataclass(frozen=True)
class Attributed(Term):
    """`(! term :named n ...)`"""

    term: Term
    attributes: tuple[Attribute, ...]


@dataclass(frozen=True)
class ErrorTerm(Term):
    """Stands for a fragment of input that could not be parsed."""

    message: str


TERM_CLASSES = (
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
)

SORT_CLASSES = (
    BoolSort,
    FamilySort,
    SortAbbreviation,
    FunctionSort,
    SortParameter,
)
