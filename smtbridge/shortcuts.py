from __future__ import annotations

from typing import Union

from smtbridge import terms
from smtbridge.parser import parse_term, parse_sort  # noqa: F401 re-exported


def Var(name: str) -> terms.Symbol:
    return terms.Symbol(name)


def Int(value: int) -> terms.Numeral:
    if value < 0:
        # SMT-LIB numerals are non-negative
        return Apply("-", terms.Numeral(-value))
    return terms.Numeral(value)


def Apply(head: Union[str, terms.Symbol], *args: terms.Term) -> terms.Apply:
    """
    Apply a function symbol to arguments.

    :param head: the function symbol, or its name
    :param args: the arguments; plain ints are turned into numerals and plain
     strings into symbols
    :return: the application node
    """
    if isinstance(head, str):
        head = terms.Symbol(head)
    return terms.Apply(head, tuple(_term(a) for a in args))


def Sort(name: str, *args: terms.Sort) -> terms.Sort:
    if name == "Bool" and not args:
        return Bool()
    return terms.FamilySort(name, tuple(args))


def Bool() -> terms.BoolSort:
    return terms.BoolSort()


def FunctionSort(arg_sorts: list[terms.Sort], result: terms.Sort) -> terms.FunctionSort:
    return terms.FunctionSort(tuple(arg_sorts), result)


def _term(arg) -> terms.Term:
    if isinstance(arg, bool):
        return terms.Symbol("true" if arg else "false")
    if isinstance(arg, int):
        return Int(arg)
    if isinstance(arg, str):
        return terms.Symbol(arg)
    return arg
