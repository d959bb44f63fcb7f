from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from smtbridge.pos import Pos


class Status(str, Enum):
    """Outcome of a check-sat command."""

    SAT = "sat"
    UNSAT = "unsat"
    UNKNOWN = "unknown"


class ResponseKind(str, Enum):
    SUCCESS = "success"
    EXIT = "exit"
    ERROR = "error"
    VERDICT = "verdict"
    UNSUPPORTED = "unsupported"
    STRING = "string"
    VALUE = "value"
    CONTINUED_EXECUTION = "continued-execution"


def quote(text: str) -> str:
    """SMT-LIB string literal: double quotes are escaped by doubling."""
    return '"' + text.replace('"', '""') + '"'


@dataclass(frozen=True)
class Response:
    """
    The result of one command, as observed by the caller.

    `value` holds the Status of a VERDICT and the text of STRING and VALUE
    responses; `message` and `pos` describe an ERROR.
    """

    kind: ResponseKind
    value: Optional[Union[Status, str]] = None
    message: Optional[str] = None
    pos: Optional[Pos] = None

    def is_ok(self) -> bool:
        return self.kind in (ResponseKind.SUCCESS, ResponseKind.EXIT)

    def is_error(self) -> bool:
        return self.kind == ResponseKind.ERROR

    def __str__(self) -> str:
        if self.kind in (ResponseKind.SUCCESS, ResponseKind.EXIT):
            return "success"
        if self.kind == ResponseKind.ERROR:
            return f"(error {quote(self.message or '')})"
        if self.kind == ResponseKind.VERDICT:
            return self.value.value
        if self.kind == ResponseKind.STRING:
            return quote(self.value)
        if self.kind == ResponseKind.VALUE:
            return self.value
        return self.kind.value


def success() -> Response:
    return Response(ResponseKind.SUCCESS)


def success_exit() -> Response:
    return Response(ResponseKind.EXIT)


def error(message: str, pos: Optional[Pos] = None) -> Response:
    return Response(ResponseKind.ERROR, message=message, pos=pos)


def verdict(status: Status) -> Response:
    return Response(ResponseKind.VERDICT, value=status)


def sat() -> Response:
    return verdict(Status.SAT)


def unsat() -> Response:
    return verdict(Status.UNSAT)


def unknown() -> Response:
    return verdict(Status.UNKNOWN)


def unsupported() -> Response:
    return Response(ResponseKind.UNSUPPORTED)


def string_literal(text: str) -> Response:
    return Response(ResponseKind.STRING, value=text)


def value(text: str) -> Response:
    return Response(ResponseKind.VALUE, value=text)


def continued_execution() -> Response:
    return Response(ResponseKind.CONTINUED_EXECUTION)
