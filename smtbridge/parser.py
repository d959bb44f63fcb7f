"""
Reader for SMT-LIB v2 scripts.

Lexing is done by pySMT's Tokenizer. Unlike pySMT's own parser, terms are
not built through a formula manager: they are kept as written, with their
source positions, so that n-ary operators, `distinct` and annotations reach
the backend translators untouched.
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass
from io import StringIO
from pathlib import Path
from typing import Iterator, Optional, Union

import pysmt.smtlib.commands as smtcmd
from pysmt.exceptions import UnknownSmtLibCommandError
from pysmt.smtlib.parser.parser import Tokenizer
from pysmt.smtlib.script import SmtLibCommand, SmtLibScript

from smtbridge.exceptions import SMTBridgeParseException
from smtbridge.pos import Pos, Source
from smtbridge.terms import (
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
    Identifier,
    Apply,
    Forall,
    Exists,
    Let,
    Attribute,
    Attributed,
    Declaration,
    Binding,
    BoolSort,
    FamilySort,
    SortParameter,
)

NUMERAL = re.compile(r"0|[1-9][0-9]*")
DECIMAL = re.compile(r"(0|[1-9][0-9]*)\.[0-9]+")
HEX = re.compile(r"#x[0-9a-fA-F]+")
BINARY = re.compile(r"#b[01]+")

# Words that cannot be used as plain symbols in terms
RESERVED = frozenset({"_", "!", "as", "let", "forall", "exists", "par", "NUMERAL"})


@dataclass(frozen=True)
class Token:
    text: str
    pos: Optional[Pos] = None
    # |...| symbols, text holds the content without the pipes
    quoted: bool = False

    def is_open(self) -> bool:
        return not self.quoted and self.text == "("

    def is_close(self) -> bool:
        return not self.quoted and self.text == ")"

    def is_word(self, word: str) -> bool:
        return not self.quoted and self.text == word


class TokenStream:
    """
    Positioned tokens on top of pySMT's Tokenizer.

    The tokenizer yields token values only, with quoted symbols already
    unquoted. The stream follows the source text in step with it: each token
    starts at the first character after the previous one that is neither
    layout nor comment, which also tells a quoted symbol from a plain one.
    """

    def __init__(self, source: Source):
        self.source = source
        # The tokenizer drops a trailing atom that no character follows
        self.tokenizer = Tokenizer(StringIO(source.text + "\n"))
        self.extra_queue: deque[Token] = deque()
        self.cursor = 0

    def add_extra_token(self, token: Token) -> None:
        self.extra_queue.appendleft(token)

    def consume_maybe(self) -> Optional[Token]:
        """The next token, or None at the end of the input."""
        if self.extra_queue:
            return self.extra_queue.popleft()
        while True:
            start = self._skip_layout(self.cursor)
            if start < len(self.source.text) and self.source.text[start] == "|":
                # the tokenizer cannot report malformed quoted symbols
                self._closing_pipe(start)
            try:
                raw = self.tokenizer.consume_maybe()
            except StopIteration:
                return None
            token = self._make_token(raw)
            # pySMT does not treat \r as a space
            if token is not None:
                return token

    def consume(self, msg: str) -> Token:
        token = self.consume_maybe()
        if token is None:
            raise SMTBridgeParseException(msg, self._here())
        return token

    def _make_token(self, raw: str) -> Optional[Token]:
        text = self.source.text
        start = self._skip_layout(self.cursor)
        quoted = start < len(text) and text[start] == "|"
        if quoted:
            end = self._closing_pipe(start) + 1
        elif raw in ("(", ")"):
            end = start + 1
        else:
            # atoms and string literals are yielded as written
            end = start + len(raw)
        self.cursor = min(end, len(text))
        if quoted:
            return Token(raw, Pos(start, self.cursor, self.source), True)
        value = raw.rstrip("\r")
        if not value:
            return None
        return Token(value, Pos(start, start + len(value), self.source))

    def _skip_layout(self, offset: int) -> int:
        text = self.source.text
        while offset < len(text):
            c = text[offset]
            if c in " \t\n":
                offset += 1
            elif c == ";":
                newline = text.find("\n", offset)
                offset = len(text) if newline < 0 else newline + 1
            else:
                break
        return offset

    def _closing_pipe(self, start: int) -> int:
        text = self.source.text
        i = start + 1
        while i < len(text) and text[i] != "|":
            if text[i] == "\\":
                if text[i + 1 : i + 2] not in ("|", "\\"):
                    raise SMTBridgeParseException(
                        "Unknown escaping in quoted symbol", Pos(i, i + 2, self.source)
                    )
                i += 1
            i += 1
        if i == len(text):
            raise SMTBridgeParseException(
                "Expected '|' to close the quoted symbol",
                Pos(start, i, self.source),
            )
        return i

    def _here(self) -> Pos:
        offset = self._skip_layout(self.cursor)
        return Pos(offset, offset, self.source)


class SmtLibParser:
    """
    Parse SMT-LIB text into SmtLibCommand records.

    Arguments of the commands are terms, sorts and symbols from
    smtbridge.terms, or plain ints for numerals that are not terms
    (push/pop levels, sort arities).
    """

    def __init__(self, source: Union[Source, str]):
        if isinstance(source, str):
            source = Source(source)
        self.source = source
        self.tokens = TokenStream(source)
        self.commands = {
            smtcmd.ASSERT: self._cmd_assert,
            smtcmd.CHECK_SAT: self._cmd_no_arguments,
            smtcmd.DECLARE_CONST: self._cmd_declare_const,
            smtcmd.DECLARE_FUN: self._cmd_declare_fun,
            smtcmd.DECLARE_SORT: self._cmd_declare_sort,
            smtcmd.DEFINE_FUN: self._cmd_define_fun,
            smtcmd.DEFINE_SORT: self._cmd_define_sort,
            smtcmd.ECHO: self._cmd_echo,
            smtcmd.EXIT: self._cmd_no_arguments,
            smtcmd.GET_ASSERTIONS: self._cmd_no_arguments,
            smtcmd.GET_ASSIGNMENT: self._cmd_no_arguments,
            smtcmd.GET_INFO: self._cmd_get_info,
            smtcmd.GET_MODEL: self._cmd_no_arguments,
            smtcmd.GET_OPTION: self._cmd_get_info,
            smtcmd.GET_PROOF: self._cmd_no_arguments,
            smtcmd.GET_UNSAT_CORE: self._cmd_no_arguments,
            smtcmd.GET_VALUE: self._cmd_get_value,
            smtcmd.POP: self._cmd_push,
            smtcmd.PUSH: self._cmd_push,
            smtcmd.RESET: self._cmd_no_arguments,
            smtcmd.RESET_ASSERTIONS: self._cmd_no_arguments,
            smtcmd.SET_INFO: self._cmd_set_info,
            smtcmd.SET_LOGIC: self._cmd_set_logic,
            smtcmd.SET_OPTION: self._cmd_set_info,
        }

    # Commands

    def get_command(self) -> Optional[SmtLibCommand]:
        """The next command, or None at the end of the input."""
        token = self.tokens.consume_maybe()
        if token is None:
            return None
        if not token.is_open():
            raise SMTBridgeParseException(
                f"Expected '(' to start a command, found '{token.text}'", token.pos
            )
        name = self.tokens.consume("Unexpected end of input, expected a command")
        if name.quoted or name.text not in self.commands:
            raise UnknownSmtLibCommandError(name.text)
        args = self.commands[name.text](name)
        self.consume_closing(name.text)
        return SmtLibCommand(name.text, args)

    def get_command_generator(self) -> Iterator[SmtLibCommand]:
        while True:
            cmd = self.get_command()
            if cmd is None:
                return
            yield cmd

    def get_script(self) -> SmtLibScript:
        res = SmtLibScript()
        for cmd in self.get_command_generator():
            res.add_command(cmd)
        return res

    def expect_end(self) -> None:
        token = self.tokens.consume_maybe()
        if token is not None:
            raise SMTBridgeParseException(
                f"Unexpected '{token.text}' after the end of the input", token.pos
            )

    def _cmd_no_arguments(self, current: Token) -> list:
        """(check-sat), (exit), (get-proof), ..."""
        return []

    def _cmd_set_logic(self, current: Token) -> list:
        """(set-logic <symbol>)"""
        return [self.parse_symbol(current.text)]

    def _cmd_set_info(self, current: Token) -> list:
        """(set-info <keyword> <value>?), (set-option <keyword> <value>)"""
        keyword = self.parse_keyword(current.text)
        token = self.tokens.consume(f"Unexpected end of input in {current.text}")
        if token.is_close():
            if current.text == smtcmd.SET_OPTION:
                raise SMTBridgeParseException(
                    f"Expected a value for {keyword.name}", token.pos
                )
            self.tokens.add_extra_token(token)
            return [keyword, None]
        return [keyword, self.attribute_value(token)]

    def _cmd_get_info(self, current: Token) -> list:
        """(get-info <keyword>), (get-option <keyword>)"""
        return [self.parse_keyword(current.text)]

    def _cmd_echo(self, current: Token) -> list:
        """(echo <string>)"""
        token = self.tokens.consume(f"Unexpected end of input in {current.text}")
        term = self.atom(token)
        if not isinstance(term, StringLiteral):
            raise SMTBridgeParseException("Expected a string literal", token.pos)
        return [term]

    def _cmd_assert(self, current: Token) -> list:
        """(assert <term>)"""
        return [self.get_term()]

    def _cmd_push(self, current: Token) -> list:
        """(push <numeral>?), (pop <numeral>?)"""
        token = self.tokens.consume(f"Unexpected end of input in {current.text}")
        if token.is_close():
            self.tokens.add_extra_token(token)
            return [1]
        return [self.numeral(token)]

    def _cmd_declare_fun(self, current: Token) -> list:
        """(declare-fun <symbol> (<sort>*) <sort>)"""
        name = self.parse_symbol(current.text)
        self.consume_opening(current.text)
        arg_sorts = []
        token = self.tokens.consume(f"Unexpected end of input in {current.text}")
        while not token.is_close():
            arg_sorts.append(self.sort(token))
            token = self.tokens.consume(f"Unexpected end of input in {current.text}")
        return [name, tuple(arg_sorts), self.get_sort()]

    def _cmd_declare_const(self, current: Token) -> list:
        """(declare-const <symbol> <sort>)"""
        return [self.parse_symbol(current.text), self.get_sort()]

    def _cmd_define_fun(self, current: Token) -> list:
        """(define-fun <symbol> ((<symbol> <sort>)*) <sort> <term>)"""
        name = self.parse_symbol(current.text)
        parameters = self.sorted_vars(current.text)
        return [name, parameters, self.get_sort(), self.get_term()]

    def _cmd_declare_sort(self, current: Token) -> list:
        """(declare-sort <symbol> <numeral>?)"""
        name = self.parse_symbol(current.text)
        token = self.tokens.consume(f"Unexpected end of input in {current.text}")
        if token.is_close():
            self.tokens.add_extra_token(token)
            return [name, 0]
        return [name, self.numeral(token)]

    def _cmd_define_sort(self, current: Token) -> list:
        """(define-sort <symbol> (<symbol>*) <sort>)"""
        name = self.parse_symbol(current.text)
        self.consume_opening(current.text)
        parameters = []
        token = self.tokens.consume(f"Unexpected end of input in {current.text}")
        while not token.is_close():
            parameters.append(self.symbol(token))
            token = self.tokens.consume(f"Unexpected end of input in {current.text}")
        names = frozenset(p.name for p in parameters)
        return [name, tuple(parameters), self.get_sort(names)]

    def _cmd_get_value(self, current: Token) -> list:
        """(get-value (<term>+))"""
        self.consume_opening(current.text)
        terms = []
        token = self.tokens.consume(f"Unexpected end of input in {current.text}")
        while not token.is_close():
            terms.append(self.term(token))
            token = self.tokens.consume(f"Unexpected end of input in {current.text}")
        if not terms:
            raise SMTBridgeParseException(
                "Expected at least one term in get-value", token.pos
            )
        return terms

    # Tokens

    def consume_opening(self, command: str) -> Token:
        token = self.tokens.consume(f"Unexpected end of input in {command}")
        if not token.is_open():
            raise SMTBridgeParseException(
                f"Expected '(' in {command}, found '{token.text}'", token.pos
            )
        return token

    def consume_closing(self, command: str) -> Token:
        token = self.tokens.consume(f"Unexpected end of input in {command}")
        if not token.is_close():
            raise SMTBridgeParseException(
                f"Expected ')' in {command}, found '{token.text}'", token.pos
            )
        return token

    def parse_symbol(self, command: str) -> Symbol:
        return self.symbol(self.tokens.consume(f"Unexpected end of input in {command}"))

    def parse_keyword(self, command: str) -> Keyword:
        token = self.tokens.consume(f"Unexpected end of input in {command}")
        term = self.atom(token) if not token.is_open() else None
        if not isinstance(term, Keyword):
            raise SMTBridgeParseException(
                f"Expected a keyword, found '{token.text}'", token.pos
            )
        return term

    def symbol(self, token: Token) -> Symbol:
        term = self.atom(token) if not (token.is_open() or token.is_close()) else None
        if not isinstance(term, Symbol):
            raise SMTBridgeParseException(
                f"Expected a symbol, found '{token.text}'", token.pos
            )
        return term

    def numeral(self, token: Token) -> int:
        if token.quoted or not NUMERAL.fullmatch(token.text):
            raise SMTBridgeParseException(
                f"Expected a numeral, found '{token.text}'", token.pos
            )
        return int(token.text)

    # Terms

    def get_term(self) -> Term:
        return self.term(self.tokens.consume("Unexpected end of input, expected a term"))

    def term(self, token: Token) -> Term:
        if token.is_close():
            raise SMTBridgeParseException("Unexpected ')'", token.pos)
        if not token.is_open():
            term = self.atom(token)
            if isinstance(term, Symbol) and term.name in RESERVED and not token.quoted:
                raise SMTBridgeParseException(
                    f"Unexpected reserved word '{term.name}'", token.pos
                )
            return term
        head = self.tokens.consume("Unexpected end of input in a term")
        if head.is_close():
            raise SMTBridgeParseException("Empty expression", self._span(token, head))
        if head.is_word("_"):
            return self.indexed_identifier(token)
        if head.is_word("as"):
            return self.qualified_identifier(token)
        if head.is_word("forall") or head.is_word("exists"):
            return self.quantifier(token, head)
        if head.is_word("let"):
            return self.let(token)
        if head.is_word("!"):
            return self.attributed(token)
        return self.application(token, head)

    def atom(self, token: Token) -> Term:
        text, pos = token.text, token.pos
        if token.quoted:
            return Symbol(text, pos=pos)
        if text.startswith('"'):
            return StringLiteral(text[1:-1].replace('""', '"'), pos=pos)
        if NUMERAL.fullmatch(text):
            return Numeral(int(text), pos=pos)
        if DECIMAL.fullmatch(text):
            return DecimalLiteral(text, pos=pos)
        if HEX.fullmatch(text):
            return HexLiteral(text[2:], pos=pos)
        if BINARY.fullmatch(text):
            return BinaryLiteral(text[2:], pos=pos)
        if text.startswith(":"):
            return Keyword(text, pos=pos)
        if text[0].isdigit() or text.startswith("#"):
            raise SMTBridgeParseException(f"Invalid token '{text}'", pos)
        return Symbol(text, pos=pos)

    def application(self, opening: Token, head: Token) -> Apply:
        if head.is_open():
            function = self.identifier(head)
        else:
            function = self.term(head)
            if not isinstance(function, Symbol):
                raise SMTBridgeParseException(
                    f"Expected a function symbol, found '{head.text}'", head.pos
                )
        args = []
        token = self.tokens.consume("Unexpected end of input in a term")
        while not token.is_close():
            args.append(self.term(token))
            token = self.tokens.consume("Unexpected end of input in a term")
        return Apply(function, tuple(args), pos=self._span(opening, token))

    def identifier(self, opening: Token) -> Identifier:
        """An identifier starting with '(': (_ f i...) or (as f S)."""
        head = self.tokens.consume("Unexpected end of input in an identifier")
        if head.is_word("_"):
            return self.indexed_identifier(opening)
        if head.is_word("as"):
            return self.qualified_identifier(opening)
        raise SMTBridgeParseException(
            f"Expected an identifier, found '{head.text}'", head.pos
        )

    def indexed_identifier(self, opening: Token) -> IndexedIdentifier:
        """(_ <symbol> <index>+), after the underscore."""
        symbol = self.parse_symbol("an indexed identifier")
        indices = []
        token = self.tokens.consume("Unexpected end of input in an indexed identifier")
        while not token.is_close():
            indices.append(self.index(token))
            token = self.tokens.consume(
                "Unexpected end of input in an indexed identifier"
            )
        if not indices:
            raise SMTBridgeParseException(
                "Expected at least one index", self._span(opening, token)
            )
        return IndexedIdentifier(
            symbol, tuple(indices), pos=self._span(opening, token)
        )

    def index(self, token: Token) -> Union[int, str]:
        if not token.quoted and NUMERAL.fullmatch(token.text):
            return int(token.text)
        return self.symbol(token).name

    def qualified_identifier(self, opening: Token) -> QualifiedIdentifier:
        """(as <identifier> <sort>), after `as`."""
        symbol = self.parse_symbol("a qualified identifier")
        sort = self.get_sort()
        closing = self.consume_closing("a qualified identifier")
        return QualifiedIdentifier(symbol, sort, pos=self._span(opening, closing))

    def sorted_vars(self, where: str) -> tuple[Declaration, ...]:
        """((<symbol> <sort>)*)"""
        self.consume_opening(where)
        res = []
        token = self.tokens.consume(f"Unexpected end of input in {where}")
        while not token.is_close():
            if not token.is_open():
                raise SMTBridgeParseException(
                    f"Expected '(' in {where}, found '{token.text}'", token.pos
                )
            parameter = self.parse_symbol(where)
            sort = self.get_sort()
            self.consume_closing(where)
            res.append(Declaration(parameter, sort))
            token = self.tokens.consume(f"Unexpected end of input in {where}")
        return tuple(res)

    def quantifier(self, opening: Token, head: Token) -> Term:
        parameters = self.sorted_vars(head.text)
        if not parameters:
            raise SMTBridgeParseException(
                f"Expected at least one variable in {head.text}", head.pos
            )
        body = self.get_term()
        closing = self.consume_closing(head.text)
        cls = Forall if head.text == "forall" else Exists
        return cls(parameters, body, pos=self._span(opening, closing))

    def let(self, opening: Token) -> Let:
        self.consume_opening("let")
        bindings = []
        token = self.tokens.consume("Unexpected end of input in let")
        while not token.is_close():
            if not token.is_open():
                raise SMTBridgeParseException(
                    f"Expected '(' in let, found '{token.text}'", token.pos
                )
            parameter = self.parse_symbol("let")
            bindings.append(Binding(parameter, self.get_term()))
            self.consume_closing("let")
            token = self.tokens.consume("Unexpected end of input in let")
        if not bindings:
            raise SMTBridgeParseException("Expected at least one binding", token.pos)
        body = self.get_term()
        closing = self.consume_closing("let")
        return Let(tuple(bindings), body, pos=self._span(opening, closing))

    def attributed(self, opening: Token) -> Attributed:
        """(! <term> <attribute>+)"""
        term = self.get_term()
        attributes = []
        token = self.tokens.consume("Unexpected end of input in an annotation")
        while not token.is_close():
            keyword = self.atom(token) if not token.is_open() else None
            if not isinstance(keyword, Keyword):
                raise SMTBridgeParseException(
                    f"Expected a keyword, found '{token.text}'", token.pos
                )
            token = self.tokens.consume("Unexpected end of input in an annotation")
            value = None
            if not (token.is_close() or self._is_keyword(token)):
                value = self.attribute_value(token)
                token = self.tokens.consume("Unexpected end of input in an annotation")
            attributes.append(Attribute(keyword, value))
        if not attributes:
            raise SMTBridgeParseException("Expected at least one attribute", token.pos)
        return Attributed(term, tuple(attributes), pos=self._span(opening, token))

    def attribute_value(self, token: Token) -> Term:
        """A constant, a symbol or an s-expression (read as a term)."""
        if token.is_open():
            return self.term(token)
        return self.atom(token)

    @staticmethod
    def _is_keyword(token: Token) -> bool:
        return not token.quoted and token.text.startswith(":")

    # Sorts

    def get_sort(self, parameters: frozenset[str] = frozenset()) -> Sort:
        token = self.tokens.consume("Unexpected end of input, expected a sort")
        return self.sort(token, parameters)

    def sort(self, token: Token, parameters: frozenset[str] = frozenset()) -> Sort:
        if not token.is_open():
            name = self.symbol(token)
            if name.name in parameters:
                return SortParameter(name.name, pos=token.pos)
            if name.name == "Bool" and not token.quoted:
                return BoolSort(pos=token.pos)
            return FamilySort(name.name, pos=token.pos)
        head = self.tokens.consume("Unexpected end of input in a sort")
        if head.is_word("_"):
            name = self.parse_symbol("an indexed sort")
            indices = []
            closing = self.tokens.consume("Unexpected end of input in an indexed sort")
            while not closing.is_close():
                indices.append(self.numeral(closing))
                closing = self.tokens.consume(
                    "Unexpected end of input in an indexed sort"
                )
            if not indices:
                raise SMTBridgeParseException(
                    "Expected at least one index", self._span(token, closing)
                )
            return FamilySort(
                name.name, indices=tuple(indices), pos=self._span(token, closing)
            )
        name = self.symbol(head)
        args = []
        closing = self.tokens.consume("Unexpected end of input in a sort")
        while not closing.is_close():
            args.append(self.sort(closing, parameters))
            closing = self.tokens.consume("Unexpected end of input in a sort")
        if not args:
            raise SMTBridgeParseException(
                f"Expected arguments for the sort {name.name}", self._span(token, closing)
            )
        return FamilySort(name.name, args=tuple(args), pos=self._span(token, closing))

    @staticmethod
    def _span(first: Token, last: Token) -> Optional[Pos]:
        if first.pos is None or last.pos is None:
            return None
        return Pos(first.pos.char_start, last.pos.char_end, first.pos.source)


# EOC SmtLibParser


def parse_script(text: str, location: Optional[str] = None) -> SmtLibScript:
    return SmtLibParser(Source(text, location)).get_script()


def parse_script_file(path: Path) -> SmtLibScript:
    return SmtLibParser(Source.from_file(path)).get_script()


def parse_term(text: str) -> Term:
    """Parse a single term, rejecting trailing input."""
    parser = SmtLibParser(text)
    term = parser.get_term()
    parser.expect_end()
    return term


def parse_sort(text: str) -> Sort:
    parser = SmtLibParser(text)
    sort = parser.get_sort()
    parser.expect_end()
    return sort
