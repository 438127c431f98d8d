from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from ..errors import QuerySyntaxError


class Occur(str, Enum):
    SHOULD = "should"
    MUST = "must"
    MUST_NOT = "must_not"


@dataclass(frozen=True)
class Clause:
    occur: Occur
    terms: Tuple[str, ...]     # more than one term means a phrase

    @property
    def is_phrase(self) -> bool:
        return len(self.terms) > 1


@dataclass(frozen=True)
class ParsedQuery:
    text: str
    clauses: Tuple[Clause, ...]

    def positive_terms(self) -> List[str]:
        out: List[str] = []
        for c in self.clauses:
            if c.occur is not Occur.MUST_NOT:
                out.extend(c.terms)
        return out


class QueryParser:
    """
    Whitespace-analysed subset of the classic query syntax.

    ``term`` is optional, ``+term`` required, ``-term`` prohibited,
    ``"a phrase"`` matches consecutive tokens and ``\\`` escapes the next
    character.
    """

    def __init__(self, query: str):
        self.query = query
        self.pos = 0

    def _error(self, reason: str) -> QuerySyntaxError:
        return QuerySyntaxError(self.query, reason)

    def _peek(self) -> str | None:
        if self.pos < len(self.query):
            return self.query[self.pos]
        return None

    def _skip_space(self) -> None:
        while self.pos < len(self.query) and self.query[self.pos].isspace():
            self.pos += 1

    def parse(self) -> ParsedQuery:
        clauses: List[Clause] = []
        self._skip_space()
        while self._peek() is not None:
            clauses.append(self._parse_clause())
            self._skip_space()

        if not clauses:
            raise self._error("query is empty")
        if all(c.occur is Occur.MUST_NOT for c in clauses):
            raise self._error("query has only prohibited clauses")
        return ParsedQuery(text=self.query, clauses=tuple(clauses))

    def _parse_clause(self) -> Clause:
        occur = Occur.SHOULD
        ch = self._peek()
        if ch in ("+", "-"):
            occur = Occur.MUST if ch == "+" else Occur.MUST_NOT
            self.pos += 1
            nxt = self._peek()
            if nxt is None or nxt.isspace():
                raise self._error(f"operator {ch!r} at position {self.pos - 1} has no operand")

        if self._peek() == '"':
            return Clause(occur, self._parse_phrase())
        return Clause(occur, (self._parse_term(),))

    def _read_escaped(self) -> str:
        self.pos += 1  # backslash
        ch = self._peek()
        if ch is None:
            raise self._error("query ends with an escape character")
        self.pos += 1
        return ch

    def _parse_term(self) -> str:
        buf: List[str] = []
        while True:
            ch = self._peek()
            if ch is None or ch.isspace():
                break
            if ch == "\\":
                buf.append(self._read_escaped())
            elif ch == '"':
                raise self._error(f"unexpected quote at position {self.pos}")
            else:
                buf.append(ch)
                self.pos += 1
        return "".join(buf)

    def _parse_phrase(self) -> Tuple[str, ...]:
        start = self.pos
        self.pos += 1  # opening quote
        buf: List[str] = []
        while True:
            ch = self._peek()
            if ch is None:
                raise self._error(f"unbalanced quote at position {start}")
            if ch == "\\":
                buf.append(self._read_escaped())
            elif ch == '"':
                self.pos += 1
                break
            else:
                buf.append(ch)
                self.pos += 1
        terms = tuple("".join(buf).split())
        if not terms:
            raise self._error(f"empty phrase at position {start}")
        return terms


def parse_query(query: str) -> ParsedQuery:
    return QueryParser(query).parse()
