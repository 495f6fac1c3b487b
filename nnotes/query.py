"""
Query parsing for the inverted index.

Syntax (clauses separated by whitespace, OR-combined by default):

    milk                 term, matched in any default field
    "milk and eggs"      phrase, terms consecutive within one field
    buy-milk             a clause that analyzes to several terms is a phrase
    +milk                required clause
    -eggs                excluded clause
    title:groceries      clause restricted to one field

Clause text runs through the same analyzer as indexed text.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable

from .analyzers import tokenize

_CLAUSE_RE = re.compile(r'([+-]?)(?:([A-Za-z_]+):)?("[^"]*"?|\S+)')


class Occur(Enum):
    SHOULD = "should"
    MUST = "must"
    MUST_NOT = "must_not"


@dataclass(frozen=True)
class Clause:
    terms: tuple[str, ...]
    fields: tuple[str, ...]
    occur: Occur = Occur.SHOULD

    @property
    def is_phrase(self) -> bool:
        return len(self.terms) > 1


@dataclass(frozen=True)
class Query:
    clauses: tuple[Clause, ...]

    @property
    def positive(self) -> list[Clause]:
        """Clauses that can produce matches (SHOULD and MUST)."""
        return [c for c in self.clauses if c.occur is not Occur.MUST_NOT]

    @property
    def required(self) -> list[Clause]:
        return [c for c in self.clauses if c.occur is Occur.MUST]

    @property
    def excluded(self) -> list[Clause]:
        return [c for c in self.clauses if c.occur is Occur.MUST_NOT]


def parse_query(
    text: str,
    default_fields: Iterable[str],
    analyzer: Callable[[str], list[str]] = tokenize,
) -> Query:
    """
    Parse query text into clauses.

    Args:
        text: Raw query text
        default_fields: Fields searched by clauses without a field prefix;
            also the only field names accepted as prefixes
        analyzer: Tokenizer applied to each clause body

    Returns:
        Query; clauses that analyze to no terms are dropped, so a query of
        punctuation only has no clauses.
    """
    fields = tuple(default_fields)
    clauses = []
    for match in _CLAUSE_RE.finditer(text or ""):
        sign, field_name, body = match.groups()
        clause_fields = fields
        if field_name:
            if field_name.lower() in fields:
                clause_fields = (field_name.lower(),)
            else:
                # not a known field, so the colon is ordinary text
                body = f"{field_name}:{body}"
        if body.startswith('"'):
            body = body.strip('"')
        terms = tuple(analyzer(body))
        if not terms:
            continue
        occur = {"+": Occur.MUST, "-": Occur.MUST_NOT}.get(sign, Occur.SHOULD)
        clauses.append(Clause(terms=terms, fields=clause_fields, occur=occur))
    return Query(clauses=tuple(clauses))
