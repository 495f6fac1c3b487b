"""
Text analysis for indexing and querying.

The same analyzer runs at index time and at query time, so a term produced
from query text compares equal to the term produced from indexed text.
"""

import re

# Runs of letters and digits; everything else (punctuation, whitespace,
# underscores) is a boundary.
_TOKEN_RE = re.compile(r"[^\W_]+")


def tokenize(text: str) -> list[str]:
    """
    Split text into normalized index terms.

    Lower-cases (Unicode casefold), splits on non-alphanumeric boundaries
    and drops empty tokens. Deterministic, no side effects.

        >>> tokenize("Buy MILK, eggs & bread!")
        ['buy', 'milk', 'eggs', 'bread']
    """
    if not text:
        return []
    return _TOKEN_RE.findall(text.casefold())


class TextAnalyzer:
    """Analyzer object for callers that want to swap tokenization."""

    def tokenize(self, text: str) -> list[str]:
        return tokenize(text)


DEFAULT_ANALYZER = TextAnalyzer()
