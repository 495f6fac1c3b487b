"""Tests for text analysis and query parsing."""

from nnotes.analyzers import TextAnalyzer, tokenize
from nnotes.query import Occur, parse_query


FIELDS = ("title", "content")


class TestTokenize:

    def test_lowercases_and_splits(self):
        assert tokenize("Buy MILK, eggs & bread!") == ["buy", "milk", "eggs", "bread"]

    def test_splits_on_hyphen_and_underscore(self):
        assert tokenize("nonexistent-term snake_case") == ["nonexistent", "term", "snake", "case"]

    def test_keeps_digits(self):
        assert tokenize("Room 101b") == ["room", "101b"]

    def test_empty_and_punctuation_only(self):
        assert tokenize("") == []
        assert tokenize("  ...!?  ") == []

    def test_unicode_letters(self):
        assert tokenize("Café CRÈME") == ["café", "crème"]

    def test_analyzer_object_matches_function(self):
        text = "Hello, World"
        assert TextAnalyzer().tokenize(text) == tokenize(text)


class TestParseQuery:

    def test_bare_words_are_optional_terms(self):
        query = parse_query("milk eggs", FIELDS)
        assert [c.terms for c in query.clauses] == [("milk",), ("eggs",)]
        assert all(c.occur is Occur.SHOULD for c in query.clauses)
        assert all(c.fields == FIELDS for c in query.clauses)

    def test_quoted_phrase(self):
        query = parse_query('"Milk and Eggs"', FIELDS)
        assert len(query.clauses) == 1
        assert query.clauses[0].terms == ("milk", "and", "eggs")
        assert query.clauses[0].is_phrase

    def test_hyphenated_word_becomes_phrase(self):
        query = parse_query("nonexistent-term", FIELDS)
        assert query.clauses[0].terms == ("nonexistent", "term")
        assert query.clauses[0].is_phrase

    def test_required_and_excluded(self):
        query = parse_query("+milk -bread eggs", FIELDS)
        assert [c.terms[0] for c in query.required] == ["milk"]
        assert [c.terms[0] for c in query.excluded] == ["bread"]
        assert [c.terms[0] for c in query.positive] == ["milk", "eggs"]

    def test_field_prefix(self):
        query = parse_query("title:Groceries", FIELDS)
        assert query.clauses[0].fields == ("title",)
        assert query.clauses[0].terms == ("groceries",)

    def test_unknown_field_prefix_is_text(self):
        query = parse_query("foo:milk", FIELDS)
        assert query.clauses[0].fields == FIELDS
        assert query.clauses[0].terms == ("foo", "milk")

    def test_empty_clauses_dropped(self):
        assert parse_query("  - + ... ", FIELDS).clauses == ()
        assert parse_query("", FIELDS).clauses == ()

    def test_unterminated_quote(self):
        query = parse_query('"milk and', FIELDS)
        assert query.clauses[0].terms == ("milk", "and")
