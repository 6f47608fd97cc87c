"""Tests for formula tokenizing, validation and canonical form."""

from __future__ import annotations

import pytest

from cellcalc.formulas import (
    Formula,
    FormulaFormatError,
    TokenKind,
    format_number,
    is_variable,
    tokenize,
)


# ────────────────────────────────────────────────────────────────
# Tokenizer
# ────────────────────────────────────────────────────────────────


class TestTokenize:
    def test_token_kinds_in_order(self) -> None:
        kinds = [t.kind for t in tokenize("(a1 + 2) * 3")]
        assert kinds == [
            TokenKind.lparen,
            TokenKind.variable,
            TokenKind.operator,
            TokenKind.number,
            TokenKind.rparen,
            TokenKind.operator,
            TokenKind.number,
        ]

    def test_whitespace_discarded(self) -> None:
        assert [t.text for t in tokenize(" 1\t+\n2 ")] == ["1", "+", "2"]

    def test_variables_upper_cased(self) -> None:
        assert tokenize("xy12")[0].text == "XY12"

    def test_numbers_rendered_canonically(self) -> None:
        texts = [t.text for t in tokenize("0001 + 2.50 + 4E3 + .5 + 3.")]
        assert texts == ["1", "+", "2.5", "+", "4000", "+", "0.5", "+", "3"]

    def test_positions_recorded(self) -> None:
        assert [t.position for t in tokenize("1 + a2")] == [0, 2, 4]

    def test_number_value(self) -> None:
        assert tokenize("2.5e-1")[0].value == 0.25


class TestSyntaxRules:
    @pytest.mark.parametrize("text", ["", "   ", "\t\n"])
    def test_empty_formula(self, text: str) -> None:
        with pytest.raises(FormulaFormatError, match="at least one valid token"):
            tokenize(text)

    @pytest.mark.parametrize("text", ["2 $ 3", "x", "a1b", "1e", "A1 + _2", "5 % 2"])
    def test_invalid_token(self, text: str) -> None:
        with pytest.raises(FormulaFormatError, match="Invalid token"):
            tokenize(text)

    def test_invalid_token_reports_text_and_position(self) -> None:
        with pytest.raises(FormulaFormatError) as exc_info:
            tokenize("2 + $x")
        assert "'$x'" in exc_info.value.reason
        assert exc_info.value.position == 4

    @pytest.mark.parametrize("text", ["(1+2))", "1)", ")1("])
    def test_too_many_closing_parens(self, text: str) -> None:
        with pytest.raises(FormulaFormatError, match="too many closing"):
            tokenize(text)

    @pytest.mark.parametrize("text", ["((1+2)", "(1", "((a1)"])
    def test_too_many_opening_parens(self, text: str) -> None:
        with pytest.raises(FormulaFormatError, match="too many opening"):
            tokenize(text)

    @pytest.mark.parametrize("text", ["+1", "*2", "-3", "/a1"])
    def test_first_token_rule(self, text: str) -> None:
        with pytest.raises(FormulaFormatError, match="first token"):
            tokenize(text)

    @pytest.mark.parametrize("text", ["1+", "a1*", "(1+2)-"])
    def test_last_token_rule(self, text: str) -> None:
        with pytest.raises(FormulaFormatError, match="last token"):
            tokenize(text)

    @pytest.mark.parametrize(
        "text",
        ["1 2", "a1 b1", "(1)(2)", "1 (2)", "2x1", "1 + * 2", "( * 1)", "()", "(+1)"],
    )
    def test_following_rule(self, text: str) -> None:
        with pytest.raises(FormulaFormatError, match="Invalid token sequence"):
            tokenize(text)

    def test_following_rule_names_both_tokens(self) -> None:
        with pytest.raises(FormulaFormatError) as exc_info:
            tokenize("a1 7")
        assert "'A1' cannot be followed by '7'" in exc_info.value.reason

    @pytest.mark.parametrize("text", ["1e400", "2 * 1e309", "(9.9e999 + a1)"])
    def test_number_out_of_range(self, text: str) -> None:
        with pytest.raises(FormulaFormatError, match="out of range"):
            Formula(text)

    def test_number_out_of_range_reports_literal(self) -> None:
        with pytest.raises(FormulaFormatError) as exc_info:
            tokenize("1 + 1e400")
        assert exc_info.value.reason == "Number literal '1e400' is out of range."
        assert exc_info.value.position == 4

    @pytest.mark.parametrize("text", ["1e308 * 10", "1.7976931348623157e308", "1e-400"])
    def test_large_and_tiny_literals_keep_valid_canonical_form(self, text: str) -> None:
        canonical = Formula(text).canonical
        assert Formula(canonical).canonical == canonical

    def test_error_message_prefix(self) -> None:
        with pytest.raises(FormulaFormatError) as exc_info:
            tokenize("1+")
        assert str(exc_info.value).startswith("Formula format error:")

    def test_format_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            Formula("(")

    @pytest.mark.parametrize(
        "text", ["1", "a1", "(1)", "((a1))", "1+2*3-4/5", "(x1 + y22) * 3.5e2", "1e+3"]
    )
    def test_valid_formulas(self, text: str) -> None:
        assert tokenize(text)


# ────────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────────


class TestHelpers:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (4000.0, "4000"),
            (22.0, "22"),
            (2.5, "2.5"),
            (0.1, "0.1"),
            (-0.0, "0"),
            (1e20, "1e+20"),
            (1.5e-7, "1.5e-07"),
        ],
    )
    def test_format_number(self, value: float, expected: str) -> None:
        assert format_number(value) == expected

    @pytest.mark.parametrize("name", ["A1", "a1", "xyz123", "Ab0"])
    def test_is_variable(self, name: str) -> None:
        assert is_variable(name)

    @pytest.mark.parametrize("name", ["", "A", "1", "1A", "A1B", "A_1", "A1\n", " A1", "A 1"])
    def test_is_not_variable(self, name: str) -> None:
        assert not is_variable(name)


# ────────────────────────────────────────────────────────────────
# Formula
# ────────────────────────────────────────────────────────────────


class TestFormula:
    def test_canonical_form(self) -> None:
        f = Formula("ga22*a1 + 4E3- 22.0 / Ga22")
        assert f.canonical == "GA22*A1+4000-22/GA22"
        assert str(f) == "GA22*A1+4000-22/GA22"

    @pytest.mark.parametrize(
        "text",
        [
            "ga22*a1 + 4E3- 22.0 / Ga22",
            "0001 + 000.100",
            "1e20 * x9",
            "( ( 1 ) )",
            "2.5E-3/b2",
            "123456789012345678",
        ],
    )
    def test_canonical_idempotent(self, text: str) -> None:
        once = str(Formula(text))
        assert str(Formula(once)) == once

    def test_variables_deduplicated(self) -> None:
        assert Formula("x1+X1").variables() == {"X1"}

    def test_variables_multiple(self) -> None:
        assert Formula("a1 * (b2 + a1) / c3").variables() == {"A1", "B2", "C3"}

    def test_variables_none(self) -> None:
        assert Formula("1 + 2").variables() == frozenset()

    def test_equality_by_canonical_form(self) -> None:
        assert Formula("x1 + 2.0") == Formula("X1+2")
        assert Formula("x1 + 2.0").equals(Formula("X1+2"))

    def test_inequality(self) -> None:
        assert Formula("1+2") != Formula("2+1")
        assert not Formula("1+2").equals(Formula("2+1"))

    def test_not_equal_to_other_types(self) -> None:
        f = Formula("1")
        assert f != "1"
        assert not f.equals("1")
        assert not f.equals(None)

    def test_hash_follows_canonical_form(self) -> None:
        assert hash(Formula("a1*2")) == hash(Formula("A1 * 2.0"))
        assert len({Formula("a1*2"), Formula("A1 * 2.0")}) == 1

    def test_immutable(self) -> None:
        f = Formula("1")
        with pytest.raises(AttributeError):
            f._canonical = "2"  # type: ignore[misc]

    def test_repr(self) -> None:
        assert repr(Formula("a1 + 1")) == "Formula('A1+1')"

    def test_tokens_are_canonical(self) -> None:
        assert [t.text for t in Formula("a1 + 01").tokens] == ["A1", "+", "1"]
