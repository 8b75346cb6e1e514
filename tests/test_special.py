"""Tests for special token tables and the per-call strategies."""

import pytest

from oaitok import (
    AllowAllStrategy,
    AllowCustomStrategy,
    AllowNoneRaiseStrategy,
    AllowNoneStrategy,
    DisallowedSpecialTokenError,
    LoadError,
    SpecialToken,
    SpecialTokenError,
    SpecialTokenTable,
    StrategyError,
    get_strategy,
    list_strategies,
)
from oaitok.strategy import as_strategy


# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def table(toy_special) -> SpecialTokenTable:
    return SpecialTokenTable(toy_special)


# SpecialTokenTable
# ---------------------------------------------------------------------------


def test_resolve_and_lookup(table):
    assert table.resolve("<|endoftext|>") == 266
    assert table.resolve("<|nope|>") is None
    assert table.lookup_literal(267) == "<|fim_prefix|>"
    assert table.lookup_literal(0) is None
    assert "<|endoftext|>" in table
    assert len(table) == 2


def test_find_all_reports_positions(table):
    """Matches come back left to right with string and byte positions."""
    text = "a<|endoftext|>b<|fim_prefix|>"
    matches = table.find_all(text)

    assert [m.literal for m in matches] == ["<|endoftext|>", "<|fim_prefix|>"]
    assert (matches[0].start, matches[0].end, matches[0].offset) == (1, 14, 1)
    assert text[matches[1].start : matches[1].end] == "<|fim_prefix|>"


def test_offset_is_utf8_bytes(table):
    """Offsets count UTF-8 bytes, not characters."""
    (m,) = table.find_all("é🎉<|endoftext|>")
    assert m.start == 2
    assert m.offset == 6


def test_contains_any(table):
    assert table.contains_any("no literals here") == set()
    assert table.contains_any("x<|endoftext|>") == {("<|endoftext|>", 1)}


def test_longest_literal_wins():
    """A literal that prefixes another never shadows it."""
    table = SpecialTokenTable({"<|a|>": 1, "<|a|>x": 2})
    assert [m.literal for m in table.find_all("<|a|>x <|a|>")] == ["<|a|>x", "<|a|>"]


def test_shared_id_rejected():
    with pytest.raises(LoadError, match="share id"):
        SpecialTokenTable({"<|a|>": 1, "<|b|>": 1})


def test_rank_collision_rejected(toy_vocab):
    with pytest.raises(LoadError, match="overlaps"):
        SpecialTokenTable({"<|endoftext|>": 5}, toy_vocab)


def test_empty_literal_rejected():
    with pytest.raises(LoadError):
        SpecialTokenTable({"": 1})


def test_empty_table_finds_nothing():
    assert SpecialTokenTable({}).find_all("<|endoftext|>") == []


def test_special_token_enum():
    assert str(SpecialToken.ENDOFTEXT) == "<|endoftext|>"
    assert SpecialToken.FIM_MIDDLE == "<|fim_middle|>"


# Strategies
# ---------------------------------------------------------------------------


def test_list_strategies():
    assert list_strategies() == ["all", "none", "none-raise", "custom"]


def test_allow_all(table):
    text = "<|endoftext|> and <|fim_prefix|>"
    assert len(AllowAllStrategy().handle(text, table)) == 2


def test_allow_none_ignores_literals(table):
    assert AllowNoneStrategy().handle("<|endoftext|>", table) == []


def test_allow_none_raise(table):
    """The strict strategy reports the first literal and its byte offset."""
    assert AllowNoneRaiseStrategy().handle("plain text", table) == []

    with pytest.raises(DisallowedSpecialTokenError) as exc_info:
        AllowNoneRaiseStrategy().handle("héllo <|fim_prefix|> <|endoftext|>", table)

    assert exc_info.value.literal == "<|fim_prefix|>"
    assert exc_info.value.offset == 7
    assert exc_info.value.found_tokens == {"<|fim_prefix|>", "<|endoftext|>"}


def test_allow_custom(table):
    """Allowed literals are returned, other literals raise."""
    strategy = AllowCustomStrategy({"<|endoftext|>"})
    (m,) = strategy.handle("x <|endoftext|>", table)
    assert m.literal == "<|endoftext|>"

    with pytest.raises(DisallowedSpecialTokenError) as exc_info:
        strategy.handle("<|endoftext|><|fim_prefix|>", table)
    assert exc_info.value.literal == "<|fim_prefix|>"
    assert exc_info.value.offset == 13


def test_allow_custom_unknown_literal(table):
    """Allowing a literal the encoding does not know is an error."""
    strategy = AllowCustomStrategy({"<|endofprompt|>"})
    with pytest.raises(SpecialTokenError, match="not recognised") as exc_info:
        strategy.handle("text", table)
    assert not isinstance(exc_info.value, DisallowedSpecialTokenError)


def test_get_strategy():
    assert isinstance(get_strategy("all"), AllowAllStrategy)
    assert isinstance(get_strategy("none"), AllowNoneStrategy)
    assert isinstance(get_strategy(), AllowNoneRaiseStrategy)
    custom = get_strategy("custom", allowed_subset=["<|endoftext|>"])
    assert custom.allowed_subset == frozenset({"<|endoftext|>"})


def test_get_strategy_errors():
    with pytest.raises(StrategyError, match="unknown strategy"):
        get_strategy("sometimes")
    with pytest.raises(StrategyError, match="allowed_subset"):
        get_strategy("custom")


def test_as_strategy():
    """``allowed_special`` arguments normalise to strategies."""
    assert isinstance(as_strategy(None), AllowNoneRaiseStrategy)
    assert isinstance(as_strategy("all"), AllowAllStrategy)
    assert isinstance(as_strategy({"<|endoftext|>"}), AllowCustomStrategy)
    assert isinstance(as_strategy(frozenset()), AllowCustomStrategy)

    strategy = AllowAllStrategy()
    assert as_strategy(strategy) is strategy

    with pytest.raises(StrategyError):
        as_strategy("custom")
