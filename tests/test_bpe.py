"""Tests for the core merge loop."""

import pytest

from oaitok.bpe import byte_pair_encode, byte_pair_merge, byte_pair_split
from oaitok.errors import TokenizationError


# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def shifted_ranks() -> dict[bytes, int]:
    """``ab`` at rank 0 and every single byte ``b`` at rank ``b + 1``."""
    ranks = {b"ab": 0}
    ranks.update({bytes([b]): b + 1 for b in range(256)})
    return ranks


def _bytes_ranks(*merged: bytes) -> dict[bytes, int]:
    ranks = {bytes([b]): b for b in range(256)}
    for tok in merged:
        ranks[tok] = len(ranks)
    return ranks


# Merge order
# ---------------------------------------------------------------------------


def test_whole_piece_is_single_token(shifted_ranks):
    """A chunk that is a vocabulary entry encodes to its rank."""
    assert byte_pair_encode(b"ab", shifted_ranks) == [0]


def test_merged_pair_and_leftover_byte(shifted_ranks):
    """``abc`` merges ``ab`` and leaves ``c`` on its own."""
    assert byte_pair_encode(b"abc", shifted_ranks) == [0, ord("c") + 1]
    assert byte_pair_split(b"abc", shifted_ranks) == [b"ab", b"c"]


def test_lowest_rank_wins():
    """The pair with the lowest rank merges first, wherever it sits."""
    ranks = _bytes_ranks(b"bc", b"ab")
    assert byte_pair_split(b"abc", ranks) == [b"a", b"bc"]


def test_leftmost_pair_wins_ties():
    """Equal ranks resolve to the leftmost pair."""
    ranks = _bytes_ranks(b"aa")
    assert byte_pair_split(b"aaa", ranks) == [b"aa", b"a"]
    assert byte_pair_merge(b"aaa", ranks) == [(0, 2), (2, 3)]


def test_merges_continue_after_neighbours_change():
    """Pairs next to a merge are re-ranked against the merged part."""
    ranks = _bytes_ranks(b"aa")
    assert byte_pair_split(b"aaaa", ranks) == [b"aa", b"aa"]

    ranks = _bytes_ranks(b"aa", b"aaaa")
    assert byte_pair_split(b"aaaaa", ranks) == [b"aaaa", b"a"]


def test_toy_vocab_derivation(toy_ranks):
    """Multi-step merges reach the longest derivable token."""
    assert byte_pair_split(b" world!", toy_ranks) == [b" world", b"!"]
    assert byte_pair_encode(b"hellohello", toy_ranks) == [259, 259]


# Span invariants
# ---------------------------------------------------------------------------


def test_spans_cover_piece(toy_ranks):
    """Spans are contiguous, non-empty and cover the whole piece."""
    piece = "hello wörld, hold the line 🎉".encode()
    spans = byte_pair_merge(piece, toy_ranks)

    assert spans[0][0] == 0
    assert spans[-1][1] == len(piece)
    for (s0, e0), (s1, _) in zip(spans, spans[1:]):
        assert e0 == s1
        assert e0 > s0
    assert b"".join(piece[s:e] for s, e in spans) == piece


def test_split_reconstructs_piece(toy_ranks):
    """Concatenating the parts gives back the input bytes."""
    piece = bytes(range(256))
    assert b"".join(byte_pair_split(piece, toy_ranks)) == piece


def test_single_byte_piece(toy_ranks):
    assert byte_pair_merge(b"x", toy_ranks) == [(0, 1)]
    assert byte_pair_encode(b"x", toy_ranks) == [ord("x")]


def test_empty_piece(toy_ranks):
    """Empty input produces no tokens."""
    assert byte_pair_merge(b"", toy_ranks) == []
    assert byte_pair_encode(b"", toy_ranks) == []
    assert byte_pair_split(b"", toy_ranks) == []


# Errors
# ---------------------------------------------------------------------------


def test_missing_byte_rank_is_tokenization_error():
    """A part with no rank means the vocabulary is corrupt."""
    with pytest.raises(TokenizationError, match="corrupt"):
        byte_pair_encode(b"xz", {b"x": 0})
