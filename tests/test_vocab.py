"""Tests for the immutable rank table."""

import pytest

from oaitok import LoadError, Vocabulary


def _byte_ranks() -> dict[bytes, int]:
    return {bytes([b]): b for b in range(256)}


def test_lookups(toy_vocab):
    """Ranks and byte sequences map both ways."""
    assert len(toy_vocab) == 266
    assert toy_vocab.lookup_rank(b"hello") == 259
    assert toy_vocab.lookup_bytes(259) == b"hello"
    assert toy_vocab.lookup_rank(b"zzz") is None
    assert toy_vocab.lookup_bytes(10_000) is None
    assert b" world" in toy_vocab
    assert toy_vocab.max_rank == 265


def test_ranks_view_is_read_only(toy_vocab):
    with pytest.raises(TypeError):
        toy_vocab.ranks[b"new"] = 1000


def test_input_mapping_is_copied():
    """Mutating the source mapping does not change the vocabulary."""
    ranks = _byte_ranks()
    vocab = Vocabulary(ranks)
    ranks[b"ab"] = 256
    assert b"ab" not in vocab


def test_duplicate_rank_rejected():
    ranks = _byte_ranks()
    ranks[b"ab"] = 5
    with pytest.raises(LoadError, match="duplicate rank 5"):
        Vocabulary(ranks)


def test_duplicate_bytes_rejected():
    pairs = list(_byte_ranks().items()) + [(b"a", 256)]
    with pytest.raises(LoadError, match="duplicate token"):
        Vocabulary.from_pairs(pairs)


def test_negative_rank_rejected():
    ranks = _byte_ranks()
    ranks[b"ab"] = -1
    with pytest.raises(LoadError, match="negative rank"):
        Vocabulary(ranks)


def test_empty_token_rejected():
    ranks = _byte_ranks()
    ranks[b""] = 256
    with pytest.raises(LoadError, match="empty"):
        Vocabulary(ranks)


def test_non_contiguous_ranks():
    """Gaps in the rank space fail unless explicitly permitted."""
    ranks = _byte_ranks()
    ranks[b"ab"] = 300
    with pytest.raises(LoadError, match="first missing rank: 256"):
        Vocabulary(ranks)

    vocab = Vocabulary(ranks, require_contiguous=False)
    assert vocab.max_rank == 300


def test_missing_single_byte_rejected():
    """Every byte value must be a token."""
    ranks = {bytes([b]): b for b in range(255)}
    with pytest.raises(LoadError, match="missing 1 single byte tokens"):
        Vocabulary(ranks)


def test_from_pairs_builds_vocabulary():
    vocab = Vocabulary.from_pairs([*_byte_ranks().items(), (b"ab", 256)])
    assert vocab.lookup_rank(b"ab") == 256


def test_reserved_ids_fill_gaps():
    """Ids held by special tokens may leave holes in the rank space."""
    ranks = _byte_ranks()
    ranks[b"ab"] = 257
    vocab = Vocabulary(ranks, reserved=[256])
    assert vocab.max_rank == 257
    assert vocab.lookup_bytes(256) is None

    with pytest.raises(LoadError, match="first missing rank: 256"):
        Vocabulary(ranks, reserved=[300])
