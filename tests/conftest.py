"""Shared fixtures: a small hand-built vocabulary in the cl100k style."""

import pytest

import oaitok
from oaitok.registry import EncodingSpec

# merge rules in rank order, on top of the 256 single bytes
TOY_MERGES = [
    (b"h", b"e"),  # 256 he
    (b"l", b"l"),  # 257 ll
    (b"he", b"ll"),  # 258 hell
    (b"hell", b"o"),  # 259 hello
    (b" ", b"w"),  # 260 " w"
    (b"o", b"r"),  # 261 or
    (b" w", b"or"),  # 262 " wor"
    (b"l", b"d"),  # 263 ld
    (b" wor", b"ld"),  # 264 " world"
    (b"a", b"b"),  # 265 ab
]

TOY_SPECIAL = {"<|endoftext|>": 266, "<|fim_prefix|>": 267}


@pytest.fixture
def toy_ranks() -> dict[bytes, int]:
    """Return ranks for all single bytes plus the toy merges."""
    ranks = {bytes([b]): b for b in range(256)}
    for left, right in TOY_MERGES:
        ranks[left + right] = len(ranks)
    return ranks


@pytest.fixture
def toy_special() -> dict[str, int]:
    return dict(TOY_SPECIAL)


@pytest.fixture
def toy_vocab(toy_ranks) -> oaitok.Vocabulary:
    return oaitok.Vocabulary(toy_ranks)


@pytest.fixture
def toy_tokenizer(toy_vocab, toy_special) -> oaitok.Tokenizer:
    """Return a fresh tokenizer (with an empty merge cache) over the toy vocabulary."""
    return oaitok.Tokenizer(
        "toy", toy_vocab, toy_special, oaitok.TokenPattern.CL100K.value
    )


@pytest.fixture
def toy_spec(toy_special) -> EncodingSpec:
    """Registry entry matching the toy vocabulary."""
    return EncodingSpec(
        name="toy",
        pattern=oaitok.TokenPattern.CL100K.value,
        special_tokens=dict(toy_special),
        n_vocab=268,
    )


@pytest.fixture
def use_toy_registry(monkeypatch, toy_spec):
    """Resolve every model name to the toy encoding."""
    monkeypatch.setattr("oaitok.factory.get_encoding_spec", lambda name: toy_spec)
    return toy_spec
