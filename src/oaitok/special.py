"""Special token literals and their reserved ids."""

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import NamedTuple

import regex as re

from .errors import LoadError
from .types import Token
from .vocab import Vocabulary


class SpecialToken(str, Enum):
    """
    Special token literals used by the OpenAI encodings.

    Not every encoding recognises every literal; see
    :func:`oaitok.registry.special_tokens_for`.
    """

    ENDOFTEXT = "<|endoftext|>"
    FIM_PREFIX = "<|fim_prefix|>"
    FIM_MIDDLE = "<|fim_middle|>"
    FIM_SUFFIX = "<|fim_suffix|>"
    ENDOFPROMPT = "<|endofprompt|>"

    def __str__(self) -> str:
        return self.value


class SpecialTokenMatch(NamedTuple):
    """One occurrence of a special token literal in input text."""

    literal: str
    # string indices into the scanned text
    start: int
    end: int
    # utf-8 byte offset of ``start``
    offset: int


class SpecialTokenTable:
    """Immutable ``literal <-> id`` table with a precompiled scanner."""

    __slots__ = ("_tokens", "_literals", "_scanner")

    def __init__(
        self, tokens: Mapping[str, Token], vocab: Vocabulary | None = None
    ) -> None:
        """
        :param tokens: Mapping of special token literal to reserved id.
        :param vocab: When given, ids must not collide with its ranks.
        :raises LoadError: On empty literals, shared ids or rank collisions.
        """
        literals: dict[Token, str] = {}
        for seq, tok in tokens.items():
            if not seq:
                raise LoadError("special token literal must not be empty")
            if tok in literals:
                raise LoadError(
                    f"special tokens {literals[tok]!r} and {seq!r} share id {tok}"
                )
            if vocab is not None and vocab.lookup_bytes(tok) is not None:
                raise LoadError(
                    f"special token {seq!r} id {tok} overlaps with vocabulary rank"
                )
            literals[tok] = seq

        self._tokens = MappingProxyType(dict(tokens))
        self._literals = MappingProxyType(literals)
        self._scanner: re.Pattern[str] | None = None
        if tokens:
            # longest literal first so that a literal that prefixes another
            # never shadows it
            alternatives = sorted(tokens, key=len, reverse=True)
            self._scanner = re.compile("|".join(re.escape(seq) for seq in alternatives))

    @property
    def tokens(self) -> Mapping[str, Token]:
        return self._tokens

    @property
    def literals(self) -> frozenset[str]:
        return frozenset(self._tokens)

    def resolve(self, literal: str) -> Token | None:
        """Return the id reserved for ``literal``."""
        return self._tokens.get(literal)

    def lookup_literal(self, tok: Token) -> str | None:
        """Return the literal whose id is ``tok``."""
        return self._literals.get(tok)

    def find_all(self, text: str) -> list[SpecialTokenMatch]:
        """Return all non-overlapping literal occurrences in ``text``, left to right."""
        if self._scanner is None:
            return []

        matches: list[SpecialTokenMatch] = []
        # byte offsets are accumulated between matches so that text is encoded once
        byte_pos = 0
        char_pos = 0
        for m in self._scanner.finditer(text):
            byte_pos += len(text[char_pos : m.start()].encode("utf-8", errors="replace"))
            char_pos = m.start()
            matches.append(SpecialTokenMatch(m.group(0), m.start(), m.end(), byte_pos))
        return matches

    def contains_any(self, text: str) -> set[tuple[str, int]]:
        """Return ``(literal, byte offset)`` for each occurrence in ``text``."""
        return {(m.literal, m.offset) for m in self.find_all(text)}

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, literal: object) -> bool:
        return literal in self._tokens

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({dict(self._tokens)!r})"
