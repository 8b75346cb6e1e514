"""Regex pre-tokenization: split text into independently merged chunks."""

from collections.abc import Iterator
from enum import Enum

import regex as re

from .errors import PatternError


class TokenPattern(str, Enum):
    """
    Split expressions of the OpenAI encodings.

    Source: https://github.com/openai/tiktoken/blob/main/tiktoken_ext/openai_public.py
    """

    # r50k_base, p50k_base, p50k_edit (gpt2)
    R50K = (
        r"'(?:[sdmt]|ll|ve|re)|"
        r" ?\p{L}+|"
        r" ?\p{N}+|"
        r" ?[^\s\p{L}\p{N}]+|"
        r"\s+(?!\S)|"
        r"\s+"
    )

    # cl100k_base: digit runs are capped at three characters
    CL100K = (
        r"'(?i:[sdmt]|ll|ve|re)|"
        r"[^\r\n\p{L}\p{N}]?+\p{L}+|"
        r"\p{N}{1,3}|"
        r" ?[^\s\p{L}\p{N}]++[\r\n]*|"
        r"\s*[\r\n]|"
        r"\s+(?!\S)|"
        r"\s+"
    )

    @classmethod
    def get(cls, name: str) -> str:
        """Get patterns by name (case-insensitive)."""
        try:
            return cls[name.upper().replace("-", "_")].value
        except KeyError:
            raise PatternError(
                f"Unknown pattern: {name!r}. "
                f"Valid patterns: {', '.join(pat.name for pat in cls)}"
            )


def list_patterns() -> list[str]:
    """Return names of all available built-in split patterns."""
    return [pat.name for pat in TokenPattern]


class PatternSplitter:
    """
    Stateless, precompiled chunker.

    Chunks are the pattern's matches in order. Any text the pattern skips is
    yielded as its own chunk so that the chunks always concatenate back to
    the input.
    """

    __slots__ = ("pattern", "_compiled")

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        self._compiled = _compile_pattern(pattern)

    def split(self, text: str) -> Iterator[str]:
        """Lazily yield the chunks of ``text`` from left to right."""
        pos = 0
        for m in self._compiled.finditer(text):
            start, end = m.span()
            if start > pos:
                yield text[pos:start]
            # empty matches cover nothing
            if end > start:
                yield text[start:end]
            pos = max(pos, end)
        if pos < len(text):
            yield text[pos:]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.pattern!r})"


def _compile_pattern(pattern: str) -> re.Pattern:
    """
    Compile and validate a regex pattern.

    :param pattern: Regex pattern string to compile.
    :return: Compiled regex pattern.
    :raises PatternError: If pattern is invalid.
    """
    if not pattern:
        raise PatternError("split pattern must not be empty")
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError("invalid regex pattern", pattern=pattern, regex_err=e) from e
