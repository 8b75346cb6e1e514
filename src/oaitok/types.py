"""
Core types for tokenization.
"""

from collections.abc import Mapping

type Token = int
type TokenBytes = bytes
type Ranks = Mapping[TokenBytes, Token]
type Span = tuple[int, int]
