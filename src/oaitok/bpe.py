"""
Core Byte Pair Encoding (BPE) operations.
"""

import sys

from .errors import TokenizationError
from .types import Ranks, Span, Token, TokenBytes

# rank of a pair that is not in the vocabulary
_NO_RANK = sys.maxsize


def byte_pair_merge(piece: TokenBytes, ranks: Ranks) -> list[Span]:
    """
    Greedily merge adjacent parts of ``piece`` and return the final part spans.

    Each part starts as a single byte. On every round the adjacent pair whose
    concatenation has the lowest rank is merged (the leftmost pair wins ties);
    the loop stops when no adjacent concatenation is a vocabulary entry. Each
    round removes one part, so at most ``len(piece) - 1`` rounds run.

    Only the ranks of the two pairs next to a merge change, so those are the
    only ones recomputed.

    :param piece: Chunk bytes.
    :param ranks: ``bytes -> rank`` mapping.
    :return: ``(start, end)`` byte spans of the final parts, covering ``piece``.
    """
    n = len(piece)
    if n == 0:
        return []
    if n == 1:
        return [(0, 1)]

    get = ranks.get
    # part boundaries; part k is piece[starts[k]:starts[k + 1]]
    starts = list(range(n + 1))
    # pair_ranks[k] is the rank of part k merged with part k + 1
    pair_ranks = [get(piece[i : i + 2], _NO_RANK) for i in range(n - 1)]
    pair_ranks.append(_NO_RANK)

    def rank_of(k: int) -> int:
        if k + 2 < len(starts):
            return get(piece[starts[k] : starts[k + 2]], _NO_RANK)
        return _NO_RANK

    while True:
        min_rank = min(pair_ranks)
        if min_rank == _NO_RANK:
            break
        # index() returns the first occurrence: leftmost pair on ties
        k = pair_ranks.index(min_rank)

        del starts[k + 1]
        del pair_ranks[k + 1]
        pair_ranks[k] = rank_of(k)
        if k > 0:
            pair_ranks[k - 1] = rank_of(k - 1)

    return [(starts[k], starts[k + 1]) for k in range(len(starts) - 1)]


def byte_pair_encode(piece: TokenBytes, ranks: Ranks) -> list[Token]:
    """
    Encode one chunk into token ranks.

    A chunk that is itself a vocabulary entry maps straight to its rank,
    matching the reference OpenAI tokenizer; every other chunk goes through
    :func:`byte_pair_merge`.

    :raises TokenizationError: If a merged part has no rank, which means the
                               vocabulary is corrupt.
    """
    if not piece:
        return []

    whole = ranks.get(piece)
    if whole is not None:
        return [whole]

    try:
        return [ranks[piece[start:end]] for start, end in byte_pair_merge(piece, ranks)]
    except KeyError as e:
        raise TokenizationError(
            f"vocabulary has no rank for part {e.args[0]!r}, vocabulary is corrupt"
        ) from e


def byte_pair_split(piece: TokenBytes, ranks: Ranks) -> list[TokenBytes]:
    """Return the byte strings of the parts :func:`byte_pair_encode` produces."""
    if not piece:
        return []
    if piece in ranks:
        return [piece]
    return [piece[start:end] for start, end in byte_pair_merge(piece, ranks)]
