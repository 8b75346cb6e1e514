"""
Immutable bidirectional mapping between token byte sequences and ranks.
"""

import logging
from collections.abc import Collection, Iterable, Mapping
from types import MappingProxyType

from .errors import LoadError
from .types import Token, TokenBytes

log = logging.getLogger(__name__)


class Vocabulary:
    """
    Rank table of a byte-level BPE model.

    Lower ranks merge first. Every single byte value must be present so that
    arbitrary input can always be represented. The table never changes after
    construction, which makes concurrent reads safe without locking.
    """

    __slots__ = ("_encoder", "_decoder", "_max_rank")

    def __init__(
        self,
        ranks: Mapping[TokenBytes, Token],
        *,
        require_contiguous: bool = True,
        reserved: Collection[Token] = (),
    ) -> None:
        """
        :param ranks: Mapping of token bytes to rank.
        :param require_contiguous: Require ranks to cover ``0..max_rank`` with no gaps.
        :param reserved: Ids held by other tokens (special tokens) that may
                         fill gaps in the rank space.
        :raises LoadError: If ranks are duplicated or negative, if a single
                           byte value is missing, or (when contiguity is
                           required) on a gap not covered by ``reserved``.
        """
        encoder: dict[TokenBytes, Token] = {}
        decoder: dict[Token, TokenBytes] = {}

        for tok_bytes, rank in ranks.items():
            if not tok_bytes:
                raise LoadError("empty token byte sequence")
            if rank < 0:
                raise LoadError(f"negative rank {rank} for token {tok_bytes!r}")
            if rank in decoder:
                raise LoadError(
                    f"duplicate rank {rank} for tokens {decoder[rank]!r} and {tok_bytes!r}"
                )
            encoder[tok_bytes] = rank
            decoder[rank] = tok_bytes

        if require_contiguous and decoder and max(decoder) != len(decoder) - 1:
            # p50k_base leaves 50256 free for <|endoftext|>
            held = frozenset(reserved)
            missing = next(
                (r for r in range(max(decoder)) if r not in decoder and r not in held),
                None,
            )
            if missing is not None:
                raise LoadError(
                    f"rank space is not contiguous (first missing rank: {missing})"
                )

        # merge initialisation relies on every byte being a token
        missing_bytes = [b for b in range(256) if bytes([b]) not in encoder]
        if missing_bytes:
            raise LoadError(
                f"vocabulary is missing {len(missing_bytes)} single byte tokens "
                f"(first: 0x{missing_bytes[0]:02x})"
            )

        self._encoder = MappingProxyType(encoder)
        self._decoder = MappingProxyType(decoder)
        self._max_rank = max(decoder)

        log.debug(f"built vocabulary with {len(encoder)} tokens")

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[tuple[TokenBytes, Token]],
        *,
        require_contiguous: bool = True,
        reserved: Collection[Token] = (),
    ) -> "Vocabulary":
        """Build a vocabulary from ``(bytes, rank)`` pairs, rejecting duplicate byte sequences."""
        ranks: dict[TokenBytes, Token] = {}
        for tok_bytes, rank in pairs:
            if tok_bytes in ranks:
                raise LoadError(
                    f"duplicate token {tok_bytes!r} (ranks {ranks[tok_bytes]} and {rank})"
                )
            ranks[tok_bytes] = rank
        return cls(ranks, require_contiguous=require_contiguous, reserved=reserved)

    def lookup_rank(self, tok_bytes: TokenBytes) -> Token | None:
        """Return the rank of ``tok_bytes`` or ``None`` if it is not a token."""
        return self._encoder.get(tok_bytes)

    def lookup_bytes(self, rank: Token) -> TokenBytes | None:
        """Return the byte sequence of ``rank`` or ``None`` if it is unknown."""
        return self._decoder.get(rank)

    @property
    def ranks(self) -> Mapping[TokenBytes, Token]:
        """Read-only ``bytes -> rank`` view."""
        return self._encoder

    @property
    def max_rank(self) -> Token:
        return self._max_rank

    def __len__(self) -> int:
        return len(self._encoder)

    def __contains__(self, tok_bytes: object) -> bool:
        return tok_bytes in self._encoder

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(size={len(self)}, max_rank={self._max_rank})"
