"""
Encoder/decoder facade tying vocabulary, special tokens, splitting and merging together.
"""

import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from itertools import accumulate
from typing import Final

from . import config
from .bpe import byte_pair_encode
from .cache import CacheInfo, MergeCache
from .errors import InvalidUtf8Error, VocabularyError
from .parallel import (
    ParallelMode,
    ParallelStrategy,
    map_grouped,
    resolve_workers,
)
from .pattern import PatternSplitter
from .special import SpecialToken, SpecialTokenMatch, SpecialTokenTable
from .strategy import AllowedSpecial, AllowNoneStrategy, SpecialTokenStrategy, as_strategy
from .types import Token, TokenBytes
from .vocab import Vocabulary

log = logging.getLogger(__name__)

# below this many characters a batch is encoded serially; thread start-up
# costs more than it saves
_AUTO_SERIAL_CHARS: Final[int] = 2_000_000
# many short documents regress in threaded batch mode
_AUTO_SHORT_DOC_CHARS: Final[int] = 40_000

_ORDINARY: Final[SpecialTokenStrategy] = AllowNoneStrategy()

# ordinary text chunks and special ids, in input order
type Part = str | Token


def _replace_surrogates(text: str) -> str:
    """Return ``text`` with lone surrogates replaced by U+FFFD; valid pairs are joined."""
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return text.encode("utf-16", "surrogatepass").decode("utf-16", "replace")
    return text


class Tokenizer:
    """
    Byte-level BPE tokenizer for one encoding.

    An instance owns an immutable :class:`Vocabulary`, an immutable
    :class:`SpecialTokenTable`, a compiled :class:`PatternSplitter` and a
    thread-safe :class:`MergeCache`. It can be shared freely between threads.

    .. code-block:: python

        tok = oaitok.load("gpt-4")
        ids = tok.encode("hello world")
        assert tok.decode(ids) == "hello world"
    """

    def __init__(
        self,
        name: str,
        vocab: Vocabulary,
        special: SpecialTokenTable | Mapping[str, Token],
        pattern: str,
        *,
        cache: MergeCache | None = None,
    ) -> None:
        """
        :param name: Encoding name, e.g. ``"cl100k_base"``.
        :param vocab: Rank table.
        :param special: Special token table or ``literal -> id`` mapping.
        :param pattern: Split expression used for pre-tokenization.
        :param cache: Merge cache; a fresh one is created when omitted.
        :raises LoadError: If special token ids collide with vocabulary ranks.
        :raises PatternError: If ``pattern`` does not compile.
        """
        tokens = special.tokens if isinstance(special, SpecialTokenTable) else special
        self._name = name
        self._vocab = vocab
        # rebuilt against vocab so that collisions are always checked
        self._special = SpecialTokenTable(tokens, vocab)
        self._splitter = PatternSplitter(pattern)
        self._cache = (
            cache if cache is not None else MergeCache(max_entries=config.get_cache_size())
        )
        self._ranks = vocab.ranks

        log.debug(
            f"tokenizer {name!r} ready: {len(vocab)} tokens, {len(self._special)} special tokens"
        )

    # properties
    # ===================================================================================

    @property
    def name(self) -> str:
        return self._name

    @property
    def pattern(self) -> str:
        return self._splitter.pattern

    @property
    def vocab(self) -> Vocabulary:
        return self._vocab

    @property
    def special(self) -> SpecialTokenTable:
        return self._special

    @property
    def special_tokens(self) -> dict[str, Token]:
        """Return a copy of the ``literal -> id`` special token mapping."""
        return dict(self._special.tokens)

    @property
    def max_token_value(self) -> Token:
        return max([self._vocab.max_rank, *self._special.tokens.values()])

    @property
    def n_vocab(self) -> int:
        """Size of the id space, ordinary and special."""
        return self.max_token_value + 1

    @property
    def eot_token(self) -> Token | None:
        """Id of ``<|endoftext|>`` or ``None`` if the encoding lacks it."""
        return self._special.resolve(SpecialToken.ENDOFTEXT.value)

    def cache_info(self) -> CacheInfo:
        return self._cache.info()

    def clear_cache(self) -> None:
        self._cache.clear()

    # encoding
    # ===================================================================================

    def encode(
        self,
        text: str,
        allowed_special: AllowedSpecial = None,
        num_workers: int | None = 1,
    ) -> list[Token]:
        """
        Encode text into a sequence of tokens.

        Special token literals are only honoured when ``allowed_special``
        permits them. By default any literal in ``text`` is an error; pass
        ``"all"``, a set of literals, or a :class:`SpecialTokenStrategy` to
        change that.

        :param text: Text to encode.
        :param allowed_special: Special token policy, see :func:`as_strategy`.
        :param num_workers: Worker threads for chunk merging; ``None`` uses one per CPU.
        :returns: Encoded token sequence.
        :raises DisallowedSpecialTokenError: If ``text`` contains a literal that is not allowed.
        """
        parts = list(self._iter_parts(text, as_strategy(allowed_special)))
        workers = resolve_workers(num_workers)

        tokens: list[Token] = []
        if workers == 1:
            for part in parts:
                if isinstance(part, str):
                    tokens.extend(self._encode_chunk(part))
                else:
                    tokens.append(part)
            return tokens

        # merge all ordinary chunks in parallel then splice them back in order
        chunks = [part for part in parts if isinstance(part, str)]
        encoded = iter(map_grouped(self._encode_chunk, chunks, workers))
        for part in parts:
            if isinstance(part, str):
                tokens.extend(next(encoded))
            else:
                tokens.append(part)
        return tokens

    def encode_ordinary(self, text: str, num_workers: int | None = 1) -> list[Token]:
        """Encode text treating special token literals as ordinary text."""
        return self.encode(text, _ORDINARY, num_workers)

    def count_tokens(self, text: str, allowed_special: AllowedSpecial = None) -> int:
        """
        Return ``len(self.encode(text, allowed_special))`` without building the token list.

        :raises DisallowedSpecialTokenError: If ``text`` contains a literal that is not allowed.
        """
        count = 0
        for part in self._iter_parts(text, as_strategy(allowed_special)):
            if isinstance(part, str):
                count += len(self._encode_chunk(part))
            else:
                count += 1
        return count

    def encode_batch(
        self,
        texts: Sequence[str],
        allowed_special: AllowedSpecial = None,
        num_workers: int | None = None,
        parallel_mode: ParallelStrategy | ParallelMode = ParallelMode.AUTO,
    ) -> list[list[Token]]:
        """
        Encode many texts using the requested parallelization mode.

        ``off`` encodes texts serially. ``chunk`` encodes each text using
        chunk-level parallelism. ``batch`` runs multiple full-text encodes in
        parallel. ``auto`` chooses chunk mode for a single input text, serial
        mode for small batches and batch mode otherwise.

        :param texts: Text inputs to encode.
        :param allowed_special: Special token policy applied to every text.
        :param num_workers: Worker count for chunk or batch parallelism.
        :param parallel_mode: Parallelization policy.
        :returns: Encoded token sequences in input order.
        """
        strategy = as_strategy(allowed_special)
        return self._run_batch(
            lambda text, workers: self.encode(text, strategy, workers),
            texts,
            num_workers,
            parallel_mode,
        )

    def count_tokens_batch(
        self,
        texts: Sequence[str],
        allowed_special: AllowedSpecial = None,
        num_workers: int | None = None,
        parallel_mode: ParallelStrategy | ParallelMode = ParallelMode.AUTO,
    ) -> list[int]:
        """Count tokens of many texts; see :meth:`encode_batch` for the modes."""
        strategy = as_strategy(allowed_special)

        def count(text: str, workers: int) -> int:
            # counting streams chunks, so chunk mode has nothing to spread out
            return self.count_tokens(text, strategy)

        return self._run_batch(count, texts, num_workers, parallel_mode)

    def truncate(
        self, text: str, max_tokens: int, allowed_special: AllowedSpecial = None
    ) -> str:
        """
        Return a prefix of ``text`` that encodes to at most ``max_tokens`` tokens.

        The cut falls on a token boundary inside the chunk that crosses the
        budget and never splits a UTF-8 character. If re-encoding that cut
        would exceed the budget, the cut moves back to the preceding chunk
        boundary. Lone surrogates are replaced with U+FFFD.
        """
        if max_tokens < 0:
            raise ValueError(f"max_tokens must not be negative, got {max_tokens}")

        strategy = as_strategy(allowed_special)
        text = _replace_surrogates(text)

        pieces: list[str] = []
        chunk_tokens: tuple[Token, ...] = ()
        used = 0
        for part in self._iter_parts(text, strategy):
            if isinstance(part, str):
                chunk_tokens = self._encode_chunk(part)
                piece, count = part, len(chunk_tokens)
            else:
                chunk_tokens = ()
                piece, count = self._special.lookup_literal(part), 1
            if used + count > max_tokens:
                break
            pieces.append(piece)
            used += count
        else:
            return text

        # tokens of the crossing chunk that still fit; an incomplete trailing
        # character is dropped
        rest = max_tokens - used
        if rest and chunk_tokens:
            partial = self.decode_bytes(chunk_tokens[:rest]).decode("utf-8", errors="ignore")
            candidate = "".join(pieces) + partial
            # re-splitting a shortened chunk can change its merges
            if self.count_tokens(candidate, strategy) <= max_tokens:
                return candidate

        # step back one chunk boundary at a time
        for end in range(len(pieces), 0, -1):
            candidate = "".join(pieces[:end])
            if self.count_tokens(candidate, strategy) <= max_tokens:
                return candidate
        return ""

    # decoding
    # ===================================================================================

    def decode_single_token_bytes(self, token: Token) -> TokenBytes:
        """
        Return the bytes of one token.

        :raises VocabularyError: If ``token`` is neither a rank nor a special id.
        """
        tok_bytes = self._vocab.lookup_bytes(token)
        if tok_bytes is not None:
            return tok_bytes
        literal = self._special.lookup_literal(token)
        if literal is not None:
            return literal.encode("utf-8")
        raise VocabularyError("token not found in vocabulary", invalid_tok=token)

    def decode_bytes(self, tokens: Sequence[Token]) -> bytes:
        """Concatenate the bytes of ``tokens``."""
        return b"".join(self.decode_single_token_bytes(tok) for tok in tokens)

    def decode(self, tokens: Sequence[Token], errors: str = "strict") -> str:
        """
        Decode a sequence of tokens back into text.

        Token sequences cut in the middle of a multi-byte character do not
        form valid UTF-8. By default that is an error; pass
        ``errors="replace"`` to substitute U+FFFD instead.

        :param errors: ``bytes.decode`` error handler.
        :raises VocabularyError: If any token is unknown.
        :raises InvalidUtf8Error: If ``errors`` is ``"strict"`` and the bytes are not valid UTF-8.
        """
        data = self.decode_bytes(tokens)
        if errors != "strict":
            return data.decode("utf-8", errors=errors)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidUtf8Error(
                position=e.start,
                token_index=self._token_index_at(tokens, e.start),
                reason=e.reason,
            ) from e

    def decode_batch(
        self,
        token_batch: Sequence[Sequence[Token]],
        errors: str = "strict",
        num_workers: int | None = 1,
    ) -> list[str]:
        """Decode many token sequences, preserving order."""
        return map_grouped(
            lambda tokens: self.decode(tokens, errors=errors),
            token_batch,
            resolve_workers(num_workers),
        )

    # internals
    # ===================================================================================

    def _merge(self, piece: TokenBytes) -> list[Token]:
        return byte_pair_encode(piece, self._ranks)

    def _encode_chunk(self, chunk: str) -> tuple[Token, ...]:
        piece = chunk.encode("utf-8")
        return self._cache.get_or_compute(piece, self._merge)

    def _iter_parts(self, text: str, strategy: SpecialTokenStrategy) -> Iterator[Part]:
        """
        Yield ordinary chunks and special ids of ``text`` in order.

        The strategy runs before the first part is produced so that policy
        errors surface at call time rather than on iteration. Lone surrogates are
        replaced with U+FFFD first, as tiktoken does.
        """
        text = _replace_surrogates(text)
        matches = strategy.handle(text, self._special)
        return self._generate_parts(text, matches)

    def _generate_parts(self, text: str, matches: list[SpecialTokenMatch]) -> Iterator[Part]:
        tokens = self._special.tokens
        pos = 0
        for m in matches:
            if m.start > pos:
                yield from self._splitter.split(text[pos : m.start])
            yield tokens[m.literal]
            pos = m.end
        if pos < len(text):
            yield from self._splitter.split(text[pos:])

    def _token_index_at(self, tokens: Sequence[Token], byte_pos: int) -> int:
        """Return the index of the token covering ``byte_pos`` of the decoded bytes."""
        ends = accumulate(len(self.decode_single_token_bytes(tok)) for tok in tokens)
        for idx, end in enumerate(ends):
            if byte_pos < end:
                return idx
        return len(tokens) - 1

    def _run_batch[R](
        self,
        func: Callable[[str, int], R],
        texts: Sequence[str],
        num_workers: int | None,
        parallel_mode: ParallelStrategy | ParallelMode,
    ) -> list[R]:
        if not texts:
            return []

        workers = resolve_workers(num_workers)

        match ParallelMode.get(parallel_mode):
            case ParallelMode.OFF:
                return [func(text, 1) for text in texts]
            case ParallelMode.CHUNK:
                return [func(text, workers) for text in texts]
            case ParallelMode.BATCH:
                return map_grouped(lambda text: func(text, 1), texts, workers)
            case ParallelMode.AUTO:
                # single text sequence parallelized on chunk level
                if len(texts) == 1:
                    return [func(texts[0], workers)]
                total_chars = sum(len(text) for text in texts)
                avg_chars = total_chars / len(texts)
                if total_chars < _AUTO_SERIAL_CHARS or (
                    len(texts) >= workers * 2 and avg_chars < _AUTO_SHORT_DOC_CHARS
                ):
                    return [func(text, 1) for text in texts]
                return map_grouped(lambda text: func(text, 1), texts, workers)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self._name!r} n_vocab={self.n_vocab}>"
