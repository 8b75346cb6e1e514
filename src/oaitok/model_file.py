"""
On-disk vocabulary formats.

A ``.model`` file is versioned and self-describing: it carries the encoding
name, the split expression and the special tokens next to the ranks::

    Oaitok 1
    name cl100k_base
    re <split expression>
    ---
    <number of special tokens>
    <literal> <id>
    ---
    <base64 token bytes> <rank>
    ...

Raw ``.tiktoken`` files hold only the ``<base64 token bytes> <rank>`` lines.
"""

import base64
import binascii
import logging
from dataclasses import dataclass, field
from collections.abc import Iterable
from pathlib import Path
from typing import Final, TextIO

from ._decorators import measure_time
from ._sanitise import render_bytes
from .bpe import byte_pair_merge
from .errors import LoadError
from .types import Token, TokenBytes

PREFIX: Final[str] = "Oaitok"
FORMAT_VERSION: Final[str] = "1"
MODEL_SUFFIX: Final[str] = ".model"
VOCAB_SUFFIX: Final[str] = ".vocab"
TIKTOKEN_SUFFIX: Final[str] = ".tiktoken"
SECTION_MARKER: Final[str] = "---"

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelData:
    """Everything needed to build a tokenizer for one encoding."""

    name: str
    pattern: str
    ranks: dict[TokenBytes, Token]
    special_tokens: dict[str, Token] = field(default_factory=dict)


# reading
# ===================================================================================


class _Reader:
    """Line reader that remembers the current line number for error messages."""

    def __init__(self, f: TextIO, path: Path) -> None:
        self.f = f
        self.path = path
        self.lineno = 0

    def readline(self) -> str:
        line = self.f.readline()
        if not line:
            raise self.error("unexpected end of file")
        self.lineno += 1
        return line.removesuffix("\n")

    def error(self, message: str) -> LoadError:
        return LoadError(message, model_path=str(self.path), line=self.lineno)


def _parse_rank_line(
    line: str, lineno: int, path: Path, seen_ranks: dict[Token, TokenBytes]
) -> tuple[TokenBytes, Token]:
    """Parse one ``<base64> <rank>`` line."""
    fields = line.split()
    if len(fields) != 2:
        raise LoadError(
            f"expected '<base64 token> <rank>' got {line.strip()!r}",
            model_path=str(path),
            line=lineno,
        )
    try:
        tok_bytes = base64.b64decode(fields[0], validate=True)
        rank = int(fields[1])
    except (binascii.Error, ValueError) as e:
        raise LoadError(
            f"invalid token entry {line.strip()!r}", model_path=str(path), line=lineno
        ) from e
    if rank in seen_ranks:
        raise LoadError(
            f"duplicate rank {rank} (also used by {seen_ranks[rank]!r})",
            model_path=str(path),
            line=lineno,
        )
    seen_ranks[rank] = tok_bytes
    return tok_bytes, rank


def _read_ranks(lines: Iterable[str], path: Path, first_lineno: int) -> dict[TokenBytes, Token]:
    ranks: dict[TokenBytes, Token] = {}
    seen_ranks: dict[Token, TokenBytes] = {}
    for lineno, line in enumerate(lines, start=first_lineno):
        if not line.strip():
            continue
        tok_bytes, rank = _parse_rank_line(line, lineno, path, seen_ranks)
        if tok_bytes in ranks:
            raise LoadError(
                f"duplicate token {tok_bytes!r} (ranks {ranks[tok_bytes]} and {rank})",
                model_path=str(path),
                line=lineno,
            )
        ranks[tok_bytes] = rank
    return ranks


@measure_time("model file load")
def read_model_file(model_filename: str | Path) -> ModelData:
    """
    Read a ``.model`` file.

    :param model_filename: Path to the .model file.
    :raises LoadError: If the file does not exist, has the wrong extension, a
                       version mismatch, or any malformed or duplicated entry.
    """
    path = Path(model_filename)

    if not path.exists():
        raise LoadError("model filepath does not exist", model_path=str(path))

    if path.suffix != MODEL_SUFFIX:
        raise LoadError("expected .model file", model_path=str(path))

    log.info(f"loading model from {path}")

    special_toks: dict[str, Token] = {}

    with path.open("r", encoding="utf-8") as f:
        reader = _Reader(f, path)

        # verify version match
        header = reader.readline().split(" ")
        if len(header) != 2 or header[0] != PREFIX:
            raise reader.error(f"expected '{PREFIX} <version>' header")
        if header[1] != FORMAT_VERSION:
            raise LoadError(
                "model format version mismatch",
                model_path=str(path),
                version_mismatch=(header[1], FORMAT_VERSION),
            )

        name_line = reader.readline()
        if not name_line.startswith("name ") or len(name_line) <= 5:
            raise reader.error(f"expected encoding name got {name_line!r}")
        name = name_line[5:]

        re_line = reader.readline()
        if not re_line.startswith("re ") or len(re_line) <= 3:
            raise reader.error("expected split pattern")
        pattern = re_line[3:]

        start_marker = reader.readline()
        if start_marker != SECTION_MARKER:
            raise reader.error(
                f"start sequence marker missing: (expected {SECTION_MARKER}) (got {start_marker})"
            )

        n_special = reader.readline().strip()
        try:
            n_special_tokens = int(n_special)
            if n_special_tokens < 0:
                raise ValueError(n_special)
        except ValueError as e:
            raise reader.error(f"invalid special token count: {n_special}") from e

        log.debug(f"loading {n_special_tokens} special tokens")

        for _ in range(n_special_tokens):
            # split from the right as the literal might contain whitespace
            sp_tok = reader.readline().rsplit(" ", maxsplit=1)
            if len(sp_tok) != 2 or not sp_tok[0]:
                raise reader.error(
                    f"special token mapping must be delimited by a space: {sp_tok}"
                )
            try:
                tok = int(sp_tok[1])
            except ValueError as e:
                raise reader.error(f"token is not a number: {sp_tok[1]}") from e
            if sp_tok[0] in special_toks:
                raise reader.error(f"duplicate special token {sp_tok[0]!r}")
            special_toks[sp_tok[0]] = tok

        end_marker = reader.readline()
        if end_marker != SECTION_MARKER:
            raise reader.error(
                f"end sequence marker missing: (expected {SECTION_MARKER}) (got {end_marker})"
            )

        ranks = _read_ranks(f, path, reader.lineno + 1)

    if not ranks:
        raise LoadError("model file contains no tokens", model_path=str(path))

    log.debug(f"read {len(ranks)} tokens and {len(special_toks)} special tokens")

    return ModelData(name=name, pattern=pattern, ranks=ranks, special_tokens=special_toks)


@measure_time("tiktoken file load")
def read_tiktoken_file(path: str | Path) -> dict[TokenBytes, Token]:
    """
    Read a raw ``.tiktoken`` rank file.

    :raises LoadError: If the file is missing, empty or malformed.
    """
    path = Path(path)
    if not path.exists():
        raise LoadError("tiktoken filepath does not exist", model_path=str(path))

    log.info(f"loading tiktoken ranks from {path}")
    with path.open("r", encoding="utf-8") as f:
        ranks = _read_ranks(f, path, 1)

    if not ranks:
        raise LoadError("tiktoken file contains no tokens", model_path=str(path))
    return ranks


# writing
# ===================================================================================


def save_model(file_prefix: str | Path, data: ModelData) -> Path:
    """
    Persist ``data`` to ``<file_prefix>.model``.

    :return: Path of the written file.
    """
    model_path = Path(file_prefix).with_suffix(MODEL_SUFFIX)
    # create directory if does not exist
    model_path.parent.mkdir(parents=True, exist_ok=True)

    for seq in data.special_tokens:
        if "\n" in seq:
            raise ValueError(f"special token literal must not contain a newline: {seq!r}")

    log.debug(
        f"saving {len(data.special_tokens)} special tokens and {len(data.ranks)} tokens to {model_path}"
    )

    with model_path.open("w", encoding="utf-8", newline="\n") as f:
        # header: version, encoding name, split pattern
        f.write(f"{PREFIX} {FORMAT_VERSION}\n")
        f.write(f"name {data.name}\n")
        f.write(f"re {data.pattern}\n")
        # start of special tokens marker
        f.write(f"{SECTION_MARKER}\n")
        f.write(f"{len(data.special_tokens)}\n")
        for seq, tok in data.special_tokens.items():
            f.write(f"{seq} {tok}\n")
        # end of special tokens marker
        f.write(f"{SECTION_MARKER}\n")
        # body: tokens in rank order
        for tok_bytes, rank in sorted(data.ranks.items(), key=lambda x: x[1]):
            f.write(f"{base64.b64encode(tok_bytes).decode('ascii')} {rank}\n")

    return model_path


class _RanksBelow:
    """``get``-only view of ranks restricted to tokens ranked below ``limit``."""

    def __init__(self, ranks: dict[TokenBytes, Token], limit: Token) -> None:
        self.ranks = ranks
        self.limit = limit

    def get(self, key: TokenBytes, default: Token) -> Token:
        rank = self.ranks.get(key)
        if rank is None or rank >= self.limit:
            return default
        return rank


def save_vocab(file_prefix: str | Path, data: ModelData) -> Path:
    """
    Persist a human-readable token listing to ``<file_prefix>.vocab``.

    Each token is shown with the two lower-ranked parts it is merged from
    when it has such a derivation.
    """
    vocab_path = Path(file_prefix).with_suffix(VOCAB_SUFFIX)
    vocab_path.parent.mkdir(parents=True, exist_ok=True)

    log.debug(f"saving vocab to {vocab_path}")

    with vocab_path.open("w", encoding="utf-8", newline="\n") as f:
        for seq, tok in data.special_tokens.items():
            f.write(f"ST [{tok}] {seq}\n")
        for tok_bytes, rank in sorted(data.ranks.items(), key=lambda x: x[1]):
            subword = render_bytes(tok_bytes)
            spans = (
                byte_pair_merge(tok_bytes, _RanksBelow(data.ranks, rank))
                if len(tok_bytes) > 1
                else []
            )
            # token arises from merging: show derivation from child tokens
            if len(spans) == 2:
                (s0, e0), (s1, e1) = spans
                subword0 = render_bytes(tok_bytes[s0:e0])
                subword1 = render_bytes(tok_bytes[s1:e1])
                f.write(f"[{rank}] [{subword0}][{subword1}] -> {subword}\n")
            else:
                f.write(f"[{rank}] {subword}\n")

    return vocab_path
