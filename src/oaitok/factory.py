"""Factory functions for creating tokenizers."""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from . import config
from .cache import MergeCache
from .errors import LoadError, UnknownModelError
from .model_file import (
    MODEL_SUFFIX,
    TIKTOKEN_SUFFIX,
    ModelData,
    read_model_file,
    read_tiktoken_file,
    save_model,
    save_vocab,
)
from .registry import EncodingSpec, get_encoding_spec, list_encodings
from .tokenizer import Tokenizer
from .vocab import Vocabulary

if TYPE_CHECKING:
    import tiktoken

log = logging.getLogger(__name__)


def _build(
    data: ModelData, cache: MergeCache | None = None, require_contiguous: bool = True
) -> Tokenizer:
    vocab = Vocabulary(
        data.ranks,
        require_contiguous=require_contiguous,
        reserved=data.special_tokens.values(),
    )
    return Tokenizer(data.name, vocab, data.special_tokens, data.pattern, cache=cache)


def _check_spec(tokenizer: Tokenizer, spec: EncodingSpec, source: Path) -> None:
    if tokenizer.name != spec.name:
        raise LoadError(
            f"model file is for encoding {tokenizer.name!r}, expected {spec.name!r}",
            model_path=str(source),
        )
    if spec.n_vocab is not None and tokenizer.n_vocab != spec.n_vocab:
        raise LoadError(
            f"vocabulary size mismatch for {spec.name!r}: expected {spec.n_vocab} got {tokenizer.n_vocab}",
            model_path=str(source),
        )


def load(
    model_name: str,
    data_dir: str | Path | None = None,
    *,
    cache: MergeCache | None = None,
) -> Tokenizer:
    """
    Load the tokenizer for a model or encoding name.

    The data directory is searched for ``<encoding>.model`` first and then
    for a raw ``<encoding>.tiktoken`` rank file, which is combined with the
    built-in split pattern and special tokens of the encoding.

    Loading is not memoized: callers keep the returned tokenizer and share it.

    :param model_name: Model name (``"gpt-4"``) or encoding name (``"cl100k_base"``).
    :param data_dir: Directory holding vocabulary files; see :func:`oaitok.config.get_data_dir`.
    :param cache: Merge cache for the new tokenizer.
    :raises UnknownModelError: If the name has no known encoding.
    :raises LoadError: If no vocabulary file is found or it is malformed.

    .. code-block:: python

        tok = load("gpt-3.5-turbo")
        n = tok.count_tokens("How many tokens is this?")
    """
    spec = get_encoding_spec(model_name)
    directory = Path(data_dir) if data_dir is not None else config.get_data_dir()

    model_path = directory / f"{spec.name}{MODEL_SUFFIX}"
    if model_path.exists():
        tokenizer = from_file(model_path, cache=cache)
        _check_spec(tokenizer, spec, model_path)
        return tokenizer

    tiktoken_path = directory / f"{spec.ranks_stem}{TIKTOKEN_SUFFIX}"
    if tiktoken_path.exists():
        data = ModelData(
            name=spec.name,
            pattern=spec.pattern,
            ranks=read_tiktoken_file(tiktoken_path),
            special_tokens=dict(spec.special_tokens),
        )
        tokenizer = _build(data, cache)
        _check_spec(tokenizer, spec, tiktoken_path)
        return tokenizer

    raise LoadError(
        f"no vocabulary for {spec.name!r}: expected {model_path.name} or "
        f"{tiktoken_path.name} (run `oaitok import {spec.name}` to create it)",
        model_path=str(directory),
    )


def get_encoding(
    encoding_name: str,
    data_dir: str | Path | None = None,
    *,
    cache: MergeCache | None = None,
) -> Tokenizer:
    """Load a tokenizer by encoding name only; model names are rejected."""
    if encoding_name not in list_encodings():
        raise UnknownModelError(encoding_name, available=list_encodings())
    return load(encoding_name, data_dir, cache=cache)


def from_file(
    model_path: str | Path,
    *,
    cache: MergeCache | None = None,
    require_contiguous: bool = True,
) -> Tokenizer:
    """
    Load a tokenizer from a ``.model`` file.

    :raises LoadError: If the file is missing or malformed.

    .. code-block:: python

        tokenizer = from_file("path/to/cl100k_base.model")
        tokens = tokenizer.encode("Hello world")
    """
    data = read_model_file(model_path)
    tokenizer = _build(data, cache, require_contiguous)
    log.info(
        f"model loaded successfully: {len(tokenizer.special)} special tokens, "
        f"{len(tokenizer.vocab)} ranked tokens"
    )
    return tokenizer


def from_tiktoken(
    encoding: "str | tiktoken.Encoding", *, cache: MergeCache | None = None
) -> Tokenizer:
    """
    Build a tokenizer from a ``tiktoken`` encoding.

    Passing a name calls ``tiktoken.get_encoding``, which may download the
    rank file into tiktoken's own cache.
    """
    import tiktoken

    if isinstance(encoding, str):
        encoding = tiktoken.get_encoding(encoding)

    data = ModelData(
        name=encoding.name,
        pattern=encoding._pat_str,
        ranks=dict(encoding._mergeable_ranks),
        special_tokens=dict(encoding._special_tokens),
    )
    log.info(f"imported {len(data.ranks)} tokens from tiktoken encoding {encoding.name!r}")
    return _build(data, cache)


def to_model_data(tokenizer: Tokenizer) -> ModelData:
    """Return the serialisable state of ``tokenizer``."""
    return ModelData(
        name=tokenizer.name,
        pattern=tokenizer.pattern,
        ranks=dict(tokenizer.vocab.ranks),
        special_tokens=tokenizer.special_tokens,
    )


def save(tokenizer: Tokenizer, file_prefix: str | Path, *, with_vocab: bool = False) -> Path:
    """
    Save ``tokenizer`` to ``<file_prefix>.model``.

    :param with_vocab: Also write a human-readable ``<file_prefix>.vocab`` listing.
    :return: Path of the ``.model`` file.
    """
    log.info(f"saving tokenizer to {file_prefix}")
    data = to_model_data(tokenizer)
    model_path = save_model(file_prefix, data)
    if with_vocab:
        save_vocab(file_prefix, data)
    log.info("tokenizer saved successfully")
    return model_path
