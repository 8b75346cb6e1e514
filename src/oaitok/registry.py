"""Built-in encodings and the model name to encoding lookup."""

from dataclasses import dataclass, field
from typing import Final, Literal

from .errors import UnknownModelError
from .pattern import TokenPattern
from .special import SpecialToken
from .types import Token

EncodingName = Literal["r50k_base", "p50k_base", "p50k_edit", "cl100k_base"]


@dataclass(frozen=True)
class EncodingSpec:
    """
    Static description of an encoding.

    ``pattern`` and ``special_tokens`` are the defaults used for raw
    ``.tiktoken`` files; ``.model`` files carry their own. ``n_vocab`` is the
    size of the full id space and is checked after loading.
    """

    name: str
    pattern: str
    special_tokens: dict[str, Token] = field(default_factory=dict)
    n_vocab: int | None = None
    # file stem of the rank table; encodings may share one
    ranks_file: str = ""

    @property
    def ranks_stem(self) -> str:
        return self.ranks_file or self.name


_ENDOFTEXT = SpecialToken.ENDOFTEXT.value

_ENCODINGS: Final[dict[str, EncodingSpec]] = {
    "r50k_base": EncodingSpec(
        name="r50k_base",
        pattern=TokenPattern.R50K.value,
        special_tokens={_ENDOFTEXT: 50256},
        n_vocab=50257,
    ),
    "p50k_base": EncodingSpec(
        name="p50k_base",
        pattern=TokenPattern.R50K.value,
        special_tokens={_ENDOFTEXT: 50256},
        n_vocab=50281,
    ),
    "p50k_edit": EncodingSpec(
        name="p50k_edit",
        pattern=TokenPattern.R50K.value,
        special_tokens={
            _ENDOFTEXT: 50256,
            SpecialToken.FIM_PREFIX.value: 50281,
            SpecialToken.FIM_MIDDLE.value: 50282,
            SpecialToken.FIM_SUFFIX.value: 50283,
        },
        n_vocab=50284,
        ranks_file="p50k_base",
    ),
    "cl100k_base": EncodingSpec(
        name="cl100k_base",
        pattern=TokenPattern.CL100K.value,
        special_tokens={
            _ENDOFTEXT: 100257,
            SpecialToken.FIM_PREFIX.value: 100258,
            SpecialToken.FIM_MIDDLE.value: 100259,
            SpecialToken.FIM_SUFFIX.value: 100260,
            SpecialToken.ENDOFPROMPT.value: 100276,
        },
        n_vocab=100277,
    ),
}

_ENCODING_ALIASES: Final[dict[str, str]] = {
    "gpt2": "r50k_base",
}

# model name prefix -> encoding, for dated snapshots like gpt-4-0314
_MODEL_PREFIX_TO_ENCODING: Final[dict[str, str]] = {
    "gpt-4-": "cl100k_base",
    "gpt-3.5-turbo-": "cl100k_base",
}

_MODEL_TO_ENCODING: Final[dict[str, str]] = {
    # chat
    "gpt-4": "cl100k_base",
    "gpt-3.5-turbo": "cl100k_base",
    # text
    "text-davinci-003": "p50k_base",
    "text-davinci-002": "p50k_base",
    "text-davinci-001": "r50k_base",
    "text-curie-001": "r50k_base",
    "text-babbage-001": "r50k_base",
    "text-ada-001": "r50k_base",
    "davinci": "r50k_base",
    "curie": "r50k_base",
    "babbage": "r50k_base",
    "ada": "r50k_base",
    # code
    "code-davinci-002": "p50k_base",
    "code-davinci-001": "p50k_base",
    "code-cushman-002": "p50k_base",
    "code-cushman-001": "p50k_base",
    "davinci-codex": "p50k_base",
    "cushman-codex": "p50k_base",
    # edit
    "text-davinci-edit-001": "p50k_edit",
    "code-davinci-edit-001": "p50k_edit",
    # embeddings
    "text-embedding-ada-002": "cl100k_base",
    # old embeddings
    "text-similarity-davinci-001": "r50k_base",
    "text-similarity-curie-001": "r50k_base",
    "text-similarity-babbage-001": "r50k_base",
    "text-similarity-ada-001": "r50k_base",
    "text-search-davinci-doc-001": "r50k_base",
    "text-search-curie-doc-001": "r50k_base",
    "text-search-babbage-doc-001": "r50k_base",
    "text-search-ada-doc-001": "r50k_base",
    "code-search-babbage-code-001": "r50k_base",
    "code-search-ada-code-001": "r50k_base",
    # open source
    "gpt2": "gpt2",
}


def list_encodings() -> list[str]:
    """Return names of all built-in encodings."""
    return list(_ENCODINGS.keys())


def list_models() -> list[str]:
    """Return all model names with a known encoding."""
    return list(_MODEL_TO_ENCODING.keys())


def encoding_for_model(model_name: str) -> str | None:
    """
    Return the encoding name used by ``model_name``, or ``None`` if unknown.

    Exact names are tried first, then known prefixes such as ``gpt-4-``.
    """
    encoding = _MODEL_TO_ENCODING.get(model_name)
    if encoding is not None:
        return encoding
    for prefix, encoding in _MODEL_PREFIX_TO_ENCODING.items():
        if model_name.startswith(prefix):
            return encoding
    return None


def get_encoding_spec(name: str) -> EncodingSpec:
    """
    Return the :class:`EncodingSpec` for an encoding or model name.

    :raises UnknownModelError: If ``name`` is neither.
    """
    if name in _ENCODINGS:
        return _ENCODINGS[name]
    if name in _ENCODING_ALIASES:
        return _ENCODINGS[_ENCODING_ALIASES[name]]

    encoding = encoding_for_model(name)
    if encoding is None:
        raise UnknownModelError(name, available=list_encodings())
    return _ENCODINGS[_ENCODING_ALIASES.get(encoding, encoding)]


def special_tokens_for(name: str) -> dict[str, Token]:
    """Return the special tokens recognised by an encoding or model, without loading ranks."""
    return dict(get_encoding_spec(name).special_tokens)


__all__ = [
    "EncodingName",
    "EncodingSpec",
    "list_encodings",
    "list_models",
    "encoding_for_model",
    "get_encoding_spec",
    "special_tokens_for",
]
