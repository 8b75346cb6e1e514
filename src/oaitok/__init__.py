"""oaitok: byte-pair encoding tokenizer for OpenAI model vocabularies."""

from .cache import CacheInfo, MergeCache
from .config import get_data_dir, set_data_dir
from .errors import (
    DisallowedSpecialTokenError,
    InvalidUtf8Error,
    LoadError,
    OaitokError,
    PatternError,
    SpecialTokenError,
    StrategyError,
    TokenizationError,
    UnknownModelError,
    VocabularyError,
)
from .factory import from_file, from_tiktoken, get_encoding, load, save
from .parallel import ParallelMode, list_parallel_modes
from .pattern import PatternSplitter, TokenPattern, list_patterns
from .registry import (
    encoding_for_model,
    list_encodings,
    list_models,
    special_tokens_for,
)
from .special import SpecialToken, SpecialTokenTable
from .strategy import (
    AllowAllStrategy,
    AllowCustomStrategy,
    AllowNoneRaiseStrategy,
    AllowNoneStrategy,
    SpecialTokenStrategy,
    get_strategy,
    list_strategies,
)
from .tokenizer import Tokenizer
from .vocab import Vocabulary

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("oaitok")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "Tokenizer",
    "Vocabulary",
    "SpecialToken",
    "SpecialTokenTable",
    "PatternSplitter",
    "TokenPattern",
    "MergeCache",
    "CacheInfo",
    "ParallelMode",
    "SpecialTokenStrategy",
    "AllowAllStrategy",
    "AllowNoneStrategy",
    "AllowNoneRaiseStrategy",
    "AllowCustomStrategy",
    "OaitokError",
    "LoadError",
    "UnknownModelError",
    "SpecialTokenError",
    "DisallowedSpecialTokenError",
    "TokenizationError",
    "InvalidUtf8Error",
    "VocabularyError",
    "PatternError",
    "StrategyError",
    "load",
    "get_encoding",
    "from_file",
    "from_tiktoken",
    "save",
    "encoding_for_model",
    "special_tokens_for",
    "list_encodings",
    "list_models",
    "list_patterns",
    "list_parallel_modes",
    "list_strategies",
    "get_strategy",
    "get_data_dir",
    "set_data_dir",
]
