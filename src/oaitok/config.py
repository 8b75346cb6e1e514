"""Library-wide defaults for vocabulary lookup and merge caching."""

import os
from pathlib import Path

DATA_DIR_ENV = "OAITOK_DATA_DIR"
CACHE_SIZE_ENV = "OAITOK_CACHE_SIZE"

_data_dir: Path | None = None


def set_data_dir(path: str | os.PathLike[str] | None) -> None:
    """Set the directory searched for vocabulary files; ``None`` restores the default."""
    global _data_dir
    _data_dir = Path(path) if path is not None else None


def get_data_dir() -> Path:
    """
    Return the directory searched for vocabulary files.

    A value passed to :func:`set_data_dir` wins, then the ``OAITOK_DATA_DIR``
    environment variable, then ``~/.cache/oaitok``.
    """
    if _data_dir is not None:
        return _data_dir
    env_dir = os.environ.get(DATA_DIR_ENV, "").strip()
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / ".cache" / "oaitok"


def get_cache_size() -> int | None:
    """Return the default merge cache bound (``None`` means unbounded)."""
    raw = os.environ.get(CACHE_SIZE_ENV, "").strip()
    if not raw:
        return None
    try:
        size = int(raw)
    except ValueError:
        raise ValueError(f"{CACHE_SIZE_ENV} must be an integer, got {raw!r}")
    return size if size > 0 else None
