"""Tests for library-wide configuration."""

from pathlib import Path

import pytest

from oaitok import config


@pytest.fixture(autouse=True)
def reset_data_dir():
    yield
    config.set_data_dir(None)


def test_default_data_dir(monkeypatch):
    monkeypatch.delenv(config.DATA_DIR_ENV, raising=False)
    assert config.get_data_dir() == Path.home() / ".cache" / "oaitok"


def test_data_dir_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv(config.DATA_DIR_ENV, str(tmp_path))
    assert config.get_data_dir() == tmp_path


def test_set_data_dir_overrides_environment(monkeypatch, tmp_path):
    monkeypatch.setenv(config.DATA_DIR_ENV, "/somewhere/else")
    config.set_data_dir(tmp_path)
    assert config.get_data_dir() == tmp_path

    config.set_data_dir(None)
    assert config.get_data_dir() == Path("/somewhere/else")


@pytest.mark.parametrize("raw, expected", [("", None), ("0", None), ("-5", None), ("1024", 1024)])
def test_cache_size(monkeypatch, raw, expected):
    monkeypatch.setenv(config.CACHE_SIZE_ENV, raw)
    assert config.get_cache_size() == expected


def test_cache_size_unset(monkeypatch):
    monkeypatch.delenv(config.CACHE_SIZE_ENV, raising=False)
    assert config.get_cache_size() is None


def test_cache_size_invalid(monkeypatch):
    monkeypatch.setenv(config.CACHE_SIZE_ENV, "lots")
    with pytest.raises(ValueError, match="OAITOK_CACHE_SIZE"):
        config.get_cache_size()
