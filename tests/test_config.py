"""
test_config.py

Tests for Settings resolution (environment, CLI overrides) and logging setup.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from design_kg.config import (
    DEFAULT_DB,
    Settings,
    add_settings_args,
    configure_logging,
)


def test_defaults_from_empty_env():
    s = Settings.from_env({})
    assert s.db_path == Path(DEFAULT_DB)
    assert s.lancedb_dir is None
    assert s.provider == "local"
    assert s.model_name == "all-MiniLM-L6-v2"
    assert s.dimensions == 1536
    assert s.openai_api_key is None
    assert s.ollama_host == "http://localhost:11434"
    assert s.log_level == "WARNING"


def test_env_overrides():
    s = Settings.from_env(
        {
            "DESIGNKG_DB": "/tmp/cat.sqlite",
            "DESIGNKG_LANCEDB": "/tmp/lance",
            "EMBEDDING_PROVIDER": "OpenAI",
            "EMBEDDING_DIMENSIONS": "512",
            "OPENAI_API_KEY": "sk-test",
            "DESIGNKG_LOG_LEVEL": "debug",
        }
    )
    assert s.db_path == Path("/tmp/cat.sqlite")
    assert s.lancedb_dir == Path("/tmp/lance")
    assert s.provider == "openai"
    assert s.model_name == "text-embedding-3-small"
    assert s.dimensions == 512
    assert s.openai_api_key == "sk-test"
    assert s.log_level == "DEBUG"


def test_provider_default_models():
    assert Settings(provider="ollama").model_name == "nomic-embed-text"
    assert Settings(provider="ollama", model="custom").model_name == "custom"


def test_invalid_provider():
    with pytest.raises(ValueError, match="EMBEDDING_PROVIDER"):
        Settings.from_env({"EMBEDDING_PROVIDER": "cohere"})


def test_cli_args_override_env():
    p = argparse.ArgumentParser()
    add_settings_args(p)
    args = p.parse_args(["--db", "cli.sqlite", "--provider", "ollama", "--model", "m"])
    s = Settings.from_env({"DESIGNKG_DB": "env.sqlite"}).with_args(args)
    assert s.db_path == Path("cli.sqlite")
    assert s.provider == "ollama"
    assert s.model_name == "m"
    assert s.lancedb_dir is None


def test_cli_args_absent_keep_env():
    p = argparse.ArgumentParser()
    add_settings_args(p)
    s = Settings.from_env({"DESIGNKG_DB": "env.sqlite"}).with_args(p.parse_args([]))
    assert s.db_path == Path("env.sqlite")


def test_cli_rejects_unknown_provider():
    p = argparse.ArgumentParser()
    add_settings_args(p)
    with pytest.raises(SystemExit):
        p.parse_args(["--provider", "cohere"])


def test_configure_logging_to_stderr(monkeypatch):
    monkeypatch.setattr(logging.root, "handlers", [])
    with patch("design_kg.config.logging.basicConfig") as basic:
        configure_logging("debug")
    _, kwargs = basic.call_args
    assert kwargs["level"] == logging.DEBUG
    assert kwargs["stream"] is sys.stderr


def test_configure_logging_keeps_existing_handlers(monkeypatch):
    monkeypatch.setattr(logging.root, "handlers", [logging.NullHandler()])
    with patch("design_kg.config.logging.basicConfig") as basic:
        configure_logging("DEBUG")
    basic.assert_not_called()
