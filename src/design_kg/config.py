"""
config.py

Process-wide settings for the design catalog.

Resolved once at startup: command-line flags > environment variables >
built-in defaults.  The embedding backend chosen here is fixed for the
lifetime of the process.

Author: Eric G. Suchanek, PhD
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

PROVIDERS = ("local", "openai", "ollama")

_DEFAULT_MODELS = {
    "local": "all-MiniLM-L6-v2",
    "openai": "text-embedding-3-small",
    "ollama": "nomic-embed-text",
}

DEFAULT_DB = ".designkg/catalog.sqlite"
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_DIMENSIONS = 1536


@dataclass(frozen=True)
class Settings:
    """
    Resolved configuration.

    :param db_path: SQLite catalog path.
    :param lancedb_dir: LanceDB mirror directory, or ``None`` to search SQLite only.
    :param provider: Embedding backend: ``local``, ``openai`` or ``ollama``.
    :param model: Embedding model name (provider default when ``None``).
    :param dimensions: Output dimensionality requested from OpenAI.
    :param openai_api_key: OpenAI API key.
    :param ollama_host: Ollama server URL.
    :param log_level: Root log level name for the CLIs.
    """

    db_path: Path = Path(DEFAULT_DB)
    lancedb_dir: Optional[Path] = None
    provider: str = "local"
    model: Optional[str] = None
    dimensions: int = DEFAULT_DIMENSIONS
    openai_api_key: Optional[str] = None
    ollama_host: str = DEFAULT_OLLAMA_HOST
    log_level: str = "WARNING"

    @property
    def model_name(self) -> str:
        """Configured model, falling back to the provider default."""
        return self.model or _DEFAULT_MODELS[self.provider]

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """
        Build settings from environment variables.

        :param env: Mapping to read instead of ``os.environ`` (tests).
        :return: :class:`Settings`.
        """
        env = os.environ if env is None else env
        provider = env.get("EMBEDDING_PROVIDER", "local").strip().lower()
        if provider not in PROVIDERS:
            raise ValueError(
                f"EMBEDDING_PROVIDER must be one of {', '.join(PROVIDERS)}, got {provider!r}"
            )
        lancedb = env.get("DESIGNKG_LANCEDB")
        return cls(
            db_path=Path(env.get("DESIGNKG_DB", DEFAULT_DB)),
            lancedb_dir=Path(lancedb) if lancedb else None,
            provider=provider,
            model=env.get("EMBEDDING_MODEL") or None,
            dimensions=int(env.get("EMBEDDING_DIMENSIONS", DEFAULT_DIMENSIONS)),
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            ollama_host=env.get("OLLAMA_HOST", DEFAULT_OLLAMA_HOST),
            log_level=env.get("DESIGNKG_LOG_LEVEL", "WARNING").upper(),
        )

    def with_args(self, args: argparse.Namespace) -> "Settings":
        """Apply CLI overrides added by :func:`add_settings_args`."""
        changes: dict = {}
        if getattr(args, "db", None):
            changes["db_path"] = Path(args.db)
        if getattr(args, "lancedb", None):
            changes["lancedb_dir"] = Path(args.lancedb)
        if getattr(args, "provider", None):
            changes["provider"] = args.provider
        if getattr(args, "model", None):
            changes["model"] = args.model
        return replace(self, **changes)


def add_settings_args(p: argparse.ArgumentParser) -> None:
    """Register the flags shared by every subcommand."""
    p.add_argument(
        "--db",
        default=None,
        help=f"Path to the SQLite catalog (default: $DESIGNKG_DB or {DEFAULT_DB})",
    )
    p.add_argument(
        "--lancedb",
        default=None,
        help="LanceDB index directory (default: $DESIGNKG_LANCEDB; unset = SQLite search)",
    )
    p.add_argument(
        "--provider",
        choices=PROVIDERS,
        default=None,
        help="Embedding provider (default: $EMBEDDING_PROVIDER or local)",
    )
    p.add_argument(
        "--model",
        default=None,
        help="Embedding model name (default: provider specific)",
    )


def configure_logging(level: str) -> None:
    """
    Send log records to stderr; stdout is reserved for the stdio transport.

    No-op when the root logger already has handlers.
    """
    if not logging.root.handlers:
        logging.basicConfig(
            level=getattr(logging, level.upper(), logging.WARNING),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )
