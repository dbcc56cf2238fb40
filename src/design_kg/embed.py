#!/usr/bin/env python3
"""
embed.py

Embedding providers for the design catalog.

One capability, ``embed(text) -> vector``, three interchangeable backends:

* :class:`SentenceTransformerEmbedder` — local model, no network
* :class:`OpenAIEmbedder`              — OpenAI embeddings API
* :class:`OllamaEmbedder`              — Ollama ``/api/embed`` endpoint

The backend is picked once by :func:`make_embedder` and injected into the
sync engine and search ranker.  Provider failures are raised as
:class:`~design_kg.errors.EmbeddingError` carrying the provider's message;
nothing here retries.

Author: Eric G. Suchanek, PhD
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np
import requests

from design_kg.config import Settings
from design_kg.errors import EmbeddingError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Embedder interface (pluggable)
# ---------------------------------------------------------------------------


class Embedder:
    """
    Abstract embedding backend.

    Subclass and implement :meth:`embed_texts` to plug in any model.

    :param dim: Embedding dimension, or ``None`` until the first call
                reveals it.
    """

    dim: Optional[int] = None

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        """
        Embed a list of strings.

        :param texts: Input strings.
        :return: List of float vectors, one per input.
        """
        raise NotImplementedError

    def embed(self, text: str) -> List[float]:
        """
        Embed a single string.

        Default implementation calls :meth:`embed_texts` with a one-element list.

        :param text: Input string.
        :return: Float vector.
        """
        return self.embed_texts([text])[0]


class SentenceTransformerEmbedder(Embedder):
    """
    Local embedding via ``sentence-transformers``.

    :param model_name: HuggingFace model name or local path.
                       Defaults to ``"all-MiniLM-L6-v2"``.
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2") -> None:
        from sentence_transformers import SentenceTransformer

        self.model = SentenceTransformer(model_name)
        self.model_name = model_name
        self.dim = self.model.get_sentence_embedding_dimension()

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        vecs = self.model.encode(
            texts, normalize_embeddings=True, show_progress_bar=False
        )
        return [np.asarray(v, dtype="float32").tolist() for v in vecs]

    def __repr__(self) -> str:
        return f"SentenceTransformerEmbedder(model={self.model_name!r}, dim={self.dim})"


class OpenAIEmbedder(Embedder):
    """
    Remote embedding via the OpenAI embeddings API.

    :param api_key: OpenAI API key.
    :param model: Embedding model. Defaults to ``"text-embedding-3-small"``.
    :param dimensions: Requested output dimensionality.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "text-embedding-3-small",
        dimensions: int = 1536,
    ) -> None:
        if not api_key:
            raise EmbeddingError("OPENAI_API_KEY is not set")
        import openai

        self._openai = openai
        self.client = openai.OpenAI(api_key=api_key)
        self.model_name = model
        self.dim = dimensions

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        # newlines degrade OpenAI embedding quality
        inputs = [t.replace("\n", " ") for t in texts]
        try:
            response = self.client.embeddings.create(
                model=self.model_name,
                input=inputs,
                dimensions=self.dim,
            )
        except self._openai.OpenAIError as exc:
            raise EmbeddingError(str(exc)) from exc
        return [list(item.embedding) for item in response.data]

    def __repr__(self) -> str:
        return f"OpenAIEmbedder(model={self.model_name!r}, dim={self.dim})"


class OllamaEmbedder(Embedder):
    """
    Remote embedding via a running Ollama server.

    :param host: Ollama base URL. Defaults to ``"http://localhost:11434"``.
    :param model: Embedding model. Defaults to ``"nomic-embed-text"``.
    """

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
    ) -> None:
        self.host = host.rstrip("/")
        self.model_name = model

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        url = f"{self.host}/api/embed"
        try:
            response = requests.post(
                url,
                json={"model": self.model_name, "input": texts},
                timeout=(10, 300),
            )
        except requests.RequestException as exc:
            raise EmbeddingError(str(exc)) from exc

        if not response.ok:
            raise EmbeddingError(_ollama_error(response))

        embeddings = response.json().get("embeddings") or []
        if len(embeddings) != len(texts):
            raise EmbeddingError(
                f"Ollama returned {len(embeddings)} embeddings for {len(texts)} inputs"
            )
        if embeddings and self.dim is None:
            self.dim = len(embeddings[0])
        return [list(v) for v in embeddings]

    def __repr__(self) -> str:
        return f"OllamaEmbedder(host={self.host!r}, model={self.model_name!r})"


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


def make_embedder(settings: Settings) -> Embedder:
    """
    Build the embedding backend named by *settings*.

    :param settings: Resolved :class:`~design_kg.config.Settings`.
    :return: A ready :class:`Embedder`.
    """
    logger.info("embedding provider: %s (%s)", settings.provider, settings.model_name)
    if settings.provider == "openai":
        return OpenAIEmbedder(
            settings.openai_api_key,
            model=settings.model_name,
            dimensions=settings.dimensions,
        )
    if settings.provider == "ollama":
        return OllamaEmbedder(settings.ollama_host, model=settings.model_name)
    return SentenceTransformerEmbedder(settings.model_name)


def _ollama_error(response: requests.Response) -> str:
    """Prefer Ollama's own ``{"error": ...}`` message over the status line."""
    try:
        message = response.json().get("error")
    except ValueError:
        message = None
    return message or f"{response.status_code} {response.reason}: {response.text}"
