"""
design_kg: a synchronised, searchable catalog of UI components and design tokens.

SQLite (authoritative, with embeddings) → optional LanceDB mirror.

Public API
----------
Primary entry point::

    from design_kg import DesignKG

    kg = DesignKG(".designkg/catalog.sqlite")
    kg.sync_component({"name": "Button", "tier": "atom",
                       "code": src, "source": "codebase"})
    kg.search_components("primary call to action", tier="atom")
    kg.history("Button")

Individual layers::

    from design_kg import CatalogStore, SyncEngine, SearchRanker, CatalogIndex

Embedding backends::

    from design_kg import Embedder, SentenceTransformerEmbedder, OpenAIEmbedder, OllamaEmbedder

Dependency heuristics::

    from design_kg import extract_names, match_dependencies
"""

__version__ = "0.1.0"
__author__ = "Eric G. Suchanek, PhD"

from design_kg.config import Settings
from design_kg.deps import extract_names, match_dependencies
from design_kg.embed import (
    Embedder,
    OllamaEmbedder,
    OpenAIEmbedder,
    SentenceTransformerEmbedder,
    make_embedder,
)
from design_kg.errors import DesignKGError, EmbeddingError, ValidationError
from design_kg.index import CatalogIndex, IndexHit
from design_kg.store import CatalogStore
from design_kg.search import SearchRanker
from design_kg.sync import ComponentInput, SyncEngine, SyncResult, embedding_text

# Orchestrator
from design_kg.kg import DesignKG

__all__ = [
    # config / errors
    "Settings",
    "DesignKGError",
    "ValidationError",
    "EmbeddingError",
    # dependency heuristics
    "extract_names",
    "match_dependencies",
    # embedders
    "Embedder",
    "SentenceTransformerEmbedder",
    "OpenAIEmbedder",
    "OllamaEmbedder",
    "make_embedder",
    # layers
    "CatalogStore",
    "CatalogIndex",
    "IndexHit",
    "SyncEngine",
    "SyncResult",
    "ComponentInput",
    "embedding_text",
    "SearchRanker",
    # orchestrator
    "DesignKG",
]
