#!/usr/bin/env python3
"""
kg.py

DesignKG — top-level orchestrator for the design catalog.

Owns and wires the layers once per process:

    CatalogStore (SQLite) ← SyncEngine / SearchRanker → Embedder
                                   ↘ CatalogIndex (LanceDB, optional)

and implements every catalog operation the tool layer exposes.  Methods
return plain dicts and lists; unknown names or ids come back as ``None``.

Author: Eric G. Suchanek, PhD
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from design_kg.config import Settings
from design_kg.embed import Embedder, make_embedder
from design_kg.errors import ValidationError
from design_kg.index import CatalogIndex
from design_kg.search import SearchRanker
from design_kg.store import TIERS, CatalogStore
from design_kg.sync import ComponentLike, SyncEngine


class DesignKG:
    """
    Design catalog: components, tokens, dependency graph, history, search.

    Typical usage::

        kg = DesignKG(".designkg/catalog.sqlite", embedder=my_embedder)
        kg.sync_component({"name": "Button", "tier": "atom",
                           "code": "...", "source": "manual"})
        kg.search_components("clickable call to action")

    :param db_path: SQLite catalog path.
    :param embedder: Embedding backend.  Built from *settings* on first use
                     when omitted.
    :param lancedb_dir: Optional LanceDB mirror directory.
    :param settings: Settings used to build a default embedder.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        embedder: Optional[Embedder] = None,
        lancedb_dir: str | Path | None = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.db_path = Path(db_path)
        self.lancedb_dir = Path(lancedb_dir) if lancedb_dir is not None else None
        self.settings = settings or Settings(db_path=self.db_path)

        # Lazy-initialised layers
        self._store: CatalogStore | None = None
        self._embedder: Embedder | None = embedder
        self._index: CatalogIndex | None = None
        self._engine: SyncEngine | None = None
        self._ranker: SearchRanker | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "DesignKG":
        """Build an orchestrator from resolved :class:`Settings`."""
        return cls(settings.db_path, lancedb_dir=settings.lancedb_dir, settings=settings)

    # ------------------------------------------------------------------
    # Layer accessors (lazy init)
    # ------------------------------------------------------------------

    @property
    def store(self) -> CatalogStore:
        """SQLite persistence layer (lazy)."""
        if self._store is None:
            self._store = CatalogStore(self.db_path)
        return self._store

    @property
    def embedder(self) -> Embedder:
        """Embedding backend (lazy, shared by sync and search)."""
        if self._embedder is None:
            self._embedder = make_embedder(self.settings)
        return self._embedder

    @property
    def index(self) -> Optional[CatalogIndex]:
        """LanceDB mirror, or ``None`` when no directory is configured."""
        if self._index is None and self.lancedb_dir is not None:
            self._index = CatalogIndex(self.lancedb_dir)
        return self._index

    @property
    def engine(self) -> SyncEngine:
        if self._engine is None:
            self._engine = SyncEngine(self.store, self.embedder, index=self.index)
        return self._engine

    @property
    def ranker(self) -> SearchRanker:
        if self._ranker is None:
            self._ranker = SearchRanker(self.store, self.embedder, index=self.index)
        return self._ranker

    # ------------------------------------------------------------------
    # Component reads
    # ------------------------------------------------------------------

    def get_component(
        self,
        *,
        name: Optional[str] = None,
        id: Optional[int] = None,
    ) -> Optional[dict]:
        """
        Fetch one component by id or name.

        :raises ValidationError: if neither is given.
        """
        if not name and not id:
            raise ValidationError("Provide either name or id")
        if id:
            return self.store.component(id=id)
        return self.store.component(name=name)

    def list_components(self, tier: Optional[str] = None) -> List[dict]:
        """Summary rows, optionally for one tier."""
        if tier is not None and tier not in TIERS:
            raise ValidationError(
                f"Invalid tier {tier!r}; expected one of {', '.join(TIERS)}"
            )
        return self.store.list_components(tier=tier)

    def dependencies(self, name: str) -> Optional[List[dict]]:
        """Child components of *name*, or ``None`` if unknown."""
        cid = self.store.component_id(name)
        return None if cid is None else self.store.dependencies(cid)

    def dependents(self, name: str) -> Optional[List[dict]]:
        """Parent components of *name*, or ``None`` if unknown."""
        cid = self.store.component_id(name)
        return None if cid is None else self.store.dependents(cid)

    def component_tokens(self, name: str) -> Optional[List[dict]]:
        """Tokens used by component *name*, or ``None`` if unknown."""
        cid = self.store.component_id(name)
        return None if cid is None else self.store.component_tokens(cid)

    def token_usage(self, name: str) -> Optional[List[dict]]:
        """Components using token *name*, or ``None`` if unknown."""
        tok = self.store.token(name)
        return None if tok is None else self.store.token_usage(tok["id"])

    def history(self, name: str, limit: int = 20) -> Optional[List[dict]]:
        """Chronological change log of *name*, or ``None`` if unknown."""
        cid = self.store.component_id(name)
        return None if cid is None else self.store.history(cid, limit=limit)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search_components(
        self,
        query: str,
        *,
        tier: Optional[str] = None,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[dict]:
        return self.ranker.search_components(
            query, tier=tier, limit=limit, threshold=threshold
        )

    def search_tokens(
        self,
        query: str,
        *,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[dict]:
        return self.ranker.search_tokens(query, limit=limit, threshold=threshold)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def sync_component(self, data: ComponentLike) -> dict:
        return self.engine.sync_component(data).to_dict()

    def bulk_sync(self, items: Iterable[ComponentLike]) -> List[dict]:
        return [r.to_dict() for r in self.engine.bulk_sync(items)]

    def detect_dependencies(self, name: str) -> Optional[dict]:
        return self.engine.detect_dependencies(name)

    def update_component_context(
        self,
        name: str,
        *,
        usage_rules: Optional[str] = None,
        requirements: Optional[str] = None,
        examples: Optional[str] = None,
    ) -> Optional[dict]:
        return self.engine.update_context(
            name, usage_rules=usage_rules, requirements=requirements, examples=examples
        )

    def add_token(
        self,
        name: str,
        category: str,
        value: str,
        description: Optional[str] = None,
    ) -> dict:
        return self.engine.add_token(
            name=name, category=category, value=value, description=description
        )

    def link_token(
        self,
        component: str,
        token: str,
        property: Optional[str] = None,
    ) -> Optional[dict]:
        return self.engine.link_token(component, token, property)

    def delete_component(self, name: str) -> bool:
        """
        Remove a component; its edges, token usage and history cascade.

        :return: ``True`` if a row was removed.
        """
        cid = self.store.component_id(name)
        if cid is None:
            return False
        removed = self.store.delete_component(cid)
        if removed and self.index is not None:
            self.index.remove("components", cid)
        return removed

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def build_index(self, *, wipe: bool = False) -> dict:
        """
        Rebuild the LanceDB mirror from SQLite.

        :raises ValidationError: if no LanceDB directory is configured.
        """
        if self.index is None:
            raise ValidationError("No LanceDB directory configured")
        return self.index.build(self.store, wipe=wipe)

    def clear(self) -> None:
        """Delete every catalog row and drop the LanceDB mirror tables."""
        self.store.clear()
        if self.index is not None:
            self.index.clear()

    def stats(self) -> dict:
        """Row counts per table and components per tier."""
        return self.store.stats()

    def close(self) -> None:
        """Release the SQLite connection."""
        if self._store is not None:
            self._store.close()

    def __enter__(self) -> "DesignKG":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"DesignKG(db_path={self.db_path!r}, lancedb_dir={self.lancedb_dir!r})"
        )


def load_components(data: Any) -> List[Mapping[str, Any]]:
    """
    Normalise JSON input into a list of component mappings.

    Accepts one object, a list of objects, or ``{"components": [...]}``.
    """
    if isinstance(data, Mapping) and "components" in data:
        data = data["components"]
    if isinstance(data, Mapping):
        return [data]
    if isinstance(data, list) and all(isinstance(d, Mapping) for d in data):
        return list(data)
    raise ValidationError("Expected a component object or a list of component objects")
