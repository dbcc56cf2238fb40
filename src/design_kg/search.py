#!/usr/bin/env python3
"""
search.py

SearchRanker — natural-language similarity search over the catalog.

    query → embed → 1 - cosine_distance → threshold / tier filter → sort → limit

Scoring runs inside SQLite through the store's ``cosine_distance`` function.
When a :class:`~design_kg.index.CatalogIndex` is attached, LanceDB does the
nearest-neighbour ranking instead and SQLite only supplies the row columns.
Raw embeddings never appear in results.

Author: Eric G. Suchanek, PhD
"""

from __future__ import annotations

import logging
from typing import List, Optional

from design_kg.embed import Embedder
from design_kg.errors import ValidationError
from design_kg.index import CatalogIndex, escape
from design_kg.store import TIERS, CatalogStore

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
DEFAULT_THRESHOLD = 0.3


class SearchRanker:
    """
    Ranked semantic search for components and tokens.

    :param store: Authoritative :class:`~design_kg.store.CatalogStore`.
    :param embedder: Embedding backend used for query vectors.
    :param index: Optional LanceDB mirror to rank with.
    """

    def __init__(
        self,
        store: CatalogStore,
        embedder: Embedder,
        *,
        index: Optional[CatalogIndex] = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.index = index

    def search_components(
        self,
        query: str,
        *,
        tier: Optional[str] = None,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[dict]:
        """
        Components most similar to *query*.

        :param query: Natural-language query.
        :param tier: Only return this tier.
        :param limit: Maximum rows (default 10).
        :param threshold: Strict minimum similarity (default 0.3).
        :return: Rows with ``id, name, tier, usage_rules, requirements,
                 examples, similarity``, best first.
        """
        if tier is not None and tier not in TIERS:
            raise ValidationError(
                f"Invalid tier {tier!r}; expected one of {', '.join(TIERS)}"
            )
        limit = DEFAULT_LIMIT if limit is None else limit
        threshold = DEFAULT_THRESHOLD if threshold is None else threshold

        vector = self.embedder.embed(query)
        if self.index is None:
            rows = self.store.similar_components(
                vector, tier=tier, limit=limit, threshold=threshold
            )
        else:
            where = f"tier = '{escape(tier)}'" if tier is not None else None
            rows = self._from_index("components", vector, where, limit, threshold)
        logger.debug("search_components %r → %d rows", query, len(rows))
        return rows

    def search_tokens(
        self,
        query: str,
        *,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[dict]:
        """
        Design tokens most similar to *query*.

        :return: Rows with ``id, name, category, value, description,
                 similarity``, best first.
        """
        limit = DEFAULT_LIMIT if limit is None else limit
        threshold = DEFAULT_THRESHOLD if threshold is None else threshold

        vector = self.embedder.embed(query)
        if self.index is None:
            rows = self.store.similar_tokens(vector, limit=limit, threshold=threshold)
        else:
            rows = self._from_index("tokens", vector, None, limit, threshold)
        logger.debug("search_tokens %r → %d rows", query, len(rows))
        return rows

    def _from_index(
        self,
        table: str,
        vector: List[float],
        where: Optional[str],
        limit: int,
        threshold: float,
    ) -> List[dict]:
        if limit <= 0:
            return []
        k = limit
        while True:
            raw = self.index.search(table, vector, where=where, limit=k)  # type: ignore[union-attr]
            hits = [h for h in raw if h.similarity > threshold]
            by_id = self.store.search_rows(table, [h.id for h in hits])
            rows = []
            for h in hits:
                row = by_id.get(h.id)
                if row is None:
                    # mirror is stale; the row was deleted from SQLite
                    continue
                row["similarity"] = h.similarity
                rows.append(row)
            # widening only helps while every fetched hit cleared the threshold
            if len(rows) >= limit or len(raw) < k or len(hits) < len(raw):
                if len(rows) < len(hits):
                    logger.debug("skipped %d stale %s hits", len(hits) - len(rows), table)
                return rows[:limit]
            k *= 2

    def __repr__(self) -> str:
        backend = "lancedb" if self.index is not None else "sqlite"
        return f"SearchRanker(backend={backend!r}, embedder={self.embedder!r})"
