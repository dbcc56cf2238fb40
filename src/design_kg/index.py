#!/usr/bin/env python3
"""
index.py

CatalogIndex — optional LanceDB vector mirror of the design catalog.

Derived from SQLite; disposable and rebuildable at any time.  Vectors are
copied from the stored embeddings (no re-embedding), so a rebuild is cheap.
SQLite (CatalogStore) remains the authoritative source of truth.

Author: Eric G. Suchanek, PhD
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from design_kg.store import CatalogStore

_TABLES = ("components", "tokens")


@dataclass
class IndexHit:
    """
    A single result from a LanceDB vector search.

    :param id: Catalog row id.
    :param distance: Cosine distance (lower = more similar).
    :param rank: Zero-based rank in the result list.
    """

    id: int
    distance: float
    rank: int

    @property
    def similarity(self) -> float:
        return 1.0 - self.distance


class CatalogIndex:
    """
    LanceDB-backed mirror of component and token embeddings.

    Example::

        idx = CatalogIndex("./lancedb")
        idx.build(store, wipe=True)
        hits = idx.search("components", query_vec, where="tier = 'atom'", limit=5)

    :param lancedb_dir: Directory for the LanceDB database.
    """

    def __init__(self, lancedb_dir: str | Path) -> None:
        self.lancedb_dir = Path(lancedb_dir)
        self._db = None
        self._tables: dict = {}

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self, store: CatalogStore, *, wipe: bool = False) -> dict:
        """
        Copy every stored embedding from *store* into LanceDB.

        :param store: Authoritative :class:`~design_kg.store.CatalogStore`.
        :param wipe: Drop the existing tables first.
        :return: Stats dict with ``components``, ``tokens``, ``lancedb_dir``.
        """
        stats: dict = {"lancedb_dir": str(self.lancedb_dir)}
        for table in _TABLES:
            if wipe:
                self._drop(table)
            rows = store.embedded_rows(table)
            for row in rows:
                self.upsert(table, row)
            stats[table] = len(rows)
        return stats

    def clear(self) -> None:
        """Drop both mirror tables."""
        for table in _TABLES:
            self._drop(table)

    # ------------------------------------------------------------------
    # Row maintenance
    # ------------------------------------------------------------------

    def upsert(self, table: str, row: dict) -> None:
        """
        Replace the mirrored vector of one catalog row.

        :param table: ``"components"`` or ``"tokens"``.
        :param row: Dict with ``id``, ``name``, ``vector`` and for components
                    ``tier`` (for prefiltering).
        """
        record = {
            "id": int(row["id"]),
            "name": row["name"],
            "tier": row.get("tier") or "",
            "vector": [float(x) for x in row["vector"]],
        }
        tbl = self._open_table(table, dim=len(record["vector"]))
        tbl.delete(f"id = {record['id']}")
        tbl.add([record])

    def remove(self, table: str, row_id: int) -> None:
        """Drop one row from the mirror (no-op when the table is absent)."""
        tbl = self._get_table(table)
        if tbl is not None:
            tbl.delete(f"id = {int(row_id)}")

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(
        self,
        table: str,
        vector: Sequence[float],
        *,
        where: Optional[str] = None,
        limit: int = 10,
    ) -> List[IndexHit]:
        """
        Cosine vector search.

        :param table: ``"components"`` or ``"tokens"``.
        :param vector: Query embedding.
        :param where: Optional SQL prefilter (e.g. ``"tier = 'atom'"``).
        :param limit: Number of results to return.
        :return: :class:`IndexHit` list ordered by ascending distance.
        """
        tbl = self._get_table(table)
        if tbl is None:
            return []
        q = tbl.search(list(vector)).distance_type("cosine")
        if where:
            q = q.where(where, prefilter=True)
        raw = q.limit(limit).to_list()
        return [
            IndexHit(id=int(row["id"]), distance=_extract_distance(row), rank=rank)
            for rank, row in enumerate(raw)
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _connect(self):
        if self._db is None:
            import lancedb

            self.lancedb_dir.mkdir(parents=True, exist_ok=True)
            self._db = lancedb.connect(str(self.lancedb_dir))
        return self._db

    def _get_table(self, table: str):
        """Return cached table handle, opening if it exists."""
        if table not in _TABLES:
            raise ValueError(f"unknown table: {table!r}")
        if table not in self._tables:
            db = self._connect()
            if table not in _table_names(db):
                return None
            self._tables[table] = db.open_table(table)
        return self._tables[table]

    def _open_table(self, table: str, *, dim: int):
        """Open or create the LanceDB table for vectors of size *dim*."""
        tbl = self._get_table(table)
        if tbl is not None:
            return tbl

        # Create with a dummy row to establish schema, then remove it
        dummy = {"id": -1, "name": "__dummy__", "tier": "", "vector": [0.0] * dim}
        tbl = self._connect().create_table(table, data=[dummy])
        tbl.delete("id = -1")
        self._tables[table] = tbl
        return tbl

    def _drop(self, table: str) -> None:
        self._connect().drop_table(table, ignore_missing=True)
        self._tables.pop(table, None)

    def __repr__(self) -> str:
        return f"CatalogIndex(lancedb_dir={self.lancedb_dir!r})"


# ---------------------------------------------------------------------------
# Internal utilities
# ---------------------------------------------------------------------------


def _table_names(db) -> List[str]:
    """Table names of a LanceDB connection (first page is enough for two tables)."""
    resp = db.list_tables()
    return list(getattr(resp, "tables", resp))


def _extract_distance(row: dict) -> float:
    """Extract a distance value from a LanceDB result row."""
    for key in ("_distance", "distance"):
        if key in row and row[key] is not None:
            return float(row[key])
    return 1.0


def escape(s: str) -> str:
    """Escape single quotes for LanceDB filter predicates."""
    return s.replace("'", "''")
