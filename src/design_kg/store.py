#!/usr/bin/env python3
"""
store.py

CatalogStore — SQLite persistence layer for the design catalog.

SQLite is the authoritative, canonical store: components, tokens,
dependency edges, token usage and the change log all live here, together
with each row's embedding (float32 BLOB).  Vector similarity is exposed to
SQL as the ``cosine_distance(a, b)`` function so it can be used inside
``WHERE`` / ``ORDER BY`` expressions.

Every public write runs inside :meth:`CatalogStore.transaction`, which is
reentrant: only the outermost scope commits or rolls back.

Author: Eric G. Suchanek, PhD
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

TIERS = ("atom", "molecule", "organism")
SOURCES = ("figma", "codebase", "manual")

_SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS tokens (
  id           INTEGER PRIMARY KEY AUTOINCREMENT,
  name         TEXT NOT NULL UNIQUE,
  category     TEXT NOT NULL,
  value        TEXT NOT NULL,
  description  TEXT,
  embedding    BLOB
);

CREATE TABLE IF NOT EXISTS components (
  id            INTEGER PRIMARY KEY AUTOINCREMENT,
  name          TEXT NOT NULL UNIQUE,
  tier          TEXT NOT NULL CHECK (tier IN ('atom', 'molecule', 'organism')),
  code          TEXT NOT NULL,
  imports       TEXT,
  props_schema  TEXT,
  usage_rules   TEXT,
  requirements  TEXT,
  examples      TEXT,
  version       TEXT,
  source        TEXT NOT NULL DEFAULT 'manual'
                CHECK (source IN ('figma', 'codebase', 'manual')),
  embedding     BLOB,
  updated_at    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS component_change_log (
  id              INTEGER PRIMARY KEY AUTOINCREMENT,
  component_id    INTEGER NOT NULL REFERENCES components(id) ON DELETE CASCADE,
  source          TEXT,
  code_before     TEXT,
  code_after      TEXT,
  fields_changed  TEXT,
  created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS component_dependencies (
  id         INTEGER PRIMARY KEY AUTOINCREMENT,
  parent_id  INTEGER NOT NULL REFERENCES components(id) ON DELETE CASCADE,
  child_id   INTEGER NOT NULL REFERENCES components(id) ON DELETE CASCADE,
  context    TEXT,
  UNIQUE (parent_id, child_id)
);

CREATE TABLE IF NOT EXISTS component_token_usage (
  id            INTEGER PRIMARY KEY AUTOINCREMENT,
  component_id  INTEGER NOT NULL REFERENCES components(id) ON DELETE CASCADE,
  token_id      INTEGER NOT NULL REFERENCES tokens(id) ON DELETE CASCADE,
  property      TEXT,
  UNIQUE (component_id, token_id, property)
);

CREATE INDEX IF NOT EXISTS components_tier_idx ON components(tier);
CREATE INDEX IF NOT EXISTS change_log_component_idx ON component_change_log(component_id);
CREATE INDEX IF NOT EXISTS deps_parent_idx ON component_dependencies(parent_id);
CREATE INDEX IF NOT EXISTS deps_child_idx  ON component_dependencies(child_id);
CREATE INDEX IF NOT EXISTS token_usage_component_idx ON component_token_usage(component_id);
CREATE INDEX IF NOT EXISTS token_usage_token_idx     ON component_token_usage(token_id);
"""

_COMPONENT_COLS = (
    "id, name, tier, code, imports, props_schema, usage_rules, requirements, "
    "examples, version, source, updated_at"
)
_TOKEN_COLS = "id, name, category, value, description"

# Fields the sync engine may write on a component row
COMPONENT_FIELDS = (
    "name",
    "tier",
    "code",
    "imports",
    "props_schema",
    "usage_rules",
    "requirements",
    "examples",
    "version",
    "source",
    "embedding",
)


# ---------------------------------------------------------------------------
# Vector helpers
# ---------------------------------------------------------------------------


def encode_vector(vec: Optional[Sequence[float]]) -> Optional[bytes]:
    """Pack a vector into a float32 BLOB."""
    if vec is None:
        return None
    return np.asarray(vec, dtype="float32").tobytes()


def decode_vector(blob: Optional[bytes]) -> Optional[List[float]]:
    """Unpack a float32 BLOB into a list of floats."""
    if blob is None:
        return None
    return np.frombuffer(blob, dtype="float32").tolist()


def cosine_distance(a: Optional[bytes], b: Optional[bytes]) -> Optional[float]:
    """
    ``1 - cos(a, b)`` over two float32 BLOBs.

    Returns ``None`` (SQL ``NULL``) when either side is missing, the
    dimensions differ, or a vector has zero norm; such rows never compare.
    """
    if a is None or b is None or len(a) != len(b):
        return None
    va = np.frombuffer(a, dtype="float32")
    vb = np.frombuffer(b, dtype="float32")
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return None
    return 1.0 - float(np.dot(va, vb)) / denom


def utcnow() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# CatalogStore
# ---------------------------------------------------------------------------


class CatalogStore:
    """
    SQLite-backed authoritative store for the design catalog.

    Example::

        store = CatalogStore("catalog.sqlite")
        with store.transaction():
            cid = store.insert_component({"name": "Button", "tier": "atom",
                                          "code": "...", "source": "manual"})
        print(store.component(name="Button"))

    :param db_path: Path to the SQLite database file (created if absent).
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._con: Optional[sqlite3.Connection] = None
        self._depth = 0

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    @property
    def con(self) -> sqlite3.Connection:
        """Lazy SQLite connection (created on first access)."""
        if self._con is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._con = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._con.row_factory = sqlite3.Row
            self._con.create_function(
                "cosine_distance", 2, cosine_distance, deterministic=True
            )
            self._con.executescript(_SCHEMA_SQL)
        return self._con

    def close(self) -> None:
        """Close the underlying SQLite connection."""
        if self._con is not None:
            self._con.close()
            self._con = None

    def __enter__(self) -> "CatalogStore":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Reentrant write scope.

        The outermost scope commits on success and rolls back on any
        exception; inner scopes only join it.
        """
        con = self.con
        if self._depth:
            self._depth += 1
            try:
                yield con
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            with con:
                yield con
        finally:
            self._depth = 0

    # ------------------------------------------------------------------
    # Components — read
    # ------------------------------------------------------------------

    def component(
        self,
        *,
        name: Optional[str] = None,
        id: Optional[int] = None,
    ) -> Optional[dict]:
        """
        Fetch a single component by id (preferred) or unique name.

        :return: Component dict without its embedding, or ``None``.
        """
        if id is not None:
            row = self.con.execute(
                f"SELECT {_COMPONENT_COLS} FROM components WHERE id = ?", (id,)
            ).fetchone()
        elif name is not None:
            row = self.con.execute(
                f"SELECT {_COMPONENT_COLS} FROM components WHERE name = ?", (name,)
            ).fetchone()
        else:
            return None
        return _row_to_component(row) if row else None

    def component_id(self, name: str) -> Optional[int]:
        """Return the id of the component called *name*, or ``None``."""
        row = self.con.execute(
            "SELECT id FROM components WHERE name = ?", (name,)
        ).fetchone()
        return row[0] if row else None

    def list_components(self, *, tier: Optional[str] = None) -> List[dict]:
        """
        Summary rows, optionally restricted to one tier.

        :return: Dicts with ``id, name, tier, version, source, updated_at``.
        """
        sql = "SELECT id, name, tier, version, source, updated_at FROM components"
        params: list = []
        if tier is not None:
            sql += " WHERE tier = ?"
            params.append(tier)
        rows = self.con.execute(sql + " ORDER BY id", params).fetchall()
        return [dict(r) for r in rows]

    def components_by_names(self, names: Sequence[str]) -> List[dict]:
        """
        Set-membership lookup: every component whose name is in *names*.

        :return: ``[{"id": ..., "name": ...}]`` in storage order.
        """
        if not names:
            return []
        placeholders = ",".join("?" for _ in names)
        rows = self.con.execute(
            f"SELECT id, name FROM components WHERE name IN ({placeholders})",
            list(names),
        ).fetchall()
        return [{"id": r["id"], "name": r["name"]} for r in rows]

    # ------------------------------------------------------------------
    # Components — write
    # ------------------------------------------------------------------

    def insert_component(self, fields: dict) -> int:
        """
        Insert a new component row.

        :param fields: Column values; keys from :data:`COMPONENT_FIELDS`.
        :return: New component id.
        """
        cols = [c for c in COMPONENT_FIELDS if c in fields]
        values = [_encode_field(c, fields[c]) for c in cols]
        cols.append("updated_at")
        values.append(utcnow())
        with self.transaction() as con:
            cur = con.execute(
                f"INSERT INTO components ({', '.join(cols)}) "
                f"VALUES ({', '.join('?' for _ in cols)})",
                values,
            )
        return int(cur.lastrowid)

    def update_component(self, component_id: int, fields: dict) -> None:
        """
        Overwrite the given columns of one component and bump ``updated_at``.

        :param component_id: Row id.
        :param fields: Column values; keys from :data:`COMPONENT_FIELDS`.
        """
        cols = [c for c in COMPONENT_FIELDS if c in fields]
        values = [_encode_field(c, fields[c]) for c in cols]
        assignments = [f"{c} = ?" for c in cols] + ["updated_at = ?"]
        values += [utcnow(), component_id]
        with self.transaction() as con:
            con.execute(
                f"UPDATE components SET {', '.join(assignments)} WHERE id = ?",
                values,
            )

    def delete_component(self, component_id: int) -> bool:
        """
        Delete a component; edges, token usage and log entries cascade.

        :return: ``True`` if a row was removed.
        """
        with self.transaction() as con:
            cur = con.execute("DELETE FROM components WHERE id = ?", (component_id,))
        return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Change log
    # ------------------------------------------------------------------

    def append_change_log(
        self,
        component_id: int,
        *,
        source: Optional[str],
        code_before: Optional[str],
        code_after: Optional[str],
        fields_changed: Sequence[str],
    ) -> int:
        """Append one immutable change-log entry and return its id."""
        with self.transaction() as con:
            cur = con.execute(
                """
                INSERT INTO component_change_log
                  (component_id, source, code_before, code_after, fields_changed, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    component_id,
                    source,
                    code_before,
                    code_after,
                    json.dumps(list(fields_changed)),
                    utcnow(),
                ),
            )
        return int(cur.lastrowid)

    def history(self, component_id: int, *, limit: int = 20) -> List[dict]:
        """
        Change-log entries for a component, oldest first.

        :param component_id: Owning component id.
        :param limit: Maximum entries to return.
        """
        rows = self.con.execute(
            """
            SELECT id, component_id, source, code_before, code_after,
                   fields_changed, created_at
            FROM component_change_log
            WHERE component_id = ?
            ORDER BY created_at, id
            LIMIT ?
            """,
            (component_id, limit),
        ).fetchall()
        out = []
        for r in rows:
            d = dict(r)
            d["fields_changed"] = json.loads(d["fields_changed"] or "[]")
            out.append(d)
        return out

    # ------------------------------------------------------------------
    # Dependency edges
    # ------------------------------------------------------------------

    def delete_dependencies(self, parent_id: int) -> int:
        """Remove every outgoing edge of *parent_id*; return the count."""
        with self.transaction() as con:
            cur = con.execute(
                "DELETE FROM component_dependencies WHERE parent_id = ?", (parent_id,)
            )
        return cur.rowcount

    def insert_dependencies(self, parent_id: int, child_ids: Sequence[int]) -> None:
        """Insert one edge per child; the pair is unique."""
        with self.transaction() as con:
            con.executemany(
                "INSERT INTO component_dependencies (parent_id, child_id) VALUES (?, ?)",
                [(parent_id, c) for c in child_ids],
            )

    def dependencies(self, parent_id: int) -> List[dict]:
        """Children of *parent_id* with the edge ``context``."""
        rows = self.con.execute(
            """
            SELECT c.id, c.name, c.tier, d.context
            FROM component_dependencies d
            JOIN components c ON c.id = d.child_id
            WHERE d.parent_id = ?
            ORDER BY d.id
            """,
            (parent_id,),
        ).fetchall()
        return [dict(r) for r in rows]

    def dependents(self, child_id: int) -> List[dict]:
        """Parents of *child_id* with the edge ``context``."""
        rows = self.con.execute(
            """
            SELECT c.id, c.name, c.tier, d.context
            FROM component_dependencies d
            JOIN components c ON c.id = d.parent_id
            WHERE d.child_id = ?
            ORDER BY d.id
            """,
            (child_id,),
        ).fetchall()
        return [dict(r) for r in rows]

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def token(self, name: str) -> Optional[dict]:
        """Fetch a token by unique name (without its embedding)."""
        row = self.con.execute(
            f"SELECT {_TOKEN_COLS} FROM tokens WHERE name = ?", (name,)
        ).fetchone()
        return dict(row) if row else None

    def insert_token(
        self,
        *,
        name: str,
        category: str,
        value: str,
        description: Optional[str] = None,
        embedding: Optional[Sequence[float]] = None,
    ) -> dict:
        """
        Insert a design token.

        :return: The stored row without its embedding.
        """
        with self.transaction() as con:
            cur = con.execute(
                """
                INSERT INTO tokens (name, category, value, description, embedding)
                VALUES (?, ?, ?, ?, ?)
                """,
                (name, category, value, description, encode_vector(embedding)),
            )
        return {
            "id": int(cur.lastrowid),
            "name": name,
            "category": category,
            "value": value,
            "description": description,
        }

    def link_token(
        self,
        component_id: int,
        token_id: int,
        property: Optional[str] = None,
    ) -> bool:
        """
        Record that a component uses a token for *property*.

        Idempotent on the (component, token, property) triple, including a
        ``NULL`` property.

        :return: ``True`` if a new usage row was written.
        """
        with self.transaction() as con:
            cur = con.execute(
                """
                INSERT INTO component_token_usage (component_id, token_id, property)
                SELECT ?, ?, ?
                WHERE NOT EXISTS (
                  SELECT 1 FROM component_token_usage
                  WHERE component_id = ? AND token_id = ? AND property IS ?
                )
                """,
                (component_id, token_id, property, component_id, token_id, property),
            )
        return cur.rowcount > 0

    def component_tokens(self, component_id: int) -> List[dict]:
        """Tokens used by a component."""
        rows = self.con.execute(
            """
            SELECT t.id AS token_id, t.name AS token_name, t.category, t.value,
                   u.property
            FROM component_token_usage u
            JOIN tokens t ON t.id = u.token_id
            WHERE u.component_id = ?
            ORDER BY u.id
            """,
            (component_id,),
        ).fetchall()
        return [dict(r) for r in rows]

    def token_usage(self, token_id: int) -> List[dict]:
        """Components that use a token."""
        rows = self.con.execute(
            """
            SELECT c.id AS component_id, c.name AS component_name, c.tier,
                   u.property
            FROM component_token_usage u
            JOIN components c ON c.id = u.component_id
            WHERE u.token_id = ?
            ORDER BY u.id
            """,
            (token_id,),
        ).fetchall()
        return [dict(r) for r in rows]

    # ------------------------------------------------------------------
    # Similarity
    # ------------------------------------------------------------------

    def similar_components(
        self,
        vector: Sequence[float],
        *,
        tier: Optional[str] = None,
        limit: int = 10,
        threshold: float = 0.3,
    ) -> List[dict]:
        """
        Components with ``1 - cosine_distance > threshold``, best first.

        :param vector: Query embedding.
        :param tier: Optional exact tier filter (ANDed with the threshold).
        :param limit: Maximum rows.
        :param threshold: Strict lower bound on similarity.
        """
        params: list = [encode_vector(vector)]
        inner_where = ""
        if tier is not None:
            inner_where = "WHERE tier = ?"
            params.append(tier)
        params += [threshold, limit]
        rows = self.con.execute(
            f"""
            SELECT * FROM (
              SELECT id, name, tier, usage_rules, requirements, examples,
                     1 - cosine_distance(embedding, ?) AS similarity
              FROM components {inner_where}
            )
            WHERE similarity > ?
            ORDER BY similarity DESC, id
            LIMIT ?
            """,
            params,
        ).fetchall()
        return [dict(r) for r in rows]

    def similar_tokens(
        self,
        vector: Sequence[float],
        *,
        limit: int = 10,
        threshold: float = 0.3,
    ) -> List[dict]:
        """Tokens with ``1 - cosine_distance > threshold``, best first."""
        rows = self.con.execute(
            """
            SELECT * FROM (
              SELECT id, name, category, value, description,
                     1 - cosine_distance(embedding, ?) AS similarity
              FROM tokens
            )
            WHERE similarity > ?
            ORDER BY similarity DESC, id
            LIMIT ?
            """,
            (encode_vector(vector), threshold, limit),
        ).fetchall()
        return [dict(r) for r in rows]

    def search_rows(self, table: str, ids: Sequence[int]) -> dict[int, dict]:
        """
        Search-result columns for the given ids, keyed by id.

        Used when ranking comes from the LanceDB mirror instead of SQL.
        """
        if table == "components":
            cols = "id, name, tier, usage_rules, requirements, examples"
        elif table == "tokens":
            cols = "id, name, category, value, description"
        else:
            raise ValueError(f"unknown table: {table!r}")
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        rows = self.con.execute(
            f"SELECT {cols} FROM {table} WHERE id IN ({placeholders})", list(ids)
        ).fetchall()
        return {r["id"]: dict(r) for r in rows}

    def embedded_rows(self, table: str) -> List[dict]:
        """
        Rows of ``components`` or ``tokens`` that carry an embedding.

        Used to (re)build the LanceDB mirror; the ``vector`` key holds the
        decoded embedding.
        """
        if table == "components":
            sql = "SELECT id, name, tier, embedding FROM components"
        elif table == "tokens":
            sql = "SELECT id, name, category, embedding FROM tokens"
        else:
            raise ValueError(f"unknown table: {table!r}")
        out = []
        for r in self.con.execute(sql + " WHERE embedding IS NOT NULL ORDER BY id"):
            d = dict(r)
            d["vector"] = decode_vector(d.pop("embedding"))
            out.append(d)
        return out

    def embedding(self, table: str, row_id: int) -> Optional[List[float]]:
        """Stored embedding of one component or token row."""
        if table not in ("components", "tokens"):
            raise ValueError(f"unknown table: {table!r}")
        row = self.con.execute(
            f"SELECT embedding FROM {table} WHERE id = ?", (row_id,)
        ).fetchone()
        return decode_vector(row[0]) if row else None

    # ------------------------------------------------------------------
    # Maintenance / stats
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Delete every row from every table."""
        with self.transaction() as con:
            con.execute("DELETE FROM component_token_usage;")
            con.execute("DELETE FROM component_dependencies;")
            con.execute("DELETE FROM component_change_log;")
            con.execute("DELETE FROM components;")
            con.execute("DELETE FROM tokens;")

    def stats(self) -> dict:
        """
        Row counts per table and components per tier.

        :return: dict with ``db_path``, ``components``, ``tokens``,
                 ``dependencies``, ``token_usage``, ``change_log``,
                 ``tier_counts``.
        """

        def count(table: str) -> int:
            return self.con.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]

        tier_rows = self.con.execute(
            "SELECT tier, COUNT(*) FROM components GROUP BY tier"
        ).fetchall()
        return {
            "db_path": str(self.db_path),
            "components": count("components"),
            "tokens": count("tokens"),
            "dependencies": count("component_dependencies"),
            "token_usage": count("component_token_usage"),
            "change_log": count("component_change_log"),
            "tier_counts": {r[0]: r[1] for r in tier_rows},
        }

    def __repr__(self) -> str:
        return f"CatalogStore(db_path={self.db_path!r})"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _encode_field(column: str, value: object) -> object:
    if column == "embedding":
        return encode_vector(value)  # type: ignore[arg-type]
    if column == "props_schema":
        return None if value is None else json.dumps(value, ensure_ascii=False)
    return value


def _row_to_component(row: sqlite3.Row) -> dict:
    d = dict(row)
    if d.get("props_schema") is not None:
        d["props_schema"] = json.loads(d["props_schema"])
    return d
