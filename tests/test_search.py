"""
test_search.py

Tests for SearchRanker over the SQLite store and over the LanceDB mirror.
"""

from __future__ import annotations

import pytest
from conftest import FakeEmbedder

from design_kg.errors import ValidationError
from design_kg.index import CatalogIndex
from design_kg.search import DEFAULT_LIMIT, DEFAULT_THRESHOLD, SearchRanker
from design_kg.sync import SyncEngine

# Component vectors keyed by a word of their usage rules; the query
# "clickable" embeds to [1, 0, 0].
VECTORS = {
    "clickable": [1.0, 0.0, 0.0],
    "press": [1.0, 1.0, 0.0],  # 0.707
    "typing": [0.3, 1.0, 0.0],  # 0.287
    "layout": [0.0, 1.0, 0.0],  # 0.0
    "compound": [1.0, 0.5, 0.0],  # 0.894
}

COMPONENTS = [
    ("Button", "atom", "clickable action"),
    ("IconButton", "atom", "press for an icon action"),
    ("Input", "atom", "typing text"),
    ("Grid", "organism", "layout grid"),
    ("SearchBar", "molecule", "compound search"),
]


def _populate(engine: SyncEngine) -> None:
    for name, tier, rules in COMPONENTS:
        engine.sync_component(
            {"name": name, "tier": tier, "code": f"// {name}", "usage_rules": rules}
        )
    engine.add_token(name="color.primary.500", category="color", value="#3B82F6",
                     description="clickable brand colour")
    engine.add_token(name="spacing.md", category="spacing", value="16px",
                     description="layout gap")


@pytest.fixture()
def embedder():
    return FakeEmbedder(VECTORS, default=(0.0, 0.0, 1.0))


@pytest.fixture()
def ranker(store, embedder):
    _populate(SyncEngine(store, embedder))
    return SearchRanker(store, embedder)


@pytest.fixture()
def indexed_ranker(store, embedder, tmp_path):
    index = CatalogIndex(tmp_path / "lancedb")
    _populate(SyncEngine(store, embedder, index=index))
    return SearchRanker(store, embedder, index=index)


# ---------------------------------------------------------------------------
# SQLite backend
# ---------------------------------------------------------------------------


def test_defaults():
    assert DEFAULT_LIMIT == 10
    assert DEFAULT_THRESHOLD == 0.3


def test_search_components_ranked_above_threshold(ranker):
    rows = ranker.search_components("clickable")
    assert [r["name"] for r in rows] == ["Button", "SearchBar", "IconButton"]
    assert rows[0]["similarity"] == pytest.approx(1.0)
    assert rows[1]["similarity"] == pytest.approx(0.894, abs=1e-3)


def test_search_components_result_columns(ranker):
    row = ranker.search_components("clickable")[0]
    assert set(row) == {
        "id",
        "name",
        "tier",
        "usage_rules",
        "requirements",
        "examples",
        "similarity",
    }


def test_search_components_threshold_is_strict(ranker):
    assert ranker.search_components("clickable", threshold=1.0) == []


def test_search_components_tier_filter(ranker):
    rows = ranker.search_components("clickable", tier="molecule")
    assert [r["name"] for r in rows] == ["SearchBar"]


def test_search_components_limit(ranker):
    rows = ranker.search_components("clickable", limit=1)
    assert [r["name"] for r in rows] == ["Button"]


def test_search_components_low_threshold(ranker):
    rows = ranker.search_components("clickable", threshold=-0.5)
    assert len(rows) == len(COMPONENTS)
    assert rows[-1]["name"] == "Grid"


def test_search_components_no_match(ranker):
    # default vector [0, 0, 1] is orthogonal to every component
    assert ranker.search_components("unrelated words") == []


def test_search_components_invalid_tier(ranker):
    with pytest.raises(ValidationError):
        ranker.search_components("clickable", tier="template")


def test_search_tokens(ranker):
    rows = ranker.search_tokens("clickable")
    assert [r["name"] for r in rows] == ["color.primary.500"]
    assert rows[0]["value"] == "#3B82F6"
    assert "embedding" not in rows[0]


def test_repr(ranker):
    assert "sqlite" in repr(ranker)


# ---------------------------------------------------------------------------
# LanceDB backend
# ---------------------------------------------------------------------------


def test_index_backend_matches_sqlite(indexed_ranker):
    rows = indexed_ranker.search_components("clickable")
    assert [r["name"] for r in rows] == ["Button", "SearchBar", "IconButton"]
    assert rows[0]["similarity"] == pytest.approx(1.0, abs=1e-4)
    assert "lancedb" in repr(indexed_ranker)


def test_index_backend_tier_filter(indexed_ranker):
    rows = indexed_ranker.search_components("clickable", tier="atom")
    assert [r["name"] for r in rows] == ["Button", "IconButton"]


def test_index_backend_tokens(indexed_ranker):
    rows = indexed_ranker.search_tokens("clickable")
    assert [r["name"] for r in rows] == ["color.primary.500"]


def test_index_backend_skips_stale_rows(indexed_ranker, store):
    store.delete_component(store.component_id("Button"))
    rows = indexed_ranker.search_components("clickable")
    assert [r["name"] for r in rows] == ["SearchBar", "IconButton"]


def test_index_backend_fills_limit_past_stale_rows(store, embedder, tmp_path):
    index = CatalogIndex(tmp_path / "lancedb")
    engine = SyncEngine(store, embedder, index=index)
    _populate(engine)
    # clearing SQLite alone leaves every mirror row behind
    store.clear()
    _populate(engine)
    ranker = SearchRanker(store, embedder, index=index)
    rows = ranker.search_components("clickable", limit=3)
    assert [r["name"] for r in rows] == ["Button", "SearchBar", "IconButton"]
    assert [r["name"] for r in ranker.search_components("clickable", limit=2)] == [
        "Button",
        "SearchBar",
    ]
    assert ranker.search_components("clickable", limit=0) == []
