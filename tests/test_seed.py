"""
test_seed.py

Tests for the sample design system loader.
"""

from __future__ import annotations

from conftest import FakeEmbedder

from design_kg.kg import DesignKG
from design_kg.seed import SAMPLE_COMPONENTS, SAMPLE_TOKEN_LINKS, SAMPLE_TOKENS, seed


def test_seed_counts(kg):
    stats = seed(kg)
    assert stats["components"] == len(SAMPLE_COMPONENTS)
    assert stats["tokens"] == len(SAMPLE_TOKENS)
    assert stats["token_usage"] == len(SAMPLE_TOKEN_LINKS)
    assert stats["tier_counts"] == {"atom": 4, "molecule": 3, "organism": 2}
    assert stats["change_log"] == len(SAMPLE_COMPONENTS)


def test_seed_dependency_graph(kg):
    seed(kg)
    assert [d["name"] for d in kg.dependencies("SearchBar")] == ["Input", "Button", "Icon"]
    assert [d["name"] for d in kg.dependencies("Header")] == [
        "Button",
        "Icon",
        "Text",
        "SearchBar",
    ]
    assert [d["name"] for d in kg.dependencies("LoginForm")] == [
        "FormField",
        "Button",
        "Text",
        "Card",
    ]
    assert {d["name"] for d in kg.dependents("Button")} == {"SearchBar", "Header", "LoginForm"}
    assert kg.dependencies("Button") == []


def test_seed_is_repeatable(kg):
    first = seed(kg)
    second = seed(kg)
    assert second["components"] == first["components"]
    assert second["token_usage"] == first["token_usage"]
    assert second["change_log"] == first["change_log"]


def test_seed_wipe(kg):
    seed(kg)
    kg.sync_component({"name": "Extra", "tier": "atom", "code": "<span />"})
    stats = seed(kg, wipe=True)
    assert stats["components"] == len(SAMPLE_COMPONENTS)
    assert kg.get_component(name="Extra") is None


def test_seed_wipe_drops_mirror(tmp_path):
    kg = DesignKG(
        tmp_path / "catalog.sqlite",
        embedder=FakeEmbedder(),
        lancedb_dir=tmp_path / "lancedb",
    )
    seed(kg)
    seed(kg, wipe=True)
    hits = kg.index.search("components", [1.0, 0.0, 0.0], limit=50)
    assert len(hits) == len(SAMPLE_COMPONENTS)
    rows = kg.search_components("anything")
    assert len(rows) == len(SAMPLE_COMPONENTS)
    kg.close()


def test_kg_clear_without_mirror(kg):
    seed(kg)
    kg.clear()
    assert kg.stats()["components"] == 0
