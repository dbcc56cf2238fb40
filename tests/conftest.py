"""
conftest.py

Shared fixtures: a deterministic fake embedder (no model loading) and
temporary SQLite catalogs.
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from design_kg.embed import Embedder
from design_kg.kg import DesignKG
from design_kg.store import CatalogStore


class FakeEmbedder(Embedder):
    """
    Deterministic 3-d embedder.

    Returns the vector of the first key found as a substring of the text,
    else *default*.  Every embedded text is recorded in ``calls``.
    """

    dim = 3

    def __init__(self, vectors: dict | None = None, default=(1.0, 0.0, 0.0)) -> None:
        self.vectors = dict(vectors or {})
        self.default = list(default)
        self.calls: list[str] = []

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        out = []
        for t in texts:
            self.calls.append(t)
            vec = next((v for k, v in self.vectors.items() if k in t), self.default)
            out.append(list(vec))
        return out


SEARCHBAR_CODE = textwrap.dedent(
    """\
    import { Input } from "./Input";
    import { Button } from "./Button";
    import { Icon } from "./Icon";
    import { Search } from "lucide-react";

    export const SearchBar = ({ onSearch }) => (
      <form>
        <Input name="query" />
        <Button type="submit">
          <Icon icon={Search} size={16} />
        </Button>
      </form>
    );
    """
)


def atom(name: str, **extra) -> dict:
    """Minimal atom definition with no dependencies."""
    return {
        "name": name,
        "tier": "atom",
        "code": f"export const {name} = (props) => <div {{...props}} />;",
        "source": "manual",
        **extra,
    }


@pytest.fixture()
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture()
def store(tmp_path: Path):
    s = CatalogStore(tmp_path / "catalog.sqlite")
    yield s
    s.close()


@pytest.fixture()
def kg(tmp_path: Path, fake_embedder: FakeEmbedder):
    k = DesignKG(tmp_path / "catalog.sqlite", embedder=fake_embedder)
    yield k
    k.close()


@pytest.fixture()
def atoms_kg(kg: DesignKG) -> DesignKG:
    """Catalog holding the Input, Button and Icon atoms."""
    for name in ("Input", "Button", "Icon"):
        kg.sync_component(atom(name))
    return kg
