"""
test_cli.py

Tests for the command-line entry points and the ``python -m design_kg``
dispatcher.  The embedding backend is swapped for the fake one.
"""

from __future__ import annotations

import json
import sys
from unittest.mock import patch

import pytest
from conftest import SEARCHBAR_CODE, FakeEmbedder, atom

from design_kg import __main__ as dispatcher
from design_kg import build_designkg_index, designkg_search, designkg_sync, seed
from design_kg.kg import DesignKG
from design_kg.store import CatalogStore


def _fake_from_settings(settings):
    return DesignKG(
        settings.db_path, embedder=FakeEmbedder(), lancedb_dir=settings.lancedb_dir
    )


@pytest.fixture(autouse=True)
def fake_kg(monkeypatch):
    monkeypatch.setattr(DesignKG, "from_settings", staticmethod(_fake_from_settings))
    for var in ("DESIGNKG_DB", "DESIGNKG_LANCEDB", "EMBEDDING_PROVIDER", "EMBEDDING_MODEL"):
        monkeypatch.delenv(var, raising=False)


def _run(monkeypatch, module, *argv):
    monkeypatch.setattr(sys, "argv", [module.__name__, *argv])
    module.main()


# ---------------------------------------------------------------------------
# sync
# ---------------------------------------------------------------------------


def test_sync_cli(tmp_path, monkeypatch, capsys):
    db = tmp_path / "catalog.sqlite"
    atoms = tmp_path / "atoms.json"
    atoms.write_text(json.dumps([atom("Input"), atom("Button"), atom("Icon")]))
    molecules = tmp_path / "molecules.json"
    molecules.write_text(
        json.dumps(
            {"components": [{"name": "SearchBar", "tier": "molecule", "code": SEARCHBAR_CODE}]}
        )
    )

    _run(monkeypatch, designkg_sync, "--db", str(db), "--source", "codebase",
         str(atoms), str(molecules))

    results = json.loads(capsys.readouterr().out)
    assert [r["name"] for r in results] == ["Input", "Button", "Icon", "SearchBar"]
    assert results[-1]["dependencies_found"] == ["Input", "Button", "Icon"]
    with CatalogStore(db) as store:
        assert store.component(name="SearchBar")["source"] == "codebase"
        assert store.component(name="Button")["source"] == "manual"


# ---------------------------------------------------------------------------
# seed / search
# ---------------------------------------------------------------------------


def test_seed_then_search_cli(tmp_path, monkeypatch, capsys):
    db = tmp_path / "catalog.sqlite"
    _run(monkeypatch, seed, "--db", str(db))
    stats = json.loads(capsys.readouterr().out)
    assert stats["components"] == 9

    _run(monkeypatch, designkg_search, "--db", str(db), "--tier", "organism", "header")
    rows = json.loads(capsys.readouterr().out)
    assert {r["name"] for r in rows} == {"Header", "LoginForm"}

    _run(monkeypatch, designkg_search, "--db", str(db), "--tokens", "--limit", "2", "blue")
    rows = json.loads(capsys.readouterr().out)
    assert len(rows) == 2


# ---------------------------------------------------------------------------
# build-index
# ---------------------------------------------------------------------------


def test_build_index_cli_requires_lancedb(tmp_path, monkeypatch):
    with pytest.raises(SystemExit):
        _run(monkeypatch, build_designkg_index, "--db", str(tmp_path / "c.sqlite"))


def test_build_index_cli(tmp_path, monkeypatch, capsys):
    db = tmp_path / "catalog.sqlite"
    _run(monkeypatch, seed, "--db", str(db))
    capsys.readouterr()
    _run(monkeypatch, build_designkg_index, "--db", str(db),
         "--lancedb", str(tmp_path / "lancedb"), "--wipe")
    out = capsys.readouterr().out
    assert out.startswith("OK:")
    assert "components=9" in out
    assert "tokens=10" in out


# ---------------------------------------------------------------------------
# python -m design_kg
# ---------------------------------------------------------------------------


def test_dispatcher_help(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["design_kg"])
    with pytest.raises(SystemExit) as exc:
        dispatcher.main()
    assert exc.value.code == 0
    assert "subcommands" in capsys.readouterr().out


def test_dispatcher_unknown(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["design_kg", "frobnicate"])
    with pytest.raises(SystemExit) as exc:
        dispatcher.main()
    assert exc.value.code == 1
    assert "unknown subcommand" in capsys.readouterr().err


def test_dispatcher_routes(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["design_kg", "seed", "--wipe"])
    with patch("design_kg.seed.main") as seed_main:
        dispatcher.main()
    seed_main.assert_called_once_with()
    assert sys.argv == ["python -m design_kg seed", "--wipe"]
