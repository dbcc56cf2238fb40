#!/usr/bin/env python3
"""
build_designkg_index.py

CLI entry point: SQLite → LanceDB vector mirror

Copies the stored component and token embeddings into LanceDB.  No
embedding model is loaded.

Author: Eric G. Suchanek, PhD
"""

from __future__ import annotations

import argparse

from design_kg.config import Settings, add_settings_args, configure_logging
from design_kg.index import CatalogIndex
from design_kg.store import CatalogStore


def main() -> None:
    p = argparse.ArgumentParser(
        description="Build the LanceDB mirror from an existing design catalog."
    )
    add_settings_args(p)
    p.add_argument("--wipe", action="store_true", help="Drop existing tables first")
    args = p.parse_args()

    settings = Settings.from_env().with_args(args)
    configure_logging(settings.log_level)
    if settings.lancedb_dir is None:
        p.error("--lancedb (or $DESIGNKG_LANCEDB) is required")

    with CatalogStore(settings.db_path) as store:
        stats = CatalogIndex(settings.lancedb_dir).build(store, wipe=args.wipe)

    print(
        "OK:",
        f"components={stats['components']}",
        f"tokens={stats['tokens']}",
        f"lancedb_dir={stats['lancedb_dir']}",
    )


if __name__ == "__main__":
    main()
