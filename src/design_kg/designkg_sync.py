#!/usr/bin/env python3
"""
designkg_sync.py

CLI entry point: sync component definitions from JSON files.

Each file holds one component object, a list of them, or
``{"components": [...]}``.  Files are processed in the order given and
components in file order; the first failure stops the run.

Author: Eric G. Suchanek, PhD
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from design_kg.config import Settings, add_settings_args, configure_logging
from design_kg.kg import DesignKG, load_components
from design_kg.store import SOURCES


def main() -> None:
    p = argparse.ArgumentParser(description="Sync component definitions from JSON files.")
    add_settings_args(p)
    p.add_argument("files", nargs="+", help="JSON files with component definitions")
    p.add_argument(
        "--source",
        choices=SOURCES,
        default=None,
        help="Provenance applied to items that do not set one",
    )
    args = p.parse_args()

    settings = Settings.from_env().with_args(args)
    configure_logging(settings.log_level)

    items = []
    for f in args.files:
        data = json.loads(Path(f).read_text(encoding="utf-8"))
        for item in load_components(data):
            if args.source and "source" not in item:
                item = {**item, "source": args.source}
            items.append(item)

    with DesignKG.from_settings(settings) as kg:
        results = kg.bulk_sync(items)

    print(json.dumps(results, indent=2, ensure_ascii=False))
    print(f"OK: synced={len(results)}", file=sys.stderr)


if __name__ == "__main__":
    main()
