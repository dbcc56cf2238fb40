#!/usr/bin/env python3
"""
designkg_search.py

Semantic search over the design catalog from the shell.

Prints the ranked rows as JSON, exactly as the MCP tools return them.

Author: Eric G. Suchanek, PhD
"""

from __future__ import annotations

import argparse
import json

from design_kg.config import Settings, add_settings_args, configure_logging
from design_kg.kg import DesignKG
from design_kg.search import DEFAULT_LIMIT, DEFAULT_THRESHOLD
from design_kg.store import TIERS


def main() -> None:
    p = argparse.ArgumentParser(description="Semantic search over the design catalog.")
    add_settings_args(p)
    p.add_argument("query", help="Natural-language query")
    p.add_argument(
        "--tokens", action="store_true", help="Search design tokens instead of components"
    )
    p.add_argument("--tier", choices=TIERS, default=None, help="Component tier filter")
    p.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Maximum results")
    p.add_argument(
        "--threshold",
        type=float,
        default=DEFAULT_THRESHOLD,
        help="Minimum similarity, exclusive",
    )
    args = p.parse_args()

    settings = Settings.from_env().with_args(args)
    configure_logging(settings.log_level)

    with DesignKG.from_settings(settings) as kg:
        if args.tokens:
            rows = kg.search_tokens(args.query, limit=args.limit, threshold=args.threshold)
        else:
            rows = kg.search_components(
                args.query, tier=args.tier, limit=args.limit, threshold=args.threshold
            )
    print(json.dumps(rows, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
