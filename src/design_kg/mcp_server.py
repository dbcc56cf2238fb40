#!/usr/bin/env python3
"""
mcp_server.py — DesignKG MCP Server

Exposes the design catalog as Model Context Protocol (MCP) tools so any
MCP-compatible agent (Claude Desktop, Cursor, Continue, etc.) can look up,
search and sync UI components and design tokens.

Every tool returns a JSON string and never raises:

* success     → the payload
* not found   → ``{"error": "Not found"}``
* any failure → ``{"error": "<message>", "is_error": true}``

Tools
-----
get_component, list_components, get_component_dependencies,
get_component_dependents, get_component_tokens, get_component_history,
get_token_usage, search_components, search_tokens, sync_component,
bulk_sync_components, add_component, detect_dependencies,
update_component_context, add_token, link_component_token, catalog_stats

Usage
-----
Install the package, then run::

    designkg-mcp --db .designkg/catalog.sqlite --provider local

Or configure in Claude Desktop's ``claude_desktop_config.json``::

    {
      "mcpServers": {
        "designkg": {
          "command": "designkg-mcp",
          "args": ["--db", "/path/to/.designkg/catalog.sqlite"],
          "env": {"EMBEDDING_PROVIDER": "openai", "OPENAI_API_KEY": "sk-..."}
        }
      }
    }

Author: Eric G. Suchanek, PhD
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Callable, Optional

from mcp.server.fastmcp import FastMCP

from design_kg.config import Settings, add_settings_args, configure_logging
from design_kg.kg import DesignKG
from design_kg.sync import ComponentInput

logger = logging.getLogger(__name__)

NOT_FOUND = {"error": "Not found"}

# ---------------------------------------------------------------------------
# Process-wide catalog, set by main()
# ---------------------------------------------------------------------------

_kg: DesignKG | None = None


def _get_kg() -> DesignKG:
    if _kg is None:
        raise RuntimeError(
            "DesignKG not initialised.  Run the server via 'designkg-mcp --db ...'"
        )
    return _kg


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _respond(op: Callable[[], Any], failure: str) -> str:
    """
    Run one catalog operation and render its outcome as JSON.

    ``None`` results render as not-found; exceptions as error payloads.
    """
    try:
        result = op()
    except Exception as exc:
        logger.warning("%s: %s", failure, exc)
        return _dump({"error": str(exc) or failure, "is_error": True})
    if result is None:
        return _dump(NOT_FOUND)
    return _dump(result)


def _component_input(
    name: str,
    tier: str,
    code: str,
    source: str,
    props_schema: Any,
    usage_rules: Optional[str],
    requirements: Optional[str],
    examples: Optional[str],
    version: Optional[str],
    imports: Optional[str],
) -> ComponentInput:
    return ComponentInput(
        name=name,
        tier=tier,
        code=code,
        source=source,
        props_schema=props_schema,
        usage_rules=usage_rules,
        requirements=requirements,
        examples=examples,
        version=version,
        imports=imports,
    )


# ---------------------------------------------------------------------------
# MCP server
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "designkg",
    instructions=(
        "DesignKG is a catalog of UI components (atoms, molecules, organisms) and "
        "design tokens. Use search_components / search_tokens to find existing "
        "building blocks by intent before writing new UI, get_component for the "
        "full source and usage rules, and sync_component to record new or changed "
        "components; dependencies and history are maintained automatically."
    ),
)


# -- components: reads ------------------------------------------------------


@mcp.tool()
def get_component(name: Optional[str] = None, id: Optional[int] = None) -> str:
    """
    Get a component by name or id.

    :param name: Unique component name.
    :param id: Component id.
    :return: JSON component (without embedding) or an error.
    """
    return _respond(
        lambda: _get_kg().get_component(name=name, id=id), "Failed to get component"
    )


@mcp.tool()
def list_components(tier: Optional[str] = None) -> str:
    """
    List components, optionally filtered by tier.

    :param tier: ``atom``, ``molecule`` or ``organism``.
    :return: JSON list of id, name, tier, version, source, updated_at.
    """
    return _respond(lambda: _get_kg().list_components(tier), "Failed to list components")


@mcp.tool()
def get_component_dependencies(name: str) -> str:
    """Get the child components used by a given component."""
    return _respond(lambda: _get_kg().dependencies(name), "Failed to get dependencies")


@mcp.tool()
def get_component_dependents(name: str) -> str:
    """Get the parent components that use a given component."""
    return _respond(lambda: _get_kg().dependents(name), "Failed to get dependents")


@mcp.tool()
def get_component_tokens(name: str) -> str:
    """Get the design tokens used by a component."""
    return _respond(lambda: _get_kg().component_tokens(name), "Failed to get tokens")


@mcp.tool()
def get_component_history(name: str, limit: int = 20) -> str:
    """
    Get the change log for a component, oldest first.

    :param name: Component name.
    :param limit: Maximum entries (default 20).
    """
    return _respond(lambda: _get_kg().history(name, limit), "Failed to get history")


@mcp.tool()
def get_token_usage(name: str) -> str:
    """Get which components use a given design token."""
    return _respond(lambda: _get_kg().token_usage(name), "Failed to get token usage")


# -- search -----------------------------------------------------------------


@mcp.tool()
def search_components(
    query: str,
    tier: Optional[str] = None,
    limit: Optional[int] = None,
    threshold: Optional[float] = None,
) -> str:
    """
    Semantic search across components using natural language.

    :param query: e.g. "text field with a submit button".
    :param tier: Restrict to one tier.
    :param limit: Maximum results (default 10).
    :param threshold: Minimum similarity, exclusive (default 0.3).
    :return: JSON list ranked by descending similarity.
    """
    return _respond(
        lambda: _get_kg().search_components(
            query, tier=tier, limit=limit, threshold=threshold
        ),
        "Search failed",
    )


@mcp.tool()
def search_tokens(
    query: str,
    limit: Optional[int] = None,
    threshold: Optional[float] = None,
) -> str:
    """
    Semantic search across design tokens using natural language.

    :param query: e.g. "brand primary colour".
    :param limit: Maximum results (default 10).
    :param threshold: Minimum similarity, exclusive (default 0.3).
    """
    return _respond(
        lambda: _get_kg().search_tokens(query, limit=limit, threshold=threshold),
        "Search failed",
    )


# -- writes -----------------------------------------------------------------


@mcp.tool()
def sync_component(
    name: str,
    tier: str,
    code: str,
    source: str = "manual",
    props_schema: Any = None,
    usage_rules: Optional[str] = None,
    requirements: Optional[str] = None,
    examples: Optional[str] = None,
    version: Optional[str] = None,
    imports: Optional[str] = None,
) -> str:
    """
    Upsert a component from any source (figma, codebase, manual).

    Diffs against the stored version, logs changes, re-embeds and rebuilds
    dependency edges from the code.

    :return: JSON with id, name, is_new, dependencies_found.
    """
    return _respond(
        lambda: _get_kg().sync_component(
            _component_input(
                name, tier, code, source, props_schema,
                usage_rules, requirements, examples, version, imports,
            )
        ),
        "Sync failed",
    )


@mcp.tool()
def add_component(
    name: str,
    tier: str,
    code: str,
    source: str = "manual",
    props_schema: Any = None,
    usage_rules: Optional[str] = None,
    requirements: Optional[str] = None,
    examples: Optional[str] = None,
    version: Optional[str] = None,
    imports: Optional[str] = None,
) -> str:
    """Insert a new component with code and metadata (same pipeline as sync_component)."""
    return _respond(
        lambda: _get_kg().sync_component(
            _component_input(
                name, tier, code, source, props_schema,
                usage_rules, requirements, examples, version, imports,
            )
        ),
        "Add failed",
    )


@mcp.tool()
def bulk_sync_components(components: list[dict[str, Any]]) -> str:
    """
    Batch upsert several components, in order.

    Each item uses the sync_component fields.  The first failure stops the
    batch; items before it stay committed.
    """
    return _respond(lambda: _get_kg().bulk_sync(components), "Bulk sync failed")


@mcp.tool()
def detect_dependencies(name: str) -> str:
    """Re-parse a component's stored code and rebuild its dependency edges."""
    return _respond(
        lambda: _get_kg().detect_dependencies(name), "Dependency detection failed"
    )


@mcp.tool()
def update_component_context(
    name: str,
    usage_rules: Optional[str] = None,
    requirements: Optional[str] = None,
    examples: Optional[str] = None,
) -> str:
    """Update usage_rules, requirements or examples on a component and re-embed it."""
    return _respond(
        lambda: _get_kg().update_component_context(
            name, usage_rules=usage_rules, requirements=requirements, examples=examples
        ),
        "Update failed",
    )


@mcp.tool()
def add_token(
    name: str,
    category: str,
    value: str,
    description: Optional[str] = None,
) -> str:
    """Insert a new design token (e.g. color.primary.500 = #3B82F6)."""
    return _respond(
        lambda: _get_kg().add_token(name, category, value, description),
        "Failed to add token",
    )


@mcp.tool()
def link_component_token(
    component: str,
    token: str,
    property: Optional[str] = None,
) -> str:
    """Record that a component uses a design token for a CSS property."""
    return _respond(
        lambda: _get_kg().link_token(component, token, property),
        "Failed to link token",
    )


@mcp.tool()
def catalog_stats() -> str:
    """Return row counts per table and component counts per tier."""
    return _respond(lambda: _get_kg().stats(), "Failed to get stats")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _parse_args(argv: list | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="designkg-mcp",
        description="DesignKG MCP server — exposes design catalog tools to AI agents.",
    )
    add_settings_args(p)
    p.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="MCP transport: stdio (default, for Claude Desktop) or sse (HTTP)",
    )
    return p.parse_args(argv)


def main(argv: list | None = None) -> None:
    """
    CLI entry point for the DesignKG MCP server.

    Resolves settings, builds the catalog and starts the MCP server using
    the requested transport.
    """
    global _kg

    args = _parse_args(argv)
    settings = Settings.from_env().with_args(args)
    configure_logging(settings.log_level)

    print(
        f"DesignKG MCP server starting\n"
        f"  db       : {settings.db_path}\n"
        f"  lancedb  : {settings.lancedb_dir or '-'}\n"
        f"  provider : {settings.provider}\n"
        f"  model    : {settings.model_name}\n"
        f"  transport: {args.transport}",
        file=sys.stderr,
    )

    _kg = DesignKG.from_settings(settings)

    mcp.run(transport=args.transport)


if __name__ == "__main__":
    main()
