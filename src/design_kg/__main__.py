"""Dispatcher for ``python -m design_kg <subcommand> [args…]``.

Allows DesignKG to be invoked without activating a virtual environment,
as long as the package is installed in the active Python environment.

Subcommands
-----------
mcp             Start the MCP server
seed            Load the sample design system
sync            Sync components from JSON files
search          Run a semantic search
build-index     Build the LanceDB mirror from SQLite
"""

import sys

_COMMANDS: dict[str, str] = {
    "mcp": "design_kg.mcp_server",
    "seed": "design_kg.seed",
    "sync": "design_kg.designkg_sync",
    "search": "design_kg.designkg_search",
    "build-index": "design_kg.build_designkg_index",
}

_HELP = """\
usage: python -m design_kg <subcommand> [options]

subcommands:
  mcp             Start the MCP server
  seed            Load the sample design system
  sync            Sync components from JSON files
  search          Run a semantic search
  build-index     Build the LanceDB mirror from SQLite

Run  python -m design_kg <subcommand> --help  for per-command options.
"""


def main() -> None:
    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        print(_HELP, end="")
        sys.exit(0)

    subcommand = sys.argv[1]
    if subcommand not in _COMMANDS:
        print(f"error: unknown subcommand '{subcommand}'\n", file=sys.stderr)
        print(_HELP, end="", file=sys.stderr)
        sys.exit(1)

    # Rewrite argv so the target module's argparse sees a clean sys.argv:
    #   ["design_kg", "seed", "--wipe"]  →  ["design_kg seed", "--wipe"]
    sys.argv = [f"python -m design_kg {subcommand}", *sys.argv[2:]]

    import importlib

    mod = importlib.import_module(_COMMANDS[subcommand])
    mod.main()


if __name__ == "__main__":
    main()
