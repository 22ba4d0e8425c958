"""
Entry point for running the MuiDB MCP server.

Usage:
    python -m muidb
    # or after installation:
    muidb-mcp-server

    # Resolve relative paths against specific directories:
    muidb-mcp-server --directory /path/to/project
    muidb-mcp-server -d ~/src/app -d ~/src/lib

    # Or use environment variable:
    MUIDB_SEARCH_DIRS=/path1:/path2 muidb-mcp-server
"""

import argparse
import asyncio
import os
from pathlib import Path

from .constants import ENV_SEARCH_DIRS


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="MCP server for MuiDB localization databases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  muidb-mcp-server                                   # Resolve paths against the cwd
  muidb-mcp-server -d ~/src/app                      # Resolve paths against a directory
  muidb-mcp-server -d ~/Dir1 -d ~/Dir2               # Search multiple directories
  MUIDB_SEARCH_DIRS=~/Dir1:~/Dir2 muidb-mcp-server   # Use environment variable
        """
    )
    parser.add_argument(
        "-d", "--directory",
        action="append",
        dest="directories",
        metavar="PATH",
        help="Directory relative file paths are resolved against. Can be specified multiple times."
    )
    return parser.parse_args(argv)


def get_search_directories(args) -> list[Path]:
    """
    Get search directories from arguments and environment variables.

    Priority:
    1. Command-line --directory arguments
    2. MUIDB_SEARCH_DIRS environment variable (os.pathsep separated)
    3. None (the current working directory is used)
    """
    candidates = list(args.directories or [])

    if not candidates:
        env_dirs = os.environ.get(ENV_SEARCH_DIRS, "")
        candidates = [d.strip() for d in env_dirs.split(os.pathsep) if d.strip()]

    directories = []
    for d in candidates:
        path = Path(d).expanduser().resolve()
        if path.exists() and path.is_dir():
            directories.append(path)
    return directories


def run():
    """Run the MCP server."""
    args = parse_args()
    search_dirs = get_search_directories(args)

    # Import here so logging is configured only when the server actually starts
    from .cache import set_search_directories
    from .server import main

    if search_dirs:
        set_search_directories(search_dirs)

    asyncio.run(main())


if __name__ == "__main__":
    run()
