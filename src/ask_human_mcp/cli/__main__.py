"""Allow running the CLI as ``python -m ask_human_mcp.cli``."""

from .main import main

main()
