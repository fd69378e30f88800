"""Punto de entrada: python -m progress_tool."""

from __future__ import annotations

from progress_tool.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
