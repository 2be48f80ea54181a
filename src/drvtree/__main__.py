"""Module entrypoint for ``python -m drvtree``."""

from __future__ import annotations

from drvtree.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
