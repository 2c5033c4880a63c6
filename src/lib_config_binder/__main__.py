"""``python -m lib_config_binder`` runs the same CLI as the console script."""

from __future__ import annotations

import sys

from .cli import main

if __name__ == "__main__":  # pragma: no cover - exercised via python -m
    sys.exit(main(sys.argv[1:]))
