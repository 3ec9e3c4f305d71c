#!/usr/bin/env python3
"""Run pynapi from a source checkout without installing it."""
import sys
from pathlib import Path

SRC = Path(__file__).resolve().parent / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from pynapi.cli import main  # noqa: E402

if __name__ == "__main__":
    raise SystemExit(main())
