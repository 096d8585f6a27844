#!/usr/bin/env python3
"""Run the feed-to-article workflow once (same as the `feedharvest` command)."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from feedharvest.cli import main


if __name__ == "__main__":
    sys.exit(main())
