#!/usr/bin/env python3
"""Entry point for running ata from a source checkout."""

import sys
from pathlib import Path

# Add src/ to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from ata.cli import main


if __name__ == "__main__":
    sys.exit(main())
