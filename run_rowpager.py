#!/usr/bin/env python3
"""
rowpager demo launcher.

Run this from the project root to open the demo table.
"""

import sys
from pathlib import Path

# Make the rowpager package importable without installing it
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

if __name__ == '__main__':
    from rowpager.run_gui import run_gui
    sys.exit(run_gui())
