#!/usr/bin/env python3
"""Entrypoint for running the stale image report from a checkout: python python/main.py -days 30"""

import sys
from pathlib import Path

# Add this directory to path so the ecr_reaper package imports without installing
_python_dir = Path(__file__).parent.absolute()
if str(_python_dir) not in sys.path:
    sys.path.insert(0, str(_python_dir))

from ecr_reaper.cli import main

if __name__ == "__main__":
    sys.exit(main())
