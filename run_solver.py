#!/usr/bin/env python3
# run_solver.py (at repo root)
from pathlib import Path
import sys

repo = Path(__file__).resolve().parent
if str(repo) not in sys.path:
    sys.path.insert(0, str(repo))

from snakecube.solver import main

if __name__ == "__main__":
    sys.exit(main())
