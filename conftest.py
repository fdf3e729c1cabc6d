"""
Root conftest: puts the repository root on sys.path so `candle_mirror`
imports without an install.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))
