"""Pytest configuration for the Lilt test suite."""

import sys
from pathlib import Path

# Make the src/ layout importable without an installed package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
