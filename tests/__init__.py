"""
Test suite for GammaPeaks package.

This module contains unit tests and integration tests for the
peak location and quantification pipeline.
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
parent_dir = Path(__file__).parent.parent
sys.path.insert(0, str(parent_dir))
