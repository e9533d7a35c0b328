"""
Shared pytest setup: make the backend package and the test doubles importable.

Usage:
    pytest backend/tests -v
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, os.path.dirname(__file__))
