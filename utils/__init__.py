"""
Utility modules for the allocation engine.
"""

from .config import Config

__all__ = ["Config"]
