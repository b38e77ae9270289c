"""
CLI interface for the team hierarchy engine.
"""

from .main import main


__all__ = ["main"]
