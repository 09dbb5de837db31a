"""Utility functions for FDKit package."""

from .to_vec import to_vec

__all__ = [
    "to_vec",
]
