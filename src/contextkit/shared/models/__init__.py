"""
Shared data models for contextkit.
"""

from .base import BaseModel, FrozenModel

__all__ = [
    "BaseModel",
    "FrozenModel",
]
