"""Repository layer for mintline.

Provides data access abstractions for all domain entities.
Each repository is self-contained.
"""

from mintline.repositories.asset import AssetRepository
from mintline.repositories.content import ContentRepository

__all__ = [
    "AssetRepository",
    "ContentRepository",
]
