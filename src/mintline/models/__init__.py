"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support.
"""

from mintline.models.asset import Asset, AssetCreate, AssetState, InvalidStateTransition
from mintline.models.content import Content

__all__ = [
    "Asset",
    "AssetCreate",
    "AssetState",
    "InvalidStateTransition",
    "Content",
]
