"""create_assets_and_contents

Revision ID: 3f9a1c2d7b60
Revises:
Create Date: 2026-09-28 14:02:37.118406

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9a1c2d7b60"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


asset_state = sa.Enum(
    "WAITING_APPROVAL",
    "MINT_REQUESTED",
    "MINTED",
    "MINT_FAILED",
    name="assetstate",
)


def upgrade() -> None:
    """Create assets and contents tables."""
    op.create_table(
        "assets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("symbol", sa.String(length=10), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("collection_address", sa.String(length=64), nullable=False),
        sa.Column("metadata_uri", sa.String(length=512), nullable=True),
        sa.Column("address", sa.String(length=64), nullable=True),
        sa.Column("verify_tx", sa.String(length=128), nullable=True),
        sa.Column("state", asset_state, nullable=False),
        sa.Column("content_id", sa.Uuid(), nullable=True),
        sa.Column("mint_attempts", sa.Integer(), nullable=False),
        sa.Column("verify_attempts", sa.Integer(), nullable=False),
        sa.Column("error_data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_assets_address"), "assets", ["address"], unique=False)
    op.create_index(op.f("ix_assets_state"), "assets", ["state"], unique=False)
    op.create_index(op.f("ix_assets_content_id"), "assets", ["content_id"], unique=False)

    # Raw media registered by the upload flow; linked to an asset when minting starts
    op.create_table(
        "contents",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("storage_key", sa.String(length=512), nullable=False),
        sa.Column("content_type", sa.String(length=100), nullable=True),
        sa.Column("asset_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["asset_id"], ["assets.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_contents_asset_id"), "contents", ["asset_id"], unique=False)


def downgrade() -> None:
    """Drop assets and contents tables."""
    op.drop_index(op.f("ix_contents_asset_id"), table_name="contents")
    op.drop_table("contents")
    op.drop_index(op.f("ix_assets_content_id"), table_name="assets")
    op.drop_index(op.f("ix_assets_state"), table_name="assets")
    op.drop_index(op.f("ix_assets_address"), table_name="assets")
    op.drop_table("assets")
    asset_state.drop(op.get_bind(), checkfirst=True)
