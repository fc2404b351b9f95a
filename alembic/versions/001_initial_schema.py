"""Initial schema for Galleria

Revision ID: 001
Revises:
Create Date: 2026-10-18

Creates the Galleria schema:
- tenants: Global tenant registry
- users: Keycloak-authenticated users
- user_tenants: Which users may access which tenants
- albums: Tenant-owned photo albums (soft delete)
- photos: Tenant-owned photos inside albums (soft delete)
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Create tenants table
    op.create_table(
        "tenants",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("external_reference_id", sa.String(255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_tenants"),
        sa.UniqueConstraint("slug", name="uq_tenants_slug"),
        sa.UniqueConstraint("external_reference_id", name="uq_tenants_external_reference_id"),
        sa.CheckConstraint(f"slug ~ '{SLUG_PATTERN}'", name="ck_tenants_slug_format"),
    )

    # Create users table
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("keycloak_user_id", sa.String(255), nullable=False),
        # Hint only; not a foreign key
        sa.Column("last_tenant_id", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("keycloak_user_id", name="uq_users_keycloak_user_id"),
    )

    # Create user_tenants table
    op.create_table(
        "user_tenants",
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("tenant_id", sa.UUID(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "tenant_id", name="pk_user_tenants"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_user_tenants_user_id_users", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["tenant_id"], ["tenants.id"], name="fk_user_tenants_tenant_id_tenants", ondelete="CASCADE"
        ),
    )
    op.create_index("ix_user_tenants_tenant_id", "user_tenants", ["tenant_id"])

    # Create albums table
    op.create_table(
        "albums",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("tenant_id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("cover_photo_url", sa.Text(), nullable=True),
        sa.Column("status", sa.String(50), server_default="draft", nullable=False),
        sa.Column("created_by_user_id", sa.UUID(), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by_user_id", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_albums"),
        sa.ForeignKeyConstraint(
            ["tenant_id"], ["tenants.id"], name="fk_albums_tenant_id_tenants", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["created_by_user_id"], ["users.id"], name="fk_albums_created_by_user_id_users"
        ),
        sa.ForeignKeyConstraint(
            ["deleted_by_user_id"], ["users.id"], name="fk_albums_deleted_by_user_id_users"
        ),
    )
    op.create_index("ix_albums_tenant_created", "albums", ["tenant_id", "created_at"])

    # Create photos table
    op.create_table(
        "photos",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("tenant_id", sa.UUID(), nullable=False),
        sa.Column("album_id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("status", sa.String(50), server_default="draft", nullable=False),
        sa.Column("created_by_user_id", sa.UUID(), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by_user_id", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_photos"),
        sa.ForeignKeyConstraint(
            ["tenant_id"], ["tenants.id"], name="fk_photos_tenant_id_tenants", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["album_id"], ["albums.id"], name="fk_photos_album_id_albums", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["created_by_user_id"], ["users.id"], name="fk_photos_created_by_user_id_users"
        ),
        sa.ForeignKeyConstraint(
            ["deleted_by_user_id"], ["users.id"], name="fk_photos_deleted_by_user_id_users"
        ),
    )
    op.create_index("ix_photos_tenant_album", "photos", ["tenant_id", "album_id"])
    op.create_index("ix_photos_tenant_created", "photos", ["tenant_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_photos_tenant_created", table_name="photos")
    op.drop_index("ix_photos_tenant_album", table_name="photos")
    op.drop_table("photos")
    op.drop_index("ix_albums_tenant_created", table_name="albums")
    op.drop_table("albums")
    op.drop_index("ix_user_tenants_tenant_id", table_name="user_tenants")
    op.drop_table("user_tenants")
    op.drop_table("users")
    op.drop_table("tenants")
