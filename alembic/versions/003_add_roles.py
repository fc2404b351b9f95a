"""Add role catalog and per-tenant role assignments

Revision ID: 003
Revises: 002
Create Date: 2026-10-18

- roles: global, code-defined catalog (seeded by ``galleria db seed-roles``
  and at application startup)
- user_roles: which role a user holds inside a tenant; tenant isolation
  policy like albums and photos
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from galleria.db.rls import drop_tenant_isolation_statements, tenant_isolation_statements

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create roles table
    op.create_table(
        "roles",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_roles"),
        sa.UniqueConstraint("name", name="uq_roles_name"),
    )

    # Create user_roles table
    op.create_table(
        "user_roles",
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("role_id", sa.UUID(), nullable=False),
        sa.Column("tenant_id", sa.UUID(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "role_id", "tenant_id", name="pk_user_roles"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_user_roles_user_id_users", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["role_id"], ["roles.id"], name="fk_user_roles_role_id_roles", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["tenant_id"], ["tenants.id"], name="fk_user_roles_tenant_id_tenants", ondelete="CASCADE"
        ),
    )
    op.create_index("ix_user_roles_user_tenant", "user_roles", ["user_id", "tenant_id"])
    op.create_index("ix_user_roles_tenant_id", "user_roles", ["tenant_id"])

    for statement in tenant_isolation_statements("user_roles"):
        op.execute(statement)


def downgrade() -> None:
    for statement in drop_tenant_isolation_statements("user_roles"):
        op.execute(statement)
    op.drop_index("ix_user_roles_tenant_id", table_name="user_roles")
    op.drop_index("ix_user_roles_user_tenant", table_name="user_roles")
    op.drop_table("user_roles")
    op.drop_table("roles")
