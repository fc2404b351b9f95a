"""Enable row level security

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

Turns on (and forces) row level security for albums, photos and
user_tenants and creates their policies. Policies read the
app.tenant_id / app.user_id settings that the application sets on every
connection checkout; tenants and users stay global.
"""

from typing import Sequence, Union

from alembic import op

from galleria.db.rls import (
    drop_membership_statements,
    drop_tenant_isolation_statements,
    membership_statements,
    tenant_isolation_statements,
)

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLES = ("albums", "photos")


def upgrade() -> None:
    for table in TABLES:
        for statement in tenant_isolation_statements(table):
            op.execute(statement)
    for statement in membership_statements():
        op.execute(statement)


def downgrade() -> None:
    for table in TABLES:
        for statement in drop_tenant_isolation_statements(table):
            op.execute(statement)
    for statement in drop_membership_statements():
        op.execute(statement)
