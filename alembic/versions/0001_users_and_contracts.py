"""identity registry and contract store

Revision ID: 0001_users_and_contracts
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_users_and_contracts"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(256), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("eth_address", sa.String(42), nullable=False),
        sa.Column("account_address", sa.String(42), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("eth_address", name="uq_users_eth_address"),
    )
    op.create_index("ix_users_account_address", "users", ["account_address"])

    op.create_table(
        "contracts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("contract_index", sa.Integer(), nullable=False),
        sa.Column("agent_address", sa.String(42), nullable=False),
        sa.Column("seller_address", sa.String(42), nullable=False),
        sa.Column("buyer_address", sa.String(42), nullable=False),
        sa.Column("building_type", sa.String(32), nullable=False),
        sa.Column("building_name", sa.String(256), nullable=False),
        sa.Column("building_address", sa.String(512), nullable=False),
        sa.Column("building_photo", sa.String(512), nullable=True),
        sa.Column("contract_type", sa.Integer(), nullable=False),
        sa.Column("contract_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_contracts"),
        sa.UniqueConstraint("contract_index", name="uq_contract_index"),
    )
    op.create_index("ix_contracts_agent", "contracts", ["agent_address"])


def downgrade():
    op.drop_index("ix_contracts_agent", table_name="contracts")
    op.drop_table("contracts")
    op.drop_index("ix_users_account_address", table_name="users")
    op.drop_table("users")
