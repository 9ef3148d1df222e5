"""users, user_wallets, properties

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 12:00:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_id", "users", ["id"])

    op.create_table(
        "user_wallets",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column(
            "network_type",
            sa.Enum("TESTNET", "MAINNET", name="network_type"),
            nullable=False,
        ),
        sa.Column("vault_id", sa.String(), nullable=False),
        sa.Column("wallet_address", sa.String(), nullable=False),
        sa.Column("evm_address", sa.String(), nullable=False),
        sa.Column("asset", sa.String(), nullable=False),
        sa.Column(
            "currency", sa.Enum("HBAR", name="wallet_currency"),
            nullable=False
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column(
            "balance", sa.Numeric(precision=20, scale=8), nullable=False
        ),
        sa.Column(
            "created_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_wallets_id", "user_wallets", ["id"])
    op.create_index("ix_user_wallets_user_id", "user_wallets", ["user_id"])

    money = sa.Numeric(precision=20, scale=2)
    pct = sa.Numeric(precision=6, scale=2)
    op.create_table(
        "properties",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("property_price", money, nullable=False),
        sa.Column("purchase_pct", pct, nullable=False),
        sa.Column("transaction_pct", pct, nullable=False),
        sa.Column("mof_pct", pct, nullable=False),
        sa.Column("purchase_costs", money, nullable=False),
        sa.Column("transaction_fees", money, nullable=False),
        sa.Column("mof_fees", money, nullable=False),
        sa.Column("listing_price", money, nullable=False),
        sa.Column("price_per_unit", money, nullable=False),
        sa.Column("num_units", sa.Integer(), nullable=False),
        sa.Column("image_urls", sa.JSON(), nullable=True),
        sa.Column("governors_consent_url", sa.String(), nullable=True),
        sa.Column("deed_of_assignment_url", sa.String(), nullable=True),
        sa.Column("survey_plan_url", sa.String(), nullable=True),
        sa.Column("features", sa.JSON(), nullable=True),
        sa.Column("amenities", sa.JSON(), nullable=True),
        sa.Column("why_invest", sa.JSON(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_properties_id", "properties", ["id"])


def downgrade() -> None:
    op.drop_index("ix_properties_id", table_name="properties")
    op.drop_table("properties")
    op.drop_index("ix_user_wallets_user_id", table_name="user_wallets")
    op.drop_index("ix_user_wallets_id", table_name="user_wallets")
    op.drop_table("user_wallets")
    sa.Enum(name="wallet_currency").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="network_type").drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
