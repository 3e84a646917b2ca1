"""Exchange rate cache.

Revision ID: 0001_exchange_rates
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_exchange_rates"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "exchange_rates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("reference_currency", sa.String(length=3), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("rate", sa.Numeric(14, 6), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint("currency", "reference_currency", "day", name="uq_exchange_rates_pair_day"),
    )
    op.create_index("ix_exchange_rates_currency", "exchange_rates", ["currency"], unique=False)
    op.create_index("ix_exchange_rates_reference_currency", "exchange_rates", ["reference_currency"], unique=False)
    op.create_index("ix_exchange_rates_day", "exchange_rates", ["day"], unique=False)

def downgrade():
    op.drop_index("ix_exchange_rates_day", table_name="exchange_rates")
    op.drop_index("ix_exchange_rates_reference_currency", table_name="exchange_rates")
    op.drop_index("ix_exchange_rates_currency", table_name="exchange_rates")
    op.drop_table("exchange_rates")
