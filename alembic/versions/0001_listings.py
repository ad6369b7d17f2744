from alembic import op
import sqlalchemy as sa

revision = "0001_listings"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "listings",
        sa.Column("id", sa.String(), primary_key=True),

        sa.Column("invite", sa.Text(), nullable=True),
        sa.Column("prefix", sa.Text(), nullable=False),
        sa.Column("short_desc", sa.String(length=150), nullable=False),
        sa.Column("long_desc", sa.Text(), nullable=False),

        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column("additional_owner_ids", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),

        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("discriminator", sa.String(length=10), nullable=True),
        sa.Column("avatar", sa.String(length=120), nullable=True),

        sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_index("ix_listings_owner_id", "listings", ["owner_id"])
    op.create_index("ix_listings_approved", "listings", ["approved"])
    op.create_index("ix_listings_added_at", "listings", ["added_at"])


def downgrade():
    op.drop_index("ix_listings_added_at", table_name="listings")
    op.drop_index("ix_listings_approved", table_name="listings")
    op.drop_index("ix_listings_owner_id", table_name="listings")
    op.drop_table("listings")
