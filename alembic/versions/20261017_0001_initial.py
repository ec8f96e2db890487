"""Initial tables for properties, source links, history and market signals.

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261017_0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _tz(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("fingerprint", sa.String(length=40), nullable=False),
        sa.Column("listing_type", sa.String(length=10), nullable=False),
        sa.Column("status", sa.String(length=10), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("price_per_m2", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("district", sa.String(length=100), nullable=False),
        sa.Column("street", sa.String(length=200), nullable=True),
        sa.Column("postal_code", sa.String(length=10), nullable=True),
        sa.Column("city_key", sa.String(length=100), nullable=False),
        sa.Column("district_key", sa.String(length=100), nullable=False),
        sa.Column("street_key", sa.String(length=200), nullable=True),
        sa.Column("area_m2", sa.Numeric(precision=8, scale=2), nullable=False),
        sa.Column("rooms", sa.Integer(), nullable=True),
        sa.Column("floor", sa.Integer(), nullable=True),
        sa.Column("total_floors", sa.Integer(), nullable=True),
        sa.Column("condition", sa.String(length=20), nullable=False),
        sa.Column("energy_certificate", sa.String(length=5), nullable=False),
        sa.Column("heating", sa.String(length=20), nullable=True),
        sa.Column("year_built", sa.Integer(), nullable=True),
        sa.Column("has_elevator", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("has_balcony", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("has_parking", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("has_garage", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("has_cellar", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _tz("first_listed_at"),
        _tz("last_seen_at"),
        _tz("removed_at", nullable=True),
        sa.Column("days_on_market", sa.Integer(), server_default="0", nullable=False),
        sa.Column("relist_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "is_price_anomaly", sa.Boolean(), server_default=sa.text("false"), nullable=False
        ),
        sa.Column(
            "aggregated_price_per_m2", sa.Numeric(precision=12, scale=2), nullable=True
        ),
        _tz("created_at"),
        _tz("updated_at"),
        sa.PrimaryKeyConstraint("id", name="pk_properties"),
        sa.UniqueConstraint("fingerprint", name="uq_properties_fingerprint"),
    )
    op.create_index(
        "idx_properties_location",
        "properties",
        ["listing_type", "city_key", "district_key", "rooms"],
        unique=False,
    )
    op.create_index("idx_properties_status", "properties", ["status"], unique=False)
    op.create_index("idx_properties_area", "properties", ["area_m2"], unique=False)

    op.create_table(
        "source_listings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("source", sa.String(length=30), nullable=False),
        sa.Column("external_id", sa.String(length=100), nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("price_per_m2", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("status", sa.String(length=10), nullable=False),
        sa.Column("missed_passes", sa.Integer(), server_default="0", nullable=False),
        _tz("first_seen_at"),
        _tz("last_seen_at"),
        _tz("removed_at", nullable=True),
        sa.ForeignKeyConstraint(
            ["property_id"], ["properties.id"], name="fk_source_listings_property_id"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_source_listings"),
        sa.UniqueConstraint(
            "source", "external_id", name="uq_source_listings_source_external_id"
        ),
    )
    op.create_index(
        "idx_source_listings_property",
        "source_listings",
        ["property_id", "status"],
        unique=False,
    )
    op.create_index(
        "idx_source_listings_source_status",
        "source_listings",
        ["source", "status", "last_seen_at"],
        unique=False,
    )

    op.create_table(
        "price_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("price_per_m2", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("source", sa.String(length=30), nullable=False),
        _tz("recorded_at"),
        sa.ForeignKeyConstraint(
            ["property_id"], ["properties.id"], name="fk_price_history_property_id"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_price_history"),
    )
    op.create_index(
        "idx_price_history_property",
        "price_history",
        ["property_id", "recorded_at"],
        unique=False,
    )

    op.create_table(
        "property_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(length=20), nullable=False),
        sa.Column("price", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        _tz("occurred_at"),
        sa.ForeignKeyConstraint(
            ["property_id"], ["properties.id"], name="fk_property_events_property_id"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_property_events"),
    )
    op.create_index(
        "idx_property_events_property",
        "property_events",
        ["property_id", "occurred_at"],
        unique=False,
    )

    op.create_table(
        "street_aggregates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("city_key", sa.String(length=100), nullable=False),
        sa.Column("district_key", sa.String(length=100), nullable=False),
        sa.Column("street_key", sa.String(length=200), nullable=False),
        sa.Column("mean_price_per_m2", sa.Float(), nullable=False),
        sa.Column("sample_count", sa.Integer(), nullable=False),
        _tz("last_updated"),
        sa.PrimaryKeyConstraint("id", name="pk_street_aggregates"),
        sa.UniqueConstraint(
            "city_key", "district_key", "street_key", name="uq_street_aggregates_key"
        ),
    )

    op.create_table(
        "district_aggregates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("city_key", sa.String(length=100), nullable=False),
        sa.Column("district_key", sa.String(length=100), nullable=False),
        sa.Column("mean_price_per_m2", sa.Float(), nullable=False),
        sa.Column("sample_count", sa.Integer(), nullable=False),
        _tz("last_updated"),
        sa.PrimaryKeyConstraint("id", name="pk_district_aggregates"),
        sa.UniqueConstraint(
            "city_key", "district_key", name="uq_district_aggregates_key"
        ),
    )

    op.create_table(
        "market_gaps",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("district", sa.String(length=100), nullable=False),
        sa.Column("street", sa.String(length=200), nullable=True),
        sa.Column("city_key", sa.String(length=100), nullable=False),
        sa.Column("district_key", sa.String(length=100), nullable=False),
        sa.Column("street_key", sa.String(length=200), nullable=True),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("price_per_m2", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("comparable_mean", sa.Float(), nullable=False),
        sa.Column("comparable_scope", sa.String(length=10), nullable=False),
        sa.Column("sample_count", sa.Integer(), nullable=False),
        sa.Column("gap_percent", sa.Float(), nullable=False),
        sa.Column("potential_profit", sa.Integer(), nullable=False),
        sa.Column("confidence", sa.String(length=10), nullable=False),
        sa.Column("notified", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _tz("detected_at"),
        sa.ForeignKeyConstraint(
            ["property_id"], ["properties.id"], name="fk_market_gaps_property_id"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_market_gaps"),
    )
    op.create_index(
        "idx_market_gaps_location",
        "market_gaps",
        ["city_key", "district_key", "street_key"],
        unique=False,
    )
    op.create_index("idx_market_gaps_detected", "market_gaps", ["detected_at"], unique=False)
    op.create_index("idx_market_gaps_notified", "market_gaps", ["notified"], unique=False)

    op.create_table(
        "scraper_runs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("source", sa.String(length=30), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        _tz("started_at"),
        _tz("finished_at"),
        sa.Column("listings_found", sa.Integer(), server_default="0", nullable=False),
        sa.Column("listings_new", sa.Integer(), server_default="0", nullable=False),
        sa.Column("listings_updated", sa.Integer(), server_default="0", nullable=False),
        sa.Column("listings_relisted", sa.Integer(), server_default="0", nullable=False),
        sa.Column("listings_unchanged", sa.Integer(), server_default="0", nullable=False),
        sa.Column("listings_removed", sa.Integer(), server_default="0", nullable=False),
        sa.Column("gaps_detected", sa.Integer(), server_default="0", nullable=False),
        sa.Column("error_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("errors", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_scraper_runs"),
    )
    op.create_index(
        "idx_scraper_runs_source", "scraper_runs", ["source", "started_at"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("idx_scraper_runs_source", table_name="scraper_runs")
    op.drop_table("scraper_runs")

    op.drop_index("idx_market_gaps_notified", table_name="market_gaps")
    op.drop_index("idx_market_gaps_detected", table_name="market_gaps")
    op.drop_index("idx_market_gaps_location", table_name="market_gaps")
    op.drop_table("market_gaps")

    op.drop_table("district_aggregates")
    op.drop_table("street_aggregates")

    op.drop_index("idx_property_events_property", table_name="property_events")
    op.drop_table("property_events")

    op.drop_index("idx_price_history_property", table_name="price_history")
    op.drop_table("price_history")

    op.drop_index("idx_source_listings_source_status", table_name="source_listings")
    op.drop_index("idx_source_listings_property", table_name="source_listings")
    op.drop_table("source_listings")

    op.drop_index("idx_properties_area", table_name="properties")
    op.drop_index("idx_properties_location", table_name="properties")
    op.drop_index("idx_properties_status", table_name="properties")
    op.drop_table("properties")
