"""Canonical property table model."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from reality_radar.models.base import Base


class Property(Base):
    """One real-world unit, deduplicated across sources."""

    __tablename__ = "properties"
    __table_args__ = (
        UniqueConstraint("fingerprint", name="uq_properties_fingerprint"),
        UniqueConstraint("slug", name="uq_properties_slug"),
        Index(
            "idx_properties_location",
            "listing_type",
            "city_key",
            "district_key",
            "rooms",
        ),
        Index("idx_properties_status", "status"),
        Index("idx_properties_area", "area_m2"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(120), nullable=False)
    # Fingerprint key, or a per-link variant when the same portal lists two
    # units with identical attributes.
    fingerprint: Mapped[str] = mapped_column(String(40), nullable=False)
    listing_type: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # -1 marks "price on request".
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_m2: Mapped[float | None] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=True
    )

    city: Mapped[str] = mapped_column(String(100), nullable=False)
    district: Mapped[str] = mapped_column(String(100), nullable=False)
    street: Mapped[str | None] = mapped_column(String(200), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    city_key: Mapped[str] = mapped_column(String(100), nullable=False)
    district_key: Mapped[str] = mapped_column(String(100), nullable=False)
    street_key: Mapped[str | None] = mapped_column(String(200), nullable=True)

    area_m2: Mapped[float] = mapped_column(Numeric(8, 2, asdecimal=False), nullable=False)
    rooms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    floor: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_floors: Mapped[int | None] = mapped_column(Integer, nullable=True)
    condition: Mapped[str] = mapped_column(String(20), nullable=False)
    energy_certificate: Mapped[str] = mapped_column(String(5), nullable=False)
    heating: Mapped[str | None] = mapped_column(String(20), nullable=True)
    year_built: Mapped[int | None] = mapped_column(Integer, nullable=True)
    has_elevator: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_balcony: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_parking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_garage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_cellar: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    first_listed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    removed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    days_on_market: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    relist_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_price_anomaly: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    # Value currently counted in the street/district running means.
    aggregated_price_per_m2: Mapped[float | None] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
