"""Running price-per-m2 aggregates keyed by location."""

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from reality_radar.models.base import Base


class StreetAggregate(Base):
    __tablename__ = "street_aggregates"
    __table_args__ = (
        UniqueConstraint(
            "city_key", "district_key", "street_key", name="uq_street_aggregates_key"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    city_key: Mapped[str] = mapped_column(String(100), nullable=False)
    district_key: Mapped[str] = mapped_column(String(100), nullable=False)
    street_key: Mapped[str] = mapped_column(String(200), nullable=False)
    mean_price_per_m2: Mapped[float] = mapped_column(Float, nullable=False)
    sample_count: Mapped[int] = mapped_column(Integer, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )


class DistrictAggregate(Base):
    __tablename__ = "district_aggregates"
    __table_args__ = (
        UniqueConstraint("city_key", "district_key", name="uq_district_aggregates_key"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    city_key: Mapped[str] = mapped_column(String(100), nullable=False)
    district_key: Mapped[str] = mapped_column(String(100), nullable=False)
    mean_price_per_m2: Mapped[float] = mapped_column(Float, nullable=False)
    sample_count: Mapped[int] = mapped_column(Integer, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
