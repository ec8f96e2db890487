"""Market gap detection table model."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from reality_radar.models.base import Base


class MarketGap(Base):
    """A detected underpricing signal; only ``notified`` ever changes."""

    __tablename__ = "market_gaps"
    __table_args__ = (
        Index("idx_market_gaps_location", "city_key", "district_key", "street_key"),
        Index("idx_market_gaps_detected", "detected_at"),
        Index("idx_market_gaps_notified", "notified"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id"), nullable=False
    )
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    district: Mapped[str] = mapped_column(String(100), nullable=False)
    street: Mapped[str | None] = mapped_column(String(200), nullable=True)
    city_key: Mapped[str] = mapped_column(String(100), nullable=False)
    district_key: Mapped[str] = mapped_column(String(100), nullable=False)
    street_key: Mapped[str | None] = mapped_column(String(200), nullable=True)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_m2: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False
    )
    comparable_mean: Mapped[float] = mapped_column(Float, nullable=False)
    comparable_scope: Mapped[str] = mapped_column(String(10), nullable=False)
    sample_count: Mapped[int] = mapped_column(Integer, nullable=False)
    gap_percent: Mapped[float] = mapped_column(Float, nullable=False)
    potential_profit: Mapped[int] = mapped_column(Integer, nullable=False)
    confidence: Mapped[str] = mapped_column(String(10), nullable=False)
    notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    detected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
