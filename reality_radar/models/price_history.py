"""Append-only price history table model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from reality_radar.models.base import Base


class PriceHistoryEntry(Base):
    """Observed price of a property at a point in time."""

    __tablename__ = "price_history"
    __table_args__ = (
        Index("idx_price_history_property", "property_id", "recorded_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id"), nullable=False
    )
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_m2: Mapped[float | None] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=True
    )
    source: Mapped[str] = mapped_column(String(30), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
