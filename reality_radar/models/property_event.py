"""Property lifecycle event table model."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from reality_radar.models.base import Base


class PropertyEvent(Base):
    """LISTED, RELISTED and REMOVED transitions; price events are derived."""

    __tablename__ = "property_events"
    __table_args__ = (Index("idx_property_events_property", "property_id", "occurred_at"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id"), nullable=False
    )
    event_type: Mapped[str] = mapped_column(String(20), nullable=False)
    price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
