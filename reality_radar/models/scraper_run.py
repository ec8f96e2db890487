"""Scrape pass bookkeeping table model."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from reality_radar.models.base import Base


class ScraperRun(Base):
    """Outcome counters of one scrape pass for one source."""

    __tablename__ = "scraper_runs"
    __table_args__ = (Index("idx_scraper_runs_source", "source", "started_at"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    source: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    finished_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    listings_found: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    listings_new: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    listings_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    listings_relisted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    listings_unchanged: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    listings_removed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    gaps_detected: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
