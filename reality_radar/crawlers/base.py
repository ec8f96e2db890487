"""Payloads delivered by the scraping transport."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

from reality_radar.errors import ErrorKind, IngestionIssue
from reality_radar.timeutil import ensure_utc, utcnow

T = TypeVar("T")


def _parse_timestamp(value: object) -> datetime | None:
    """ISO-8601 string or datetime to aware UTC; anything else raises ValueError."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        return ensure_utc(datetime.fromisoformat(value.strip()))
    raise ValueError(f"not a timestamp: {value!r}")


@dataclass(slots=True)
class CrawlResult(Generic[T]):
    """Generic outcome of turning transport rows into typed rows."""

    count: int
    rows: list[T]
    errors: list[IngestionIssue] = field(default_factory=list)


@dataclass(slots=True)
class RawListing:
    """One listing as scraped: free text, nothing parsed yet."""

    source: str
    external_id: str
    url: str
    title: str = ""
    description: str = ""
    price_text: str = ""
    area_text: str = ""
    location_text: str = ""
    street: str | None = None
    postal_code: str | None = None
    listing_type: str = "SALE"
    seller_contact: str | None = None
    image_urls: list[str] = field(default_factory=list)
    scraped_at: datetime | None = None
    # Problems met while reading the transport payload itself.
    issues: list[IngestionIssue] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> RawListing:
        """Build from a JSON-like mapping, tolerating missing optional keys.

        An unreadable ``scraped_at`` is dropped and kept as a PARSE_ERROR issue.
        """

        def _text(key: str) -> str:
            value = data.get(key)
            return "" if value is None else str(value)

        def _optional(key: str) -> str | None:
            value = data.get(key)
            if value is None:
                return None
            text = str(value).strip()
            return text or None

        issues: list[IngestionIssue] = []
        try:
            scraped_at = _parse_timestamp(data.get("scraped_at"))
        except ValueError:
            scraped_at = None
            issues.append(
                IngestionIssue(
                    kind=ErrorKind.PARSE_ERROR,
                    source=_text("source").strip().lower(),
                    external_id=_optional("external_id"),
                    url=_optional("url"),
                    field="scraped_at",
                    raw_value=_text("scraped_at"),
                    message="scraped_at is not an ISO-8601 timestamp, using ingest time",
                )
            )
        raw_images = data.get("image_urls") or []
        return cls(
            source=_text("source").strip().lower(),
            external_id=_text("external_id").strip(),
            url=_text("url").strip(),
            title=_text("title"),
            description=_text("description"),
            price_text=_text("price_text"),
            area_text=_text("area_text"),
            location_text=_text("location_text"),
            street=_optional("street"),
            postal_code=_optional("postal_code"),
            listing_type=(_optional("listing_type") or "SALE").upper(),
            seller_contact=_optional("seller_contact"),
            image_urls=[str(url) for url in raw_images] if isinstance(raw_images, list) else [],
            scraped_at=scraped_at,
            issues=issues,
        )


@dataclass(slots=True)
class ScrapePass:
    """A batch for one source.

    ``complete`` means ``rows`` is the full observed set for the source, so
    absence may be read as removal. ``network_error`` means the transport got
    nothing this pass. ``expected_count`` is the transport's own estimate of
    how many rows the source should have yielded.
    """

    source: str
    rows: list[RawListing]
    started_at: datetime = field(default_factory=utcnow)
    complete: bool = True
    network_error: str | None = None
    expected_count: int | None = None
    # Rows dropped while reading the payload; counted as found and failed.
    skipped_rows: int = 0
    issues: list[IngestionIssue] = field(default_factory=list)

    @property
    def observed_external_ids(self) -> set[str]:
        return {row.external_id for row in self.rows if row.external_id}

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> ScrapePass:
        """Build from a task or HTTP payload; ``rows`` holds raw listing mappings.

        Malformed pieces never raise: a row that is not a mapping is skipped,
        and an unreadable ``started_at`` or ``expected_count`` falls back to a
        default. Each case is kept as an issue for the pass report.
        """

        source = str(data.get("source") or "").strip().lower()
        issues: list[IngestionIssue] = []

        def issue(kind: ErrorKind, field_name: str, raw_value: object, message: str) -> None:
            issues.append(
                IngestionIssue(
                    kind=kind,
                    source=source,
                    field=field_name,
                    raw_value=None if raw_value is None else str(raw_value)[:200],
                    message=message,
                )
            )

        raw_rows = data.get("rows") or []
        if not isinstance(raw_rows, list):
            issue(ErrorKind.VALIDATION_ERROR, "rows", raw_rows, "rows must be a list")
            raw_rows = []

        rows: list[RawListing] = []
        skipped = 0
        for index, row in enumerate(raw_rows):
            if not isinstance(row, Mapping):
                skipped += 1
                issue(
                    ErrorKind.VALIDATION_ERROR,
                    f"rows[{index}]",
                    row,
                    "row is not an object",
                )
                continue
            rows.append(RawListing.from_mapping({**row, "source": source}))

        try:
            started_at = _parse_timestamp(data.get("started_at")) or utcnow()
        except ValueError:
            started_at = utcnow()
            issue(
                ErrorKind.PARSE_ERROR,
                "started_at",
                data.get("started_at"),
                "started_at is not an ISO-8601 timestamp, using receipt time",
            )

        expected_count: int | None = None
        expected = data.get("expected_count")
        if expected is not None:
            try:
                expected_count = int(expected)  # type: ignore[call-overload]
            except (TypeError, ValueError):
                issue(
                    ErrorKind.PARSE_ERROR,
                    "expected_count",
                    expected,
                    "expected_count is not an integer, ignoring it",
                )

        return cls(
            source=source,
            rows=rows,
            started_at=started_at,
            complete=bool(data.get("complete", True)),
            network_error=str(data["network_error"]) if data.get("network_error") else None,
            expected_count=expected_count,
            skipped_rows=skipped,
            issues=issues,
        )
