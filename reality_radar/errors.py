"""Error kinds and exceptions raised by the ingestion core."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import StrEnum


class ErrorKind(StrEnum):
    PARSE_ERROR = "PARSE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    STRUCTURE_CHANGE = "STRUCTURE_CHANGE"
    DATABASE_ERROR = "DATABASE_ERROR"


@dataclass(slots=True)
class IngestionIssue:
    """One recorded problem with enough context to reproduce it offline."""

    kind: ErrorKind
    source: str
    message: str
    external_id: str | None = None
    url: str | None = None
    field: str | None = None
    raw_value: str | None = None

    def as_dict(self) -> dict[str, str | None]:
        data = asdict(self)
        data["kind"] = str(self.kind)
        return data


class ListingRejectedError(ValueError):
    """A listing failed validation of a required field."""

    def __init__(self, issues: list[IngestionIssue]) -> None:
        self.issues = issues
        reasons = "; ".join(issue.message for issue in issues) or "rejected"
        super().__init__(reasons)


class StructureChangeError(RuntimeError):
    """A source delivered rows but none of them could be parsed."""

    def __init__(self, source: str, raw_count: int, detail: str = "") -> None:
        self.source = source
        self.raw_count = raw_count
        message = (
            f"Structure change detected for source={source}: "
            f"raw_count={raw_count}, parsed_count=0"
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class PropertyNotFoundError(LookupError):
    def __init__(self, property_id: int) -> None:
        self.property_id = property_id
        super().__init__(f"Property {property_id} not found")
