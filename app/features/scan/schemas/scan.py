"""
Scan Schemas

Request, domain and event models for the archive keyword scan.
"""
import re
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.platform.config import settings

YEAR_PATTERN = re.compile(r"^\d{4}$")


# ============================================================================
# Request
# ============================================================================

class ScanRequest(BaseModel):
    """Validated query parameters for a scan."""
    domain: str
    year: Optional[str] = None
    keyword: str
    limit: int = Field(default=settings.DEFAULT_SNAPSHOT_LIMIT, gt=0)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "domain": "example.com",
                "year": "2005",
                "keyword": "password",
                "limit": 100,
            }
        }
    )

    @field_validator("domain")
    @classmethod
    def domain_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("domain cannot be empty")
        return value

    @field_validator("year", mode="before")
    @classmethod
    def year_is_four_digits(cls, value):
        if value is None or value == "":
            return None
        value = str(value).strip()
        if not YEAR_PATTERN.match(value):
            raise ValueError("year must be a 4-digit year")
        return value

    @field_validator("keyword")
    @classmethod
    def keyword_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("keyword cannot be empty")
        return value


# ============================================================================
# Domain objects
# ============================================================================

class Snapshot(BaseModel):
    """One archived capture as listed by the CDX index."""
    timestamp: str
    original: str


class MatchType(str, Enum):
    TEXT = "TEXT"
    JS = "JS"
    COMMENT = "COMMENT"


class ScanMatch(BaseModel):
    """A single keyword occurrence inside one snapshot."""
    timestamp: str
    archive_url: str = Field(alias="archiveUrl")
    match_type: MatchType = Field(alias="matchType")
    snippet: str

    model_config = ConfigDict(populate_by_name=True)


# ============================================================================
# Stream events
# ============================================================================

class _Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_sse_data(self) -> str:
        """JSON body of the ``data:`` line for this event."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ProgressEvent(_Event):
    type: Literal["progress"] = "progress"
    message: str
    current_snapshot: Optional[int] = Field(default=None, alias="currentSnapshot")
    total_snapshots: Optional[int] = Field(default=None, alias="totalSnapshots")


class MatchEvent(_Event):
    type: Literal["match"] = "match"
    match: ScanMatch


class CompleteEvent(_Event):
    type: Literal["complete"] = "complete"
    message: str


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    error: str


ScanEvent = Union[ProgressEvent, MatchEvent, CompleteEvent, ErrorEvent]
