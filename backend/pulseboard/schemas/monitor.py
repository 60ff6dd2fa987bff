"""Monitor catalog schemas - the static list of categories and endpoints."""
import json
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from ..errors import ConfigurationError

# Monitor ids appear in URLs and storage keys
MONITOR_ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$"


class LengthExpectation(BaseModel):
    """Bounds for the response body length."""
    min: Optional[int] = Field(None, ge=0)
    max: Optional[int] = Field(None, ge=0)


class CheckSpec(BaseModel):
    """How a monitor is probed. Default is a HEAD request classified by status code."""
    type: Literal["status", "length"] = "status"
    expect: LengthExpectation = Field(default_factory=LengthExpectation)


class MonitorConfig(BaseModel):
    """A monitored endpoint."""
    id: str = Field(..., pattern=MONITOR_ID_PATTERN)
    label: str = Field(..., min_length=1, max_length=255)
    category: str
    url: str = Field(..., pattern=r"^https?://")
    check: Optional[CheckSpec] = None

    model_config = {"frozen": True}


class CategoryConfig(BaseModel):
    """A group of monitors shown together on the dashboard."""
    id: str
    label: str

    model_config = {"frozen": True}


class HistoryConfig(BaseModel):
    """History retention options from the catalog file."""
    retention_days: Optional[int] = Field(None, ge=1)
    auto_cleanup: bool = True


class MonitorCatalog(BaseModel):
    """Categories and monitors, in display order."""
    categories: List[CategoryConfig]
    items: List[MonitorConfig]
    history: HistoryConfig = Field(default_factory=HistoryConfig)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_references(self):
        ids = [item.id for item in self.items]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate monitor ids: {', '.join(duplicates)}")

        category_ids = {category.id for category in self.categories}
        for item in self.items:
            if item.category not in category_ids:
                raise ValueError(f"Monitor {item.id} references unknown category {item.category}")
        return self

    def find(self, monitor_id: str) -> Optional[MonitorConfig]:
        for item in self.items:
            if item.id == monitor_id:
                return item
        return None


def load_catalog(path: str) -> MonitorCatalog:
    """Load the monitor catalog from a JSON file.

    Raises ConfigurationError if the file is missing or invalid.
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read monitors file {path}: {e}") from e

    try:
        return MonitorCatalog.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ConfigurationError(f"Invalid monitors file {path}: {e}") from e
