"""
Data models for Braindump.

Pydantic schemas for the oracle contract (CategoryItem) and for stored rows.
"""

import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationInfo, computed_field, field_validator, model_validator

from braindump.dates import RECURRENCES, day_of_week, is_concrete_date, is_valid_time, normalize_recurrence


class Category(str, Enum):
    """The five buckets. FROZEN: no other values are valid."""

    DO = "do"
    PLAN = "plan"
    THINK = "think"
    SHOPPING_LIST = "shopping_list"
    IMPORTANT_DATES_EVENTS = "important_dates_events"

    @property
    def label(self) -> str:
        """Key used for this category in the oracle's JSON output."""
        return CATEGORY_LABELS[self]


# Taxonomy order: the merge engine processes categories in this order
CATEGORY_LABELS = {
    Category.DO: "Do",
    Category.PLAN: "Plan",
    Category.THINK: "Think",
    Category.SHOPPING_LIST: "Shopping List",
    Category.IMPORTANT_DATES_EVENTS: "Important Dates/Events",
}


class RawFragment(BaseModel):
    """A captured, not yet organized note."""

    id: str
    owner_id: str
    content: str
    created_at: str | None = None


class CategoryItem(BaseModel):
    """
    One item of oracle output.

    Validate with ``context={"anchor_date": date}`` to apply the partial
    validation policy: a bad date or time becomes None, the item survives.
    """

    item: str = Field(min_length=1, description="The item text, used as identity")
    recurrence: str | None = Field(default=None, description=" | ".join(RECURRENCES))
    date: datetime.date | None = Field(default=None, description="YYYY-MM-DD, on or after the anchor")
    time: str | None = Field(default=None, description="HH:MM, 24-hour")
    completed: bool = False

    @model_validator(mode="before")
    @classmethod
    def _title_fallback(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("item") and data.get("title"):
            data = {**data, "item": data["title"]}
        return data

    @field_validator("item", mode="before")
    @classmethod
    def _strip_item(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("recurrence", mode="before")
    @classmethod
    def _check_recurrence(cls, value: Any) -> str | None:
        return normalize_recurrence(value) if isinstance(value, str) else None

    @field_validator("date", mode="before")
    @classmethod
    def _check_date(cls, value: Any, info: ValidationInfo) -> datetime.date | None:
        if isinstance(value, datetime.date):
            value = value.isoformat()
        anchor = (info.context or {}).get("anchor_date")
        if not isinstance(value, str) or anchor is None:
            return None
        if not is_concrete_date(value, anchor):
            return None
        return datetime.date.fromisoformat(value.strip())

    @field_validator("time", mode="before")
    @classmethod
    def _check_time(cls, value: Any) -> str | None:
        if isinstance(value, str) and is_valid_time(value.strip()):
            return value.strip()
        return None

    @field_validator("completed", mode="before")
    @classmethod
    def _check_completed(cls, value: Any) -> bool:
        return value if isinstance(value, bool) else False


class OrganizedItem(BaseModel):
    """A stored, categorized action item."""

    id: str
    owner_id: str
    source_fragment_id: str | None = None
    category: Category
    content: str
    identity_key: str
    recurrence: str | None = None
    date: datetime.date | None = None
    time: str | None = None
    completed: bool = False
    created_at: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def day_of_week(self) -> str | None:
        """Long weekday name, always derived from ``date``."""
        return day_of_week(self.date) if self.date else None

    @property
    def is_complete(self) -> bool:
        """True when both date and time are filled in."""
        return self.date is not None and self.time is not None


class ClassificationRequest(BaseModel):
    """Everything one oracle call needs. Built once per pass."""

    new_input_text: str
    previous_items_text: str = ""
    timezone: str = "UTC"
    anchor_date: datetime.date
    fragments: list[str] = Field(default_factory=list)
    contract: str = ""
