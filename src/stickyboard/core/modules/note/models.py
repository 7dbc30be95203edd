"""Sticky note models."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stickyboard.core.modules.checklist.models import Checklist

DEFAULT_TITLE = "Untitled Note"
DEFAULT_COLOR = "#FFF9C4"

# Swatches offered on every card; any hex or named color is accepted too
COLOR_PRESETS = (
    "#FFF9C4",
    "#FFE0B2",
    "#FFE6EE",
    "#E1F5FE",
    "#E8F5E9",
    "#F3E5F5",
    "#FFF3E0",
    "#FCE4EC",
    "#EDE7F6",
    "#F9FBE7",
)


class Visibility(StrEnum):
    """Who can see a note on the board."""

    ONLY_ME = "only_me"
    ALL_ADMINS = "all_admins"
    EDITORS_AND_ABOVE = "editors_and_above"


class Note(BaseModel):
    """One sticky note card."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int  # Server-assigned
    title: str = DEFAULT_TITLE
    color: str = DEFAULT_COLOR
    minimized: bool = False  # Per viewing user
    checklist: Checklist = Field(default_factory=Checklist)
    order: int = 0  # 1-based display position, rewritten on every board change
    visibility: Visibility = Visibility.ONLY_ME
    markup: str | None = Field(None, alias="html")  # Pre-escaped server rendering, used as is

    @field_validator("checklist", mode="before")
    @classmethod
    def _parse_checklist(cls, value: Any) -> Checklist:
        return Checklist.deserialize(value)

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_TITLE
        return value

    @field_validator("color", mode="before")
    @classmethod
    def _default_color(cls, value: Any) -> Any:
        return value or DEFAULT_COLOR
