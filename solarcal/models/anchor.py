"""
solarcal/models/anchor.py

Anchor preset models.

An anchor preset names the Gregorian date that is month 1, day 1 of year 0.
Presets are immutable values; edits produce a new value with the same id.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ANCHOR_ID = "default"


class AnchorPreset(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=200)
    start_date: date
    created_at: datetime

    @property
    def is_default(self) -> bool:
        return self.id == DEFAULT_ANCHOR_ID


# Request models

class PresetCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    start_date: str = Field(description="M1 D1 anchor date, YYYY-MM-DD")
    select: bool = True


class PresetUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    start_date: Optional[str] = Field(None, description="M1 D1 anchor date, YYYY-MM-DD")

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


AnchorChangeReason = Literal["selected", "created", "updated", "deleted"]


@dataclass(frozen=True)
class AnchorChange:
    """Delivered to subscribers whenever the active anchor changes."""

    previous: AnchorPreset
    current: AnchorPreset
    reason: AnchorChangeReason
    revision: int
