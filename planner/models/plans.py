"""Request and response models for the plans API."""

from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from planner.timewindows import day_key, is_valid_time


class PlanMode(str, Enum):
    DATE_RANGE = "DATE_RANGE"
    DATE_SELECTION = "DATE_SELECTION"
    DATE_TIME_SELECTION = "DATE_TIME_SELECTION"

    @property
    def narrows_dates(self) -> bool:
        """Guests may only pick from the planner's ``available_dates``."""
        return self is not PlanMode.DATE_RANGE

    @property
    def uses_time_windows(self) -> bool:
        return self is PlanMode.DATE_TIME_SELECTION


class TimeWindow(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, v: str) -> str:
        if not is_valid_time(v):
            raise ValueError(f"invalid time format: {v}")
        return v

    @model_validator(mode="after")
    def check_order(self) -> "TimeWindow":
        # Zero-padded 24h strings compare correctly as text.
        if self.start >= self.end:
            raise ValueError("start time must be before end time")
        return self


TimeWindowMap = dict[str, list[TimeWindow]]


def _normalize_days(values: list[str]) -> list[str]:
    keys: list[str] = []
    for v in values:
        try:
            key = day_key(v)
        except ValueError:
            raise ValueError(f"invalid date format: {v}") from None
        if key not in keys:
            keys.append(key)
    return keys


def _normalize_window_map(value: TimeWindowMap | None) -> TimeWindowMap | None:
    if value is None:
        return None
    normalized: TimeWindowMap = {}
    for raw_key, windows in value.items():
        [key] = _normalize_days([raw_key])
        if not windows:
            raise ValueError(f"time windows for {key} must not be empty")
        normalized.setdefault(key, []).extend(windows)
    return normalized


class CreatePlanRequest(BaseModel):
    name: str
    description: str | None = None
    start_date: str
    end_date: str
    mode: PlanMode = PlanMode.DATE_RANGE
    available_dates: list[str] = Field(default_factory=list)
    time_windows: TimeWindowMap | None = None
    desired_duration: int | None = Field(default=None, gt=0, le=24 * 60)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v or len(v) > 200:
            raise ValueError("name must be 1-200 characters")
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        return v or None

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_bound(cls, v: str) -> str:
        [key] = _normalize_days([v])
        return key

    @field_validator("mode", mode="before")
    @classmethod
    def default_unknown_mode(cls, v: Any) -> PlanMode:
        try:
            return PlanMode(v)
        except ValueError:
            return PlanMode.DATE_RANGE

    @field_validator("available_dates")
    @classmethod
    def validate_available_dates(cls, v: list[str]) -> list[str]:
        return sorted(_normalize_days(v))

    @field_validator("time_windows")
    @classmethod
    def validate_time_windows(cls, v: TimeWindowMap | None) -> TimeWindowMap | None:
        return _normalize_window_map(v)

    @model_validator(mode="after")
    def check_against_mode(self) -> "CreatePlanRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        if not self.mode.narrows_dates:
            self.available_dates = []
        else:
            if not self.available_dates:
                raise ValueError("available_dates must not be empty for this plan mode")
            outside = [d for d in self.available_dates if not self.start_date <= d <= self.end_date]
            if outside:
                raise ValueError(f"available dates outside the plan range: {', '.join(outside)}")
        if not self.mode.uses_time_windows:
            self.time_windows = None
        elif self.time_windows:
            stray = [k for k in self.time_windows if k not in self.available_dates]
            if stray:
                raise ValueError(f"time windows for dates that are not available: {', '.join(stray)}")
        return self


class UpdatePlanRequest(BaseModel):
    description: str | None = None

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        return v or None


class SubmitResponseRequest(BaseModel):
    guest_name: str
    selected_dates: list[str]
    comment: str | None = None
    selected_time_windows: TimeWindowMap | None = None

    @field_validator("guest_name")
    @classmethod
    def validate_guest_name(cls, v: str) -> str:
        v = v.strip()
        if not v or len(v) > 100:
            raise ValueError("guest_name must be 1-100 characters")
        return v

    @field_validator("selected_dates")
    @classmethod
    def validate_selected_dates(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("selected_dates must not be empty")
        return _normalize_days(v)

    @field_validator("comment")
    @classmethod
    def validate_comment(cls, v: str | None) -> str | None:
        if v is not None and len(v) > 2000:
            raise ValueError("comment must be at most 2000 characters")
        return v or None

    @field_validator("selected_time_windows")
    @classmethod
    def validate_selected_time_windows(cls, v: TimeWindowMap | None) -> TimeWindowMap | None:
        return _normalize_window_map(v)


class PublicPlan(BaseModel):
    """Plan metadata visible to guests."""

    id: str
    slug: str
    name: str
    description: str | None = None
    start_date: str
    end_date: str
    mode: PlanMode
    available_dates: list[str] = []
    time_windows: TimeWindowMap | None = None
    desired_duration: int | None = None
    creator_name: str | None = None

    @property
    def start(self) -> date:
        return date.fromisoformat(self.start_date)

    @property
    def end(self) -> date:
        return date.fromisoformat(self.end_date)

    def planner_windows(self, key: str) -> list[TimeWindow]:
        return (self.time_windows or {}).get(key, [])


class Plan(PublicPlan):
    creator_id: str
    created_at: str


class PlanSummary(Plan):
    response_count: int = 0


class PlansListResponse(BaseModel):
    plans: list[PlanSummary]


class GuestResponse(BaseModel):
    id: str
    plan_id: str
    guest_name: str
    selected_dates: list[str]
    comment: str | None = None
    selected_time_windows: TimeWindowMap | None = None
    created_at: str


class DayHeat(BaseModel):
    date: str
    count: int
    names: list[str]
    tier: int


class DayHeatmapResponse(BaseModel):
    max_count: int
    days: list[DayHeat]


class TimeBlockHeat(BaseModel):
    index: int
    start: str
    end: str
    label: str
    count: int
    names: list[str]
    tier: int
    in_planner_window: bool


class TimeHeatmapResponse(BaseModel):
    date: str
    planner_windows: list[TimeWindow]
    planner_label: str
    max_count: int
    hour_ticks: list[str]
    blocks: list[TimeBlockHeat]


class BlockDetailResponse(BaseModel):
    date: str
    index: int
    label: str
    count: int
    names: list[str]
    summary: str


class ComparedPersonOut(BaseModel):
    response_id: str
    name: str
    color_index: int


class ComparisonDayOut(BaseModel):
    date: str
    people: list[ComparedPersonOut]


class ComparisonResponse(BaseModel):
    people: list[ComparedPersonOut]
    days: list[ComparisonDayOut]


class ResultsResponse(BaseModel):
    plan: Plan
    share_url: str | None = None
    responses: list[GuestResponse]
    heatmap: DayHeatmapResponse
    time_heatmaps: list[TimeHeatmapResponse] = []


class OkResponse(BaseModel):
    ok: bool = True
