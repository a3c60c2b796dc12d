"""Pydantic models for Aurion sessions and timetable data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
"""

from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType
from typing import Iterator

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)


class Session(BaseModel):
    """Authentication artifact returned by a successful login.

    Immutable: it is only ever replaced by logging in again, never updated,
    so several threads can fetch with the same Session.
    """

    model_config = ConfigDict(frozen=True)

    username: str
    cookies: Mapping[str, str]  # JSESSIONID and friends, read-only after login
    view_state: str  # javax.faces.ViewState of the main menu page
    form_id: int | None = None  # j_idt of the sidebar AJAX component
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("cookies", mode="after")
    @classmethod
    def _freeze_cookies(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(v))

    @field_serializer("cookies")
    def _serialize_cookies(self, v: Mapping[str, str]) -> dict[str, str]:
        return dict(v)

    @property
    def token(self) -> str | None:
        """The servlet session cookie, or the first cookie Aurion set."""
        if "JSESSIONID" in self.cookies:
            return self.cookies["JSESSIONID"]
        return next(iter(self.cookies.values()), None)

    def age(self) -> timedelta:
        return datetime.now(timezone.utc) - self.created_at

    def is_expired(self, max_age_hours: int) -> bool:
        return self.age() > timedelta(hours=max_age_hours)


class DateRange(BaseModel):
    """Inclusive time window requested from the planning view."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if (self.start.tzinfo is None) != (self.end.tzinfo is None):
            raise ValueError("start and end must both be naive or both be timezone-aware")
        if self.end < self.start:
            raise ValueError(f"end {self.end} is before start {self.start}")
        return self

    @classmethod
    def school_year(cls, today: date | None = None) -> "DateRange":
        """School year containing `today`: August 1st to July 31st."""
        today = today or date.today()
        year = today.year if today.month >= 8 else today.year - 1
        return cls(
            start=datetime(year, 8, 1, 0, 0, 0),
            end=datetime(year + 1, 7, 31, 23, 59, 59),
        )

    @property
    def start_millis(self) -> int:
        return int(self.start.timestamp() * 1000)

    @property
    def end_millis(self) -> int:
        return int(self.end.timestamp() * 1000)


class EventKind(str, Enum):
    COURSE = "course"
    EXAM = "exam"
    LEAVE = "leave"
    MEETING = "meeting"
    PRACTICAL_WORK = "practical_work"
    SUPERVISED_WORK = "supervised_work"
    PROJECT = "project"
    OTHER = "other"


class RawEvent(BaseModel):
    """One entry of the PrimeFaces schedule JSON, before title parsing."""

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str
    start: datetime
    end: datetime
    class_name: str = Field(default="", alias="className")

    @field_validator("start", "end", mode="before")
    @classmethod
    def _parse_iso(cls, value):
        # PrimeFaces sends offsets as +0200, which fromisoformat accepts
        if isinstance(value, str):
            return datetime.fromisoformat(value)
        return value


class ScheduleEvent(BaseModel):
    """A single timetable entry.

    `subject`, `rooms` and `participants` come from the event title, e.g.
    "08h00 à 10h00 - B101 / B102 - CM - Mathématiques - Intégrales - DUPONT Jean - CIR3".
    """

    model_config = ConfigDict(frozen=True)

    id: int
    kind: EventKind = EventKind.OTHER
    start: datetime
    end: datetime
    subject: str
    rooms: tuple[str, ...] = ()
    chapter: str | None = None
    participants: tuple[str, ...] = ()

    @property
    def title(self) -> str:
        return self.subject

    @property
    def location(self) -> str | None:
        return " / ".join(self.rooms) or None

    @property
    def instructor(self) -> str | None:
        return " / ".join(self.participants) or None


class Schedule(BaseModel):
    """Events of one fetch, in the order Aurion returned them."""

    date_range: DateRange
    events: list[ScheduleEvent] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[ScheduleEvent]:  # type: ignore[override]
        return iter(self.events)


class MenuNode(BaseModel):
    """An entry of the lazy-loaded sidebar menu."""

    model_config = ConfigDict(frozen=True)

    id: str  # "submenu_291906" for parents, "1_3" style ids for leaves
    name: str
    is_parent: bool = False

    @property
    def is_leaf(self) -> bool:
        return not self.is_parent


class ClassGroup(BaseModel):
    """A row of the favourite plannings table (ChoixPlanning page)."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
