"""Aurion ERP client.

Logs into an Aurion (webAurion) portal with a username/password form and
scrapes the personal timetable, sidebar menu and class groups into
pydantic models.
"""

from webaurion.client import AurionClient
from webaurion.errors import (
    AuthError,
    AuthNetworkError,
    FetchError,
    FetchNetworkError,
    FetchTimeoutError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    ParseError,
    SessionExpiredError,
    UnexpectedResponseError,
)
from webaurion.models import (
    ClassGroup,
    DateRange,
    EventKind,
    MenuNode,
    Schedule,
    ScheduleEvent,
    Session,
)
from webaurion.pages.schedule import extract_calendar_entries

__all__ = [
    "AurionClient",
    "Session",
    "DateRange",
    "Schedule",
    "ScheduleEvent",
    "EventKind",
    "MenuNode",
    "ClassGroup",
    "extract_calendar_entries",
    "AuthError",
    "InvalidCredentialsError",
    "AuthNetworkError",
    "UnexpectedResponseError",
    "FetchError",
    "NotAuthenticatedError",
    "SessionExpiredError",
    "FetchNetworkError",
    "FetchTimeoutError",
    "ParseError",
]
