"""SchedulePage - extracts the personal timetable from Aurion.

The planning view at /faces/Planning.xhtml hosts a PrimeFaces schedule
widget. Its events are not in the page itself; the widget fetches them with
a partial AJAX POST carrying the visible range in epoch milliseconds.

Page markup (Planning.xhtml):
  <div id="form:j_idt118" class="schedule"> ... </div>
  <input type="hidden" name="javax.faces.ViewState" value="..."/>

AJAX response:
  <partial-response>
    <changes>
      <update id="form:j_idt118"><![CDATA[{"events" : [ {...}, ... ]}]]></update>
      <update id="j_id1:javax.faces.ViewState:0"><![CDATA[...]]></update>
    </changes>
  </partial-response>

Each event object:
  {"id": "1234", "title": "08h00 à 10h00 - B101 - CM - Maths - Intégrales - DUPONT Jean - CIR3",
   "start": "2024-09-16T08:00:00+0200", "end": "...", "allDay": false,
   "editable": true, "className": "CM"}

The title is the only place rooms, subject, chapter and teachers appear.
"""

import json
import re

from pydantic import ValidationError

from webaurion.errors import ParseError
from webaurion.jsf import (
    VIEW_STATE_FIELD,
    component_id,
    get_partial_update,
    get_schedule_form_id,
    get_view_state,
    partial_request,
)
from webaurion.logging import get_logger
from webaurion.models import DateRange, EventKind, RawEvent, ScheduleEvent
from webaurion.pages.base import AurionPage, snippet

log = get_logger(__name__)

# Event CSS class -> kind (compared lowercased)
EVENT_KINDS: dict[str, EventKind] = {
    "conges": EventKind.LEAVE,
    "cm": EventKind.COURSE,
    "cours": EventKind.COURSE,
    "est-epreuve": EventKind.EXAM,
    "evaluation": EventKind.EXAM,
    "ds": EventKind.EXAM,
    "reunion": EventKind.MEETING,
    "td": EventKind.SUPERVISED_WORK,
    "cours_td": EventKind.SUPERVISED_WORK,
    "tp": EventKind.PRACTICAL_WORK,
    "projet": EventKind.PROJECT,
}

# "08h00 à 10h00 - " (ISEN Ouest) or "08h00 - 10h00 - " (ISEN Lille)
_TITLE_PREFIX_RE = re.compile(r"^\s*\d{1,2}h\d{2}\s+(?:à|-)\s+\d{1,2}h\d{2} - ")

SEGMENT_SEPARATOR = " - "
LIST_SEPARATOR = " / "


class SchedulePage(AurionPage):
    """Planning view at /faces/Planning.xhtml.

    The user planning must have been selected from the main menu first;
    otherwise Aurion renders an empty planning shell.
    """

    URL_PATH = "/faces/Planning.xhtml"

    def open(self) -> tuple[int, str]:
        """Load the planning view and read the schedule widget id and view state.

        Returns:
            (schedule component number, view state) for the AJAX request.

        Raises:
            ParseError: If the schedule widget or the view state is missing.
            SessionExpiredError: If Aurion sent us back to the login page.
        """
        response = self._get()

        form_id = get_schedule_form_id(response.content)
        if form_id is None:
            raise ParseError(
                "Schedule widget not found on planning page",
                context='div.schedule[id^="form:j_idt"]',
                snippet=snippet(response.content),
            )
        view_state = get_view_state(response.content)
        if view_state is None:
            raise ParseError(
                "View state not found on planning page",
                context=f'input[name="{VIEW_STATE_FIELD}"]',
                snippet=snippet(response.content),
            )

        log.debug("schedule_page_opened", form_id=form_id)
        return form_id, view_state

    def fetch_events(
        self, form_id: int, view_state: str, date_range: DateRange
    ) -> list[ScheduleEvent]:
        """POST the range to the schedule widget and parse its events."""
        source = component_id(form_id)
        payload = partial_request(source)
        payload[f"{source}_start"] = str(date_range.start_millis)
        payload[f"{source}_end"] = str(date_range.end_millis)
        payload[VIEW_STATE_FIELD] = view_state

        response = self._post(payload)
        events = extract_calendar_entries(response.content, source)

        log.info(
            "schedule_extracted",
            start=date_range.start.isoformat(),
            end=date_range.end.isoformat(),
            events=len(events),
        )
        return events

    def extract(self, date_range: DateRange) -> list[ScheduleEvent]:
        """Open the planning view and fetch the events within `date_range`."""
        form_id, view_state = self.open()
        return self.fetch_events(form_id, view_state, date_range)


def extract_calendar_entries(markup: str | bytes, container_id: str) -> list[ScheduleEvent]:
    """Turn a schedule partial response into events, in source order.

    This is the one place that knows the response layout; when Aurion changes
    its markup, this is what needs updating.

    Args:
        markup: Body of the partial AJAX response.
        container_id: Client id of the schedule widget ("form:j_idt118").

    Returns:
        Parsed events. An empty "events" list gives an empty result.

    Raises:
        ParseError: If the container, the JSON payload, or a required event
            field is missing or malformed.
    """
    payload = get_partial_update(markup, container_id)
    if payload is None:
        raise ParseError(
            "Schedule container missing from partial response",
            context=f'update[id="{container_id}"]',
            snippet=snippet(markup),
        )

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ParseError(
            "Schedule payload is not valid JSON",
            context=f'update[id="{container_id}"] char {e.pos}',
            snippet=snippet(payload),
        ) from e

    if not isinstance(data, dict) or not isinstance(data.get("events"), list):
        raise ParseError(
            "Schedule payload has no events list",
            context=f'update[id="{container_id}"] -> "events"',
            snippet=snippet(payload),
        )

    events: list[ScheduleEvent] = []
    for index, item in enumerate(data["events"]):
        try:
            raw = RawEvent.model_validate(item)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise ParseError(
                "Schedule event is malformed",
                context=f"events[{index}]: {fields}",
                snippet=snippet(json.dumps(item, ensure_ascii=False)),
            ) from e
        events.append(parse_event(raw, index=index))

    return events


def parse_event(raw: RawEvent, *, index: int = 0) -> ScheduleEvent:
    """Build a ScheduleEvent from a raw PrimeFaces event."""
    try:
        rooms, subject, chapter, participants = parse_title(raw.title)
    except ValueError as e:
        log.error("event_title_unparseable", event_id=raw.id, title=raw.title)
        raise ParseError(
            f"Cannot parse event title: {e}",
            context=f"events[{index}].title",
            snippet=raw.title,
        ) from e

    return ScheduleEvent(
        id=raw.id,
        kind=map_kind(raw.class_name),
        start=raw.start,
        end=raw.end,
        subject=subject,
        rooms=rooms,
        chapter=chapter,
        participants=participants,
    )


def map_kind(class_name: str) -> EventKind:
    """Map the event's CSS class to its kind; unknown classes are OTHER."""
    for token in class_name.lower().split():
        if token in EVENT_KINDS:
            return EVENT_KINDS[token]
    return EventKind.OTHER


def parse_title(
    title: str,
) -> tuple[tuple[str, ...], str, str | None, tuple[str, ...]]:
    """Split an event title into (rooms, subject, chapter, participants).

    Layout after the time prefix, separated by " - ":
        rooms - type - subject - chapter... - participants - group
    The trailing group segment is dropped. The chapter may itself contain
    " - ", so it is everything between subject and participants. Rooms and
    participants are " / " lists; empty segments give empty values.

    Raises:
        ValueError: If the time prefix is missing, fewer than three segments
            remain, or the subject is empty.
    """
    match = _TITLE_PREFIX_RE.match(title)
    if match is None:
        raise ValueError('expected "HHhMM à HHhMM - ..." or "HHhMM - HHhMM - ..."')

    segments = title[match.end():].split(SEGMENT_SEPARATOR)
    if len(segments) > 1:
        segments = segments[:-1]
    if len(segments) < 3:
        raise ValueError(f"expected at least rooms, type and subject, got {len(segments)} segment(s)")

    rooms = _split_list(segments[0])
    subject = segments[2].strip()
    if not subject:
        raise ValueError("empty subject")

    chapter = None
    participants: tuple[str, ...] = ()
    if len(segments) > 3:
        chapter = SEGMENT_SEPARATOR.join(segments[3:-1]).strip() or None
        participants = _split_list(segments[-1])

    return rooms, subject, chapter, participants


def _split_list(segment: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in segment.split(LIST_SEPARATOR) if part.strip())
