"""
Itinerary Exporter - Serializes a StructuredItinerary to JSON and iCalendar.
Pure functions: nothing here touches the session.
"""
from datetime import datetime, timezone
from typing import Callable, Optional
import json
import logging
import re
import unicodedata
import uuid
from urllib.parse import quote

from pydantic import BaseModel

from ..models.itinerary import ItineraryEvent, StructuredItinerary

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"
CALENDAR_MEDIA_TYPE = "text/calendar"

CRLF = "\r\n"
CALENDAR_HEADER = (
    "BEGIN:VCALENDAR",
    "VERSION:2.0",
    "PRODID:-//WanderLust AI//Trip Itinerary//EN",
    "CALSCALE:GREGORIAN",
    "METHOD:PUBLISH",
)
CALENDAR_FOOTER = "END:VCALENDAR"
UID_DOMAIN = "wanderlust.ai"

# Would break the header quoting or act as a path separator
UNSAFE_FILENAME_CHARS = re.compile(r'["/\\]')


class ExportedFile(BaseModel):
    """Bytes ready to hand to whatever delivers the download."""
    filename: str
    media_type: str
    content: bytes


def export_filename(itinerary: StructuredItinerary, extension: str) -> str:
    """trip-<destination with whitespace runs replaced by hyphens>.<extension>"""
    destination = UNSAFE_FILENAME_CHARS.sub("", itinerary.destination).strip()
    destination = re.sub(r"\s+", "-", destination)
    return f"trip-{destination}.{extension}"


def content_disposition(filename: str) -> str:
    """
    Attachment header value for a download.

    ``filename=`` always carries an ASCII-only fallback. When the real name
    is not plain ASCII it is also sent percent-encoded as ``filename*``
    (RFC 6266), since header values must encode as latin-1.
    """
    fallback = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    fallback = re.sub(r"-+(?=\.)", "", fallback)
    value = f'attachment; filename="{fallback}"'
    if fallback != filename:
        value += f"; filename*=UTF-8''{quote(filename, safe='')}"
    return value


def to_json(itinerary: StructuredItinerary) -> bytes:
    """Pretty-printed JSON in the external field order."""
    return json.dumps(
        itinerary.to_display_dict(),
        indent=2,
        ensure_ascii=False,
    ).encode("utf-8")


def _single_line(text: str) -> str:
    # A raw line break would end the property early
    return re.sub(r"[\r\n]+", " ", text).strip()


def _event_times(event: ItineraryEvent) -> tuple[str, str]:
    """
    Start and end stamps (YYYYMMDDTHHMMSS) for a one-hour event.

    The end keeps the start minute; an end hour past 23 is clamped to 23,
    so events starting in the last hour of the day get a shortened duration.

    Raises:
        ValueError: date or time cannot be parsed
    """
    day = datetime.strptime(event.date, "%Y-%m-%d")
    start = datetime.strptime(event.time, "%H:%M")
    end_hour = min(start.hour + 1, 23)
    date_part = day.strftime("%Y%m%d")
    return (
        f"{date_part}T{start.hour:02d}{start.minute:02d}00",
        f"{date_part}T{end_hour:02d}{start.minute:02d}00",
    )


def _event_block(event: ItineraryEvent, stamp: str, uid: str) -> list[str]:
    dtstart, dtend = _event_times(event)
    activity = _single_line(event.activity)
    lines = [
        "BEGIN:VEVENT",
        f"UID:{uid}",
        f"DTSTAMP:{stamp}",
        f"DTSTART:{dtstart}",
        f"DTEND:{dtend}",
        f"SUMMARY:{activity}",
        f"DESCRIPTION:{event.category.value.upper()} - {activity}",
    ]
    if event.location:
        lines.append(f"LOCATION:{_single_line(event.location)}")
    lines.append("END:VEVENT")
    return lines


def to_calendar(
    itinerary: StructuredItinerary,
    now: Optional[datetime] = None,
    uid_factory: Optional[Callable[[], str]] = None
) -> bytes:
    """
    Render the itinerary as an iCalendar document.

    Events whose date or time cannot be parsed are skipped and logged;
    one bad event never aborts the export.

    Args:
        itinerary: Itinerary to export
        now: Generation time for DTSTAMP (defaults to the current UTC time)
        uid_factory: Produces event UIDs (defaults to random hex)
    """
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    uid_factory = uid_factory or (lambda: f"{uuid.uuid4().hex}@{UID_DOMAIN}")

    lines = list(CALENDAR_HEADER)
    skipped = 0
    for event in itinerary.events:
        try:
            lines.extend(_event_block(event, stamp, uid_factory()))
        except ValueError as e:
            skipped += 1
            logger.warning(f"Skipping event for ICS due to parse error ({event.date} {event.time}): {e}")
    lines.append(CALENDAR_FOOTER)

    if skipped:
        logger.info(f"Calendar export skipped {skipped} of {len(itinerary.events)} events")
    return CRLF.join(lines).encode("utf-8")


def export_json(itinerary: StructuredItinerary) -> ExportedFile:
    return ExportedFile(
        filename=export_filename(itinerary, "json"),
        media_type=JSON_MEDIA_TYPE,
        content=to_json(itinerary),
    )


def export_calendar(itinerary: StructuredItinerary) -> ExportedFile:
    return ExportedFile(
        filename=export_filename(itinerary, "ics"),
        media_type=CALENDAR_MEDIA_TYPE,
        content=to_calendar(itinerary),
    )
