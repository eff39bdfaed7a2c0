"""
Session calendar export.

Builds an iCalendar (RFC 5545) document for a scheduled session so
participants can add it to their own calendar, with reminders 15 minutes,
1 hour and 1 day before it starts.
"""

from datetime import UTC, datetime, timedelta

from seniorhelp.modules.help_requests.models import HelpSession

PRODUCT_ID = "-//Senior Dev Help//Session//EN"
UID_DOMAIN = "seniordevhelp.com"
EVENT_SUMMARY = "Senior Dev Help Session"

# (trigger, description)
ALARMS = (
    ("-PT15M", "Session starts in 15 minutes"),
    ("-PT1H", "Session starts in 1 hour"),
    ("-P1D", "Session tomorrow"),
)


def format_ics_datetime(value: datetime) -> str:
    """UTC timestamp in iCalendar basic format, e.g. 20250101T150000Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")


def _escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def generate_ics(session: HelpSession, now: datetime | None = None) -> str:
    """
    Render a session as a VCALENDAR with a single VEVENT.

    Args:
        session: The session to export
        now: DTSTAMP value (defaults to the current time)

    Returns:
        The document with CRLF line endings
    """
    now = now or datetime.now(UTC)
    start = session.scheduled_time
    end = start + timedelta(minutes=session.duration_minutes)
    description = _escape_text(session.notes) if session.notes else EVENT_SUMMARY

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODUCT_ID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{session.id}@{UID_DOMAIN}",
        f"DTSTAMP:{format_ics_datetime(now)}",
        f"DTSTART:{format_ics_datetime(start)}",
        f"DTEND:{format_ics_datetime(end)}",
        f"SUMMARY:{EVENT_SUMMARY}",
        f"DESCRIPTION:{description}",
    ]
    if session.meeting_link:
        lines.append(f"LOCATION:{session.meeting_link}")
    lines += ["STATUS:CONFIRMED", "SEQUENCE:0"]

    for trigger, alarm_description in ALARMS:
        lines += [
            "BEGIN:VALARM",
            f"TRIGGER:{trigger}",
            "ACTION:DISPLAY",
            f"DESCRIPTION:{alarm_description}",
            "END:VALARM",
        ]

    lines += ["END:VEVENT", "END:VCALENDAR"]
    return "\r\n".join(lines)
