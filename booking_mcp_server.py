from __future__ import annotations

from datetime import datetime

from mcp.server.fastmcp import FastMCP

from locker_booking import SqlStore, build_repositories, build_schemas, load_settings, validate_payload
from locker_booking.event_log import NullEventLog, YamlEventLog
from locker_booking.logging_config import setup_logging

mcp = FastMCP(
    "Locker Booking MCP Server",
    instructions="Expose bookings and lockers from the locker_booking store.",
    json_response=True,
)

SETTINGS = load_settings()
setup_logging(SETTINGS.log_level)
STORE = SqlStore(SETTINGS.database_url)
STORE.init_schema()
SCHEMAS = build_schemas(SETTINGS.max_place_number)
EVENT_LOG = YamlEventLog(SETTINGS.event_log_path) if SETTINGS.event_log_path else NullEventLog()
REPOSITORIES = build_repositories(STORE, SCHEMAS, EVENT_LOG)


@mcp.resource("booking://places")
async def list_places() -> list[int]:
    """List the bookable place numbers."""
    return list(range(1, SETTINGS.max_place_number + 1))


@mcp.tool()
def list_bookings(email: str | None = None) -> list[dict]:
    """Return bookings, optionally only those of the user with ``email``."""
    bookings = REPOSITORIES["bookings"]
    if email is None:
        return bookings.list()
    return bookings.list_for_email(email.strip().lower())


@mcp.tool()
def list_lockers() -> list[dict]:
    """Return every locker with its booking and delivery moment."""
    return REPOSITORIES["lockers"].list()


@mcp.tool()
def check_place(place_number: int, start: str, end: str) -> dict:
    """Report whether a place is free between two ``YYYY-MM-DD HH:MM:SS`` moments."""
    report = REPOSITORIES["bookings"].check_place(place_number, start, end)
    return {"available": not report.has_conflict, "errors": report.messages()}


@mcp.tool()
def add_booking(
    email: str,
    place_number: int,
    start: str,
    end: str,
    guests: int = 1,
    keycards: int = 1,
    note: str | None = None,
) -> dict:
    """Book a place for an existing user; moments use ``YYYY-MM-DD HH:MM:SS``."""
    bookings = REPOSITORIES["bookings"]
    request = {
        "Email": email,
        "NumberOfGuests": guests,
        "NumberOfKeycards": keycards,
        "MomentStart": start,
        "MomentEnd": end,
        "PlaceNumber": place_number,
        "Note": note,
    }
    values = validate_payload(bookings.entity.fields, request, now=datetime.now())
    return bookings.create_booking(values)


@mcp.tool()
def cancel_booking(booking_id: int) -> dict:
    """Cancel a booking by id."""
    REPOSITORIES["bookings"].cancel(booking_id)
    return {"cancelled": booking_id}


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
