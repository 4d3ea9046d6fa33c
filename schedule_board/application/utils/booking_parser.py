from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Any

from schedule_board.application.exceptions import MalformedBookingError
from schedule_board.domain.entities.booking import BookingStatus, ServiceBooking, ServiceDomain

_STATUS_ALIASES: dict[str, BookingStatus] = {
    "pending": BookingStatus.pending,
    "approved": BookingStatus.approved,
    "scheduled": BookingStatus.approved,
    "cancelled": BookingStatus.cancelled,
    "canceled": BookingStatus.cancelled,
    "declined": BookingStatus.cancelled,
    "completed": BookingStatus.completed,
}


def parse_status(value: Any) -> BookingStatus:
    if isinstance(value, BookingStatus):
        return value
    normalized = str(value or "").strip().lower()
    status = _STATUS_ALIASES.get(normalized)
    if status is None:
        raise MalformedBookingError(f"Unknown booking status: {value!r}")
    return status


def parse_timestamp(value: Any, timezone: tzinfo) -> datetime:
    """Parse an ISO timestamp (or datetime) into an aware datetime in the business timezone."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise MalformedBookingError(f"Invalid timestamp: {value!r}") from e
    else:
        raise MalformedBookingError(f"Missing timestamp: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone)
    return parsed.astimezone(timezone)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_booking(domain: ServiceDomain, payload: dict[str, Any], timezone: tzinfo) -> ServiceBooking:
    """
    Build a ServiceBooking from a raw store record.

    A missing subject is allowed (the booking simply never merges); a missing
    id, unparseable interval or unknown status is not.
    """
    if not isinstance(payload, dict):
        raise MalformedBookingError(f"Booking record must be an object, got {type(payload).__name__}")

    booking_id = _optional_str(payload.get("id"))
    if not booking_id:
        raise MalformedBookingError("Booking record has no id")

    start_at = parse_timestamp(payload.get("startAt"), timezone)
    end_at = parse_timestamp(payload.get("endAt"), timezone)
    if end_at <= start_at:
        raise MalformedBookingError(f"Booking {booking_id} ends before it starts")

    add_ons_raw = payload.get("addOns") or []
    if isinstance(add_ons_raw, dict):
        add_ons = tuple(sorted(k for k, v in add_ons_raw.items() if v))
    elif isinstance(add_ons_raw, (list, tuple)):
        add_ons = tuple(str(a) for a in add_ons_raw if a)
    else:
        raise MalformedBookingError(f"Booking {booking_id} has invalid addOns: {add_ons_raw!r}")

    return ServiceBooking(
        id=booking_id,
        domain=domain,
        start_at=start_at,
        end_at=end_at,
        status=parse_status(payload.get("status")),
        client_id=_optional_str(payload.get("clientId")),
        subject_id=_optional_str(payload.get("subjectId")),
        subject_name=_optional_str(payload.get("subjectName")),
        resource_id=_optional_str(payload.get("resourceId")) if domain is ServiceDomain.grooming else None,
        notes=str(payload.get("notes") or ""),
        add_ons=add_ons,
    )


def booking_to_payload(booking: ServiceBooking) -> dict[str, Any]:
    return {
        "id": booking.id,
        "clientId": booking.client_id,
        "subjectId": booking.subject_id,
        "subjectName": booking.subject_name,
        "startAt": booking.start_at.isoformat(),
        "endAt": booking.end_at.isoformat(),
        "status": booking.status.value,
        "resourceId": booking.resource_id,
        "notes": booking.notes,
        "addOns": list(booking.add_ons),
    }
