"""
Composite id codec for `both` entries.

The visible id of a merged entry is the grooming booking id. Entries keep the
constituent ids as explicit fields; the legacy "combined-{grooming}-{garden}"
string form is decoded only for callers that hold nothing but an id string.
"""

from __future__ import annotations

import re

LEGACY_PREFIX = "combined-"

_UUID = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
_LEGACY_PATTERN = re.compile(rf"^{LEGACY_PREFIX}({_UUID})-({_UUID})$")


def composite_id(grooming_id: str, garden_id: str) -> str:
    if not grooming_id or not garden_id:
        raise ValueError("Both constituent ids are required for a composite id")
    return grooming_id


def encode_legacy_composite_id(grooming_id: str, garden_id: str) -> str:
    return f"{LEGACY_PREFIX}{grooming_id}-{garden_id}"


def split_legacy_composite_id(value: str) -> tuple[str, str] | None:
    """Return (grooming_id, garden_id) for a legacy combined id, else None."""
    match = _LEGACY_PATTERN.match(value or "")
    if not match:
        return None
    return match.group(1), match.group(2)


def extract_grooming_booking_id(entry_id: str, grooming_booking_id: str | None = None) -> str:
    if grooming_booking_id:
        return grooming_booking_id
    parts = split_legacy_composite_id(entry_id)
    if parts:
        return parts[0]
    return entry_id


def extract_garden_booking_id(entry_id: str, garden_booking_id: str | None = None) -> str:
    if garden_booking_id:
        return garden_booking_id
    parts = split_legacy_composite_id(entry_id)
    if parts:
        return parts[1]
    return entry_id
