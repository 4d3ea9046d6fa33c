from __future__ import annotations

import logging
from datetime import date, tzinfo
from typing import Any

import httpx

from schedule_board.application.exceptions import (
    BookingStoreUnavailableError,
    MutationRejectedError,
    ScheduleFetchError,
)
from schedule_board.application.ports.booking_mutations import BookingMutationPort
from schedule_board.application.ports.schedule_source import RawDaySchedule, ScheduleSourcePort
from schedule_board.application.utils.booking_parser import parse_booking
from schedule_board.core.config import settings
from schedule_board.domain.entities.booking import ServiceBooking, ServiceDomain
from schedule_board.domain.entities.mutation import BookingChange, MutationKind

_REJECTION_REASONS = {
    400: "validation",
    401: "permission",
    403: "permission",
    404: "not_found",
    409: "conflict",
    422: "validation",
}


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict):
        for key in ("message", "error", "detail"):
            if isinstance(data.get(key), str):
                return data[key]
    return response.reason_phrase


class HttpBookingStore(ScheduleSourcePort, BookingMutationPort):
    """
    REST adapter for the booking backend.

    GET    {base}/schedule?date=YYYY-MM-DD      -> {"grooming": [...], "garden": [...]}
    PATCH  {base}/bookings/{domain}/{id}        -> booking record
    DELETE {base}/bookings/{domain}/{id}
    """

    def __init__(
        self,
        timezone: tzinfo,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timezone = timezone
        self._base_url = (base_url or settings.BOOKING_API_BASE_URL or "").rstrip("/")
        self._api_key = api_key or settings.BOOKING_API_KEY
        self._client = client or httpx.AsyncClient(timeout=timeout or settings.BOOKING_API_TIMEOUT_SECONDS)
        self._logger = logging.getLogger(__name__)

        if not self._base_url:
            raise ValueError("BOOKING_API_BASE_URL is required for the HTTP booking store")

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_day(self, day: date) -> RawDaySchedule:
        url = f"{self._base_url}/schedule"
        try:
            response = await self._client.get(url, params={"date": day.isoformat()}, headers=self._headers())
        except httpx.HTTPError as e:
            self._logger.error("Schedule fetch failed", extra={"day": day.isoformat(), "reason": str(e)})
            raise ScheduleFetchError(f"Could not load the schedule for {day.isoformat()}") from e

        if response.status_code >= 400:
            raise ScheduleFetchError(
                f"Could not load the schedule for {day.isoformat()}: {_error_detail(response)}",
                reason=_REJECTION_REASONS.get(response.status_code, "unavailable"),
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ScheduleFetchError("Schedule response is not JSON", reason="validation") from e
        if not isinstance(data, dict):
            raise ScheduleFetchError("Schedule response must be an object", reason="validation")
        return RawDaySchedule(
            grooming=list(data.get("grooming") or []),
            garden=list(data.get("garden") or []),
        )

    async def apply(self, booking_id: str, domain: ServiceDomain, change: BookingChange) -> ServiceBooking | None:
        url = f"{self._base_url}/bookings/{domain.value}/{booking_id}"
        try:
            if change.kind is MutationKind.delete:
                response = await self._client.delete(url, headers=self._headers())
            else:
                response = await self._client.patch(url, json=self._change_payload(change), headers=self._headers())
        except httpx.HTTPError as e:
            self._logger.error(
                "Booking mutation transport error",
                extra={"booking_id": booking_id, "domain": domain.value, "reason": str(e)},
            )
            raise BookingStoreUnavailableError(f"Booking service unreachable: {e}") from e

        if response.status_code >= 500:
            raise BookingStoreUnavailableError(f"Booking service error ({response.status_code})")
        if response.status_code >= 400:
            raise MutationRejectedError(
                _error_detail(response),
                reason=_REJECTION_REASONS.get(response.status_code, "validation"),
            )

        if change.kind is MutationKind.delete or response.status_code == 204 or not response.content:
            return None
        try:
            return parse_booking(domain, response.json(), self._timezone)
        except ValueError as e:
            # the write went through; only the echo is unusable
            self._logger.warning(
                "Unparseable booking in mutation response",
                extra={"booking_id": booking_id, "domain": domain.value, "reason": str(e)},
            )
            return None

    @staticmethod
    def _change_payload(change: BookingChange) -> dict[str, Any]:
        if change.kind is MutationKind.status_change:
            return {"status": change.status.value}
        return {"startAt": change.start_at.isoformat(), "endAt": change.end_at.isoformat()}
