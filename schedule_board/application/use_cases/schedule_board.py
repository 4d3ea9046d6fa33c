from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, tzinfo

from schedule_board.application.exceptions import UnknownEntryError
from schedule_board.application.use_cases.bulk_actions import BulkAction, BulkActionOrchestrator
from schedule_board.application.use_cases.load_schedule import DayScheduleQuery
from schedule_board.application.use_cases.optimistic_mutation import MutationCoordinator
from schedule_board.application.use_cases.timeline_layout import (
    build_timeline,
    layout_entries,
    move_preview,
    pixels_per_minute,
    resize_preview,
    resize_preview_from_delta,
)
from schedule_board.application.utils.board_ui_state import BoardUiState, Interaction
from schedule_board.application.utils.booking_parser import parse_timestamp
from schedule_board.domain.entities.booking import BookingStatus, ServiceDomain
from schedule_board.domain.entities.intent import Intent, IntentAction, IntentResult
from schedule_board.domain.entities.schedule_entry import ScheduleEntry
from schedule_board.domain.entities.timeline import BoardItem, TimelineConfig

_STATUS_FOR_ACTION = {
    IntentAction.approve: BookingStatus.approved,
    IntentAction.decline: BookingStatus.cancelled,
    IntentAction.cancel: BookingStatus.cancelled,
}

_BULK_FOR_ACTION = {
    IntentAction.bulk_approve: BulkAction.approve,
    IntentAction.bulk_cancel: BulkAction.cancel,
    IntentAction.bulk_delete: BulkAction.delete,
}


class ScheduleBoard:
    """Day board: read-only view of positioned entries plus the intent dispatcher."""

    def __init__(
        self,
        query: DayScheduleQuery,
        coordinator: MutationCoordinator,
        bulk: BulkActionOrchestrator,
        timezone: tzinfo,
        ui_state: BoardUiState | None = None,
        interval_minutes: int = 15,
        scale: int = 3,
        start_hour: int = 8,
        end_hour: int = 20,
        min_row_height_px: float = 24.0,
    ) -> None:
        self._query = query
        self._coordinator = coordinator
        self._bulk = bulk
        self._timezone = timezone
        self._ui = ui_state or BoardUiState()
        self._start_hour = start_hour
        self._end_hour = end_hour
        self._min_row_height_px = min_row_height_px
        self._logger = logging.getLogger(__name__)
        self.set_interval(interval_minutes)
        self.set_zoom(scale)

    @property
    def day(self) -> date | None:
        return self._ui.day

    @property
    def ui(self) -> BoardUiState:
        return self._ui

    @property
    def query(self) -> DayScheduleQuery:
        return self._query

    @property
    def coordinator(self) -> MutationCoordinator:
        return self._coordinator

    @property
    def scale(self) -> int:
        return self._scale

    @property
    def interval_minutes(self) -> int:
        return self._interval_minutes

    def set_zoom(self, scale: int) -> None:
        pixels_per_minute(scale)
        self._scale = scale

    def set_interval(self, interval_minutes: int) -> None:
        if interval_minutes <= 0 or 60 % interval_minutes != 0:
            raise ValueError(f"Interval must divide an hour evenly, got {interval_minutes}")
        self._interval_minutes = interval_minutes

    async def open_day(self, day: date) -> list[BoardItem]:
        if day != self._ui.day:
            self._ui.reset(day)
            self._query.set_active_day(day)
        await self._query.load(day)
        self._ui.prune(e.id for e in self.entries())
        return self.view()

    def _require_day(self) -> date:
        if self._ui.day is None:
            raise RuntimeError("No day is open on the board")
        return self._ui.day

    def entries(self) -> list[ScheduleEntry]:
        return self._query.cache.get_entries(self._require_day())

    def entry(self, entry_id: str) -> ScheduleEntry:
        entry = self._query.cache.get_entry(self._require_day(), entry_id)
        if entry is None:
            raise UnknownEntryError(entry_id)
        return entry

    def timeline(self) -> TimelineConfig:
        return build_timeline(
            self._require_day(),
            self.entries(),
            self._timezone,
            interval_minutes=self._interval_minutes,
            scale=self._scale,
            start_hour=self._start_hour,
            end_hour=self._end_hour,
        )

    def view(self) -> list[BoardItem]:
        interaction = self._ui.interaction
        return layout_entries(
            self.entries(),
            self.timeline(),
            min_row_height_px=self._min_row_height_px,
            preview=interaction.preview if interaction else None,
        )

    # Interactions: previews only touch the UI state; the cache changes on commit.

    def begin_resize(self, entry_id: str) -> Interaction:
        return self._ui.begin_interaction(self.entry(entry_id), "resize")

    def begin_move(self, entry_id: str) -> Interaction:
        return self._ui.begin_interaction(self.entry(entry_id), "move")

    def _active(self, mode: str) -> Interaction:
        interaction = self._ui.interaction
        if interaction is None or interaction.mode != mode:
            raise ValueError(f"No {mode} in progress")
        return interaction

    def update_resize(self, candidate_end: datetime) -> Interaction:
        interaction = self._active("resize")
        timeline = self.timeline()
        self._ui.update_preview(resize_preview(interaction.entry, candidate_end, self._interval_minutes, timeline.end))
        return self._ui.interaction

    def update_resize_by(self, delta_px: float) -> Interaction:
        interaction = self._active("resize")
        timeline = self.timeline()
        self._ui.update_preview(
            resize_preview_from_delta(
                interaction.entry, delta_px, timeline.pixels_per_minute, self._interval_minutes, timeline.end
            )
        )
        return self._ui.interaction

    def update_move(self, candidate_start: datetime) -> Interaction:
        interaction = self._active("move")
        self._ui.update_preview(move_preview(interaction.entry, candidate_start, self._interval_minutes, self.timeline()))
        return self._ui.interaction

    def cancel_interaction(self) -> None:
        interaction = self._ui.end_interaction()
        if interaction is not None:
            self._logger.info("Interaction cancelled", extra={"entry_id": interaction.entry.id, "kind": interaction.mode})

    async def commit_interaction(self, domain: ServiceDomain | None = None) -> IntentResult | None:
        interaction = self._ui.end_interaction()
        if interaction is None or not interaction.changed:
            return None

        entry = interaction.entry
        start_at, end_at = interaction.preview.start_at, interaction.preview.end_at
        if entry.is_composite and domain is not None:
            # shift the chosen half by the same amount the whole card moved
            booking = entry.constituent(domain)
            start_at = booking.start_at + (start_at - entry.start_at)
            end_at = max(
                booking.end_at + (end_at - entry.end_at),
                start_at + timedelta(minutes=self._interval_minutes),
            )
        return await self.dispatch(
            Intent(
                action=IntentAction.reschedule,
                entry_id=entry.id,
                domain=domain,
                start_at=start_at,
                end_at=end_at,
            )
        )

    async def dispatch(self, intent: Intent) -> IntentResult:
        day = self._require_day()
        action = intent.action

        if action.is_bulk:
            result = await self._bulk.run(
                day,
                intent.entry_id,
                _BULK_FOR_ACTION[action],
                grooming_booking_id=intent.grooming_booking_id,
                garden_booking_id=intent.garden_booking_id,
            )
            return IntentResult(action=action, entry_id=result.entry_id, bulk=result)

        if action in _STATUS_FOR_ACTION:
            entry = await self._coordinator.change_status(day, intent.entry_id, _STATUS_FOR_ACTION[action], intent.domain)
        elif action is IntentAction.reschedule:
            if intent.start_at is None or intent.end_at is None:
                raise ValueError("Reschedule needs both start and end")
            start_at = parse_timestamp(intent.start_at, self._timezone)
            end_at = parse_timestamp(intent.end_at, self._timezone)
            entry = await self._coordinator.reschedule(day, intent.entry_id, start_at, end_at, intent.domain)
        elif action is IntentAction.delete:
            await self._coordinator.delete(day, intent.entry_id, intent.domain)
            entry = None
        else:
            raise ValueError(f"Unsupported action: {action}")

        return IntentResult(action=action, entry_id=intent.entry_id, entry=entry)
