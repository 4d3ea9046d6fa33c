from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from schedule_board.domain.entities.schedule_entry import ScheduleEntry
from schedule_board.domain.entities.timeline import ShadowInterval


@dataclass(frozen=True)
class Interaction:
    entry: ScheduleEntry
    mode: str  # "resize" | "move"
    preview: ShadowInterval

    @property
    def changed(self) -> bool:
        return (self.preview.start_at, self.preview.end_at) != (self.entry.start_at, self.entry.end_at)


class BoardUiState:
    """
    Per-board view state keyed by entry id.

    Lives as long as the board and is cleared whenever the selected day
    changes, so card state never leaks from one day into another.
    """

    def __init__(self) -> None:
        self._day: date | None = None
        self._expanded: set[str] = set()
        self._open_menu: str | None = None
        self._interaction: Interaction | None = None

    @property
    def day(self) -> date | None:
        return self._day

    def reset(self, day: date | None) -> None:
        self._day = day
        self._expanded.clear()
        self._open_menu = None
        self._interaction = None

    def toggle_expanded(self, entry_id: str) -> bool:
        if entry_id in self._expanded:
            self._expanded.discard(entry_id)
            return False
        self._expanded.add(entry_id)
        return True

    def is_expanded(self, entry_id: str) -> bool:
        return entry_id in self._expanded

    @property
    def open_menu(self) -> str | None:
        return self._open_menu

    def set_open_menu(self, entry_id: str | None) -> None:
        self._open_menu = entry_id

    def prune(self, entry_ids: Iterable[str]) -> None:
        """Forget state for entries that are no longer on the board."""
        alive = set(entry_ids)
        self._expanded &= alive
        if self._open_menu not in alive:
            self._open_menu = None
        if self._interaction is not None and self._interaction.entry.id not in alive:
            self._interaction = None

    @property
    def interaction(self) -> Interaction | None:
        return self._interaction

    def begin_interaction(self, entry: ScheduleEntry, mode: str) -> Interaction:
        if mode not in ("resize", "move"):
            raise ValueError(f"Unknown interaction mode: {mode}")
        self._interaction = Interaction(
            entry=entry,
            mode=mode,
            preview=ShadowInterval(entry_id=entry.id, start_at=entry.start_at, end_at=entry.end_at),
        )
        return self._interaction

    def update_preview(self, preview: ShadowInterval) -> None:
        if self._interaction is None or self._interaction.entry.id != preview.entry_id:
            raise ValueError("No interaction in progress for this entry")
        self._interaction = Interaction(entry=self._interaction.entry, mode=self._interaction.mode, preview=preview)

    def end_interaction(self) -> Interaction | None:
        interaction, self._interaction = self._interaction, None
        return interaction
