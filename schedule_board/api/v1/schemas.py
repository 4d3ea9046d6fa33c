from datetime import date, datetime

from pydantic import BaseModel, Field

from schedule_board.domain.entities.booking import BookingStatus, ServiceDomain
from schedule_board.domain.entities.intent import IntentAction
from schedule_board.domain.entities.schedule_entry import EntryKind, ScheduleEntry
from schedule_board.domain.entities.timeline import BoardItem, TimelineConfig


class EntrySchema(BaseModel):
    id: str
    kind: EntryKind
    start_at: datetime
    end_at: datetime
    status: BookingStatus
    display_label: str
    grooming_booking_id: str | None = None
    garden_booking_id: str | None = None
    grooming_status: BookingStatus | None = None
    garden_status: BookingStatus | None = None

    @staticmethod
    def from_entry(entry: ScheduleEntry) -> "EntrySchema":
        return EntrySchema(
            id=entry.id,
            kind=entry.kind,
            start_at=entry.start_at,
            end_at=entry.end_at,
            status=entry.status,
            display_label=entry.display_label,
            grooming_booking_id=entry.grooming_booking_id,
            garden_booking_id=entry.garden_booking_id,
            grooming_status=entry.grooming.status if entry.grooming else None,
            garden_status=entry.garden.status if entry.garden else None,
        )


class SlotSchema(BaseModel):
    top_offset_px: float
    height_px: float
    lane: int
    lane_count: int


class BoardItemSchema(BaseModel):
    entry: EntrySchema
    slot: SlotSchema

    @staticmethod
    def from_item(item: BoardItem) -> "BoardItemSchema":
        return BoardItemSchema(
            entry=EntrySchema.from_entry(item.entry),
            slot=SlotSchema(
                top_offset_px=item.slot.top_offset_px,
                height_px=item.slot.height_px,
                lane=item.slot.lane,
                lane_count=item.slot.lane_count,
            ),
        )


class HourMarkerSchema(BaseModel):
    label: str
    offset_px: float


class GridSlotSchema(BaseModel):
    label: str
    offset_px: float
    height_px: float


class TimelineSchema(BaseModel):
    start: datetime
    end: datetime
    total_minutes: int
    height_px: float
    pixels_per_minute: float
    interval_minutes: int
    hour_markers: list[HourMarkerSchema] = Field(default_factory=list)
    grid_slots: list[GridSlotSchema] = Field(default_factory=list)

    @staticmethod
    def from_config(config: TimelineConfig) -> "TimelineSchema":
        return TimelineSchema(
            start=config.start,
            end=config.end,
            total_minutes=config.total_minutes,
            height_px=config.height_px,
            pixels_per_minute=config.pixels_per_minute,
            interval_minutes=config.interval_minutes,
            hour_markers=[HourMarkerSchema(label=m.label, offset_px=m.offset_px) for m in config.hour_markers],
            grid_slots=[
                GridSlotSchema(label=s.label, offset_px=s.offset_px, height_px=s.height_px) for s in config.grid_slots
            ],
        )


class BoardResponseSchema(BaseModel):
    day: date
    items: list[BoardItemSchema]
    timeline: TimelineSchema
    pending_entry_ids: list[str] = Field(default_factory=list)


class IntentRequestSchema(BaseModel):
    action: IntentAction
    entry_id: str = Field(min_length=1)
    domain: ServiceDomain | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    grooming_booking_id: str | None = None
    garden_booking_id: str | None = None


class IntentResponseSchema(BaseModel):
    action: IntentAction
    entry_id: str
    outcome: str  # applied | full_success | partial_failure | full_failure
    entry: EntrySchema | None = None
    failed_side: ServiceDomain | None = None
    failed_booking_id: str | None = None
    message: str | None = None
    errors: dict[str, str] = Field(default_factory=dict)
