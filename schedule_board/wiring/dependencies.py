from functools import lru_cache
import logging
from zoneinfo import ZoneInfo

from schedule_board.core.config import settings
from schedule_board.application.ports.booking_mutations import BookingMutationPort
from schedule_board.application.ports.schedule_source import ScheduleSourcePort
from schedule_board.application.use_cases.bulk_actions import BulkActionOrchestrator
from schedule_board.application.use_cases.load_schedule import DayScheduleQuery
from schedule_board.application.use_cases.optimistic_mutation import MutationCoordinator
from schedule_board.application.use_cases.schedule_board import ScheduleBoard
from schedule_board.infrastructure.notifications.log_commit_hooks import LogCommitHooks
from schedule_board.infrastructure.remote.http_booking_store import HttpBookingStore
from schedule_board.infrastructure.remote.memory_booking_store import MemoryBookingStore
from schedule_board.infrastructure.store.memory_schedule_cache import MemoryScheduleCache


_board: ScheduleBoard | None = None


@lru_cache
def get_timezone() -> ZoneInfo:
    return ZoneInfo(settings.BUSINESS_TIMEZONE)


@lru_cache
def get_booking_store() -> HttpBookingStore | MemoryBookingStore:
    logger = logging.getLogger(__name__)
    if not settings.BOOKING_API_BASE_URL:
        if settings.ENV.lower() in {"dev", "local"}:
            logger.info("Using MemoryBookingStore (BOOKING_API_BASE_URL missing, ENV=dev/local)")
            return MemoryBookingStore()
        raise ValueError("BOOKING_API_BASE_URL is required outside dev/local.")
    logger.info("Using HttpBookingStore", extra={"reason": settings.BOOKING_API_BASE_URL})
    return HttpBookingStore(timezone=get_timezone())


def build_schedule_board(
    source: ScheduleSourcePort,
    mutations: BookingMutationPort,
    refresh_after_mutation: bool | None = None,
) -> ScheduleBoard:
    timezone = get_timezone()
    query = DayScheduleQuery(
        source=source,
        cache=MemoryScheduleCache(snapshot_limit=settings.SNAPSHOT_LIMIT),
        timezone=timezone,
    )
    coordinator = MutationCoordinator(
        query=query,
        mutations=mutations,
        hooks=LogCommitHooks(),
        refresh_after_mutation=(
            settings.REFRESH_AFTER_MUTATION if refresh_after_mutation is None else refresh_after_mutation
        ),
    )
    return ScheduleBoard(
        query=query,
        coordinator=coordinator,
        bulk=BulkActionOrchestrator(coordinator=coordinator, mutations=mutations, query=query),
        timezone=timezone,
        interval_minutes=settings.INTERVAL_MINUTES,
        scale=settings.PIXELS_PER_MINUTE_SCALE,
        start_hour=settings.DAY_START_HOUR,
        end_hour=settings.DAY_END_HOUR,
        min_row_height_px=settings.MIN_ROW_HEIGHT_PX,
    )


def get_schedule_board() -> ScheduleBoard:
    global _board
    if _board is None:
        store = get_booking_store()
        _board = build_schedule_board(source=store, mutations=store)
    return _board


async def close_booking_store() -> None:
    """Release the booking store's HTTP client, if one was built, and forget the wired board."""
    global _board
    if get_booking_store.cache_info().currsize:
        store = get_booking_store()
        if isinstance(store, HttpBookingStore):
            await store.aclose()
        get_booking_store.cache_clear()
    _board = None
