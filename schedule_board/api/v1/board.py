from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from schedule_board.api.v1.schemas import (
    BoardItemSchema,
    BoardResponseSchema,
    EntrySchema,
    IntentRequestSchema,
    IntentResponseSchema,
    TimelineSchema,
)
from schedule_board.application.exceptions import (
    BookingStoreError,
    MutationFailedError,
    MutationInFlightError,
    UnknownEntryError,
)
from schedule_board.application.use_cases.schedule_board import ScheduleBoard
from schedule_board.domain.entities.bulk_result import FullFailure, PartialFailure
from schedule_board.domain.entities.intent import Intent, IntentResult
from schedule_board.wiring.dependencies import get_schedule_board

router = APIRouter()
logger = logging.getLogger(__name__)

_STATUS_BY_REASON = {
    "conflict": 409,
    "validation": 422,
    "permission": 403,
    "not_found": 404,
}


def _board_response(board: ScheduleBoard) -> BoardResponseSchema:
    return BoardResponseSchema(
        day=board.day,
        items=[BoardItemSchema.from_item(item) for item in board.view()],
        timeline=TimelineSchema.from_config(board.timeline()),
        pending_entry_ids=board.coordinator.pending_ids(),
    )


def _intent_response(result: IntentResult) -> IntentResponseSchema:
    bulk = result.bulk
    if bulk is None:
        return IntentResponseSchema(
            action=result.action,
            entry_id=result.entry_id,
            outcome="applied",
            entry=EntrySchema.from_entry(result.entry) if result.entry else None,
        )
    if isinstance(bulk, PartialFailure):
        return IntentResponseSchema(
            action=result.action,
            entry_id=result.entry_id,
            outcome=bulk.outcome,
            failed_side=bulk.failed_side,
            failed_booking_id=bulk.failed_booking_id,
            message=bulk.message,
            errors={bulk.failed_side.value: bulk.error},
        )
    if isinstance(bulk, FullFailure):
        return IntentResponseSchema(
            action=result.action,
            entry_id=result.entry_id,
            outcome=bulk.outcome,
            message="Neither booking was updated.",
            errors={domain.value: error for domain, error in bulk.errors.items()},
        )
    return IntentResponseSchema(action=result.action, entry_id=result.entry_id, outcome=bulk.outcome)


async def _open(board: ScheduleBoard, day: date) -> None:
    try:
        await board.open_day(day)
    except BookingStoreError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/board/{day}", response_model=BoardResponseSchema)
async def get_board(
    day: date,
    scale: int | None = Query(None, ge=1, le=7),
    interval: int | None = Query(None, ge=1, le=60),
    board: ScheduleBoard = Depends(get_schedule_board),
):
    try:
        if scale is not None:
            board.set_zoom(scale)
        if interval is not None:
            board.set_interval(interval)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await _open(board, day)
    return _board_response(board)


@router.post("/board/{day}/intents", response_model=IntentResponseSchema)
async def dispatch_intent(
    day: date,
    req: IntentRequestSchema,
    board: ScheduleBoard = Depends(get_schedule_board),
):
    await _open(board, day)
    intent = Intent(
        action=req.action,
        entry_id=req.entry_id,
        domain=req.domain,
        start_at=req.start_at,
        end_at=req.end_at,
        grooming_booking_id=req.grooming_booking_id,
        garden_booking_id=req.garden_booking_id,
    )
    try:
        result = await board.dispatch(intent)
    except UnknownEntryError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MutationInFlightError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except MutationFailedError as e:
        logger.info("Intent failed", extra={"entry_id": e.entry_id, "domain": e.domain, "reason": e.reason})
        raise HTTPException(status_code=_STATUS_BY_REASON.get(e.reason, 502), detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _intent_response(result)
