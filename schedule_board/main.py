import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from schedule_board.api.v1.board import router as board_router
from schedule_board.core.config import settings
from schedule_board.wiring.dependencies import close_booking_store

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("day", "entry_id", "booking_id", "domain", "kind", "outcome", "reason"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    logger.info("Application shutting down, closing booking store")
    await close_booking_store()


app = FastAPI(title="Grooming & Garden Schedule Board", version="1.0.0", lifespan=lifespan)

app.include_router(board_router, prefix="/api/v1", tags=["board"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
