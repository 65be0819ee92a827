from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from concierge.db.database import create_all, dispose_engine
from concierge.routes import bookings, chat, events, guests, services, voice
from concierge.services.gemini_service import close_gemini_service
from concierge.utils.config import get_settings

settings = get_settings()

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    if settings.database_auto_create:
        await create_all()
    logger.info("Concierge API started", extra={"model": settings.gemini_model})
    yield
    await close_gemini_service()
    await dispose_engine()


app = FastAPI(title="Concierge API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.frontend_origins,
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["*"],
    allow_credentials=True,
)

app.include_router(bookings.router, prefix="/api")
app.include_router(services.router, prefix="/api")
app.include_router(guests.router, prefix="/api")
app.include_router(events.router, prefix="/api")
app.include_router(chat.router)
app.include_router(voice.router)


@app.get("/health")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("concierge.main:app", host="0.0.0.0", port=settings.backend_port)
