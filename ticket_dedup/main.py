"""
Related Ticket Finder - FastAPI Backend
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ticket_dedup import __version__
from ticket_dedup.config import get_settings
from ticket_dedup.dependencies import get_analysis_service
from ticket_dedup.exceptions import TicketRepositoryError
from ticket_dedup.middleware.logging_middleware import LoggingMiddleware
from ticket_dedup.routes import analysis, health, tickets
from ticket_dedup.services.scheduler import HistoricalSyncScheduler
from ticket_dedup.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)


async def scheduled_sync():
    """One scheduled historical sync through the shared service"""
    return await analysis.run_scheduled_sync(get_analysis_service())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the historical sync loop for the lifetime of the app"""
    scheduler = HistoricalSyncScheduler(
        scheduled_sync,
        interval_seconds=settings.sync_interval_seconds,
        enabled=settings.enable_historical_data_sync
    )
    app.state.sync_scheduler = scheduler
    scheduler.start()
    try:
        yield
    finally:
        await scheduler.stop()


app = FastAPI(
    title="Related Ticket Finder",
    description="Finds historical Jira tickets similar to new ones",
    version=__version__,
    lifespan=lifespan
)

# Middleware order matters: last added runs first
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

app.include_router(analysis.router)
app.include_router(tickets.router)
app.include_router(health.router)


@app.exception_handler(TicketRepositoryError)
async def ticket_store_error_handler(request: Request, exc: TicketRepositoryError):
    logger.error(f"Ticket store failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Ticket store unavailable"}
    )


@app.get("/")
async def root():
    return {"message": "Related Ticket Finder API", "version": __version__}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.fastapi_host, port=settings.fastapi_port)
