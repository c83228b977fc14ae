"""
FastAPI server for the {SYSTEM_NAME} platform.

This module wires the session store, tool registry, chat provider, monitor
orchestrator and service together and serves the monitor router.
"""
import contextlib
import logging
from datetime import timedelta
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from interview_monitor import __version__
from interview_monitor.core.monitor import MonitorOrchestrator
from interview_monitor.routers.monitor import limiter, router as monitor_router
from interview_monitor.services.chat_provider import ChatToolProvider, GeminiToolCallingProvider
from interview_monitor.services.event_bus import InterviewEventBus
from interview_monitor.services.monitor_service import InterviewMonitorService
from interview_monitor.services.session_store import SessionStore
from interview_monitor.tools import build_default_registry
from interview_monitor.utils.config import SYSTEM_NAME, get_session_config, log_config
from interview_monitor.utils.job_data import load_job_data

logger = logging.getLogger(__name__)


def build_monitor_service(
    provider: Optional[ChatToolProvider] = None,
    event_bus: Optional[InterviewEventBus] = None,
) -> InterviewMonitorService:
    """Create a fully wired InterviewMonitorService."""
    store = SessionStore(job_data=load_job_data())
    registry = build_default_registry()
    orchestrator = MonitorOrchestrator(
        store,
        registry,
        provider or GeminiToolCallingProvider(),
        event_bus=event_bus or InterviewEventBus(),
    )
    return InterviewMonitorService(store, registry, orchestrator)


@contextlib.asynccontextmanager
async def lifespan(app_instance: FastAPI):
    """
    Lifespan context manager for FastAPI app.

    Starts the buffer flush loop and the idle-session reaper, and stops them on shutdown.
    """
    log_config()
    service: InterviewMonitorService = app_instance.state.monitor_service
    await service.start()

    session_config = get_session_config()
    ttl = timedelta(minutes=session_config["ttl_minutes"])

    def cleanup_expired_sessions():
        """Evict sessions idle for longer than the TTL."""
        evicted = service.evict_expired_sessions(ttl)
        if evicted:
            logger.info(f"Cleaned up {len(evicted)} idle sessions")

    # Initialize the scheduler
    scheduler = AsyncIOScheduler()
    scheduler.add_job(cleanup_expired_sessions, 'interval', minutes=session_config["cleanup_interval_minutes"])
    scheduler.start()
    app_instance.state.scheduler = scheduler

    yield

    # Cleanup on shutdown
    scheduler.shutdown()
    await service.stop()


def create_app(service: Optional[InterviewMonitorService] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Pre-built monitor service; a default one is wired when omitted
    """
    app = FastAPI(
        title=f"{SYSTEM_NAME} API",
        description="""
    REST API for the interview conversation monitor.

    The realtime client posts conversation batches or single utterances; the
    monitor analyzes them, runs the enabled tools and answers with the
    instruction for the interviewing agent.
    """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )
    app.state.monitor_service = service or build_monitor_service()

    # Add rate limiter exception handler
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Add CORS middleware to allow cross-origin requests
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],  # Frontend URL
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(monitor_router)

    # Exception handler for general exceptions
    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "An internal server error occurred. Please try again later."}
        )

    @app.get("/health")
    async def health():
        return {"status": "ok", "sessions": len(app.state.monitor_service.store)}

    logger.info("FastAPI app created")
    return app
