import logging
from contextlib import asynccontextmanager

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.adapters.email import build_email_adapter
from app.api.health import router as health_router
from app.api.routes_returns import router as returns_router
from app.config import settings
from app.db import init_db
from app.services.notifications import NotificationDispatcher, SchedulerRunner

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    init_db()

    # notification emails run on the scheduler's pool, one job per email
    scheduler = BackgroundScheduler(
        executors={"default": ThreadPoolExecutor(settings.NOTIFICATION_WORKERS)}
    )
    scheduler.start()
    app.state.notifier = NotificationDispatcher(build_email_adapter(), SchedulerRunner(scheduler))
    log.info("returns desk started (email backend=%s)", settings.EMAIL_BACKEND)

    try:
        yield
    finally:
        app.state.notifier = None
        scheduler.shutdown(wait=True)


app = FastAPI(title="Returns Desk - Backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(returns_router, tags=["returns"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.APP_HOST, port=settings.APP_PORT)
