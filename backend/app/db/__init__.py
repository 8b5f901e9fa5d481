import logging
import os
import sys
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from app.config import settings

log = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL


def _engine_options(url: str) -> dict:
    """
    Bound every store call: SQLite waits at most STORE_CALL_TIMEOUT_SECONDS on a
    locked database, PostgreSQL cancels statements running longer than that.
    """
    timeout = settings.STORE_CALL_TIMEOUT_SECONDS
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False, "timeout": timeout}}
    opts = {"pool_pre_ping": True, "pool_timeout": timeout}
    if url.startswith("postgresql"):
        opts["connect_args"] = {"options": f"-c statement_timeout={timeout * 1000}"}
    return opts


engine = create_engine(DATABASE_URL, future=True, echo=False, **_engine_options(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def init_db():
    """
    Initialize DB schema.

    Behavior:
      - If RESET_DB env var is set to 1/true/yes, drop & recreate tables.
      - If we detect pytest running, automatically drop & recreate tables so tests run against a clean DB.
      - Otherwise, leave existing tables in place.

    Ensure all model modules are imported so metadata is populated.
    """
    import importlib

    env_reset = os.environ.get("RESET_DB", "false").lower() in ("1", "true", "yes")

    # heuristic detection of pytest run: argv or pytest env variables
    running_pytest = any("pytest" in os.path.basename(a).lower() for a in sys.argv)
    if not running_pytest:
        running_pytest = any(k.upper().startswith("PYTEST") for k in os.environ.keys())

    # List of model modules we expect to import here (add new modules here)
    model_modules = [
        "app.models.user",
        "app.models.order",
        "app.models.return_request",
        "app.models.ra_sequence",
        "app.models.admin_log",
    ]
    for mod in model_modules:
        importlib.import_module(mod)
    log.debug("init_db: imported models %s", model_modules)

    if env_reset or running_pytest:
        log.info("Resetting database (RESET_DB set or pytest detected)...")
        Base.metadata.drop_all(bind=engine)

    log.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    log.info("Database initialized.")

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
