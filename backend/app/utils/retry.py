import functools
import logging
import time

from sqlalchemy.exc import OperationalError

from app.config import settings

log = logging.getLogger(__name__)


def retry_read(fn):
    """
    Retry an idempotent read a bounded number of times on transient
    OperationalError (lock timeouts, dropped connections). Never wrap writes.
    """

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        max_retries = settings.STORE_READ_RETRIES
        attempt = 0
        while True:
            try:
                return fn(*args, **kwargs)
            except OperationalError as e:
                attempt += 1
                if attempt > max_retries:
                    raise
                log.warning("%s failed (attempt %d/%d): %s", fn.__name__, attempt, max_retries, e)
                # repositories keep their session on self.db; it must be usable again
                db = getattr(args[0], "db", None) if args else None
                if db is not None:
                    db.rollback()
                time.sleep(settings.STORE_RETRY_BACKOFF_MS * attempt / 1000.0)

    return wrapper
