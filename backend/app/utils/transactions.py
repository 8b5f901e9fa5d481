from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def smart_transaction(session: Session) -> Iterator[Session]:
    """
    Run the block in a transaction on `session`: a SAVEPOINT when one is
    already open, otherwise a top-level transaction committed on exit.

        with smart_transaction(s):
            s.execute(...)
    """
    cm = session.begin_nested() if session.in_transaction() else session.begin()
    with cm:
        yield session
