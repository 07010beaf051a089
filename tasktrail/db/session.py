from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from tasktrail.core.errors import ConflictError
from tasktrail.db.engine import get_engine


def get_session() -> Generator[Session, None, None]:
    # Mutation results are read after commit, from the state loaded in the transaction.
    with Session(get_engine(), expire_on_commit=False) as session:
        yield session


@contextmanager
def unit_of_work(session: Session) -> Iterator[Session]:
    """Run every write in the block as one transaction.

    Commits when the block exits cleanly. Any exception, including
    cancellation-style ``BaseException`` subclasses, rolls back all pending
    writes before propagating. Constraint violations surface as
    ``ConflictError``.
    """
    try:
        yield session
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ConflictError() from exc
    except BaseException:
        session.rollback()
        raise
