from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def row_transaction(session: Session) -> Iterator:
    """
    Run one unit of import work inside a SAVEPOINT and commit it on success.

    If the block raises, only the work done inside it is rolled back; rows
    committed earlier in the batch stay committed and the session remains
    usable for the next row.
    Usage:
        with row_transaction(db):
            ... DB work for a single row ...
    """
    with session.begin_nested():
        yield
    session.commit()
