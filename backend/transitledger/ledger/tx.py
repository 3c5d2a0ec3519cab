import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from transitledger.core.errors import LedgerError

logger = logging.getLogger(__name__)


@contextmanager
def atomic(db: Session, operation: str, *, commit: bool = True) -> Iterator[Session]:
    """
    One ledger operation = one transaction.

    Checks and writes run inside the block; on any exception the block's
    writes are rolled back and the error re-raised unchanged, so a failed
    call leaves no trace.

    With commit=False the block runs in a SAVEPOINT inside the caller's
    transaction: success releases it and leaves the commit to the caller,
    failure rolls back only this block and keeps the caller's earlier work.
    """
    try:
        if commit:
            yield db
            db.commit()
        else:
            with db.begin_nested():
                yield db
    except LedgerError as e:
        if commit:
            db.rollback()
        logger.warning("%s rejected: %s (%s)", operation, e.kind, e.detail)
        raise
    except Exception:
        if commit:
            db.rollback()
        logger.exception("%s failed", operation)
        raise
