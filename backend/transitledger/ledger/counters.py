from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from transitledger.models.ledger_counters import LedgerCounter

SCHEDULES = "schedules"
ARRIVALS = "arrivals"


def lock_counter(db: Session, name: str) -> LedgerCounter:
    """
    Load a counter row with SELECT ... FOR UPDATE, creating it at 0 if missing.

    Writers of the same counter queue here until the holder's transaction
    ends. SQLite drops FOR UPDATE; there the engine takes the database write
    lock at BEGIN instead (core.db.use_immediate_transactions).
    """
    # pending changes would be overwritten by the locked re-read
    db.flush()
    counter = db.get(LedgerCounter, name, with_for_update=True, populate_existing=True)
    if counter is not None:
        return counter

    try:
        with db.begin_nested():
            counter = LedgerCounter(name=name, value=0)
            db.add(counter)
    except IntegrityError:
        # created by a concurrent writer; wait for its lock
        counter = db.get(LedgerCounter, name, with_for_update=True, populate_existing=True)
    return counter


def next_id(db: Session, name: str) -> int:
    """
    Allocate the next id of a sequence (first id is 1).

    Must run inside the transaction that writes the numbered row: a rollback
    returns the id, so ids are only consumed by committed writes.
    """
    counter = lock_counter(db, name)
    counter.value = int(counter.value or 0) + 1
    return int(counter.value)
