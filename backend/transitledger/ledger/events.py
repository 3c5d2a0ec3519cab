"""
Append-only, hash-chained event log.

Each subsystem keeps its own chain:
  entry_hash = sha256(prev_hash || canonical_json(entry))
with prev_hash of the first entry = GENESIS_HASH. Rewriting any stored row
breaks every later hash, which verify_event_chain detects.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from transitledger.ledger.counters import lock_counter, next_id
from transitledger.models.ledger_events import LedgerEvent

logger = logging.getLogger(__name__)

GENESIS_HASH = "0" * 64


@dataclass(frozen=True)
class ChainVerification:
    subsystem: str
    entries_checked: int
    ok: bool
    first_broken_seq: Optional[int]


def canonical_json(data: dict) -> bytes:
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")


def compute_entry_hash(
    prev_hash: str,
    *,
    subsystem: str,
    seq: int,
    event_name: str,
    actor: str,
    subject_id: Optional[int],
    payload: dict,
) -> str:
    body = canonical_json(
        {
            "subsystem": subsystem,
            "seq": seq,
            "event": event_name,
            "actor": actor,
            "subject_id": subject_id,
            "payload": payload,
        }
    )
    return hashlib.sha256(prev_hash.encode("ascii") + body).hexdigest()


def chain_counter(subsystem: str) -> str:
    return f"events.{subsystem}"


def lock_chain(db: Session, subsystem: str) -> None:
    """
    Serialise writers of one subsystem until the transaction ends.

    Write operations take this before their checks, so a check never reads
    state that a concurrent writer of the same subsystem is about to change.
    """
    lock_counter(db, chain_counter(subsystem))


def _entry_hash_at(db: Session, subsystem: str, seq: int) -> Optional[str]:
    return db.execute(
        select(LedgerEvent.entry_hash).where(LedgerEvent.subsystem == subsystem, LedgerEvent.seq == seq)
    ).scalar_one_or_none()


def append_event(
    db: Session,
    *,
    subsystem: str,
    event_name: str,
    actor: str,
    subject_id: Optional[int] = None,
    payload: Optional[dict] = None,
) -> LedgerEvent:
    payload = dict(payload or {})
    seq = next_id(db, chain_counter(subsystem))
    prev_hash = GENESIS_HASH if seq == 1 else _entry_hash_at(db, subsystem, seq - 1)
    if prev_hash is None:
        raise RuntimeError(f"event chain {subsystem} is missing seq={seq - 1}")

    entry_hash = compute_entry_hash(
        prev_hash,
        subsystem=subsystem,
        seq=seq,
        event_name=event_name,
        actor=actor,
        subject_id=subject_id,
        payload=payload,
    )
    ev = LedgerEvent(
        subsystem=subsystem,
        seq=seq,
        event_name=event_name,
        actor=actor,
        subject_id=subject_id,
        payload=payload,
        prev_hash=prev_hash,
        entry_hash=entry_hash,
    )
    db.add(ev)
    # flush so the next append in the same transaction can chain to this entry
    db.flush()

    logger.info("event %s/%d %s actor=%s subject=%s %s", subsystem, seq, event_name, actor, subject_id, payload)
    return ev


def list_events(db: Session, subsystem: str, *, after_seq: int = 0, limit: int = 100) -> list[LedgerEvent]:
    return list(
        db.execute(
            select(LedgerEvent)
            .where(LedgerEvent.subsystem == subsystem, LedgerEvent.seq > after_seq)
            .order_by(LedgerEvent.seq.asc())
            .limit(limit)
        ).scalars()
    )


def verify_event_chain(db: Session, subsystem: str) -> ChainVerification:
    prev_hash = GENESIS_HASH
    expected_seq = 1
    checked = 0

    rows = db.execute(
        select(LedgerEvent).where(LedgerEvent.subsystem == subsystem).order_by(LedgerEvent.seq.asc())
    ).scalars()

    for ev in rows:
        recomputed = compute_entry_hash(
            prev_hash,
            subsystem=ev.subsystem,
            seq=int(ev.seq),
            event_name=ev.event_name,
            actor=ev.actor,
            subject_id=ev.subject_id,
            payload=ev.payload or {},
        )
        if int(ev.seq) != expected_seq or ev.prev_hash != prev_hash or ev.entry_hash != recomputed:
            logger.warning("event chain %s broken at seq=%s", subsystem, ev.seq)
            return ChainVerification(subsystem=subsystem, entries_checked=checked, ok=False, first_broken_seq=int(ev.seq))
        prev_hash = ev.entry_hash
        expected_seq += 1
        checked += 1

    return ChainVerification(subsystem=subsystem, entries_checked=checked, ok=True, first_broken_seq=None)
