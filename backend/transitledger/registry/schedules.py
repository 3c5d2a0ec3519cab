"""
Attestation registry: versioned schedule publications.

Write path (one transaction per call):
  publish_schedule   -> schedules + schedule_versions + route_version_index
                        + route_latest + ledger_events
  deprecate_schedule -> schedules.active = False + ledger_events

Uniqueness of (route, version) is enforced by a primary-key lookup on
route_version_index, and "latest for route" is a pointer row, so neither the
check nor the query depends on history length.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from transitledger.core.errors import NotFound, VersionConflict
from transitledger.ledger.access import AccessControl
from transitledger.ledger.counters import SCHEDULES, next_id
from transitledger.ledger.events import append_event, lock_chain
from transitledger.ledger.tx import atomic
from transitledger.models.access import RegistryAdmin, RegistryPublisher
from transitledger.models.route_latest import RouteLatest
from transitledger.models.route_version_index import RouteVersionIndex
from transitledger.models.schedule_versions import ScheduleVersion
from transitledger.models.schedules import (
    CONTENT_HASH_LEN,
    NOTES_MAX_LEN,
    ROUTE_MAX_LEN,
    SIGNATURE_LEN,
    Schedule,
)

SUBSYSTEM = "registry"
PUBLISHER_ROLE = "publisher"

access = AccessControl(
    subsystem=SUBSYSTEM,
    role=PUBLISHER_ROLE,
    admin_model=RegistryAdmin,
    member_model=RegistryPublisher,
)


def bootstrap_admin(db: Session, caller: str, *, commit: bool = True) -> str:
    return access.bootstrap_admin(db, caller, commit=commit)


def grant_publisher(db: Session, caller: str, identity: str, *, commit: bool = True) -> None:
    access.grant(db, caller, identity, commit=commit)


def revoke_publisher(db: Session, caller: str, identity: str, *, commit: bool = True) -> None:
    access.revoke(db, caller, identity, commit=commit)


def _validate_publish_args(route: str, content_hash: bytes, version: int, notes: str, timestamp: int, signature: bytes):
    if not route or len(route) > ROUTE_MAX_LEN:
        raise ValueError(f"route must be 1..{ROUTE_MAX_LEN} characters")
    if len(notes) > NOTES_MAX_LEN:
        raise ValueError(f"notes must be at most {NOTES_MAX_LEN} characters")
    if len(content_hash) != CONTENT_HASH_LEN:
        raise ValueError(f"content_hash must be exactly {CONTENT_HASH_LEN} bytes")
    if len(signature) != SIGNATURE_LEN:
        raise ValueError(f"signature must be exactly {SIGNATURE_LEN} bytes")
    if version < 0 or timestamp < 0:
        raise ValueError("version and timestamp must be unsigned")


def publish_schedule(
    db: Session,
    caller: str,
    *,
    route: str,
    content_hash: bytes,
    version: int,
    notes: str = "",
    timestamp: int,
    signature: bytes,
    commit: bool = True,
) -> int:
    """
    Publish a new schedule version and return its id.

    Raises Unauthorized unless caller is admin or publisher, and
    VersionConflict if (route, version) was ever published before. Nothing is
    written in either case.
    """
    _validate_publish_args(route, content_hash, version, notes, timestamp, signature)

    with atomic(db, "registry.publish_schedule", commit=commit):
        lock_chain(db, SUBSYSTEM)
        access.require_writer(db, caller)

        if db.get(RouteVersionIndex, (route, version)) is not None:
            raise VersionConflict(f"route {route!r} version {version} is already published")

        schedule_id = next_id(db, SCHEDULES)

        db.add(
            Schedule(
                id=schedule_id,
                route=route,
                version=version,
                content_hash=bytes(content_hash),
                publisher=caller,
                notes=notes,
                timestamp=timestamp,
                signature=bytes(signature),
                active=True,
            )
        )
        db.add(
            ScheduleVersion(
                schedule_id=schedule_id,
                version=version,
                content_hash=bytes(content_hash),
                notes=notes,
                timestamp=timestamp,
            )
        )
        db.add(RouteVersionIndex(route=route, version=version, schedule_id=schedule_id))

        latest = db.get(RouteLatest, route)
        if latest is None:
            db.add(RouteLatest(route=route, schedule_id=schedule_id, version=version))
        else:
            latest.schedule_id = schedule_id
            latest.version = version

        try:
            db.flush()
        except IntegrityError as e:
            # A concurrent publisher won the same (route, version) key.
            raise VersionConflict(f"route {route!r} version {version} is already published") from e

        append_event(
            db,
            subsystem=SUBSYSTEM,
            event_name="schedule.published",
            actor=caller,
            subject_id=schedule_id,
            payload={"id": schedule_id, "route": route, "version": version, "publisher": caller},
        )

    return schedule_id


def deprecate_schedule(db: Session, caller: str, schedule_id: int, *, commit: bool = True) -> None:
    """
    Mark a schedule inactive. One-way; repeating it succeeds and re-emits the event.
    """
    with atomic(db, "registry.deprecate_schedule", commit=commit):
        lock_chain(db, SUBSYSTEM)
        access.require_writer(db, caller)

        schedule = db.get(Schedule, schedule_id)
        if schedule is None:
            raise NotFound(f"schedule {schedule_id} does not exist")

        schedule.active = False
        append_event(
            db,
            subsystem=SUBSYSTEM,
            event_name="schedule.deprecated",
            actor=caller,
            subject_id=schedule_id,
            payload={"id": schedule_id, "route": schedule.route, "version": int(schedule.version)},
        )


# --- read-only queries: absent keys return None ---

def get_schedule(db: Session, schedule_id: int) -> Optional[Schedule]:
    return db.get(Schedule, schedule_id)


def get_schedule_version(db: Session, schedule_id: int, version: int) -> Optional[ScheduleVersion]:
    return db.get(ScheduleVersion, (schedule_id, version))


def get_route_latest(db: Session, route: str) -> Optional[RouteLatest]:
    return db.get(RouteLatest, route)


def get_schedule_id(db: Session, route: str, version: int) -> Optional[int]:
    row = db.get(RouteVersionIndex, (route, version))
    return int(row.schedule_id) if row is not None else None


def is_publisher(db: Session, identity: str) -> bool:
    return access.has_role(db, identity)


def get_admin(db: Session) -> Optional[str]:
    return access.get_admin(db)
