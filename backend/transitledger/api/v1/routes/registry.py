from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from transitledger.api.v1.schemas.common import AdminOut, ErrorOut, RoleChangeOut, hex_to_bytes
from transitledger.api.v1.schemas.registry import (
    PublishedOut,
    PublishScheduleRequest,
    RouteLatestOut,
    RouteVersionOut,
    ScheduleOut,
    ScheduleVersionOut,
)
from transitledger.core.deps import get_caller, get_db
from transitledger.registry import schedules

router = APIRouter(prefix="/v1/registry", tags=["registry"])

ERROR_RESPONSES = {
    403: {"model": ErrorOut},
    404: {"model": ErrorOut},
    409: {"model": ErrorOut},
}


# --- administration ---

@router.post("/admin/bootstrap", response_model=AdminOut, responses=ERROR_RESPONSES)
def bootstrap_admin(caller: str = Depends(get_caller), db: Session = Depends(get_db)):
    return AdminOut(admin=schedules.bootstrap_admin(db, caller))


@router.get("/admin", response_model=Optional[AdminOut])
def get_admin(db: Session = Depends(get_db)):
    admin = schedules.get_admin(db)
    return AdminOut(admin=admin) if admin is not None else None


@router.put("/publishers/{identity:path}", response_model=RoleChangeOut, responses=ERROR_RESPONSES)
def grant_publisher(identity: str, caller: str = Depends(get_caller), db: Session = Depends(get_db)):
    schedules.grant_publisher(db, caller, identity)
    return RoleChangeOut(role=schedules.PUBLISHER_ROLE, identity=identity, member=True)


@router.delete("/publishers/{identity:path}", response_model=RoleChangeOut, responses=ERROR_RESPONSES)
def revoke_publisher(identity: str, caller: str = Depends(get_caller), db: Session = Depends(get_db)):
    schedules.revoke_publisher(db, caller, identity)
    return RoleChangeOut(role=schedules.PUBLISHER_ROLE, identity=identity, member=False)


@router.get("/publishers/{identity:path}", response_model=RoleChangeOut)
def get_publisher(identity: str, db: Session = Depends(get_db)):
    return RoleChangeOut(role=schedules.PUBLISHER_ROLE, identity=identity, member=schedules.is_publisher(db, identity))


# --- schedules ---

@router.post("/schedules", response_model=PublishedOut, status_code=201, responses=ERROR_RESPONSES)
def publish_schedule(body: PublishScheduleRequest, caller: str = Depends(get_caller), db: Session = Depends(get_db)):
    schedule_id = schedules.publish_schedule(
        db,
        caller,
        route=body.route,
        content_hash=hex_to_bytes(body.content_hash),
        version=body.version,
        notes=body.notes,
        timestamp=body.timestamp,
        signature=hex_to_bytes(body.signature),
    )
    return PublishedOut(id=schedule_id)


@router.post("/schedules/{schedule_id}/deprecate", response_model=ScheduleOut, responses=ERROR_RESPONSES)
def deprecate_schedule(schedule_id: int = Path(..., ge=1), caller: str = Depends(get_caller), db: Session = Depends(get_db)):
    schedules.deprecate_schedule(db, caller, schedule_id)
    return _schedule_out(schedules.get_schedule(db, schedule_id))


@router.get("/schedules/{schedule_id}", response_model=Optional[ScheduleOut])
def get_schedule(schedule_id: int, db: Session = Depends(get_db)):
    s = schedules.get_schedule(db, schedule_id)
    return _schedule_out(s) if s is not None else None


@router.get("/schedules/{schedule_id}/versions/{version}", response_model=Optional[ScheduleVersionOut])
def get_schedule_version(schedule_id: int, version: int, db: Session = Depends(get_db)):
    v = schedules.get_schedule_version(db, schedule_id, version)
    if v is None:
        return None
    return ScheduleVersionOut(
        schedule_id=int(v.schedule_id),
        version=int(v.version),
        content_hash=bytes(v.content_hash).hex(),
        notes=v.notes,
        timestamp=int(v.timestamp),
    )


# --- routes ---

# route names may contain "/"; clients percent-encode them
@router.get("/routes/{route:path}/latest", response_model=Optional[RouteLatestOut])
def get_route_latest(route: str, db: Session = Depends(get_db)):
    latest = schedules.get_route_latest(db, route)
    if latest is None:
        return None
    return RouteLatestOut(route=latest.route, id=int(latest.schedule_id), version=int(latest.version))


@router.get("/routes/{route:path}/versions/{version}", response_model=Optional[RouteVersionOut])
def get_route_version(route: str, version: int, db: Session = Depends(get_db)):
    schedule_id = schedules.get_schedule_id(db, route, version)
    if schedule_id is None:
        return None
    return RouteVersionOut(route=route, version=version, id=schedule_id)


def _schedule_out(s) -> ScheduleOut:
    return ScheduleOut(
        id=int(s.id),
        route=s.route,
        version=int(s.version),
        content_hash=bytes(s.content_hash).hex(),
        publisher=s.publisher,
        notes=s.notes,
        timestamp=int(s.timestamp),
        signature=bytes(s.signature).hex(),
        active=bool(s.active),
    )
