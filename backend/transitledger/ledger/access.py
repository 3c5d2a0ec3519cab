"""
Single-admin bootstrap + one named write role.

Each subsystem builds its own AccessControl over its own admin/member tables
and event chain; instances never share storage.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from transitledger.core.errors import AlreadyInitialized, Unauthorized
from transitledger.ledger.events import append_event, lock_chain
from transitledger.ledger.tx import atomic

ADMIN_SLOT = 1


class AccessControl:
    def __init__(self, *, subsystem: str, role: str, admin_model, member_model):
        self.subsystem = subsystem
        self.role = role
        self.admin_model = admin_model
        self.member_model = member_model

    # --- queries ---

    def get_admin(self, db: Session) -> Optional[str]:
        row = db.get(self.admin_model, ADMIN_SLOT)
        return row.identity if row is not None else None

    def has_role(self, db: Session, identity: str) -> bool:
        return db.get(self.member_model, identity) is not None

    def is_admin(self, db: Session, identity: str) -> bool:
        admin = self.get_admin(db)
        return admin is not None and admin == identity

    def can_write(self, db: Session, identity: str) -> bool:
        return self.is_admin(db, identity) or self.has_role(db, identity)

    # --- guards ---

    def require_admin(self, db: Session, caller: str) -> None:
        if not self.is_admin(db, caller):
            raise Unauthorized(f"{caller!r} is not the {self.subsystem} admin")

    def require_writer(self, db: Session, caller: str) -> None:
        if not self.can_write(db, caller):
            raise Unauthorized(f"{caller!r} is neither admin nor {self.role}")

    # --- mutations ---

    def bootstrap_admin(self, db: Session, caller: str, *, commit: bool = True) -> str:
        with atomic(db, f"{self.subsystem}.bootstrap_admin", commit=commit):
            lock_chain(db, self.subsystem)
            if db.get(self.admin_model, ADMIN_SLOT) is not None:
                raise AlreadyInitialized(f"{self.subsystem} admin is already set")
            db.add(self.admin_model(slot=ADMIN_SLOT, identity=caller))
            append_event(
                db,
                subsystem=self.subsystem,
                event_name="admin.bootstrapped",
                actor=caller,
                payload={"admin": caller},
            )
        return caller

    def grant(self, db: Session, caller: str, identity: str, *, commit: bool = True) -> None:
        with atomic(db, f"{self.subsystem}.grant_{self.role}", commit=commit):
            lock_chain(db, self.subsystem)
            self.require_admin(db, caller)
            if not self.has_role(db, identity):
                db.add(self.member_model(identity=identity, granted_by=caller))
            append_event(
                db,
                subsystem=self.subsystem,
                event_name="role.granted",
                actor=caller,
                payload={"role": self.role, "identity": identity},
            )

    def revoke(self, db: Session, caller: str, identity: str, *, commit: bool = True) -> None:
        with atomic(db, f"{self.subsystem}.revoke_{self.role}", commit=commit):
            lock_chain(db, self.subsystem)
            self.require_admin(db, caller)
            member = db.get(self.member_model, identity)
            if member is not None:
                db.delete(member)
            append_event(
                db,
                subsystem=self.subsystem,
                event_name="role.revoked",
                actor=caller,
                payload={"role": self.role, "identity": identity},
            )
