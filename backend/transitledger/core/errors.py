"""
Failure kinds shared by both ledger subsystems.

Every failure is detected before any write. Service functions roll back the
session and re-raise, so callers see one of these or a committed result.
"""


class LedgerError(Exception):
    kind = "LedgerError"
    status_code = 400

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.kind)
        self.detail = detail or self.kind

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.detail}


class Unauthorized(LedgerError):
    kind = "Unauthorized"
    status_code = 403


class AlreadyInitialized(LedgerError):
    kind = "AlreadyInitialized"
    status_code = 409


class NotFound(LedgerError):
    kind = "NotFound"
    status_code = 404


class VersionConflict(LedgerError):
    kind = "VersionConflict"
    status_code = 409


ERRORS_BY_KIND = {cls.kind: cls for cls in (Unauthorized, AlreadyInitialized, NotFound, VersionConflict)}
