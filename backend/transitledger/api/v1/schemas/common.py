from typing import Literal

from pydantic import BaseModel

# BIGINT columns; anything wider cannot be stored.
UINT_MAX = 2**63 - 1


def hex_pattern(n_bytes: int) -> str:
    return rf"^(0x)?[0-9a-fA-F]{{{2 * n_bytes}}}$"


def hex_to_bytes(value: str) -> bytes:
    if value[:2].lower() == "0x":
        value = value[2:]
    return bytes.fromhex(value)


class AdminOut(BaseModel):
    admin: str


class RoleChangeOut(BaseModel):
    role: str
    identity: str
    member: bool


class ErrorOut(BaseModel):
    error: Literal["Unauthorized", "AlreadyInitialized", "NotFound", "VersionConflict"]
    detail: str
