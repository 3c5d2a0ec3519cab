from typing import Generator, Optional

from fastapi import Header, HTTPException
from sqlalchemy.orm import Session

from transitledger.core.db import SessionLocal


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_caller(x_caller_id: Optional[str] = Header(None)) -> str:
    # Authentication happens upstream; the header carries the verified identity,
    # which is opaque and passed through byte for byte.
    if not x_caller_id or not x_caller_id.strip():
        raise HTTPException(status_code=401, detail="X-Caller-Id header is required")
    return x_caller_id
