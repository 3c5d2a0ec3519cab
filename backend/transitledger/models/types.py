from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on Postgres, plain JSON elsewhere (SQLite in dev/tests).
JsonPayload = JSON().with_variant(JSONB(), "postgresql")
