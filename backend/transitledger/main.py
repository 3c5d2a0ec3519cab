from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from transitledger.api.v1.routes.health import router as health_router
from transitledger.api.v1.routes.registry import router as registry_router
from transitledger.api.v1.routes.reliability import router as reliability_router
from transitledger.core.db import init_db
from transitledger.core.errors import LedgerError
from transitledger.core.logging import configure_logging_if_needed


def create_app(*, create_tables: bool = True) -> FastAPI:
    configure_logging_if_needed()
    if create_tables:
        init_db()

    app = FastAPI(title="Transit Ledger API")

    # Dev-friendly CORS policy: allow all origins/methods/headers so dashboards can call the API directly.
    # Tighten this for production.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(health_router, prefix="/v1")
    app.include_router(registry_router)
    app.include_router(reliability_router)
    return app


app = create_app()
