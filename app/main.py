from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.routes_demo import router as demo_router
from app.api.routes_orders import router as orders_router
from app.api.routes_products import router as products_router
from app.api.utils import failure_status, now_utc
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.demo import ensure_demo_catalog
from app.domain.errors import OrderingError, ValidationError
from app.domain.inventory.store import SqlProductStore
from app.persistence.pg import init_db, session_scope

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(title=settings.app_name)


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    if settings.bootstrap_demo_on_startup:
        with session_scope() as session:
            result = ensure_demo_catalog(SqlProductStore(session))
        logger.info(
            "demo catalog ready: seeded_now=%s product_count=%s",
            result.get("seeded_now"),
            result.get("product_count"),
        )


@app.exception_handler(OrderingError)
async def ordering_error_handler(_: Request, exc: OrderingError):
    status_code = failure_status(exc)
    if status_code >= 409:
        logger.warning("request failed: kind=%s ref_id=%s detail=%s", exc.kind, exc.ref_id, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_: Request, exc: RequestValidationError):
    # Malformed bodies and query strings get the same tagged payload as domain validation.
    detail = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    failure = ValidationError(detail or "invalid request")
    return JSONResponse(status_code=failure_status(failure), content=failure.to_payload())


@app.get("/v1/health")
def health() -> dict:
    return {"ok": True, "ts": now_utc().isoformat().replace("+00:00", "Z")}


app.include_router(products_router)
app.include_router(orders_router)
app.include_router(demo_router)
