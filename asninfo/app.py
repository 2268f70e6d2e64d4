import logging
import time
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Body, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import Settings, load_settings
from .errors import AsnInfoError, StoreNotReady
from .loader import AsnInfoLoader
from .logging import setup_logging
from .models import MAX_ASN
from .refresher import Loader, Refresher
from .service import LookupService
from .store import SnapshotStore

log = logging.getLogger(__name__)

Asn = Annotated[int, Field(ge=0, le=MAX_ASN)]


class LookupBody(BaseModel):
    asns: list[Asn]


def create_app(settings: Settings | None = None, loader: Loader | None = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging("asninfo", settings.log_level)

    if loader is None:
        loader = AsnInfoLoader(
            settings.source_url,
            settings.countries_url,
            simplified=settings.simplified,
            timeout=settings.http_timeout,
        )
    store = SnapshotStore()
    service = LookupService(store, settings.max_asns)
    refresher = Refresher(loader, store, settings.refresh_secs)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info(
            "loading initial snapshot",
            extra={
                "event": "startup",
                "extra_fields": {
                    "refresh_secs": refresher.interval_secs,
                    "simplified": settings.simplified,
                    "max_asns": settings.max_asns,
                },
            },
        )
        # LoaderFailure propagates: no serving without data
        try:
            records, updated_at = await loader.load()
        except Exception:
            close = getattr(loader, "close", None)
            if close is not None:
                await close()
            raise
        store.replace(records, updated_at)
        refresher.start()
        yield
        log.info("stopping refresher", extra={"event": "shutdown"})
        await refresher.stop()
        close = getattr(loader, "close", None)
        if close is not None:
            await close()

    app = FastAPI(title="ASN info lookup", lifespan=lifespan)
    app.state.store = store
    app.state.service = service
    app.state.refresher = refresher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Access log + latency, /health excluded
    @app.middleware("http")
    async def access_logger(request: Request, call_next):
        path = request.url.path
        if path == "/health":
            return await call_next(request)
        t0 = time.time()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            age_ms = store.age_ms()
            log.info(
                "access",
                extra={
                    "event": "http.access",
                    "extra_fields": {
                        "path": path,
                        "method": request.method,
                        "status": status,
                        "latency_ms": int((time.time() - t0) * 1000),
                        "age_ms": age_ms if age_ms is not None else -1,
                    },
                },
            )

    @app.exception_handler(StoreNotReady)
    async def _not_ready(request: Request, exc: StoreNotReady):
        return JSONResponse({"error": "no data yet, try again shortly"}, status_code=503)

    @app.exception_handler(AsnInfoError)
    async def _service_error(request: Request, exc: AsnInfoError):
        status = getattr(exc, "status_code", 500)
        return JSONResponse({"error": str(exc)}, status_code=status)

    def _respond(payload) -> JSONResponse:
        age_ms = store.age_ms()
        return JSONResponse(payload, headers={"X-Data-Age-Ms": str(age_ms if age_ms is not None else -1)})

    @app.get("/lookup")
    async def get_lookup(
        asns: str | None = Query(None, description="Comma separated ASNs, e.g. 13335,15169"),
        legacy: bool = Query(False, description="Return the flat legacy record shape"),
    ):
        return _respond(service.lookup_by_query(asns, legacy))

    @app.post("/lookup")
    async def post_lookup(
        body: LookupBody = Body(...),
        legacy: bool = Query(False, description="Return the flat legacy record shape"),
    ):
        return _respond(service.lookup_by_body(body.asns, legacy))

    @app.get("/health")
    async def health():
        return service.health()

    return app


if __name__ == "__main__":
    # Dev run: python -m asninfo.app
    import uvicorn

    _settings = load_settings()
    uvicorn.run(create_app(_settings), host=_settings.bind_host, port=_settings.port)
