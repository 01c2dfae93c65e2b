# ──────────────────────────────────────────────────────────────────────────────
# File: main.py
# Purpose: FastAPI entrypoint for the intranet backend (login, documents,
#          upload, search, news/calendar/partners).
#
# Guarantees
#   • Configuration is read ONCE here; any missing required value aborts
#     startup (ConfigurationError) before a single request is served.
#   • Production-safe defaults: correlation IDs, gzip, access logs, timeouts.
#   • Document index sync runs on startup and then every SYNC_INTERVAL_S in a
#     background task; it never blocks or fails a request.
#   • Every error response is {"message": ...}; internals stay in the logs.
#   • ClientDisconnect is not treated as an application error.
#
# Notes
#   • FRONTEND_ORIGINS must be set in prod; dev falls back to "*".
#   • Keep this file small and boring; complex logic belongs in services/.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

# ── Stdlib --------------------------------------------------------------------
import importlib
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Iterable, List, Optional

# ── Third-party ---------------------------------------------------------------
import anyio
from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.requests import ClientDisconnect

# ── Local ---------------------------------------------------------------------
from services.container import Components, build_components
from services.errors import ConfigurationError, IntranetError, error_payload
from services.graph_client import RemoteDocumentService
from services.identity import IdentityStore
from services.settings import Settings, load_dotenv_file

# ── Logging -------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-7s %(name)s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("intranet.main")

# Quiet per-request httpx lines (we log our own upstream context)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

GENERIC_500 = "Internal server error."

# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ Middlewares                                                              ║
# ╚══════════════════════════════════════════════════════════════════════════╝

class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Attach a correlation ID to each request and echo it in the response headers.

    Header: X-Corr-Id (in/out)
    """
    async def dispatch(self, request: Request, call_next):
        cid = request.headers.get("x-corr-id") or f"{uuid.uuid4().hex[:8]}{int(time.time())%1000:03d}"
        request.state.corr_id = cid
        response = await call_next(request)
        response.headers["x-corr-id"] = cid
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    Minimal structured access log. Always logs a line, even on exceptions.

    Fields: method, path, cid, status, dur_ms
    """
    async def dispatch(self, request: Request, call_next):
        t0 = time.perf_counter()
        method = request.method
        path = request.url.path
        status = None
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            dur_ms = int((time.perf_counter() - t0) * 1000)
            cid = getattr(getattr(request, "state", None), "corr_id", "-")
            logger.info(
                "req method=%s path=%s cid=%s status=%s dur_ms=%s",
                method, path, cid, status if status is not None else "ERR", dur_ms
            )


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Per-request timeout with a longer budget for uploads and manual syncs.

    Cancelling the handler abandons its in-flight upstream calls; those calls
    never write to the document index.
    """
    LONG_OP_PATHS = ("/api/upload/", "/api/admin/sync")

    def __init__(self, app, timeout_s: float = 35.0, long_timeout_s: float = 300.0):
        super().__init__(app)
        self.default_timeout = timeout_s
        self.long_timeout = long_timeout_s

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        budget = self.long_timeout if path.startswith(self.LONG_OP_PATHS) else self.default_timeout
        response = None
        with anyio.move_on_after(budget) as scope:
            response = await call_next(request)
        if scope.cancel_called or response is None:
            logger.warning("request timeout path=%s budget_s=%s", path, budget)
            return JSONResponse(status_code=504, content=error_payload("Request timeout."))
        return response


# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ Error handlers                                                           ║
# ╚══════════════════════════════════════════════════════════════════════════╝

def _cid(request: Request) -> str:
    return getattr(getattr(request, "state", None), "corr_id", "-")


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(IntranetError)
    async def _intranet_error(request: Request, exc: IntranetError):
        if exc.status_code >= 500:
            logger.error("upstream failure path=%s cid=%s err=%s: %s",
                         request.url.path, _cid(request), exc.__class__.__name__, exc)
        else:
            logger.info("request rejected path=%s cid=%s status=%s err=%s",
                        request.url.path, _cid(request), exc.status_code, exc.__class__.__name__)
        return JSONResponse(status_code=exc.status_code, content=error_payload(exc.public_message))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed."
        return JSONResponse(status_code=exc.status_code, content=error_payload(message),
                            headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        logger.info("invalid request path=%s cid=%s", request.url.path, _cid(request))
        return JSONResponse(status_code=400, content=error_payload("Invalid request."))

    @app.exception_handler(ClientDisconnect)
    async def _client_disconnect_handler(_: Request, __: ClientDisconnect):
        # Client dropped mid-request; keep logs clean.
        return Response(status_code=204)

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        logger.exception("unhandled error path=%s cid=%s", request.url.path, _cid(request))
        return JSONResponse(status_code=500, content=error_payload(GENERIC_500))


# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ Router Inclusion                                                         ║
# ╚══════════════════════════════════════════════════════════════════════════╝
# Every router here is required: the app refuses to start without it.

ROUTERS: Iterable[str] = (
    "routes.health",
    "routes.auth",
    "routes.documents",
    "routes.search",
    "routes.content",
    "routes.admin",
)


def _include(app: FastAPI, router_path: str) -> None:
    """Import and mount a router by module path; raises on any error."""
    module = importlib.import_module(router_path)
    router = getattr(module, "router", None)
    if router is None or not isinstance(router, APIRouter):
        raise ImportError(f"no/invalid 'router' in {router_path}")
    app.include_router(router)
    logger.info("🔌 Router enabled: %s", router_path)


# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ App Factory (Lifespan, CORS, Middlewares, Routers)                       ║
# ╚══════════════════════════════════════════════════════════════════════════╝

def _cors_origins(settings: Settings) -> List[str]:
    if settings.frontend_origins:
        return list(settings.frontend_origins)
    if settings.is_prod:
        raise ConfigurationError(
            "CORS misconfiguration: FRONTEND_ORIGINS is required in prod", missing=["FRONTEND_ORIGINS"]
        )
    return ["*"]


def create_app(
    settings: Optional[Settings] = None,
    *,
    documents: Optional[RemoteDocumentService] = None,
    identity: Optional[IdentityStore] = None,
    start_sync: bool = True,
) -> FastAPI:
    """
    Build the ASGI app. Settings are resolved here, not lazily, so a missing
    value fails the process at import/boot time.
    """
    if settings is None:
        load_dotenv_file()
        settings = Settings.from_env()
    allow_origins = _cors_origins(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup: build components, kick off the first sync + periodic loop.
        Shutdown: stop the loop, close upstream clients.
        """
        components: Components = build_components(settings, documents=documents, identity=identity)
        app.state.components = components
        logger.info(
            "🚦 startup env=%s categories=%s search=%s sync_interval_s=%s",
            settings.app_env, list(components.registry.names),
            settings.search_strategy, settings.sync_interval_s,
        )
        if start_sync:
            components.synchronizer.start()
        try:
            yield
        finally:
            await components.aclose()
            logger.info("shutdown complete")

    app = FastAPI(title="Intranet backend", lifespan=lifespan)
    app.state.settings = settings

    # ── CORS (MUST be before include_router) ----------------------------------
    wildcard = allow_origins == ["*"]
    logger.info("🔒 CORS allow_origins=%s app_env=%s", allow_origins, settings.app_env)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=not wildcard,  # credentials only with explicit origins
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["content-type", "authorization", "x-api-key", "x-corr-id"],
        expose_headers=["x-corr-id"],
        max_age=600,
    )

    # ── Core Middlewares -------------------------------------------------------
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(TimeoutMiddleware, timeout_s=settings.http_timeout_s)

    _install_error_handlers(app)
    for rp in ROUTERS:
        _include(app, rp)
    return app


# Instantiate the app (used by ASGI server)
app = create_app()


# ──────────────────────────────────────────────────────────────────────────────
# End of file
# ──────────────────────────────────────────────────────────────────────────────
