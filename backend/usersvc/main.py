# usersvc/main.py
import logging
import time

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from usersvc.config import settings
from usersvc.core.db import init_db, close_db
from usersvc.core.errors import ServiceError, ValidationError
from usersvc.core.redis import create_redis_client, close_redis
from usersvc.core.bootstrap import ensure_default_admin
from usersvc.services.factory import build_account_service

from usersvc.api import rpc
from usersvc.api.v1.routers import users

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def access_log(request: Request, call_next):
    """Log method, path, status and duration of every request not in IGNORE_LOG_URLS."""
    start = time.perf_counter()
    response = await call_next(request)
    if request.url.path not in settings.ignore_log_urls:
        logger.info(
            "[http] %s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000,
        )
    return response


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    # Operator-side failures are logged with their cause; the client only sees code + message
    if exc.http_status >= 500:
        logger.error("[error] %s %s -> %s: %s (cause: %r)",
                     request.method, request.url.path, exc.code, exc.message, exc.__cause__)
    debug = settings.debug_errors_response
    if request.url.path.startswith(rpc.RPC_PREFIX):
        return rpc.rpc_error_response(exc, debug)
    return JSONResponse(status_code=exc.http_status, content={"detail": exc.to_detail(debug)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    if request.url.path.startswith(rpc.RPC_PREFIX):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg', 'invalid')}" if field else "Invalid request message"
        return rpc.rpc_error_response(ValidationError(message))
    return await request_validation_exception_handler(request, exc)


@app.on_event("startup")
async def on_startup():
    await init_db()
    app.state.redis = create_redis_client(settings.redis_url, settings.redis_socket_timeout)
    app.state.accounts = build_account_service(settings, app.state.redis)
    # Ensure there's a default admin account on first run
    await ensure_default_admin(app.state.accounts)


@app.on_event("shutdown")
async def on_shutdown():
    await close_db()
    redis_client = getattr(app.state, "redis", None)
    if redis_client is not None:
        await close_redis(redis_client)


# REST
app.include_router(users.router, prefix="/api/v1")

# RPC
app.include_router(rpc.router)


@app.get("/healthz")
def healthz():
    return {"ok": True}


def run():
    """Console entry point: serve the app with uvicorn on HOST:PORT."""
    import uvicorn

    uvicorn.run("usersvc.main:app", host=settings.host, port=settings.port)
