import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.config.permissions_config import Permission
from app.database.supabase_client import SupabaseClient
from app.modules.auth import routes as auth_routes
from app.modules.roles import routes as roles_routes
from app.modules.access import routes as access_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(StarletteHTTPException)
async def denial_logging_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 403:
        logger.info(f"Denied {request.method} {request.url.path}: {exc.detail}")
    return await http_exception_handler(request, exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    """Hardening headers; permission answers under /api are never cacheable"""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        no_store = scope.get("path", "").startswith("/api/")

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                ])
                if no_store:
                    headers.append((b"Cache-Control", b"no-store"))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(roles_routes.router, prefix="/api/v1")
app.include_router(access_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    if not SupabaseClient.is_configured():
        logger.warning("Supabase is not configured; every permission check will be denied")
    logger.info(f"{settings.app_name} started with {len(Permission)} catalog permissions")


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: the role store must be configured and reachable."""
    if not SupabaseClient.is_configured():
        return JSONResponse(status_code=503, content={"status": "not ready", "reason": "supabase not configured"})
    try:
        await asyncio.to_thread(SupabaseClient.check_roles_table)
    except Exception as e:
        logger.error(f"Role store unreachable: {e}")
        return JSONResponse(status_code=503, content={"status": "not ready", "reason": "role store unreachable"})
    return {"status": "ready"}
