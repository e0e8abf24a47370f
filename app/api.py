from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from starlette.concurrency import run_in_threadpool
from dotenv import load_dotenv

from app.auth_utils import get_current_user
from app.routes import account, admin, applications, auth, dashboard, public
from app.routes import jobs, profile, recruiter, uploads
from core.config import configure_logging
from core.database import get_setting, init_db

# override=True so editing `.env` and restarting uvicorn reliably takes effect
load_dotenv(override=True)
configure_logging()

# Reachable while maintenance mode is on
MAINTENANCE_EXEMPT_PREFIXES = ("/login", "/logout", "/health", "/favicon.ico")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(lifespan=lifespan)


app.include_router(public.router)
app.include_router(auth.router)
app.include_router(dashboard.router)
app.include_router(profile.router)
# Recruiter routes own /jobs/create and /jobs/posted, so they precede /jobs/{job_id}
app.include_router(recruiter.router)
app.include_router(jobs.router)
app.include_router(applications.router)
app.include_router(admin.router)
app.include_router(account.router)
app.include_router(uploads.router)


def maintenance_enabled() -> bool:
    return bool(get_setting("maintenance_mode"))


@app.middleware("http")
async def maintenance_gate(request: Request, call_next):
    path = request.url.path
    # Settings and session lookups are blocking psycopg calls
    if not path.startswith(MAINTENANCE_EXEMPT_PREFIXES) and await run_in_threadpool(maintenance_enabled):
        user, _ = await run_in_threadpool(get_current_user, request)
        if not user or user.get("role") != "admin":
            return HTMLResponse(
                "The site is down for maintenance. Please check back soon.",
                status_code=503,
            )
    return await call_next(request)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault(
        "Content-Security-Policy",
        "default-src 'self'; img-src 'self' data:; style-src 'self' 'unsafe-inline'; script-src 'self' 'unsafe-inline'; "
        "font-src 'self' data:; connect-src 'self';",
    )
    return response
