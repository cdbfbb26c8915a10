"""Exa Coins marketplace — FastAPI Application Entry Point."""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.middleware.rate_limit import limiter
from app.routers import auth, coins, bookings, auctions, admin
from app.database import engine, Base, session_scope
from app.services import auction_service

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create all tables on startup
Base.metadata.create_all(bind=engine)


def sweep_expired_auctions() -> list[str]:
    """Settle every auction whose end time has passed."""
    with session_scope() as db:
        closed = auction_service.close_expired_auctions(db)
    if closed:
        logger.info("Closed %d expired auctions", len(closed))
    return closed


async def run_sweep_once() -> list[str]:
    """One sweep pass. Failures are logged so the next pass still runs."""
    try:
        return await asyncio.to_thread(sweep_expired_auctions)
    except Exception:
        logger.exception("Auction sweep failed")
        return []


async def _auction_sweeper():
    while True:
        await asyncio.sleep(settings.AUCTION_SWEEP_INTERVAL_SECONDS)
        await run_sweep_once()


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = None
    if settings.AUCTION_SWEEP_INTERVAL_SECONDS > 0:
        task = asyncio.create_task(_auction_sweeper())
    yield
    if task is not None:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task


# ── CORS origins from env (supports dev localhost + production domain) ──────
_cors_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app = FastAPI(
    title="Exa Coins",
    description="Coin ledger, bookings and auctions for a model marketplace.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report the first validation problem as a 400 with an ``error`` message."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        message = str(errors[0].get("msg", message)).removeprefix("Value error, ")
    return JSONResponse(
        status_code=400,
        content={"error": message, "details": [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors
        ]},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Routers
app.include_router(auth.router)
app.include_router(coins.router)
app.include_router(bookings.router)
app.include_router(auctions.router)
app.include_router(admin.router)


@app.get("/")
def root():
    return {
        "name": "Exa Coins API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "ok"}
