"""
Solana Pay Checkout — FastAPI Application

Fixed-price checkout on Solana: per-session reference tags, signature-history
polling, and exact-amount transfer validation. No database; sessions live in
memory for the lifetime of the process.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from domain.responses import error_response
from routes import checkout, health

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: validate settings. Shutdown: cancel sessions, close the RPC client."""
    settings.validate_production_settings()
    logger.info(
        f"Checkout service starting (rpc={settings.solana_rpc_url}, "
        f"merchant={settings.merchant_wallet[:8]}..., commitment={settings.commitment})"
    )

    yield  # app runs here

    from deps import shutdown_session_registry
    from solana_client import close_solana_client

    await shutdown_session_registry()
    await close_solana_client()
    logger.info("Shutting down")


# ── App Factory ─────────────────────────────────────────────────────

app = FastAPI(
    title="Solana Pay Checkout API",
    description="Fixed-price Solana Pay checkout with on-chain payment verification",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routes ──────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(checkout.router)


# ── Exception Handlers ──────────────────────────────────────────────


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Catch-all for unhandled exceptions.

    Never return raw exception details to clients; the traceback is logged.
    """
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_response("internal_server_error", "Internal server error"),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Wrap HTTPException (and DomainError subclasses) in the error envelope."""
    if hasattr(exc, "message") and hasattr(exc, "details"):
        error_code = exc.__class__.__name__.replace("Error", "").lower()
        content = error_response(error_code, exc.message, exc.details)
    else:
        detail = exc.detail
        message = detail if isinstance(detail, str) else "Request failed"
        content = error_response("http_error", message, detail if not isinstance(detail, str) else None)
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=error_response("request_validation", "Invalid request body", {"errors": jsonable_encoder(exc.errors())}),
    )


# ── Entrypoint ──────────────────────────────────────────────────────

if __name__ == "__main__":
    import os
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
