"""HTTP relay that keeps the provider API key server-side.

Run with ``rephraser-relay`` (or ``python relay_server.py``); settings come
from the environment, see ``config.RelaySettings``.
"""

from __future__ import annotations

import logging
import math
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import RelaySettings
from errors import ERROR_MESSAGES, RATE_LIMITED, SERVER_MISCONFIGURED, RephraserError, is_invalid_input
from logging_config import setup_logging
from models import Provider
from rate_limiter import SlidingWindowRateLimiter
from registry import parse_provider
from relay import RephraseRelay, validate_request

logger = logging.getLogger(__name__)

SERVICE_NAME = "rephraser-proxy"


def _error(status_code: int, message: str, headers: Optional[dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def create_app(
    settings: Optional[RelaySettings] = None,
    relay: Optional[RephraseRelay] = None,
    limiter: Optional[SlidingWindowRateLimiter] = None,
) -> FastAPI:
    """Build the relay application.

    Args:
        settings: Server settings, read from the environment when omitted.
        relay: Relay used for provider calls; tests inject one with a mock transport.
        limiter: Per-client rate limiter.
    """
    settings = settings or RelaySettings.from_env()
    provider = parse_provider(settings.provider)
    if provider is Provider.PROXY:
        raise ValueError("the relay cannot forward to another proxy")
    relay = relay or RephraseRelay(timeout_s=settings.request_timeout_s)
    limiter = limiter or SlidingWindowRateLimiter(
        window_s=settings.rate_limit_window_s,
        max_requests=settings.rate_limit_max_requests,
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        relay.close()
        logger.info("Relay client closed")

    app = FastAPI(title="Rephraser Relay", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.relay = relay
    app.state.limiter = limiter

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=True)
        return _error(500, "Internal server error")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": SERVICE_NAME}

    @app.post("/api/rephrase")
    async def rephrase(request: Request) -> JSONResponse:
        identity = request.client.host if request.client else "unknown"
        if not limiter.admit(identity):
            retry_after = math.ceil(limiter.retry_after(identity))
            logger.info("Rate limited %s (retry after %ss)", identity, retry_after)
            return _error(429, ERROR_MESSAGES[RATE_LIMITED], headers={"Retry-After": str(retry_after)})

        try:
            body = await request.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        try:
            text, style, _ = validate_request(body.get("text"), body.get("style"), provider)
        except RephraserError as exc:
            return _error(exc.http_status, exc.message)

        if not settings.api_key:
            logger.error("No provider API key is set, cannot serve rephrase requests")
            return _error(500, ERROR_MESSAGES[SERVER_MISCONFIGURED])

        try:
            rephrased = await run_in_threadpool(
                relay.transform, text, style, provider, settings.api_key
            )
        except RephraserError as exc:
            log = logger.info if is_invalid_input(exc.code) else logger.warning
            log("Rephrase failed for %s: %s", identity, exc.code)
            return _error(exc.http_status, exc.message)
        return JSONResponse(content={"rephrased": rephrased})

    return app


def main() -> int:
    settings = RelaySettings.from_env()
    setup_logging(level=settings.log_level)
    logger.info("Rephraser relay starting on %s:%d", settings.host, settings.port)
    logger.info("Provider API key: %s", "loaded" if settings.api_key else "MISSING")
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
