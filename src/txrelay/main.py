from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from txrelay.api.middleware import PermissiveCORSMiddleware
from txrelay.api.routes.relay import (
    INVALID_BODY_ERROR,
    MISSING_FIELDS_ERROR,
    SUBMISSION_FAILED_ERROR,
)
from txrelay.config import Settings, get_settings
from txrelay.monitoring.logging_config import setup_logging

logger = logging.getLogger(__name__)

REQUIRED_FIELD_LOCS = {"playerAddress", "subjectAddress", "player_address", "action"}


def _is_required_field_error(err: dict) -> bool:
    """True when the error is about the body as a whole or a required field."""
    loc = [part for part in err.get("loc", ()) if part != "body"]
    return not loc or loc[0] in REQUIRED_FIELD_LOCS


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    from txrelay.evm.nonce_tracker import NonceTracker
    from txrelay.evm.submitter import Web3Submitter
    from txrelay.services.relay_queue import RelayQueue

    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.log_format)

    submitter = Web3Submitter(settings)
    await submitter.initialize()
    tracker = NonceTracker(submitter, submitter.address)

    app.state.submitter = submitter
    app.state.relay_queue = RelayQueue(submitter, tracker)
    logger.info("Relay ready", extra={"relayer": submitter.address, "chain_id": settings.chain_id})

    yield

    # Shutdown: let the in-flight drain finish, then drop the RPC session
    await app.state.relay_queue.close()
    await submitter.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the relay app. Missing configuration raises ConfigurationError here."""
    settings = settings or get_settings()

    app = FastAPI(
        title="txrelay",
        description="Single-signer transaction relay",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    cors_headers = settings.cors_header_map

    app.add_middleware(PermissiveCORSMiddleware, headers=cors_headers)

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError):
        message = MISSING_FIELDS_ERROR
        if not all(_is_required_field_error(err) for err in exc.errors()):
            message = INVALID_BODY_ERROR
        return JSONResponse(status_code=400, content={"error": message}, headers=cors_headers)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        # Runs outside the middleware stack, so CORS headers are set here too
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=500, content={"error": SUBMISSION_FAILED_ERROR}, headers=cors_headers
        )

    from txrelay.api.router import api_router

    app.include_router(api_router, prefix="/api")

    return app
