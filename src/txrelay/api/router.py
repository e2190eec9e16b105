from __future__ import annotations

from fastapi import APIRouter

from txrelay.api.routes import internal, relay

api_router = APIRouter()

api_router.include_router(relay.router)
api_router.include_router(internal.router)
